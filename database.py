"""
Database connection and product repository.

The connection parameters come from the environment. When they are missing
the process still starts, `db` stays None and every database-backed call
fails instead.
"""

import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

logger = logging.getLogger(__name__)

REQUIRED_SETTINGS = ["DATABASE_URL", "DATABASE_NAME"]

db: Optional[Database] = None

_missing = [name for name in REQUIRED_SETTINGS if not os.getenv(name)]
if _missing:
    logger.error("Missing database configuration: %s", ", ".join(_missing))
else:
    _client = MongoClient(os.getenv("DATABASE_URL"))
    db = _client[os.getenv("DATABASE_NAME")]


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    doc = dict(doc)
    _id = doc.pop("_id", None)
    if _id is not None:
        doc["id"] = str(_id)
    for k, v in list(doc.items()):
        if isinstance(v, ObjectId):
            doc[k] = str(v)
    return doc


def to_object_id(value: Optional[str]) -> Optional[ObjectId]:
    # ObjectId(None) would mint a fresh id
    if not isinstance(value, str):
        return None
    try:
        return ObjectId(value)
    except InvalidId:
        return None


class ProductRepository(ABC):
    """Narrow interface the product routes depend on.

    Any backing store can be used as long as it implements these methods
    with the same filter and sort parameters.
    """

    @abstractmethod
    def list(self, *, category: Optional[str] = None, subcategory: Optional[str] = None,
             min_price: Optional[float] = None, max_price: Optional[float] = None,
             search_terms: Optional[List[str]] = None, sort_by: str = "created_at",
             order: str = "desc", page: int = 1, limit: int = 12) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def get(self, product_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def update(self, product_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def delete(self, product_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def featured(self, limit: int = 8) -> List[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def by_category(self, category: str, limit: int = 12) -> List[Dict[str, Any]]:
        raise NotImplementedError


class MongoProductRepository(ProductRepository):
    def __init__(self, collection: Collection):
        self.collection = collection

    def list(self, *, category=None, subcategory=None, min_price=None, max_price=None,
             search_terms=None, sort_by="created_at", order="desc", page=1, limit=12):
        query: Dict[str, Any] = {}
        if category:
            query["category"] = category
        if subcategory:
            query["subcategory"] = subcategory
        price_filter: Dict[str, Any] = {}
        if min_price is not None:
            price_filter["$gte"] = float(min_price)
        if max_price is not None:
            price_filter["$lte"] = float(max_price)
        if price_filter:
            query["price"] = price_filter
        if search_terms:
            query["search_keywords"] = {"$in": search_terms}

        direction = ASCENDING if order == "asc" else DESCENDING
        skip = max(page - 1, 0) * limit
        cursor = self.collection.find(query).sort(sort_by, direction).skip(skip).limit(limit)
        return [serialize_doc(d) for d in cursor]

    def get(self, product_id):
        obj_id = to_object_id(product_id)
        if obj_id is None:
            return None
        return serialize_doc(self.collection.find_one({"_id": obj_id}))

    def create(self, data):
        doc = dict(data)
        inserted_id = self.collection.insert_one(doc).inserted_id
        return serialize_doc(self.collection.find_one({"_id": inserted_id}))

    def update(self, product_id, changes):
        obj_id = to_object_id(product_id)
        if obj_id is None:
            return None
        res = self.collection.update_one({"_id": obj_id}, {"$set": changes})
        if res.matched_count == 0:
            return None
        return serialize_doc(self.collection.find_one({"_id": obj_id}))

    def delete(self, product_id):
        obj_id = to_object_id(product_id)
        if obj_id is None:
            return
        self.collection.delete_one({"_id": obj_id})

    def featured(self, limit=8):
        cursor = (
            self.collection.find({"is_featured": True, "is_active": True})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        return [serialize_doc(d) for d in cursor]

    def by_category(self, category, limit=12):
        cursor = (
            self.collection.find({"category": category, "is_active": True})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        return [serialize_doc(d) for d in cursor]


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
