"""
Durable key-value slots, one namespace per client.

Values are stored as serialized JSON strings. Writes go straight through to
the backing store; nothing is batched or cached.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from pymongo.collection import Collection

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    @abstractmethod
    def get_item(self, client_id: str, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set_item(self, client_id: str, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove_item(self, client_id: str, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """Process-local store, used when no database is configured."""

    def __init__(self):
        self._items: Dict[Tuple[str, str], str] = {}

    def get_item(self, client_id, key):
        return self._items.get((client_id, key))

    def set_item(self, client_id, key, value):
        self._items[(client_id, key)] = value

    def remove_item(self, client_id, key):
        self._items.pop((client_id, key), None)


class MongoStore(KeyValueStore):
    def __init__(self, collection: Collection):
        self.collection = collection

    def get_item(self, client_id, key):
        doc = self.collection.find_one({"client_id": client_id, "key": key})
        return doc.get("value") if doc else None

    def set_item(self, client_id, key, value):
        self.collection.update_one(
            {"client_id": client_id, "key": key},
            {"$set": {"value": value}},
            upsert=True,
        )

    def remove_item(self, client_id, key):
        self.collection.delete_one({"client_id": client_id, "key": key})


class ClientStorage:
    """A store scoped to one client, reading and writing JSON values."""

    def __init__(self, store: KeyValueStore, client_id: str):
        self.store = store
        self.client_id = client_id

    def load(self, key: str, default: Any = None) -> Any:
        raw = self.store.get_item(self.client_id, key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable value for %s", key)
            return default

    def save(self, key: str, value: Any) -> None:
        self.store.set_item(self.client_id, key, json.dumps(value))

    def remove(self, key: str) -> None:
        self.store.remove_item(self.client_id, key)
