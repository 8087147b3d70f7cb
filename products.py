"""
Product document preparation.

Routes hand raw JSON bodies to these helpers; they validate, fill in
defaults and derive the search keyword set before anything reaches the
repository.
"""

from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from database import utcnow_iso
from errors import ValidationFailure
from schemas import Product, Seo
from utils import generate_slug

REQUIRED_FIELDS = ("name", "description", "price", "category", "images")

# Fields only the server writes.
SERVER_MANAGED_FIELDS = (
    "id", "_id", "slug", "created_at", "views", "sales", "rating", "review_count", "search_keywords",
)

KEYWORD_SOURCES = ("name", "description", "tags")

SORTABLE_FIELDS = ("created_at", "updated_at", "price", "name", "rating", "sales", "views")


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or value == []


def build_search_keywords(name: str = "", description: str = "", category: str = "",
                          subcategory: str = "", tags: Optional[Iterable[str]] = None) -> List[str]:
    words: List[str] = []
    for text in (name, description, category, subcategory, *(tags or [])):
        if text:
            words.extend(str(text).lower().split())
    seen = set()
    keywords = []
    for word in words:
        if len(word) > 2 and word not in seen:
            seen.add(word)
            keywords.append(word)
    return keywords


def search_terms(search: Optional[str]) -> List[str]:
    if not search:
        return []
    return [term for term in search.lower().split() if term]


def _to_float(value: Any, field: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationFailure(f"Field '{field}' must be a number")


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def prepare_product(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a create request and build the full product document."""
    if any(_is_missing(payload.get(field)) for field in REQUIRED_FIELDS):
        raise ValidationFailure("Missing required fields")

    images = payload["images"]
    if isinstance(images, str):
        images = [images]
    tags = list(payload.get("tags") or [])
    sale_price = payload.get("sale_price")
    now = utcnow_iso()

    try:
        product = Product(
            name=payload["name"],
            slug=generate_slug(str(payload["name"])),
            description=payload["description"],
            price=_to_float(payload["price"], "price"),
            sale_price=_to_float(sale_price, "sale_price") if not _is_missing(sale_price) else None,
            category=payload["category"],
            subcategory=payload.get("subcategory") or "",
            images=images,
            sizes=payload.get("sizes") or [],
            colors=payload.get("colors") or [],
            tags=tags,
            inventory=_to_int(payload.get("inventory")),
            specifications=payload.get("specifications") or {},
            search_keywords=build_search_keywords(
                payload["name"], payload["description"], payload["category"],
                payload.get("subcategory") or "", tags,
            ),
            seo=Seo(
                title=payload.get("seo_title") or payload["name"],
                description=payload.get("seo_description") or payload["description"],
                keywords=payload.get("seo_keywords") or tags,
            ),
            is_featured=bool(payload.get("is_featured", False)),
            created_at=now,
            updated_at=now,
        )
    except ValidationError as e:
        raise ValidationFailure(f"Invalid product: {e.errors()[0]['msg']}")
    return product.model_dump()


def prepare_update(payload: Dict[str, Any], existing: Dict[str, Any]) -> Dict[str, Any]:
    """Turn an update request into the `$set` document for an existing product."""
    changes = {k: v for k, v in payload.items() if k not in SERVER_MANAGED_FIELDS}

    if "price" in changes:
        changes["price"] = _to_float(changes["price"], "price")
    if "sale_price" in changes and not _is_missing(changes["sale_price"]):
        changes["sale_price"] = _to_float(changes["sale_price"], "sale_price")

    if "name" in changes:
        changes["slug"] = generate_slug(str(changes["name"] or ""))

    if any(field in changes for field in KEYWORD_SOURCES):
        merged = {**existing, **changes}
        changes["search_keywords"] = build_search_keywords(
            merged.get("name", ""), merged.get("description", ""), merged.get("category", ""),
            merged.get("subcategory", ""), merged.get("tags") or [],
        )

    changes["updated_at"] = utcnow_iso()
    return changes
