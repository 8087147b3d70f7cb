import re
from typing import Any, Mapping


def effective_price(product: Mapping[str, Any]) -> float:
    """Sale price when the product has one, list price otherwise."""
    return product.get("sale_price") or product.get("price") or 0


def calculate_discount(original_price: float, sale_price: float) -> int:
    if not original_price:
        return 0
    return round((original_price - sale_price) / original_price * 100)


def format_currency(amount: float) -> str:
    if float(amount).is_integer():
        return f"৳{int(amount):,}"
    return f"৳{amount:,.2f}"


def generate_slug(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower())
    return slug.strip("-")
