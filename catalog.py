"""
Shop view over the statically seeded catalog.

Every filter change recomputes the whole view from the seed list. That is
fine for a handful of products and is not meant to scale.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from utils import calculate_discount, effective_price, format_currency

SAMPLE_PRODUCTS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "name": "Premium Cotton T-Shirt",
        "price": 1200,
        "sale_price": 999,
        "category": "men",
        "subcategory": "t-shirts",
        "images": ["https://images.unsplash.com/photo-1521572163474-6864f9cf17ab?w=400&h=400&fit=crop&crop=center"],
        "rating": 4.8,
        "reviews": 124,
        "badge": "Best Seller",
        "in_stock": True,
    },
    {
        "id": 2,
        "name": "Denim Jacket",
        "price": 3500,
        "sale_price": 2800,
        "category": "men",
        "subcategory": "jackets",
        "images": ["https://images.unsplash.com/photo-1542272604-787c3835535d?w=400&h=400&fit=crop&crop=center"],
        "rating": 4.6,
        "reviews": 89,
        "badge": "Sale",
        "in_stock": True,
    },
    {
        "id": 3,
        "name": "Summer Dress",
        "price": 2200,
        "sale_price": 1800,
        "category": "women",
        "subcategory": "dresses",
        "images": ["https://images.unsplash.com/photo-1515372039744-b8f02a3ae446?w=400&h=400&fit=crop&crop=center"],
        "rating": 4.9,
        "reviews": 156,
        "badge": "Trending",
        "in_stock": True,
    },
    {
        "id": 4,
        "name": "Casual Sneakers",
        "price": 4500,
        "sale_price": 3600,
        "category": "accessories",
        "subcategory": "shoes",
        "images": ["https://images.unsplash.com/photo-1549298916-b41d501d3772?w=400&h=400&fit=crop&crop=center"],
        "rating": 4.7,
        "reviews": 203,
        "badge": "Popular",
        "in_stock": True,
    },
    {
        "id": 5,
        "name": "Elegant Blouse",
        "price": 1800,
        "sale_price": 1500,
        "category": "women",
        "subcategory": "tops",
        "images": ["https://images.unsplash.com/photo-1594633312681-425c7b97ccd1?w=400&h=400&fit=crop&crop=center"],
        "rating": 4.5,
        "reviews": 78,
        "badge": "New",
        "in_stock": True,
    },
    {
        "id": 6,
        "name": "Kids T-Shirt",
        "price": 800,
        "sale_price": 650,
        "category": "kids",
        "subcategory": "t-shirts",
        "images": ["https://images.unsplash.com/photo-1503944583220-79d8926ad5e2?w=400&h=400&fit=crop&crop=center"],
        "rating": 4.4,
        "reviews": 45,
        "badge": "Kids",
        "in_stock": True,
    },
]

SORT_OPTIONS = [
    {"value": "newest", "label": "Newest First"},
    {"value": "price-low", "label": "Price: Low to High"},
    {"value": "price-high", "label": "Price: High to Low"},
    {"value": "rating", "label": "Highest Rated"},
]

CATEGORY_OPTIONS = [
    {"value": "all", "label": "All Categories"},
    {"value": "men", "label": "Men"},
    {"value": "women", "label": "Women"},
    {"value": "kids", "label": "Kids"},
    {"value": "accessories", "label": "Accessories"},
]

CATEGORIES = [
    {
        "id": "men",
        "name": "Men's Fashion",
        "description": "Stylish clothing and accessories for men",
        "image": "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=400&h=300&fit=crop&crop=center",
        "product_count": 150,
        "subcategories": ["T-Shirts", "Shirts", "Jeans", "Jackets", "Sneakers", "Accessories"],
    },
    {
        "id": "women",
        "name": "Women's Fashion",
        "description": "Elegant and trendy fashion for women",
        "image": "https://images.unsplash.com/photo-1494790108755-2616c9c0e8e0?w=400&h=300&fit=crop&crop=center",
        "product_count": 200,
        "subcategories": ["Dresses", "Tops", "Jeans", "Skirts", "Heels", "Handbags"],
    },
    {
        "id": "kids",
        "name": "Kids' Fashion",
        "description": "Comfortable and fun clothing for children",
        "image": "https://images.unsplash.com/photo-1503944583220-79d8926ad5e2?w=400&h=300&fit=crop&crop=center",
        "product_count": 80,
        "subcategories": ["Boys", "Girls", "Baby", "Shoes", "Toys"],
    },
    {
        "id": "accessories",
        "name": "Accessories",
        "description": "Complete your look with our accessories",
        "image": "https://images.unsplash.com/photo-1553062407-98eeb64c6a62?w=400&h=300&fit=crop&crop=center",
        "product_count": 120,
        "subcategories": ["Bags", "Watches", "Jewelry", "Sunglasses", "Belts"],
    },
]


@dataclass
class ShopFilters:
    search: str = ""
    category: str = "all"
    min_price: float = 0
    max_price: float = 10000
    sort: str = "newest"


def filter_products(products: List[Dict[str, Any]], filters: ShopFilters) -> List[Dict[str, Any]]:
    filtered = list(products)

    if filters.search:
        needle = filters.search.lower()
        filtered = [
            p for p in filtered
            if needle in p["name"].lower() or needle in p["category"].lower()
        ]

    if filters.category != "all":
        filtered = [p for p in filtered if p["category"] == filters.category]

    filtered = [
        p for p in filtered
        if filters.min_price <= effective_price(p) <= filters.max_price
    ]

    if filters.sort == "price-low":
        filtered.sort(key=effective_price)
    elif filters.sort == "price-high":
        filtered.sort(key=effective_price, reverse=True)
    elif filters.sort == "rating":
        filtered.sort(key=lambda p: p["rating"], reverse=True)
    else:
        filtered.sort(key=lambda p: p["id"], reverse=True)

    return filtered


def present(product: Dict[str, Any]) -> Dict[str, Any]:
    """Product card fields: effective price, discount and formatted prices."""
    price = effective_price(product)
    card = dict(product)
    card["effective_price"] = price
    card["display_price"] = format_currency(price)
    if product.get("sale_price") and product["sale_price"] < product["price"]:
        card["display_original_price"] = format_currency(product["price"])
        card["discount"] = calculate_discount(product["price"], product["sale_price"])
    return card


def find_product(product_id: str) -> Optional[Dict[str, Any]]:
    return next((p for p in SAMPLE_PRODUCTS if str(p["id"]) == str(product_id)), None)
