"""
Database Schemas

Pydantic models for the documents the storefront stores.
Collections: "users", "products", "storage", "revoked_tokens". Cart lines live inside a
storage slot rather than in their own collection.
"""

from pydantic import BaseModel, Field, EmailStr
from typing import Any, Dict, Optional, List

ROLES = ("user", "admin", "moderator")


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="BCrypt hashed password")
    role: str = Field("user", description="Role: user | admin | moderator")
    created_at: str
    updated_at: str
    badge: str = Field("Bronze", description="Loyalty tier")
    orders: int = 0
    total_spent: float = 0
    is_active: bool = True


class Seo(BaseModel):
    title: str
    description: str
    keywords: List[str] = Field(default_factory=list)


class Product(BaseModel):
    name: str
    slug: str = Field("", description="URL-safe form of the name")
    description: str
    price: float = Field(..., ge=0)
    sale_price: Optional[float] = Field(None, ge=0)
    category: str
    subcategory: str = ""
    images: List[str]
    sizes: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    inventory: int = 0
    specifications: Dict[str, Any] = Field(default_factory=dict)
    search_keywords: List[str] = Field(default_factory=list)
    seo: Seo
    is_active: bool = True
    is_featured: bool = False
    created_at: str
    updated_at: str
    views: int = 0
    sales: int = 0
    rating: float = Field(default=0, ge=0, le=5)
    review_count: int = 0


class CartItem(BaseModel):
    id: str = Field(..., description="{product_id}_{size}_{color}")
    product_id: str
    name: str
    price: float = Field(..., description="Effective price at the time of adding")
    original_price: float
    image: Optional[str] = None
    quantity: int = Field(..., ge=1)
    size: str = ""
    color: str = ""
    added_at: str
