import logging
from typing import Any, Dict, List, Mapping, Optional

from database import utcnow_iso
from schemas import CartItem
from storage import ClientStorage
from utils import effective_price

logger = logging.getLogger(__name__)


def cart_key(user_id: str) -> str:
    return f"cart_{user_id}"


class CartState:
    """Shopping cart of the signed-in user.

    Lines are keyed by product, size and color. Every mutation writes the
    whole list to the user's storage slot before returning. Without a user
    the cart still works in memory but nothing is persisted.
    """

    def __init__(self, storage: ClientStorage):
        self.storage = storage
        self.items: List[CartItem] = []
        self.is_loading = False
        self.user_id: Optional[str] = None

    def on_user_changed(self, user: Optional[Mapping[str, Any]]) -> None:
        if user:
            self.user_id = user["uid"]
            self.load()
        else:
            self.user_id = None
            self.items = []

    def load(self) -> None:
        if not self.user_id:
            return
        saved = self.storage.load(cart_key(self.user_id), default=[])
        self.items = [CartItem(**item) for item in saved]

    def save(self) -> None:
        if self.user_id:
            self.storage.save(cart_key(self.user_id), [item.model_dump() for item in self.items])

    def add_to_cart(self, product: Mapping[str, Any], quantity: int = 1, size: str = "", color: str = "") -> CartItem:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        self.is_loading = True
        try:
            product_id = str(product["id"])
            item_id = f"{product_id}_{size}_{color}"
            existing = self.find(item_id)
            if existing:
                existing.quantity += quantity
                line = existing
            else:
                images = product.get("images") or []
                line = CartItem(
                    id=item_id,
                    product_id=product_id,
                    name=product["name"],
                    price=effective_price(product),
                    original_price=product["price"],
                    image=images[0] if images else None,
                    quantity=quantity,
                    size=size,
                    color=color,
                    added_at=utcnow_iso(),
                )
                self.items.append(line)
            self.save()
            logger.debug("Cart %s: %s x%d", self.user_id, item_id, line.quantity)
            return line
        finally:
            self.is_loading = False

    def find(self, item_id: str) -> Optional[CartItem]:
        return next((item for item in self.items if item.id == item_id), None)

    def remove_from_cart(self, item_id: str) -> None:
        self.items = [item for item in self.items if item.id != item_id]
        self.save()

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_from_cart(item_id)
            return
        for item in self.items:
            if item.id == item_id:
                item.quantity = quantity
        self.save()

    def clear_cart(self) -> None:
        self.items = []
        if self.user_id:
            self.storage.remove(cart_key(self.user_id))

    def get_cart_total(self) -> float:
        return sum(item.price * item.quantity for item in self.items)

    def get_cart_item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def is_in_cart(self, product_id: Any) -> bool:
        return any(item.product_id == str(product_id) for item in self.items)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.model_dump() for item in self.items],
            "total": self.get_cart_total(),
            "count": self.get_cart_item_count(),
        }
