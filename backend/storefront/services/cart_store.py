"""
Cart Store
Authoritative set of cart items for one client session

Every mutation writes the full item list to the session's local storage
under a fixed key; a new store rehydrates from that key. Invariants:
- at most one item per product id
- no item with quantity <= 0 (the item is removed instead)
"""
import json
import logging
from decimal import Decimal
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from storefront.domain.cart import CartItem
from storefront.domain.product import Product

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "user_cart"

_cart_items_adapter = TypeAdapter(List[CartItem])


class CartStore:
    """
    Shopping cart of one client session

    Args:
        storage: Local storage (MemoryStorage, FileStorage, ...)
        storage_key: Key holding the serialized JSON array of items
    """

    def __init__(self, storage, storage_key: str = CART_STORAGE_KEY):
        self._storage = storage
        self._storage_key = storage_key
        self._items: List[CartItem] = self._load()
        self.is_cart_open = False

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> List[CartItem]:
        """Rehydrate from storage; anything unreadable yields an empty cart"""
        try:
            raw = self._storage.get_item(self._storage_key)
            if raw is None:
                return []
            items = _cart_items_adapter.validate_python(json.loads(raw))
        except (OSError, ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Discarding corrupt cart payload under '{self._storage_key}': {e}")
            return []

        ids = [item.id for item in items]
        if len(ids) != len(set(ids)):
            logger.warning(f"Discarding cart payload with duplicate product ids under '{self._storage_key}'")
            return []

        return items

    def _persist(self) -> None:
        self._storage.set_item(self._storage_key, self.serialize())

    def serialize(self) -> str:
        """Current items as the JSON array that is stored"""
        return _cart_items_adapter.dump_json(self._items).decode("utf-8")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def items(self) -> List[CartItem]:
        return [item.model_copy() for item in self._items]

    @property
    def is_empty(self) -> bool:
        return not self._items

    def _find(self, product_id: str) -> Optional[CartItem]:
        for item in self._items:
            if item.id == product_id:
                return item
        return None

    def get_total(self) -> Decimal:
        """Sum of price x quantity over all items"""
        return sum((item.price * item.quantity for item in self._items), Decimal("0"))

    def get_item_count(self) -> int:
        """Sum of quantities"""
        return sum(item.quantity for item in self._items)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_to_cart(self, product) -> CartItem:
        """
        Add one unit of a product and open the cart panel

        Accepts a catalog Product or an already built CartItem snapshot.
        """
        existing = self._find(product.id)
        if existing is not None:
            existing.quantity += 1
            line = existing
        else:
            if isinstance(product, Product):
                line = CartItem.from_product(product)
            else:
                line = CartItem(**{**product.model_dump(), "quantity": 1})
            self._items.append(line)

        self._persist()
        self.is_cart_open = True
        return line.model_copy()

    def remove_from_cart(self, product_id: str) -> None:
        """Remove the product's line; unknown ids are ignored"""
        remaining = [item for item in self._items if item.id != product_id]
        if len(remaining) != len(self._items):
            self._items = remaining
            self._persist()

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """Set the quantity of a line; 0 or less removes it, unknown ids are ignored"""
        if quantity <= 0:
            self.remove_from_cart(product_id)
            return

        item = self._find(product_id)
        if item is None:
            return
        item.quantity = quantity
        self._persist()

    def clear_cart(self) -> None:
        self._items = []
        self._persist()

    def set_cart_open(self, is_open: bool) -> None:
        self.is_cart_open = is_open

    def to_dict(self, language=None) -> dict:
        kwargs = {"language": language} if language is not None else {}
        return {
            "items": [item.to_dict(**kwargs) for item in self._items],
            "total": float(self.get_total()),
            "item_count": self.get_item_count(),
            "is_cart_open": self.is_cart_open,
        }
