from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Optional, Union

from market.constants import CART_STORAGE_KEY, CART_STORAGE_VERSION
from market.store.storage import Storage, read_json, write_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartItem:
    id: int
    title: str
    price: float
    type: str = "DIGITAL"
    image: Optional[str] = None
    quantity: int = 1

    @classmethod
    def from_listing(cls, listing: Dict[str, Any], quantity: int = 1) -> "CartItem":
        images = listing.get("images") or []
        return cls(
            id=int(listing["id"]),
            title=str(listing.get("title") or ""),
            price=float(listing.get("price") or 0),
            type=str(listing.get("type") or "DIGITAL"),
            image=images[0] if images else None,
            quantity=quantity,
        )

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


Product = Union[CartItem, Dict[str, Any]]


def _clamp(quantity: int) -> int:
    return max(1, int(quantity))


class CartStore:
    """Корзина посетителя.

    Каждая мутация сразу сохраняет список позиций в storage под CART_STORAGE_KEY;
    итог и количество считаются на лету и не сохраняются.
    """

    def __init__(self, storage: Storage, key: str = CART_STORAGE_KEY) -> None:
        self._storage = storage
        self._key = key
        self.items: List[CartItem] = self._load()

    def _load(self) -> List[CartItem]:
        raw = read_json(self._storage, self._key)
        if not isinstance(raw, dict):
            return []
        state = raw.get("state") or {}
        items: List[CartItem] = []
        for it in state.get("items") or []:
            try:
                items.append(
                    CartItem(
                        id=int(it["id"]),
                        title=str(it.get("title") or ""),
                        price=float(it.get("price") or 0),
                        type=str(it.get("type") or "DIGITAL"),
                        image=it.get("image"),
                        quantity=_clamp(it.get("quantity") or 1),
                    )
                )
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed cart entry: %r", it)
        return items

    def _persist(self) -> None:
        write_json(
            self._storage,
            self._key,
            {"state": {"items": [asdict(i) for i in self.items]}, "version": CART_STORAGE_VERSION},
        )

    def _set(self, items: List[CartItem]) -> None:
        self.items = items
        self._persist()

    def find(self, product_id: int) -> Optional[CartItem]:
        for it in self.items:
            if it.id == product_id:
                return it
        return None

    def add_item(self, product: Product, quantity: int = 1) -> None:
        item = product if isinstance(product, CartItem) else CartItem.from_listing(product)
        existing = self.find(item.id)
        if existing is not None:
            self._set(
                [
                    replace(it, quantity=_clamp(it.quantity + quantity)) if it.id == item.id else it
                    for it in self.items
                ]
            )
        else:
            self._set(self.items + [replace(item, quantity=_clamp(quantity))])

    def remove_item(self, product_id: int) -> None:
        if self.find(product_id) is None:
            return
        self._set([it for it in self.items if it.id != product_id])

    def update_quantity(self, product_id: int, quantity: int) -> None:
        if self.find(product_id) is None:
            return
        self._set(
            [replace(it, quantity=_clamp(quantity)) if it.id == product_id else it for it in self.items]
        )

    def clear_cart(self) -> None:
        self._set([])

    def get_total(self) -> float:
        return sum(it.price * it.quantity for it in self.items)

    def get_items_count(self) -> int:
        return sum(it.quantity for it in self.items)
