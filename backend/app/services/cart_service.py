# backend/app/services/cart_service.py

import json
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.errors import InvalidRequest, NotFound
from app.utils.helpers import money, to_decimal


class Cart:
    """
    A user's cart. A line is identified by (product_id, size); adding the
    same pair again bumps the quantity instead of adding a second line.
    """

    def __init__(self, items: Optional[List[Dict[str, Any]]] = None):
        self.items: List[Dict[str, Any]] = [dict(i) for i in (items or [])]

    def _find(self, product_id: str, size: str) -> Optional[Dict[str, Any]]:
        for item in self.items:
            if item["product_id"] == str(product_id) and item["size"] == str(size):
                return item
        return None

    def add_item(self, product: Dict[str, Any], size: str, quantity: int = 1) -> None:
        if quantity < 1:
            raise InvalidRequest("Quantity must be at least 1")

        existing = self._find(product["id"], size)
        if existing:
            existing["quantity"] += quantity
            return

        self.items.append(
            {
                "product_id": str(product["id"]),
                "title": product.get("title"),
                "price": str(money(product.get("price"))),
                "image": (product.get("images") or [None])[0],
                "size": str(size),
                "size_type": product.get("size_type") or "US",
                "quantity": quantity,
            }
        )

    def remove_item(self, product_id: str, size: str) -> None:
        self.items = [
            i for i in self.items
            if not (i["product_id"] == str(product_id) and i["size"] == str(size))
        ]

    def update_quantity(self, product_id: str, size: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(product_id, size)
            return

        item = self._find(product_id, size)
        if item is None:
            raise NotFound("Item not in cart")
        item["quantity"] = quantity

    def clear(self) -> None:
        self.items = []

    def total_items(self) -> int:
        return sum(int(i["quantity"]) for i in self.items)

    def subtotal(self) -> Decimal:
        return money(sum(to_decimal(i["price"]) * int(i["quantity"]) for i in self.items))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": self.items,
            "total_items": self.total_items(),
            "subtotal": self.subtotal(),
        }


# -------------------------------------------------
# PERSISTENCE
# -------------------------------------------------
def load_cart(conn, user_id: str) -> Cart:
    cur = conn.cursor()
    cur.execute("SELECT items FROM carts WHERE user_id = %s", (user_id,))
    row = cur.fetchone()
    cur.close()

    if not row:
        return Cart()

    items = row["items"]
    if isinstance(items, str):
        items = json.loads(items)
    return Cart(items)


def save_cart(conn, user_id: str, cart: Cart) -> None:
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO carts (user_id, items, updated_at)
            VALUES (%s, %s::jsonb, now())
            ON CONFLICT (user_id)
            DO UPDATE SET items = EXCLUDED.items, updated_at = now()
            """,
            (user_id, json.dumps(cart.items)),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
