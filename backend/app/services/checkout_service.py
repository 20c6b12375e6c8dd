# backend/app/services/checkout_service.py

import json
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.errors import Conflict, InvalidRequest
from app.services.commission import commission_amount
from app.services.coupon_service import resolve_coupon
from app.services.credits_service import CREDITS_PER_DOLLAR, deduct_credits
from app.utils.helpers import money, to_decimal

logger = logging.getLogger("storefront.checkout")

TAX_RATE = Decimal("0.08")


def price_order(
    subtotal: Any,
    credits_to_apply: int = 0,
    coupon_discount_rate: Any = 0,
) -> Dict[str, Any]:
    """
    Coupon first, then credits (100 credits = $1, never more than what is
    left), then 8% tax on the remainder.
    """
    if credits_to_apply < 0:
        raise InvalidRequest("credits_to_apply must be >= 0")

    subtotal = money(subtotal)
    coupon_discount = money(subtotal * to_decimal(coupon_discount_rate))
    after_coupon = subtotal - coupon_discount

    credit_discount = min(money(Decimal(credits_to_apply) / CREDITS_PER_DOLLAR), after_coupon)
    credits_used = int(credit_discount * CREDITS_PER_DOLLAR)

    taxable = max(Decimal("0.00"), after_coupon - credit_discount)
    tax = money(taxable * TAX_RATE)

    return {
        "subtotal": subtotal,
        "coupon_discount": coupon_discount,
        "credit_discount": credit_discount,
        "credits_used": credits_used,
        "taxable": taxable,
        "tax": tax,
        "total": money(taxable + tax),
    }


def _load_products(cur, product_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    cur.execute(
        """
        SELECT id, title, price, stock, infinite_stock
        FROM products
        WHERE id::text = ANY(%s)
        """,
        (list(set(product_ids)),),
    )
    return {str(row["id"]): row for row in cur.fetchall()}


def _priced_lines(cur, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Prices always come from the products table, never from the client."""
    products = _load_products(cur, [str(i["product_id"]) for i in items])

    requested: Dict[str, int] = {}
    lines = []
    for item in items:
        product = products.get(str(item["product_id"]))
        if product is None:
            raise InvalidRequest(f"Unknown product: {item['product_id']}")

        quantity = int(item["quantity"])
        requested[str(product["id"])] = requested.get(str(product["id"]), 0) + quantity
        lines.append(
            {
                "product_id": str(product["id"]),
                "title": product["title"],
                "quantity": quantity,
                "price_per_item": money(product["price"]),
                "size": item.get("size"),
            }
        )

    for product_id, quantity in requested.items():
        product = products[product_id]
        if not product.get("infinite_stock") and quantity > int(product.get("stock") or 0):
            raise Conflict(f"Not enough stock for {product['title']}")

    return lines


def quote(conn, items: List[Dict[str, Any]], coupon_code: Optional[str], credits_to_apply: int):
    if not items:
        raise InvalidRequest("Cart is empty")

    cur = conn.cursor()
    lines = _priced_lines(cur, items)
    cur.close()

    coupon = resolve_coupon(conn, coupon_code) if coupon_code else None
    subtotal = sum(line["price_per_item"] * line["quantity"] for line in lines)
    pricing = price_order(subtotal, credits_to_apply, coupon["discount_rate"] if coupon else 0)
    pricing["coupon_code"] = coupon["code"] if coupon else None
    return pricing


def create_order(
    conn,
    user_id: str,
    items: List[Dict[str, Any]],
    coupon_code: Optional[str] = None,
    credits_to_apply: int = 0,
    shipping_address: Optional[Dict[str, Any]] = None,
    payment_token: Optional[str] = None,
    clear_cart: bool = True,
) -> Dict[str, Any]:
    """
    Creates a `pending` order. It becomes `paid` when the gateway webhook
    confirms the charge.
    """
    if not items:
        raise InvalidRequest("Cart is empty")

    coupon = resolve_coupon(conn, coupon_code) if coupon_code else None
    if coupon and str(coupon["creator_id"]) == str(user_id):
        raise InvalidRequest("Creators cannot use their own coupon code")

    try:
        cur = conn.cursor()
        lines = _priced_lines(cur, items)
        subtotal = sum(line["price_per_item"] * line["quantity"] for line in lines)
        pricing = price_order(subtotal, credits_to_apply, coupon["discount_rate"] if coupon else 0)

        rate = coupon["commission_rate"] if coupon else None
        commission = commission_amount(pricing["taxable"], rate) if coupon else None

        if pricing["credits_used"]:
            deduct_credits(cur, user_id, pricing["credits_used"], "Order discount")

        cur.execute(
            """
            INSERT INTO orders (
                user_id, creator_id, coupon_code, subtotal, discount_total,
                credits_applied, tax, order_total, commission_rate_at_purchase,
                commission_amount_at_purchase, status, payment_token, shipping_address
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 'pending', %s, %s::jsonb)
            RETURNING id, status, order_total, created_at
            """,
            (
                user_id,
                coupon["creator_id"] if coupon else None,
                coupon["code"] if coupon else None,
                pricing["subtotal"],
                pricing["coupon_discount"] + pricing["credit_discount"],
                pricing["credits_used"],
                pricing["tax"],
                pricing["total"],
                rate,
                commission,
                payment_token,
                json.dumps(shipping_address or {}),
            ),
        )
        order = cur.fetchone()

        for line in lines:
            cur.execute(
                """
                INSERT INTO order_items (order_id, product_id, quantity, price_per_item, size)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (order["id"], line["product_id"], line["quantity"], line["price_per_item"], line["size"]),
            )

        if clear_cart:
            cur.execute(
                "UPDATE carts SET items = '[]'::jsonb, updated_at = now() WHERE user_id = %s",
                (user_id,),
            )

        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"🧾 Order {order['id']} created for {user_id} total={pricing['total']}")
    return {
        "order_id": str(order["id"]),
        "status": order["status"],
        "items": lines,
        **pricing,
        "coupon_code": coupon["code"] if coupon else None,
        "commission_amount": commission,
    }
