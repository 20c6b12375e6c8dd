# backend/app/services/order_service.py

import logging
import math
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.errors import Conflict, Forbidden, InvalidRequest, NotFound
from app.services.commission import commission_amount
from app.services.credits_service import CREDITS_PER_DOLLAR, add_credits
from app.utils.helpers import money, to_decimal

logger = logging.getLogger("storefront.orders")

# -------------------------------------------------
# STATUS MACHINE
# -------------------------------------------------
ORDER_STATUSES = [
    "pending",
    "paid",
    "processing",
    "shipped",
    "delivered",
    "returned",
    "cancelled",
]

ALLOWED_TRANSITIONS = {
    "pending": {"paid", "cancelled"},
    "paid": {"processing", "shipped", "cancelled", "returned"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered", "returned"},
    "delivered": {"returned"},
    "returned": set(),
    "cancelled": set(),
}

# referrer earns 10% of the first paid order, in credits
REFERRAL_RATE = Decimal("0.10")


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


def referral_credits_for(order_total: Any) -> int:
    return math.floor(to_decimal(order_total) * REFERRAL_RATE * CREDITS_PER_DOLLAR)


# -------------------------------------------------
# READS
# -------------------------------------------------
ORDER_SELECT = """
    SELECT o.*,
           p.display_name AS customer_name,
           COALESCE(
               (SELECT json_agg(json_build_object(
                    'product_id', i.product_id,
                    'title', pr.title,
                    'quantity', i.quantity,
                    'price_per_item', i.price_per_item,
                    'size', i.size))
                FROM order_items i
                LEFT JOIN products pr ON pr.id = i.product_id
                WHERE i.order_id = o.id),
               '[]'::json
           ) AS items
    FROM orders o
    LEFT JOIN profiles p ON p.user_id = o.user_id
"""


def list_orders(
    conn,
    user_id: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Dict[str, Any]]:
    if status and status not in ORDER_STATUSES:
        raise InvalidRequest(f"Unknown status: {status}")

    clauses = []
    params: List[Any] = []
    if user_id:
        clauses.append("o.user_id = %s")
        params.append(user_id)
    if status:
        clauses.append("o.status = %s")
        params.append(status)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    cur = conn.cursor()
    cur.execute(f"{ORDER_SELECT} {where} ORDER BY o.created_at DESC", tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows


def get_order(conn, order_id: str, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Owner or admin only when `user` is given."""
    cur = conn.cursor()
    cur.execute(f"{ORDER_SELECT} WHERE o.id = %s", (order_id,))
    order = cur.fetchone()
    cur.close()

    if order is None:
        raise NotFound("Order not found")

    if user is not None and user.get("role") != "admin" and order["user_id"] != user["id"]:
        raise Forbidden("Not your order")

    return order


def order_summary(orders: List[Dict[str, Any]]) -> Dict[str, Any]:
    counts = {s: 0 for s in ORDER_STATUSES}
    for order in orders:
        status = order.get("status")
        if status in counts:
            counts[status] += 1

    total = len(orders)
    return {
        "total_orders": total,
        "by_status": counts,
        "return_rate": round(counts["returned"] / total * 100, 2) if total else 0,
    }


# -------------------------------------------------
# WRITES
# -------------------------------------------------
def update_status(conn, order_id: str, new_status: str) -> Dict[str, Any]:
    if new_status not in ORDER_STATUSES:
        raise InvalidRequest(f"Unknown status: {new_status}")
    if new_status == "paid":
        raise InvalidRequest("Orders are marked paid by the payment webhook")

    try:
        cur = conn.cursor()
        cur.execute(
            "SELECT id, status, user_id, credits_applied FROM orders WHERE id = %s FOR UPDATE",
            (order_id,),
        )
        order = cur.fetchone()
        if order is None:
            raise NotFound("Order not found")

        if not can_transition(order["status"], new_status):
            raise Conflict(f"Cannot move order from {order['status']} to {new_status}")

        cur.execute(
            "UPDATE orders SET status = %s, updated_at = now() WHERE id = %s RETURNING id, status",
            (new_status, order_id),
        )
        updated = cur.fetchone()

        refunded = int(order.get("credits_applied") or 0) if new_status == "cancelled" else 0
        if refunded:
            add_credits(cur, order["user_id"], refunded, "refund", f"Order {order_id} cancelled")
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"📦 Order {order_id}: {order['status']} → {new_status}")
    return updated


def _award_referral(cur, order: Dict[str, Any]) -> int:
    """First paid order of a referred buyer credits the referrer once."""
    cur.execute(
        "SELECT COUNT(*) AS count FROM orders WHERE user_id = %s AND status <> 'pending' AND status <> 'cancelled' AND id <> %s",
        (order["user_id"], order["id"]),
    )
    previous = cur.fetchone()
    if previous and int(previous["count"]) > 0:
        return 0

    cur.execute(
        """
        SELECT r.id AS profile_id, r.user_id AS referrer_id, r.referral_code
        FROM profiles b
        JOIN profiles r ON r.referral_code = b.referred_by
        WHERE b.user_id = %s
        """,
        (order["user_id"],),
    )
    referrer = cur.fetchone()
    if referrer is None:
        return 0

    credits = referral_credits_for(order["order_total"])
    if credits <= 0:
        return 0

    cur.execute(
        """
        INSERT INTO referrals (referrer_user_id, referred_user_id, referral_code, status, credits_earned, completed_at)
        VALUES (%s, %s, %s, 'completed', %s, now())
        ON CONFLICT (referred_user_id) DO NOTHING
        RETURNING id
        """,
        (referrer["referrer_id"], order["user_id"], referrer["referral_code"], credits),
    )
    if cur.fetchone() is None:
        return 0

    add_credits(cur, referrer["referrer_id"], credits, "referral", f"Referral order {order['id']}")
    cur.execute(
        "UPDATE profiles SET referrals_count = COALESCE(referrals_count, 0) + 1 WHERE user_id = %s",
        (referrer["referrer_id"],),
    )
    return credits


def mark_order_paid(conn, order_id: str, payment_reference: Optional[str] = None) -> Dict[str, Any]:
    try:
        cur = conn.cursor()
        cur.execute("SELECT * FROM orders WHERE id = %s FOR UPDATE", (order_id,))
        order = cur.fetchone()
        if order is None:
            raise NotFound("Order not found")

        if order["status"] != "pending":
            conn.rollback()
            if order["status"] == "paid":
                return {"status": "already_paid", "order_id": str(order_id)}
            raise Conflict(f"Order is {order['status']}")

        cur.execute(
            """
            UPDATE orders
            SET status = 'paid', payment_reference = %s, paid_at = now(), updated_at = now()
            WHERE id = %s
            """,
            (payment_reference, order_id),
        )

        # --- STOCK ---
        cur.execute(
            """
            UPDATE products p
            SET stock = GREATEST(p.stock - i.qty, 0), updated_at = now()
            FROM (
                SELECT product_id, SUM(quantity) AS qty
                FROM order_items WHERE order_id = %s GROUP BY product_id
            ) i
            WHERE p.id = i.product_id AND NOT p.infinite_stock
            """,
            (order_id,),
        )

        # --- CREATOR ATTRIBUTION ---
        commission = None
        if order.get("creator_id"):
            rate = to_decimal(order.get("commission_rate_at_purchase"))
            commission = order.get("commission_amount_at_purchase")
            if commission is None:
                commission = commission_amount(order["order_total"], rate)
            cur.execute(
                """
                INSERT INTO creator_earnings (creator_id, order_id, order_total, commission_rate_at_purchase, commission_amount)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (order_id) DO NOTHING
                """,
                (order["creator_id"], order_id, order["order_total"], rate, commission),
            )
            cur.execute(
                """
                UPDATE coupon_codes
                SET total_uses = total_uses + 1,
                    total_used_amount = total_used_amount + %s,
                    updated_at = now()
                WHERE code = %s
                """,
                (order["order_total"], order.get("coupon_code")),
            )

        referral_credits = _award_referral(cur, order)
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"💰 Order {order_id} paid (ref={payment_reference})")
    return {
        "status": "paid",
        "order_id": str(order_id),
        "commission_amount": money(commission) if commission is not None else None,
        "referral_credits": referral_credits,
    }
