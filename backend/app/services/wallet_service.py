# backend/app/services/wallet_service.py

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from app.errors import InvalidRequest, NotFound
from app.services.credits_service import add_credits, credits_for_amount, ensure_balance

logger = logging.getLogger("storefront.wallet")

RECENT_TRANSACTIONS = 20
KNOWN_BRANDS = {"visa": "Visa", "mastercard": "Mastercard"}


def card_brand(brand: Optional[str]) -> str:
    return KNOWN_BRANDS.get((brand or "").strip().lower(), "Unknown")


def get_wallet(conn, user_id: str) -> Dict[str, Any]:
    balance = ensure_balance(conn, user_id)
    conn.commit()

    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, amount, credits_added, transaction_type, status, created_at
        FROM wallet_transactions
        WHERE user_id = %s
        ORDER BY created_at DESC
        LIMIT %s
        """,
        (user_id, RECENT_TRANSACTIONS),
    )
    transactions = cur.fetchall()

    cur.execute(
        """
        SELECT id, card_last_four, card_brand, is_default, created_at
        FROM payment_methods
        WHERE user_id = %s
        ORDER BY created_at DESC
        """,
        (user_id,),
    )
    methods = cur.fetchall()
    cur.close()

    return {
        "current_balance": int(balance.get("current_balance") or 0),
        "total_earned": int(balance.get("total_earned") or 0),
        "total_spent": int(balance.get("total_spent") or 0),
        "transactions": transactions,
        "payment_methods": methods,
    }


def reload_wallet(
    conn,
    user_id: str,
    amount: Decimal,
    payment_method_id: Optional[str] = None,
) -> Dict[str, Any]:
    if amount <= 0:
        raise InvalidRequest("Amount must be positive")

    credits = credits_for_amount(amount)

    try:
        cur = conn.cursor()
        if payment_method_id:
            cur.execute(
                "SELECT 1 FROM payment_methods WHERE id = %s AND user_id = %s",
                (payment_method_id, user_id),
            )
            if cur.fetchone() is None:
                raise NotFound("Payment method not found")

        cur.execute(
            """
            INSERT INTO wallet_transactions
                (user_id, amount, credits_added, transaction_type, status, payment_method_id)
            VALUES (%s, %s, %s, 'reload', 'completed', %s)
            RETURNING id, amount, credits_added, transaction_type, status, created_at
            """,
            (user_id, amount, credits, payment_method_id),
        )
        transaction = cur.fetchone()
        balance = add_credits(cur, user_id, credits, "wallet_reload", f"Reload ${amount}")
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"💳 Wallet reload user={user_id} amount={amount} credits={credits}")
    return {"transaction": transaction, "credits_added": credits, "current_balance": balance}


def add_payment_method(conn, user_id: str, last_four: str, brand: Optional[str] = None) -> Dict[str, Any]:
    if len(last_four or "") != 4 or not last_four.isdigit():
        raise InvalidRequest("card_last_four must be 4 digits")
    brand = card_brand(brand)

    try:
        cur = conn.cursor()
        cur.execute(
            "SELECT COUNT(*) AS count FROM payment_methods WHERE user_id = %s",
            (user_id,),
        )
        row = cur.fetchone()
        is_default = not row or int(row["count"]) == 0

        cur.execute(
            """
            INSERT INTO payment_methods (user_id, card_last_four, card_brand, is_default)
            VALUES (%s, %s, %s, %s)
            RETURNING id, card_last_four, card_brand, is_default, created_at
            """,
            (user_id, last_four, brand, is_default),
        )
        method = cur.fetchone()
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    return method


def set_default_payment_method(conn, user_id: str, payment_method_id: str) -> None:
    try:
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE payment_methods SET is_default = (id = %s)
            WHERE user_id = %s
            RETURNING id, is_default
            """,
            (payment_method_id, user_id),
        )
        rows = cur.fetchall()
        if not any(r["is_default"] for r in rows):
            raise NotFound("Payment method not found")
        conn.commit()
    except Exception:
        conn.rollback()
        raise
