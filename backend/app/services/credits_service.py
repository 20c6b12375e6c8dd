# backend/app/services/credits_service.py

import logging
import math
from decimal import Decimal
from typing import Any, Dict, Optional

from app.errors import Conflict, InvalidRequest, NotFound
from app.utils.helpers import money, to_decimal

logger = logging.getLogger("storefront.credits")

# ---------------------------------------------
# CREDIT CONVERSION
# 100 credits = $1; bulk reloads earn bonus credits
# ---------------------------------------------
CREDITS_PER_DOLLAR = 100
BULK_RELOAD_RATES = [
    (Decimal("1000"), 110),
    (Decimal("600"), 108.33),
    (Decimal("400"), 105),
]


def credits_for_amount(dollar_amount: Any) -> int:
    """
    Credits granted for a wallet reload of `dollar_amount`.

    Below $400 the ratio is a flat 100 credits per dollar. From $400 up,
    the bonus ratio of the highest bracket reached applies and fractional
    credits are floored.
    """
    amount = to_decimal(dollar_amount)
    if amount < 0:
        raise InvalidRequest("Amount must be positive")

    for floor, rate in BULK_RELOAD_RATES:
        if amount >= floor:
            return math.floor(amount * to_decimal(rate))

    return int(amount * CREDITS_PER_DOLLAR)


def credits_to_dollars(credits: int) -> Decimal:
    return money(Decimal(int(credits)) / CREDITS_PER_DOLLAR)


# -------------------------------------------------
# BALANCE ROWS
# -------------------------------------------------
def ensure_balance(conn, user_id: str) -> Dict[str, Any]:
    """Returns the user_credits row, creating an empty one on first access."""
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO user_credits (user_id)
        VALUES (%s)
        ON CONFLICT (user_id) DO NOTHING
        """,
        (user_id,),
    )
    cur.execute(
        """
        SELECT user_id, current_balance, total_earned, total_spent
        FROM user_credits
        WHERE user_id = %s
        """,
        (user_id,),
    )
    row = cur.fetchone()
    cur.close()
    return row or {"user_id": user_id, "current_balance": 0, "total_earned": 0, "total_spent": 0}


def get_balance(conn, user_id: str) -> int:
    cur = conn.cursor()
    cur.execute(
        "SELECT current_balance FROM user_credits WHERE user_id = %s",
        (user_id,),
    )
    row = cur.fetchone()
    cur.close()
    return int(row["current_balance"]) if row else 0


# -------------------------------------------------
# LEDGER WRITES (caller owns the transaction)
# -------------------------------------------------
def add_credits(
    cur,
    user_id: str,
    amount: int,
    entry_type: str,
    notes: Optional[str] = None,
    admin_id: Optional[str] = None,
) -> int:
    cur.execute(
        """
        INSERT INTO user_credits (user_id, current_balance, total_earned)
        VALUES (%s, %s, %s)
        ON CONFLICT (user_id)
        DO UPDATE SET
            current_balance = user_credits.current_balance + EXCLUDED.current_balance,
            total_earned = user_credits.total_earned + EXCLUDED.total_earned,
            updated_at = now()
        RETURNING current_balance
        """,
        (user_id, amount, amount),
    )
    row = cur.fetchone()
    cur.execute(
        """
        INSERT INTO credits_ledger (user_id, amount, type, notes, admin_id)
        VALUES (%s, %s, %s, %s, %s)
        """,
        (user_id, amount, entry_type, notes, admin_id),
    )
    return int(row["current_balance"]) if row else amount


def deduct_credits(cur, user_id: str, amount: int, reason: str) -> int:
    cur.execute(
        """
        UPDATE user_credits
        SET current_balance = current_balance - %s,
            total_spent = total_spent + %s,
            updated_at = now()
        WHERE user_id = %s AND current_balance >= %s
        RETURNING current_balance
        """,
        (amount, amount, user_id, amount),
    )
    row = cur.fetchone()
    if row is None:
        raise Conflict("Insufficient credits")

    cur.execute(
        """
        INSERT INTO credits_ledger (user_id, amount, type, notes)
        VALUES (%s, %s, 'spend', %s)
        """,
        (user_id, -amount, reason),
    )
    return int(row["current_balance"])


# -------------------------------------------------
# TRANSACTIONAL OPERATIONS
# -------------------------------------------------
def spend_credits(conn, user_id: str, amount: int, reason: str) -> int:
    if amount <= 0:
        raise InvalidRequest("Amount must be positive")

    try:
        cur = conn.cursor()
        balance = deduct_credits(cur, user_id, amount, reason)
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"💸 {user_id} spent {amount} credits ({reason})")
    return balance


def grant_credits(
    conn,
    admin_id: str,
    user_id: str,
    amount: int,
    entry_type: str = "admin_grant",
    notes: Optional[str] = None,
) -> int:
    if amount <= 0:
        raise InvalidRequest("Amount must be positive")

    try:
        cur = conn.cursor()
        cur.execute("SELECT 1 FROM profiles WHERE user_id = %s", (user_id,))
        if cur.fetchone() is None:
            raise NotFound("User not found")

        balance = add_credits(cur, user_id, amount, entry_type, notes, admin_id)
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"🎁 Admin {admin_id} granted {amount} credits to {user_id}")
    return balance
