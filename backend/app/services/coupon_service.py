# backend/app/services/coupon_service.py

import logging
import re
from decimal import Decimal
from typing import Any, Dict, Optional

from app.errors import Conflict, InvalidRequest, NotFound
from app.services.commission import commission_rate_for_tier
from app.utils.helpers import to_decimal

logger = logging.getLogger("storefront.coupons")

COUPON_PATTERN = re.compile(r"^[A-Z0-9_-]{3,20}$")
COUPON_DISCOUNT_RATE = Decimal("0.10")


def normalize_code(code: Optional[str]) -> str:
    value = (code or "").strip().upper()
    if not COUPON_PATTERN.match(value):
        raise InvalidRequest("Coupon codes are 3-20 characters: letters, digits, '-' or '_'")
    return value


def get_coupon_for_creator(conn, creator_id: str) -> Optional[Dict[str, Any]]:
    """
    coupon_codes is authoritative; older creators only have the code on
    their profile, reported as active with no usage.
    """
    cur = conn.cursor()
    cur.execute(
        """
        SELECT code, is_active, total_uses, total_used_amount, created_at
        FROM coupon_codes
        WHERE creator_id = %s
        """,
        (creator_id,),
    )
    row = cur.fetchone()

    if row:
        cur.close()
        return {
            "code": row["code"],
            "is_active": bool(row.get("is_active")),
            "total_uses": int(row.get("total_uses") or 0),
            "total_used_amount": to_decimal(row.get("total_used_amount")),
            "created_at": row.get("created_at"),
        }

    cur.execute(
        "SELECT coupon_code FROM profiles WHERE user_id = %s",
        (creator_id,),
    )
    profile = cur.fetchone()
    cur.close()

    if profile is None:
        raise NotFound("Profile not found")

    if not profile.get("coupon_code"):
        return None

    return {
        "code": profile["coupon_code"],
        "is_active": True,
        "total_uses": 0,
        "total_used_amount": Decimal("0"),
        "created_at": None,
    }


def assign_coupon(cur, creator_id: str, code: str) -> None:
    """Upserts the creator's code; caller owns the transaction."""
    cur.execute(
        "SELECT creator_id FROM coupon_codes WHERE code = %s",
        (code,),
    )
    owner = cur.fetchone()
    if owner and str(owner["creator_id"]) != str(creator_id):
        raise Conflict(f"Coupon code {code} is already taken")

    cur.execute(
        """
        INSERT INTO coupon_codes (code, creator_id)
        VALUES (%s, %s)
        ON CONFLICT (creator_id)
        DO UPDATE SET code = EXCLUDED.code, is_active = TRUE, updated_at = now()
        """,
        (code, creator_id),
    )
    cur.execute(
        "UPDATE profiles SET coupon_code = %s, updated_at = now() WHERE user_id = %s",
        (code, creator_id),
    )


def set_coupon_code(conn, creator_id: str, new_code: str) -> Dict[str, Any]:
    code = normalize_code(new_code)

    try:
        cur = conn.cursor()
        cur.execute(
            "SELECT is_creator FROM profiles WHERE user_id = %s",
            (creator_id,),
        )
        profile = cur.fetchone()
        if profile is None:
            raise NotFound("Profile not found")
        if not profile.get("is_creator"):
            raise InvalidRequest("User is not a creator")

        assign_coupon(cur, creator_id, code)
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"🏷 Coupon {code} assigned to creator {creator_id}")
    return {"success": True, "code": code}


def resolve_coupon(conn, code: str) -> Dict[str, Any]:
    """Active coupon → owning creator and the commission rate to lock in."""
    normalized = normalize_code(code)

    cur = conn.cursor()
    cur.execute(
        """
        SELECT c.code, c.creator_id, p.creator_tier, p.commission_rate
        FROM coupon_codes c
        JOIN profiles p ON p.user_id = c.creator_id
        WHERE c.code = %s AND c.is_active = TRUE AND p.is_creator = TRUE
        """,
        (normalized,),
    )
    row = cur.fetchone()
    cur.close()

    if row is None:
        raise InvalidRequest("Invalid or inactive coupon code")

    rate = row.get("commission_rate")
    if rate is None:
        rate = commission_rate_for_tier(row.get("creator_tier"))

    return {
        "code": row["code"],
        "creator_id": row["creator_id"],
        "commission_rate": to_decimal(rate),
        "discount_rate": COUPON_DISCOUNT_RATE,
    }
