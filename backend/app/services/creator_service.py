# backend/app/services/creator_service.py

import datetime
import logging
import uuid
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from app.errors import Conflict, Forbidden, InvalidRequest, NotFound
from app.services.commission import (
    commission_rate_for_tier,
    tier_for_monthly_revenue,
    tier_number,
)
from app.services.coupon_service import assign_coupon, get_coupon_for_creator, normalize_code
from app.services.credits_service import add_credits, get_balance
from app.services.email_service import send_creator_invite_email
from app.utils.helpers import money, month_start, normalize_dt, to_decimal, utcnow, week_start

logger = logging.getLogger("storefront.creator")

ATTRIBUTED_STATUSES = ("paid", "processing", "shipped", "delivered")
INVITE_STATUSES = {"pending", "accepted", "expired", "revoked"}
INVITE_TTL = datetime.timedelta(days=30)
USER_ROLES = {"user", "creator", "admin"}
RECENT_ORDER_LIMIT = 10


# -------------------------------------------------
# DASHBOARD (pure aggregation)
# -------------------------------------------------
def summarize_creator_orders(
    orders: List[Dict[str, Any]],
    now: Optional[datetime.datetime] = None,
) -> Dict[str, Any]:
    """`orders` newest first, already filtered to the creator's attributed sales."""
    start_of_month = month_start(now)

    total_sales = Decimal("0")
    total_commission = Decimal("0")
    month_sales = Decimal("0")
    month_commission = Decimal("0")
    customers = set()

    for order in orders:
        total = to_decimal(order.get("order_total"))
        commission = to_decimal(order.get("commission_amount_at_purchase"))
        total_sales += total
        total_commission += commission
        customers.add(order.get("user_id"))

        created = normalize_dt(order.get("created_at"))
        if created and created >= start_of_month:
            month_sales += total
            month_commission += commission

    return {
        "total_orders": len(orders),
        "total_sales": money(total_sales),
        "total_earnings": money(total_commission),
        "current_month_sales": money(month_sales),
        "current_month_earnings": money(month_commission),
        "average_order_value": money(total_sales / len(orders)) if orders else Decimal("0.00"),
        "customers_acquired": len(customers),
        "recent_orders": [
            {
                "id": str(o["id"]),
                "order_total": money(o.get("order_total")),
                "commission_amount_at_purchase": money(o.get("commission_amount_at_purchase")),
                "created_at": o.get("created_at"),
                "customer_name": o.get("customer_name") or "Anonymous",
            }
            for o in orders[:RECENT_ORDER_LIMIT]
        ],
    }


def weekly_rank(ranking: List[Dict[str, Any]], creator_id: str) -> Dict[str, int]:
    """`ranking` is sorted by sales, highest first. Unranked creators go last."""
    ids = [str(r["creator_id"]) for r in ranking]
    position = ids.index(str(creator_id)) + 1 if str(creator_id) in ids else len(ids) + 1
    return {"weekly_ranking": position, "total_creators": max(len(ids), position)}


def creator_dashboard(conn, user_id: str, now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    cur = conn.cursor()
    cur.execute(
        """
        SELECT display_name, is_creator, creator_tier, commission_rate
        FROM profiles WHERE user_id = %s
        """,
        (user_id,),
    )
    profile = cur.fetchone()
    if profile is None:
        cur.close()
        raise NotFound("Profile not found")
    if not profile.get("is_creator"):
        cur.close()
        raise Forbidden("Creator access required")

    cur.execute(
        """
        SELECT o.id, o.user_id, o.order_total, o.commission_amount_at_purchase,
               o.created_at, p.display_name AS customer_name
        FROM orders o
        LEFT JOIN profiles p ON p.user_id = o.user_id
        WHERE o.creator_id = %s AND o.status = ANY(%s)
        ORDER BY o.created_at DESC
        """,
        (user_id, list(ATTRIBUTED_STATUSES)),
    )
    orders = cur.fetchall()

    cur.execute(
        """
        SELECT platform, username, follower_count, verified_at
        FROM social_connections
        WHERE user_id = %s AND is_verified = TRUE
        ORDER BY platform
        """,
        (user_id,),
    )
    socials = cur.fetchall()

    cur.execute(
        """
        SELECT creator_id, SUM(order_total) AS sales
        FROM orders
        WHERE creator_id IS NOT NULL AND status = ANY(%s) AND created_at >= %s
        GROUP BY creator_id
        ORDER BY sales DESC
        """,
        (list(ATTRIBUTED_STATUSES), week_start(now)),
    )
    ranking = cur.fetchall()
    cur.close()

    stats = summarize_creator_orders(orders, now)
    tier = profile.get("creator_tier") or "tier1"
    rate = profile.get("commission_rate")
    rate = to_decimal(rate) if rate is not None else commission_rate_for_tier(tier)

    return {
        "display_name": profile.get("display_name"),
        "tier": tier,
        "tier_number": tier_number(tier),
        "commission_rate": rate,
        "commission_percent": int(rate * 100),
        "suggested_tier": tier_for_monthly_revenue(stats["current_month_sales"]),
        "coupon": get_coupon_for_creator(conn, user_id),
        "credits_balance": get_balance(conn, user_id),
        "social_connections": socials,
        **stats,
        **weekly_rank(ranking, user_id),
    }


# -------------------------------------------------
# INVITES
# -------------------------------------------------
def create_invite(
    conn,
    admin_id: str,
    data: Dict[str, Any],
    send_email: Callable[[str, str], Any] = send_creator_invite_email,
) -> Dict[str, Any]:
    """
    The invite row is committed before the email goes out; a failed send
    surfaces as an error but the invite stays and can be re-sent.
    """
    email = data["email"].strip().lower()
    tier = (data.get("tier") or "tier1").lower()
    commission_rate_for_tier(tier)
    code = normalize_code(data["coupon_code"])

    try:
        cur = conn.cursor()
        cur.execute("SELECT 1 FROM coupon_codes WHERE code = %s", (code,))
        if cur.fetchone():
            raise Conflict(f"Coupon code {code} is already taken")

        cur.execute(
            "SELECT 1 FROM creator_invites WHERE email = %s AND status = 'pending'",
            (email,),
        )
        if cur.fetchone():
            raise Conflict("A pending invite already exists for this email")

        cur.execute(
            """
            INSERT INTO creator_invites (
                email, display_name, tier, coupon_code, starting_credits,
                tiktok_username, followers, notes, invite_token, status
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, 'pending')
            RETURNING *
            """,
            (
                email,
                data.get("display_name"),
                tier,
                code,
                int(data.get("starting_credits") or 0),
                (data.get("tiktok_username") or "").lstrip("@") or None,
                data.get("followers"),
                data.get("notes"),
                str(uuid.uuid4()),
            ),
        )
        invite = cur.fetchone()
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"✉️ Admin {admin_id} invited {email} as {tier}")
    send_email(email, invite["invite_token"])
    return invite


def list_invites(conn, status: Optional[str] = None) -> List[Dict[str, Any]]:
    cur = conn.cursor()
    if status:
        cur.execute(
            "SELECT * FROM creator_invites WHERE status = %s ORDER BY created_at DESC",
            (status,),
        )
    else:
        cur.execute("SELECT * FROM creator_invites ORDER BY created_at DESC")
    rows = cur.fetchall()
    cur.close()
    return rows


def update_invite_status(conn, invite_id: str, status: str) -> Dict[str, Any]:
    if status not in INVITE_STATUSES:
        raise InvalidRequest(f"Unknown invite status: {status}")

    try:
        cur = conn.cursor()
        cur.execute(
            "UPDATE creator_invites SET status = %s, updated_at = now() WHERE id = %s RETURNING *",
            (status, invite_id),
        )
        invite = cur.fetchone()
        if invite is None:
            raise NotFound("Invite not found")
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    return invite


def delete_invite(conn, invite_id: str) -> None:
    try:
        cur = conn.cursor()
        cur.execute("DELETE FROM creator_invites WHERE id = %s RETURNING id", (invite_id,))
        if cur.fetchone() is None:
            raise NotFound("Invite not found")
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def invite_expired(invite: Dict[str, Any], now: Optional[datetime.datetime] = None) -> bool:
    created = normalize_dt(invite.get("created_at"))
    if created is None:
        return True
    return (now or utcnow()) - created > INVITE_TTL


def _make_creator(cur, user_id: str, tier: str, code: Optional[str]) -> Dict[str, Any]:
    rate = commission_rate_for_tier(tier)
    cur.execute(
        """
        UPDATE profiles
        SET is_creator = TRUE,
            role = CASE WHEN role = 'admin' THEN role ELSE 'creator' END,
            creator_tier = %s,
            commission_rate = %s,
            updated_at = now()
        WHERE user_id = %s
        RETURNING user_id, role, is_creator, creator_tier, commission_rate
        """,
        (tier, rate, user_id),
    )
    profile = cur.fetchone()
    if profile is None:
        raise NotFound("Profile not found")

    if code:
        assign_coupon(cur, user_id, code)
        profile["coupon_code"] = code
    return profile


def accept_invite(conn, token: str, user_id: str, now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    try:
        cur = conn.cursor()
        cur.execute(
            "SELECT * FROM creator_invites WHERE invite_token = %s FOR UPDATE",
            (token,),
        )
        invite = cur.fetchone()

        if invite is None:
            raise NotFound("Invite not found")
        if invite["status"] != "pending":
            raise Conflict(f"Invite is {invite['status']}")

        if invite_expired(invite, now):
            cur.execute(
                "UPDATE creator_invites SET status = 'expired', updated_at = now() WHERE id = %s",
                (invite["id"],),
            )
            conn.commit()
            raise Conflict("Invite has expired")

        profile = _make_creator(cur, user_id, invite["tier"], invite["coupon_code"])

        starting = int(invite.get("starting_credits") or 0)
        if starting > 0:
            add_credits(cur, user_id, starting, "invite_bonus", "Creator invite starting credits")

        if invite.get("tiktok_username"):
            cur.execute(
                """
                INSERT INTO social_connections (user_id, platform, username, follower_count, is_verified, verified_at)
                VALUES (%s, 'tiktok', %s, %s, TRUE, now())
                ON CONFLICT (user_id, platform)
                DO UPDATE SET username = EXCLUDED.username,
                              follower_count = EXCLUDED.follower_count,
                              is_verified = TRUE,
                              verified_at = now(),
                              updated_at = now()
                """,
                (user_id, invite["tiktok_username"], int(invite.get("followers") or 0)),
            )

        cur.execute(
            """
            UPDATE creator_invites
            SET status = 'accepted', accepted_by = %s, updated_at = now()
            WHERE id = %s
            """,
            (user_id, invite["id"]),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"🎉 {user_id} accepted creator invite {invite['id']}")
    return {"success": True, "profile": profile, "starting_credits": int(invite.get("starting_credits") or 0)}


# -------------------------------------------------
# ROLE MANAGEMENT (admin)
# -------------------------------------------------
def promote_to_creator(conn, user_id: str, tier: str = "tier1", coupon_code: Optional[str] = None) -> Dict[str, Any]:
    code = normalize_code(coupon_code) if coupon_code else None
    try:
        cur = conn.cursor()
        profile = _make_creator(cur, user_id, (tier or "tier1").lower(), code)
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"⬆️ {user_id} promoted to creator ({tier})")
    return profile


def demote_from_creator(conn, user_id: str) -> Dict[str, Any]:
    try:
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE profiles
            SET is_creator = FALSE,
                role = CASE WHEN role = 'admin' THEN role ELSE 'user' END,
                updated_at = now()
            WHERE user_id = %s
            RETURNING user_id, role, is_creator
            """,
            (user_id,),
        )
        profile = cur.fetchone()
        if profile is None:
            raise NotFound("Profile not found")

        cur.execute(
            "UPDATE coupon_codes SET is_active = FALSE, updated_at = now() WHERE creator_id = %s",
            (user_id,),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"⬇️ {user_id} demoted from creator")
    return profile


def set_user_role(conn, user_id: str, role: str) -> Dict[str, Any]:
    if role not in USER_ROLES:
        raise InvalidRequest(f"Unknown role: {role}")

    try:
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE profiles
            SET role = %s,
                is_creator = CASE WHEN %s = 'creator' THEN TRUE WHEN %s = 'user' THEN FALSE ELSE is_creator END,
                updated_at = now()
            WHERE user_id = %s
            RETURNING user_id, role, is_creator
            """,
            (role, role, role, user_id),
        )
        profile = cur.fetchone()
        if profile is None:
            raise NotFound("Profile not found")
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"🔑 {user_id} role set to {role}")
    return profile
