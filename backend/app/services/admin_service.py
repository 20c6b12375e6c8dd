# backend/app/services/admin_service.py

import datetime
import logging
from collections import Counter, OrderedDict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.services.catalog_service import LOW_STOCK_THRESHOLD
from app.services.order_service import list_orders
from app.utils.helpers import money, month_start, normalize_dt, short_order_id, to_decimal, utcnow

logger = logging.getLogger("storefront.admin")

REVENUE_STATUSES = {"paid", "processing", "shipped", "delivered"}
FULFILMENT_STATUSES = {"paid", "pending"}
RECENT_ORDERS = 5
ANALYTICS_DAYS = 30
TOP_CREATORS = 5


# -------------------------------------------------
# DASHBOARD
# -------------------------------------------------
def dashboard_stats(
    orders: List[Dict[str, Any]],
    low_stock_products: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """
    `orders` newest first. Revenue counts orders that were actually paid;
    order and customer counts include every order.
    """
    paid = [o for o in orders if o.get("status") in REVENUE_STATUSES]
    revenue = sum((to_decimal(o.get("order_total")) for o in paid), Decimal("0"))

    per_customer = Counter(o.get("user_id") for o in orders)

    alerts = [
        {
            "title": "Low Stock Alert",
            "message": f"{p['title']} has only {p.get('stock', 0)} items left",
        }
        for p in low_stock_products
        if int(p.get("stock") or 0) < LOW_STOCK_THRESHOLD
    ]
    pending = sum(1 for o in orders if o.get("status") in FULFILMENT_STATUSES)
    if pending:
        alerts.append(
            {
                "title": "Orders Pending Fulfillment",
                "message": f"{pending} orders need to be processed and shipped",
            }
        )

    return {
        "stats": {
            "revenue": money(revenue),
            "orders": len(orders),
            "average_order_value": money(revenue / len(paid)) if paid else Decimal("0.00"),
            "new_customers": len(per_customer),
            "returning_customers": sum(1 for count in per_customer.values() if count > 1),
            # no traffic data is collected
            "conversion_rate": 0,
            "cart_abandonment": 0,
            "bounce_rate": 0,
        },
        "recent_orders": [
            {
                "id": short_order_id(o["id"]),
                "order_id": str(o["id"]),
                "customer": o.get("customer_name") or "Anonymous",
                "amount": money(o.get("order_total")),
                "status": o.get("status"),
                "created_at": o.get("created_at"),
                "items": o.get("items") or [],
                "shipping_address": o.get("shipping_address"),
            }
            for o in orders[:RECENT_ORDERS]
        ],
        "alerts": alerts,
    }


def load_dashboard(conn) -> Dict[str, Any]:
    orders = list_orders(conn)
    cur = conn.cursor()
    cur.execute(
        "SELECT id, title, stock FROM products WHERE NOT infinite_stock AND stock < %s ORDER BY stock ASC",
        (LOW_STOCK_THRESHOLD,),
    )
    low_stock = cur.fetchall()
    cur.close()
    return dashboard_stats(orders, low_stock)


# -------------------------------------------------
# USERS
# -------------------------------------------------
def merge_users(profiles: List[Dict[str, Any]], auth_users: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    emails = {str(u.get("id")): u.get("email") for u in auth_users}
    return [
        {
            "id": p["user_id"],
            "email": emails.get(str(p["user_id"])) or "No email found",
            "display_name": p.get("display_name") or "No name",
            "role": p.get("role") or "user",
            "is_creator": bool(p.get("is_creator")),
            "creator_tier": p.get("creator_tier") or "tier1",
            "commission_rate": to_decimal(p.get("commission_rate") or "0.10"),
            "coupon_code": p.get("coupon_code"),
            "credits": int(p.get("credits") or 0),
            "created_at": p.get("created_at"),
        }
        for p in profiles
    ]


def users_with_emails(conn, auth_client) -> List[Dict[str, Any]]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT p.*, c.current_balance AS credits
        FROM profiles p
        LEFT JOIN user_credits c ON c.user_id = p.user_id
        ORDER BY p.created_at DESC
        """
    )
    profiles = cur.fetchall()
    cur.close()

    auth_users = auth_client.admin_list_users()
    logger.info(f"👥 Merged {len(profiles)} profiles with {len(auth_users)} auth users")
    return merge_users(profiles, auth_users)


def user_summary(
    users: List[Dict[str, Any]],
    orders: List[Dict[str, Any]],
    now: Optional[datetime.datetime] = None,
) -> Dict[str, Any]:
    start = month_start(now)
    spend: Dict[Any, Decimal] = {}
    for o in orders:
        if o.get("status") in REVENUE_STATUSES:
            spend[o.get("user_id")] = spend.get(o.get("user_id"), Decimal("0")) + to_decimal(o.get("order_total"))

    new_this_month = 0
    for u in users:
        created = normalize_dt(u.get("created_at"))
        if created and created >= start:
            new_this_month += 1

    return {
        "total_users": len(users),
        "creators": sum(1 for u in users if u.get("is_creator")),
        "admins": sum(1 for u in users if u.get("role") == "admin"),
        "new_this_month": new_this_month,
        "paying_customers": len(spend),
        "average_lifetime_value": money(sum(spend.values()) / len(spend)) if spend else Decimal("0.00"),
    }


# -------------------------------------------------
# ANALYTICS
# -------------------------------------------------
def analytics(
    orders: List[Dict[str, Any]],
    creator_names: Optional[Dict[str, str]] = None,
    now: Optional[datetime.datetime] = None,
    days: int = ANALYTICS_DAYS,
) -> Dict[str, Any]:
    now = now or utcnow()
    today = now.date()
    first_day = today - datetime.timedelta(days=days - 1)

    daily: "OrderedDict[datetime.date, Dict[str, Any]]" = OrderedDict(
        (first_day + datetime.timedelta(days=i), {"revenue": Decimal("0"), "orders": 0})
        for i in range(days)
    )
    creators: Dict[str, Dict[str, Any]] = {}

    for o in orders:
        if o.get("status") not in REVENUE_STATUSES:
            continue
        total = to_decimal(o.get("order_total"))

        created = normalize_dt(o.get("created_at"))
        if created and created.date() in daily:
            bucket = daily[created.date()]
            bucket["revenue"] += total
            bucket["orders"] += 1

        creator_id = o.get("creator_id")
        if creator_id:
            entry = creators.setdefault(
                str(creator_id),
                {"creator_id": str(creator_id), "sales": Decimal("0"), "orders": 0, "commission": Decimal("0")},
            )
            entry["sales"] += total
            entry["orders"] += 1
            entry["commission"] += to_decimal(o.get("commission_amount_at_purchase"))

    names = creator_names or {}
    top = sorted(creators.values(), key=lambda c: c["sales"], reverse=True)[:TOP_CREATORS]

    return {
        "daily_revenue": [
            {"date": day.isoformat(), "revenue": money(v["revenue"]), "orders": v["orders"]}
            for day, v in daily.items()
        ],
        "top_creators": [
            {
                **c,
                "display_name": names.get(c["creator_id"]) or "Anonymous",
                "sales": money(c["sales"]),
                "commission": money(c["commission"]),
            }
            for c in top
        ],
    }


def load_analytics(conn) -> Dict[str, Any]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, user_id, creator_id, order_total, commission_amount_at_purchase, status, created_at
        FROM orders
        """
    )
    orders = cur.fetchall()
    cur.execute("SELECT user_id, display_name FROM profiles WHERE is_creator = TRUE")
    names = {str(r["user_id"]): r["display_name"] for r in cur.fetchall()}
    cur.close()
    return analytics(orders, names)


def load_user_summary(conn) -> Dict[str, Any]:
    cur = conn.cursor()
    cur.execute("SELECT user_id, role, is_creator, created_at FROM profiles")
    users = cur.fetchall()
    cur.execute("SELECT user_id, order_total, status FROM orders")
    orders = cur.fetchall()
    cur.close()
    return user_summary(users, orders)
