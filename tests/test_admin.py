import datetime
from decimal import Decimal

from app.services.admin_service import analytics, dashboard_stats, merge_users, user_summary

NOW = datetime.datetime(2026, 10, 19, 15, 0, tzinfo=datetime.timezone.utc)

ORDERS = [
    {"id": "5f1c2a9e-0000", "user_id": "u1", "order_total": Decimal("200.00"), "status": "pending", "created_at": NOW},
    {"id": "9a8b7c6d-1111", "user_id": "u1", "order_total": Decimal("100.00"), "status": "paid", "created_at": NOW},
    {"id": "0b0b0b0b-2222", "user_id": "u2", "order_total": Decimal("50.00"), "status": "delivered", "created_at": NOW},
    {"id": "cccccccc-3333", "user_id": "u3", "order_total": Decimal("70.00"), "status": "cancelled", "created_at": NOW},
]


def test_revenue_counts_paid_orders_only():
    stats = dashboard_stats(ORDERS, [])["stats"]

    assert stats["revenue"] == Decimal("150.00")
    assert stats["average_order_value"] == Decimal("75.00")
    assert stats["orders"] == 4
    assert stats["new_customers"] == 3
    assert stats["returning_customers"] == 1
    assert stats["conversion_rate"] == 0


def test_recent_orders_and_alerts():
    low_stock = [{"title": "Geobasket", "stock": 2}]
    result = dashboard_stats(ORDERS, low_stock)

    assert result["recent_orders"][0]["id"] == "A9E-0000"
    assert result["recent_orders"][0]["customer"] == "Anonymous"
    assert [a["title"] for a in result["alerts"]] == ["Low Stock Alert", "Orders Pending Fulfillment"]
    assert result["alerts"][1]["message"] == "2 orders need to be processed and shipped"


def test_empty_dashboard():
    result = dashboard_stats([], [])
    assert result["stats"]["average_order_value"] == Decimal("0.00")
    assert result["alerts"] == []


def test_merge_users_defaults():
    merged = merge_users(
        [
            {"user_id": "u1", "display_name": "Jane", "role": "creator", "is_creator": True, "creator_tier": "tier2", "commission_rate": Decimal("0.15"), "credits": 40},
            {"user_id": "u2"},
        ],
        [{"id": "u1", "email": "jane@example.com"}],
    )

    assert merged[0]["email"] == "jane@example.com"
    assert merged[0]["credits"] == 40
    assert merged[1]["email"] == "No email found"
    assert merged[1]["display_name"] == "No name"
    assert merged[1]["role"] == "user"
    assert merged[1]["creator_tier"] == "tier1"
    assert merged[1]["commission_rate"] == Decimal("0.10")


def test_user_summary():
    users = [
        {"user_id": "u1", "role": "admin", "is_creator": False, "created_at": NOW},
        {"user_id": "u2", "role": "creator", "is_creator": True, "created_at": NOW - datetime.timedelta(days=40)},
        {"user_id": "u3", "role": "user", "is_creator": False, "created_at": None},
    ]

    summary = user_summary(users, ORDERS, NOW)

    assert summary == {
        "total_users": 3,
        "creators": 1,
        "admins": 1,
        "new_this_month": 1,
        "paying_customers": 2,
        "average_lifetime_value": Decimal("75.00"),
    }


def test_analytics_buckets_and_top_creators():
    orders = [
        {"creator_id": "c1", "order_total": Decimal("100"), "commission_amount_at_purchase": Decimal("10"), "status": "paid", "created_at": NOW},
        {"creator_id": "c2", "order_total": Decimal("300"), "commission_amount_at_purchase": Decimal("60"), "status": "shipped", "created_at": NOW - datetime.timedelta(days=1)},
        {"creator_id": "c1", "order_total": Decimal("50"), "commission_amount_at_purchase": Decimal("5"), "status": "pending", "created_at": NOW},
        {"creator_id": None, "order_total": Decimal("20"), "status": "paid", "created_at": NOW - datetime.timedelta(days=90)},
    ]

    result = analytics(orders, {"c2": "Jane"}, NOW, days=7)

    assert len(result["daily_revenue"]) == 7
    assert result["daily_revenue"][-1] == {"date": "2026-10-19", "revenue": Decimal("100.00"), "orders": 1}
    assert result["daily_revenue"][-2]["revenue"] == Decimal("300.00")
    assert [c["creator_id"] for c in result["top_creators"]] == ["c2", "c1"]
    assert result["top_creators"][0]["display_name"] == "Jane"
    assert result["top_creators"][1]["display_name"] == "Anonymous"
    assert result["top_creators"][1]["orders"] == 1


# -------------------------------------------------
# ROUTES
# -------------------------------------------------
class StubAuth:
    def admin_list_users(self):
        return [{"id": "u1", "email": "jane@example.com"}]


def test_users_route_merges_emails(make_client, conn, admin_user):
    conn.on("LEFT JOIN user_credits c", [{"user_id": "u1", "display_name": "Jane"}])

    response = make_client(user=admin_user, auth=StubAuth()).get("/admin/users")

    assert response.status_code == 200
    assert response.json()["users"][0]["email"] == "jane@example.com"


def test_grant_credits_route(make_client, conn, admin_user):
    conn.on("SELECT 1 FROM profiles", [{"?column?": 1}])
    conn.on("INSERT INTO user_credits", [{"current_balance": 250}])

    response = make_client(user=admin_user).post("/admin/users/u1/credits", json={"amount": 250, "notes": "contest"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "current_balance": 250}
    _, params = conn.statements("INSERT INTO credits_ledger")[0]
    assert params == ("u1", 250, "admin_grant", "contest", "admin-1")


def test_grant_to_unknown_user(make_client, admin_user):
    response = make_client(user=admin_user).post("/admin/users/ghost/credits", json={"amount": 10})
    assert response.status_code == 404


def test_dashboard_forbidden_for_creator(make_client, creator_user):
    assert make_client(user=creator_user).get("/admin/dashboard").status_code == 403


def test_health(make_client):
    assert make_client().get("/health").json()["status"] == "ok"
