import json
from decimal import Decimal

import pytest
import requests

from app.errors import Conflict, Forbidden, InvalidRequest, NotFound, UpstreamError
from app.services import payment_service
from app.services.order_service import (
    can_transition,
    get_order,
    mark_order_paid,
    order_summary,
    referral_credits_for,
    update_status,
)
from app.services.payment_service import create_payment_token, sign_payload, verify_signature

ORDER_UUID = "3f2b8c1e-6a4d-4e8b-9c1f-2d7a5e0b9f41"
PENDING_ORDER = {
    "id": "order-1",
    "user_id": "user-1",
    "creator_id": "creator-1",
    "coupon_code": "JANE10",
    "order_total": Decimal("91.80"),
    "commission_rate_at_purchase": Decimal("0.15"),
    "commission_amount_at_purchase": Decimal("12.75"),
    "status": "pending",
}


# -------------------------------------------------
# STATUS MACHINE
# -------------------------------------------------
@pytest.mark.parametrize(
    "current,new,allowed",
    [
        ("pending", "paid", True),
        ("pending", "shipped", False),
        ("paid", "processing", True),
        ("paid", "returned", True),
        ("processing", "delivered", False),
        ("shipped", "delivered", True),
        ("delivered", "returned", True),
        ("delivered", "cancelled", False),
        ("cancelled", "pending", False),
        ("returned", "paid", False),
    ],
)
def test_transitions(current, new, allowed):
    assert can_transition(current, new) is allowed


def test_update_status_rejects_illegal_move(conn):
    conn.on("SELECT id, status, user_id, credits_applied FROM orders", [{"id": "order-1", "status": "delivered"}])

    with pytest.raises(Conflict):
        update_status(conn, "order-1", "processing")
    assert conn.rollbacks == 1


def test_update_status_cannot_mark_paid_by_hand(conn):
    with pytest.raises(InvalidRequest):
        update_status(conn, "order-1", "paid")


def test_update_status_missing_order(conn):
    with pytest.raises(NotFound):
        update_status(conn, "order-404", "shipped")


def test_update_status_ok(conn):
    conn.on("SELECT id, status, user_id, credits_applied FROM orders", [{"id": "order-1", "status": "paid"}])
    conn.on("UPDATE orders SET status", [{"id": "order-1", "status": "shipped"}])

    assert update_status(conn, "order-1", "shipped")["status"] == "shipped"
    assert conn.commits == 1
    assert not conn.ran("INSERT INTO credits_ledger")


def test_cancelling_returns_spent_credits(conn):
    conn.on(
        "SELECT id, status, user_id, credits_applied FROM orders",
        [{"id": "order-1", "status": "pending", "user_id": "user-1", "credits_applied": 5000}],
    )
    conn.on("UPDATE orders SET status", [{"id": "order-1", "status": "cancelled"}])
    conn.on("INSERT INTO user_credits", [{"current_balance": 5000}])

    assert update_status(conn, "order-1", "cancelled")["status"] == "cancelled"

    _, balance = conn.statements("INSERT INTO user_credits")[0]
    assert balance == ("user-1", 5000, 5000)
    _, ledger = conn.statements("INSERT INTO credits_ledger")[0]
    assert ledger[:3] == ("user-1", 5000, "refund")
    assert conn.commits == 1


def test_cancelling_without_credits_writes_no_ledger(conn):
    conn.on(
        "SELECT id, status, user_id, credits_applied FROM orders",
        [{"id": "order-1", "status": "paid", "user_id": "user-1", "credits_applied": 0}],
    )

    update_status(conn, "order-1", "cancelled")

    assert not conn.ran("INSERT INTO credits_ledger")


def test_order_summary():
    orders = [{"status": "paid"}, {"status": "returned"}, {"status": "delivered"}, {"status": "returned"}]
    summary = order_summary(orders)

    assert summary["total_orders"] == 4
    assert summary["by_status"]["returned"] == 2
    assert summary["return_rate"] == 50.0
    assert order_summary([])["return_rate"] == 0


def test_get_order_only_for_owner_or_admin(conn):
    conn.on("FROM orders o", [{"id": "order-1", "user_id": "someone-else"}])

    with pytest.raises(Forbidden):
        get_order(conn, "order-1", {"id": "user-1", "role": "user"})

    assert get_order(conn, "order-1", {"id": "admin-1", "role": "admin"})["id"] == "order-1"


# -------------------------------------------------
# MARK PAID
# -------------------------------------------------
def test_referral_credits():
    assert referral_credits_for("91.80") == 918
    assert referral_credits_for("0.05") == 0


def test_mark_order_paid_side_effects(conn):
    conn.on("SELECT * FROM orders WHERE id", [PENDING_ORDER])
    conn.on("SELECT COUNT(*) AS count FROM orders", [{"count": 0}])
    conn.on("JOIN profiles r", [{"profile_id": "prof-9", "referrer_id": "referrer-1", "referral_code": "ABCD1234"}])
    conn.on("INSERT INTO referrals", [{"id": "ref-1"}])
    conn.on("INSERT INTO user_credits", [{"current_balance": 918}])

    result = mark_order_paid(conn, "order-1", "ch_123")

    assert result["status"] == "paid"
    assert result["commission_amount"] == Decimal("12.75")
    assert result["referral_credits"] == 918
    assert conn.commits == 1

    assert conn.ran("UPDATE products p SET stock = GREATEST")
    _, earnings = conn.statements("INSERT INTO creator_earnings")[0]
    assert earnings == ("creator-1", "order-1", Decimal("91.80"), Decimal("0.15"), Decimal("12.75"))
    _, coupon = conn.statements("UPDATE coupon_codes")[0]
    assert coupon == (Decimal("91.80"), "JANE10")
    _, ledger = conn.statements("INSERT INTO credits_ledger")[0]
    assert ledger[:3] == ("referrer-1", 918, "referral")


def test_referral_only_on_first_paid_order(conn):
    conn.on("SELECT * FROM orders WHERE id", [{**PENDING_ORDER, "creator_id": None}])
    conn.on("SELECT COUNT(*) AS count FROM orders", [{"count": 2}])

    result = mark_order_paid(conn, "order-1")

    assert result["referral_credits"] == 0
    assert not conn.ran("INSERT INTO referrals")
    assert not conn.ran("INSERT INTO creator_earnings")


def test_already_paid_is_a_noop(conn):
    conn.on("SELECT * FROM orders WHERE id", [{**PENDING_ORDER, "status": "paid"}])

    assert mark_order_paid(conn, "order-1")["status"] == "already_paid"
    assert not conn.ran("UPDATE orders")
    assert conn.commits == 0


def test_cancelled_order_cannot_be_paid(conn):
    conn.on("SELECT * FROM orders WHERE id", [{**PENDING_ORDER, "status": "cancelled"}])

    with pytest.raises(Conflict):
        mark_order_paid(conn, "order-1")


# -------------------------------------------------
# PAYMENT TOKEN
# -------------------------------------------------
class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body
        self.text = text or json.dumps(body)

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


def test_payment_token_success(monkeypatch):
    calls = []

    def fake_post(url, headers=None, json=None, timeout=None):
        calls.append((url, headers, json, timeout))
        return FakeResponse(200, {"id": "tok_abcdef123"})

    monkeypatch.setattr(payment_service.requests, "post", fake_post)

    assert create_payment_token(Decimal("183.6")) == {"token": "tok_abcdef123", "amount": "183.60"}
    url, headers, body, timeout = calls[0]
    assert url == "https://gateway.test/tokens"
    assert headers["Authorization"] == "Bearer chiron-key"
    assert body == {"amount": "183.60"}
    assert timeout == 15


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(500, {"error": "boom"}),
        FakeResponse(200, {"id": "abc"}),
        FakeResponse(200, {"id": 1234567}),
        FakeResponse(200, None, text="<html>"),
    ],
)
def test_payment_token_failures(monkeypatch, response):
    monkeypatch.setattr(payment_service.requests, "post", lambda *a, **kw: response)

    with pytest.raises(UpstreamError):
        create_payment_token(Decimal("10"))


def test_payment_token_network_error(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(payment_service.requests, "post", boom)

    with pytest.raises(UpstreamError):
        create_payment_token(Decimal("10"))


def test_payment_token_route_maps_upstream_error(make_client, user, monkeypatch):
    monkeypatch.setattr(payment_service.requests, "post", lambda *a, **kw: FakeResponse(502, {"error": "x"}))
    client = make_client(user=user)

    response = client.post("/checkout/payment-token", json={"amount": "50.00"})

    assert response.status_code == 502


# -------------------------------------------------
# WEBHOOK
# -------------------------------------------------
def test_signature_roundtrip():
    body = b'{"type": "payment.succeeded"}'
    assert verify_signature(body, sign_payload(body, "whsec_test"))
    assert not verify_signature(body, sign_payload(body, "other"))
    assert not verify_signature(body, "")


def _post_webhook(client, event, secret="whsec_test", signature=None):
    raw = json.dumps(event).encode()
    headers = {"Content-Type": "application/json"}
    if signature is not False:
        headers["x-chiron-signature"] = signature or sign_payload(raw, secret)
    return client.post("/payments/webhook", content=raw, headers=headers)


def test_webhook_requires_signature(make_client):
    client = make_client()

    assert _post_webhook(client, {"type": "payment.succeeded"}, signature=False).status_code == 400
    assert _post_webhook(client, {"type": "payment.succeeded"}, secret="wrong").status_code == 400


def test_webhook_ignores_other_events(make_client, conn):
    client = make_client()

    response = _post_webhook(client, {"type": "payment.failed", "data": {"order_id": "order-1"}})

    assert response.json() == {"status": "ignored"}
    assert conn.executed == []


def test_webhook_marks_order_paid(make_client, conn):
    conn.on("SELECT * FROM orders WHERE id", [{**PENDING_ORDER, "creator_id": None}])
    conn.on("SELECT COUNT(*) AS count FROM orders", [{"count": 0}])
    client = make_client()

    response = _post_webhook(client, {"type": "payment.succeeded", "data": {"id": "ch_1", "order_id": ORDER_UUID}})

    assert response.status_code == 200
    assert response.json()["status"] == "paid"
    _, params = conn.statements("SET status = 'paid'")[0]
    assert params == ("ch_1", ORDER_UUID)


def test_webhook_rejects_non_object_body(make_client, conn):
    response = _post_webhook(make_client(), [])

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid JSON"}
    assert conn.executed == []


def test_webhook_rejects_malformed_order_id(make_client, conn):
    response = _post_webhook(make_client(), {"type": "payment.succeeded", "data": {"id": "ch_1", "order_id": "order-1' OR 1=1"}})

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid order_id"}
    assert conn.executed == []


def test_admin_order_status_route(make_client, conn, user, admin_user):
    conn.on("SELECT id, status, user_id, credits_applied FROM orders", [{"id": "order-1", "status": "paid"}])
    conn.on("UPDATE orders SET status", [{"id": "order-1", "status": "processing"}])

    assert make_client(user=user).patch(f"/admin/orders/{ORDER_UUID}/status", json={"status": "processing"}).status_code == 403

    response = make_client(user=admin_user).patch(f"/admin/orders/{ORDER_UUID}/status", json={"status": "processing"})
    assert response.status_code == 200
    assert response.json() == {"id": "order-1", "status": "processing"}
    _, params = conn.statements("UPDATE orders SET status")[0]
    assert params == ("processing", ORDER_UUID)
