from decimal import Decimal

import pytest

from app.errors import InvalidRequest, NotFound
from app.services.cart_service import Cart, load_cart, save_cart

GEOBASKET = {
    "id": "p-geo",
    "title": "Rick Owens Geobaskets",
    "price": Decimal("1599.00"),
    "images": ["/products/rick-owens-geobaskets/1.png"],
    "size_type": "EU",
}
VANS = {"id": "p-vans", "title": "DRKSHDW Vans", "price": "$899", "images": [], "size_type": "US"}


def test_same_product_and_size_merges_lines():
    cart = Cart()
    cart.add_item(GEOBASKET, "42")
    cart.add_item(GEOBASKET, "42", 2)

    assert len(cart.items) == 1
    assert cart.items[0]["quantity"] == 3
    assert cart.total_items() == 3


def test_different_sizes_are_separate_lines():
    cart = Cart()
    cart.add_item(GEOBASKET, "42")
    cart.add_item(GEOBASKET, "43")

    assert len(cart.items) == 2


def test_subtotal_is_price_times_quantity():
    cart = Cart()
    cart.add_item(GEOBASKET, "42", 2)
    cart.add_item(VANS, "10")

    assert cart.subtotal() == Decimal("4097.00")


def test_update_quantity_to_zero_removes_line():
    cart = Cart()
    cart.add_item(VANS, "10", 2)
    cart.update_quantity("p-vans", "10", 0)

    assert cart.items == []


def test_update_quantity_of_missing_line():
    cart = Cart()
    with pytest.raises(NotFound):
        cart.update_quantity("p-vans", "10", 3)


def test_add_zero_quantity_is_rejected():
    with pytest.raises(InvalidRequest):
        Cart().add_item(VANS, "10", 0)


def test_remove_and_clear():
    cart = Cart()
    cart.add_item(VANS, "10")
    cart.add_item(GEOBASKET, "42")
    cart.remove_item("p-vans", "10")
    assert [i["product_id"] for i in cart.items] == ["p-geo"]

    cart.clear()
    assert cart.to_dict() == {"items": [], "total_items": 0, "subtotal": Decimal("0.00")}


def test_load_cart_decodes_json_text(conn):
    conn.on("SELECT items FROM carts", [{"items": '[{"product_id": "p-vans", "size": "10", "price": "899.00", "quantity": 2}]'}])

    cart = load_cart(conn, "user-1")

    assert cart.total_items() == 2
    assert cart.subtotal() == Decimal("1798.00")


def test_save_cart_upserts(conn):
    cart = Cart()
    cart.add_item(VANS, "10")
    save_cart(conn, "user-1", cart)

    sql, params = conn.statements("INSERT INTO carts")[0]
    assert "ON CONFLICT (user_id)" in sql
    assert params[0] == "user-1"
    assert conn.commits == 1


def test_cart_routes_respect_stock(make_client, conn, user):
    conn.on("FROM products p", [{**GEOBASKET, "stock": 1, "infinite_stock": False}])
    client = make_client(user=user)

    ok = client.post("/cart/items", json={"product_id": "p-geo", "size": "42", "quantity": 1})
    assert ok.status_code == 200
    assert ok.json()["total_items"] == 1

    too_many = client.post("/cart/items", json={"product_id": "p-geo", "size": "42", "quantity": 2})
    assert too_many.status_code == 409


def test_cart_requires_login(make_client):
    client = make_client()
    assert client.get("/cart").status_code == 401
