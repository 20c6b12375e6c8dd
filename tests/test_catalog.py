from decimal import Decimal

import pytest

from app.errors import InvalidRequest, NotFound
from app.services.catalog_service import (
    SEED_PRODUCTS,
    create_product,
    get_product,
    list_products,
    product_summary,
    seed_products,
    update_product,
)


def test_filters_become_parameters(conn):
    list_products(conn, brand="Rick Owens", min_price=Decimal("500"), search=" geo ", in_stock_only=True, sort="price_asc")

    sql, params = conn.executed[0]
    assert "LOWER(p.brand) = LOWER(%s)" in sql
    assert "(p.infinite_stock OR p.stock > 0)" in sql
    assert "ORDER BY p.price ASC" in sql
    assert params == ("Rick Owens", Decimal("500"), "%geo%", "%geo%", 24, 0)


@pytest.mark.parametrize("kwargs", [{"sort": "random"}, {"limit": 0}, {"limit": 101}, {"offset": -1}])
def test_bad_listing_arguments(conn, kwargs):
    with pytest.raises(InvalidRequest):
        list_products(conn, **kwargs)
    assert conn.executed == []


def test_missing_product(conn):
    with pytest.raises(NotFound):
        get_product(conn, "00000000-0000-0000-0000-000000000000")


def test_create_product_writes_media_in_order(conn):
    conn.on("INSERT INTO products", [{"id": "p1", "title": "Geobasket"}])

    product = create_product(conn, {"title": "Geobasket", "brand": "Rick Owens", "price": Decimal("1599"), "images": ["/a.png", "/b.png"]})

    media = conn.statements("INSERT INTO product_media")
    assert [params for _, params in media] == [("p1", "/a.png", "primary", 0), ("p1", "/b.png", "gallery", 1)]
    assert product["images"] == ["/a.png", "/b.png"]
    assert conn.commits == 1


def test_update_product_drops_null_for_required_columns(conn):
    conn.on("UPDATE products SET", [{"id": "p1", "title": "Geobasket", "description": None}])

    update_product(conn, "p1", {"title": None, "price": None, "stock": None, "description": None})

    sql, params = conn.statements("UPDATE products SET")[0]
    assert "title" not in sql
    assert "price" not in sql
    assert params == (None, "p1")


def test_update_product_with_only_nulls_for_required_columns(conn):
    with pytest.raises(InvalidRequest):
        update_product(conn, "p1", {"title": None, "brand": None, "infinite_stock": None})
    assert conn.executed == []


def test_summary():
    products = [
        {"price": Decimal("100"), "stock": 20},
        {"price": Decimal("50"), "stock": 3},
        {"price": Decimal("10"), "stock": 0},
    ]

    assert product_summary(products) == {
        "total_products": 3,
        "in_stock": 1,
        "low_stock": 1,
        "out_of_stock": 1,
        "total_value": Decimal("2150.00"),
    }


def test_seed_skips_populated_table(conn):
    conn.on("SELECT COUNT(*) AS count FROM products", [{"count": 12}])

    assert seed_products(conn) == {"message": "Products already synced", "count": 12}
    assert not conn.ran("INSERT INTO products")


def test_seed_empty_table(conn):
    conn.on("SELECT COUNT(*) AS count FROM products", [{"count": 0}])
    conn.on("INSERT INTO products", [{"id": "p"}])

    result = seed_products(conn)

    assert result["count"] == len(SEED_PRODUCTS)
    assert len(conn.statements("INSERT INTO products")) == len(SEED_PRODUCTS)
    assert conn.commits == 1


# -------------------------------------------------
# ROUTES
# -------------------------------------------------
def test_list_route(make_client, conn):
    conn.on("FROM products p", [{"id": "p1", "title": "Geobasket", "price": Decimal("1599.00"), "images": []}])
    response = make_client().get("/products", params={"brand": "Rick Owens"})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["products"][0]["title"] == "Geobasket"


def test_unknown_sort_is_400(make_client):
    response = make_client().get("/products", params={"sort": "random"})
    assert response.status_code == 400
    assert response.json() == {"detail": "Unknown sort: random"}


def test_product_admin_needs_admin(make_client, user, admin_user, conn):
    payload = {"title": "Geobasket", "brand": "Rick Owens", "price": "1599.00"}
    assert make_client(user=user).post("/admin/products", json=payload).status_code == 403

    conn.on("INSERT INTO products", [{"id": "p1", "title": "Geobasket"}])
    response = make_client(user=admin_user).post("/admin/products", json=payload)
    assert response.status_code == 201
    assert response.json()["id"] == "p1"


def test_product_payload_validation(make_client, admin_user):
    response = make_client(user=admin_user).post("/admin/products", json={"title": "X", "brand": "Y", "price": "-1"})
    assert response.status_code == 422


def test_product_route_needs_uuid(make_client, conn):
    client = make_client()

    assert client.get("/products/not-a-uuid").status_code == 422
    assert conn.executed == []

    response = client.get("/products/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
    _, params = conn.executed[0]
    assert params[0] == "00000000-0000-0000-0000-000000000000"
