# backend/app/services/catalog_service.py

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from app.errors import InvalidRequest, NotFound
from app.utils.helpers import money, to_decimal

logger = logging.getLogger("storefront.catalog")

MAX_PAGE_SIZE = 100
LOW_STOCK_THRESHOLD = 10

SORT_ORDERS = {
    "newest": "p.created_at DESC",
    "price_asc": "p.price ASC, p.created_at DESC",
    "price_desc": "p.price DESC, p.created_at DESC",
    "title": "p.title ASC",
}

PRODUCT_COLUMNS = [
    "title",
    "brand",
    "category",
    "description",
    "price",
    "stock",
    "infinite_stock",
    "limited",
    "availability",
    "size_type",
    "materials",
    "care_instructions",
    "shipping_time",
]

# columns an admin may clear by sending null
NULLABLE_PRODUCT_COLUMNS = {"category", "description", "materials", "care_instructions"}

PRODUCT_SELECT = """
    SELECT p.*,
           COALESCE(
               (SELECT json_agg(m.url ORDER BY m.position)
                FROM product_media m WHERE m.product_id = p.id),
               '[]'::json
           ) AS images
    FROM products p
"""

# ---------------------------------------------
# LAUNCH CATALOG (seeded into an empty store)
# ---------------------------------------------
SEED_PRODUCTS = [
    {
        "title": "DRKSHDW Rick Owens Vans",
        "brand": "Rick Owens",
        "category": "High-Top",
        "price": 899,
        "stock": 5,
        "infinite_stock": False,
        "limited": True,
        "availability": "Limited Stock",
        "description": "Avant-garde collaboration between Rick Owens and Vans",
        "materials": "Canvas, Leather",
        "care_instructions": "Spot clean only",
        "shipping_time": "3-5 days",
        "size_type": "US",
        "images": [
            "/products/drkshdw-rick-owens-vans/1.jpeg",
            "/products/drkshdw-rick-owens-vans/2.jpeg",
            "/products/drkshdw-rick-owens-vans/3.jpeg",
            "/products/drkshdw-rick-owens-vans/4.jpeg",
        ],
    },
    {
        "title": "Maison Margiela Gum Sole Sneakers",
        "brand": "Maison Margiela",
        "category": "Low-Top",
        "price": 1299,
        "stock": 3,
        "infinite_stock": False,
        "limited": True,
        "availability": "Limited Stock",
        "description": "Iconic GATs with signature gum sole",
        "materials": "Leather, Rubber",
        "care_instructions": "Professional cleaning recommended",
        "shipping_time": "5-7 days",
        "size_type": "EU",
        "images": [
            "/products/maison-margiela-gum-sole/1.png",
            "/products/maison-margiela-gum-sole/2.png",
            "/products/maison-margiela-gum-sole/3.png",
            "/products/maison-margiela-gum-sole/4.png",
        ],
    },
    {
        "title": "Rick Owens Geobaskets",
        "brand": "Rick Owens",
        "category": "High-Top",
        "price": 1599,
        "stock": 2,
        "infinite_stock": False,
        "limited": True,
        "availability": "Very Limited",
        "description": "Iconic avant-garde high-top sneakers",
        "materials": "Leather, Canvas",
        "care_instructions": "Leather conditioner recommended",
        "shipping_time": "7-14 days",
        "size_type": "EU",
        "images": [
            "/products/rick-owens-geobaskets/1.png",
            "/products/rick-owens-geobaskets/2.png",
            "/products/rick-owens-geobaskets/3.png",
            "/products/rick-owens-geobaskets/4.png",
            "/products/rick-owens-geobaskets/5.png",
        ],
    },
    {
        "title": "Travis Scott x Air Jordan 1 Low 'Reverse Mocha'",
        "brand": "Nike",
        "category": "Low-Top",
        "price": 2299,
        "stock": 1,
        "infinite_stock": False,
        "limited": True,
        "availability": "Extremely Limited",
        "description": "Collaboration between Travis Scott and Jordan Brand",
        "materials": "Leather, Suede",
        "care_instructions": "Suede brush for maintenance",
        "shipping_time": "5-9 days",
        "size_type": "US",
        "images": [
            "/products/travis-reverse-mocha-low/1.png",
            "/products/travis-reverse-mocha-low/2.png",
            "/products/travis-reverse-mocha-low/3.png",
        ],
    },
]


def list_products(
    conn,
    brand: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    search: Optional[str] = None,
    in_stock_only: bool = False,
    sort: str = "newest",
    limit: int = 24,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    if sort not in SORT_ORDERS:
        raise InvalidRequest(f"Unknown sort: {sort}")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise InvalidRequest(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if offset < 0:
        raise InvalidRequest("offset must be >= 0")

    clauses = []
    params: List[Any] = []

    if brand:
        clauses.append("LOWER(p.brand) = LOWER(%s)")
        params.append(brand)
    if category:
        clauses.append("LOWER(p.category) = LOWER(%s)")
        params.append(category)
    if min_price is not None:
        clauses.append("p.price >= %s")
        params.append(min_price)
    if max_price is not None:
        clauses.append("p.price <= %s")
        params.append(max_price)
    if search:
        clauses.append("(p.title ILIKE %s OR p.brand ILIKE %s)")
        pattern = f"%{search.strip()}%"
        params.extend([pattern, pattern])
    if in_stock_only:
        clauses.append("(p.infinite_stock OR p.stock > 0)")

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    sql = f"{PRODUCT_SELECT} {where} ORDER BY {SORT_ORDERS[sort]} LIMIT %s OFFSET %s"
    params.extend([limit, offset])

    cur = conn.cursor()
    cur.execute(sql, tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows


def get_product(conn, product_id: str) -> Dict[str, Any]:
    cur = conn.cursor()
    cur.execute(f"{PRODUCT_SELECT} WHERE p.id = %s", (product_id,))
    row = cur.fetchone()
    cur.close()
    if row is None:
        raise NotFound("Product not found")
    return row


def _insert_product(cur, data: Dict[str, Any]) -> Dict[str, Any]:
    columns = [c for c in PRODUCT_COLUMNS if c in data]
    placeholders = ", ".join(["%s"] * len(columns))
    cur.execute(
        f"INSERT INTO products ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *",
        tuple(data[c] for c in columns),
    )
    product = cur.fetchone()

    for position, url in enumerate(data.get("images") or []):
        cur.execute(
            """
            INSERT INTO product_media (product_id, url, role, position)
            VALUES (%s, %s, %s, %s)
            """,
            (product["id"], url, "primary" if position == 0 else "gallery", position),
        )

    product["images"] = list(data.get("images") or [])
    return product


def create_product(conn, data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        cur = conn.cursor()
        product = _insert_product(cur, data)
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"🆕 Product created: {product['title']}")
    return product


def update_product(conn, product_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    fields = {
        k: v
        for k, v in changes.items()
        if k in PRODUCT_COLUMNS and (v is not None or k in NULLABLE_PRODUCT_COLUMNS)
    }
    if not fields:
        raise InvalidRequest("Nothing to update")

    assignments = ", ".join(f"{column} = %s" for column in fields)
    try:
        cur = conn.cursor()
        cur.execute(
            f"UPDATE products SET {assignments}, updated_at = now() WHERE id = %s RETURNING *",
            (*fields.values(), product_id),
        )
        product = cur.fetchone()
        if product is None:
            raise NotFound("Product not found")
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    return product


def delete_product(conn, product_id: str) -> None:
    try:
        cur = conn.cursor()
        cur.execute("DELETE FROM products WHERE id = %s RETURNING id", (product_id,))
        if cur.fetchone() is None:
            raise NotFound("Product not found")
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def product_summary(products: List[Dict[str, Any]]) -> Dict[str, Any]:
    stocks = [int(p.get("stock") or 0) for p in products]
    return {
        "total_products": len(products),
        "in_stock": sum(1 for s in stocks if s > LOW_STOCK_THRESHOLD),
        "low_stock": sum(1 for s in stocks if 0 < s <= LOW_STOCK_THRESHOLD),
        "out_of_stock": sum(1 for s in stocks if s == 0),
        "total_value": money(
            sum(to_decimal(p.get("price")) * int(p.get("stock") or 0) for p in products)
        ),
    }


def all_products(conn) -> List[Dict[str, Any]]:
    cur = conn.cursor()
    cur.execute("SELECT id, title, price, stock FROM products ORDER BY created_at DESC")
    rows = cur.fetchall()
    cur.close()
    return rows


def seed_products(conn) -> Dict[str, Any]:
    """Loads the launch catalog, but only into an empty products table."""
    cur = conn.cursor()
    cur.execute("SELECT COUNT(*) AS count FROM products")
    row = cur.fetchone()
    existing = int(row["count"]) if row else 0

    if existing > 0:
        cur.close()
        return {"message": "Products already synced", "count": existing}

    try:
        created = [_insert_product(cur, dict(p)) for p in SEED_PRODUCTS]
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"✅ Seeded {len(created)} products")
    return {"message": "Products synced successfully", "count": len(created)}
