# backend/app/routes/catalog_routes.py

from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.db import get_conn
from app.models.catalog import ProductCreate, ProductUpdate
from app.security import require_admin
from app.services import catalog_service

router = APIRouter(prefix="/products", tags=["catalog"])
admin_router = APIRouter(prefix="/admin/products", tags=["admin"])


# -------------------------------------------------
# PUBLIC CATALOG
# -------------------------------------------------
@router.get("")
def list_products(
    brand: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    search: Optional[str] = None,
    in_stock_only: bool = False,
    sort: str = "newest",
    limit: int = 24,
    offset: int = 0,
    conn=Depends(get_conn),
):
    products = catalog_service.list_products(
        conn,
        brand=brand,
        category=category,
        min_price=min_price,
        max_price=max_price,
        search=search,
        in_stock_only=in_stock_only,
        sort=sort,
        limit=limit,
        offset=offset,
    )
    return {"products": products, "count": len(products), "limit": limit, "offset": offset}


@router.get("/{product_id}")
def get_product(product_id: UUID, conn=Depends(get_conn)):
    return catalog_service.get_product(conn, str(product_id))


# -------------------------------------------------
# ADMIN
# -------------------------------------------------
@admin_router.get("/summary")
def product_summary(admin: Dict[str, Any] = Depends(require_admin), conn=Depends(get_conn)):
    return catalog_service.product_summary(catalog_service.all_products(conn))


@admin_router.post("/sync")
def sync_products(admin: Dict[str, Any] = Depends(require_admin), conn=Depends(get_conn)):
    return catalog_service.seed_products(conn)


@admin_router.post("", status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return catalog_service.create_product(conn, payload.model_dump())


@admin_router.patch("/{product_id}")
def update_product(
    product_id: UUID,
    payload: ProductUpdate,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return catalog_service.update_product(conn, str(product_id), payload.model_dump(exclude_unset=True))


@admin_router.delete("/{product_id}")
def delete_product(
    product_id: UUID,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    catalog_service.delete_product(conn, str(product_id))
    return {"success": True}
