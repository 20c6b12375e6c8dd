# backend/app/routes/order_routes.py

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.db import get_conn
from app.models.orders import ManualOrderRequest, OrderStatusUpdate
from app.security import get_current_user, require_admin
from app.services import order_service
from app.services.checkout_service import create_order

router = APIRouter(prefix="/orders", tags=["orders"])
admin_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@router.get("")
def my_orders(user: Dict[str, Any] = Depends(get_current_user), conn=Depends(get_conn)):
    return {"orders": order_service.list_orders(conn, user_id=user["id"])}


@router.get("/{order_id}")
def get_order(order_id: UUID, user: Dict[str, Any] = Depends(get_current_user), conn=Depends(get_conn)):
    return order_service.get_order(conn, str(order_id), user)


# -------------------------------------------------
# ADMIN
# -------------------------------------------------
@admin_router.get("")
def all_orders(
    status_filter: Optional[str] = None,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    orders = order_service.list_orders(conn, status=status_filter)
    return {"orders": orders, "summary": order_service.order_summary(orders)}


@admin_router.patch("/{order_id}/status")
def update_order_status(
    order_id: UUID,
    payload: OrderStatusUpdate,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return order_service.update_status(conn, str(order_id), payload.status)


@admin_router.post("", status_code=status.HTTP_201_CREATED)
def create_manual_order(
    payload: ManualOrderRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return create_order(
        conn,
        payload.user_id,
        [item.model_dump() for item in payload.items],
        coupon_code=payload.coupon_code,
        shipping_address=payload.shipping_address,
        clear_cart=False,
    )
