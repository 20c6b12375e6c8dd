# backend/app/routes/coupon_routes.py

from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.db import get_conn
from app.models.creator import CouponUpdate
from app.security import require_admin
from app.services.coupon_service import resolve_coupon, set_coupon_code

router = APIRouter(tags=["coupons"])


@router.get("/coupons/{code}")
def validate_coupon(code: str, conn=Depends(get_conn)):
    coupon = resolve_coupon(conn, code)
    # the buyer only needs to know it applies and how much it takes off
    return {"valid": True, "code": coupon["code"], "discount_rate": coupon["discount_rate"]}


@router.put("/admin/users/{user_id}/coupon")
def update_coupon(
    user_id: str,
    payload: CouponUpdate,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return set_coupon_code(conn, user_id, payload.code)
