# backend/app/routes/checkout_routes.py

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from app.db import get_conn
from app.models.orders import CheckoutRequest, PaymentTokenRequest, QuoteRequest
from app.security import get_current_user
from app.services.cart_service import load_cart
from app.services.checkout_service import create_order, quote
from app.services.payment_service import create_payment_token

logger = logging.getLogger("storefront.checkout-routes")

router = APIRouter(prefix="/checkout", tags=["checkout"])


# -------------------------------------------------
# STEP 1: PAYMENT TOKEN (gateway, no card data here)
# -------------------------------------------------
@router.post("/payment-token")
def payment_token(payload: PaymentTokenRequest, user: Dict[str, Any] = Depends(get_current_user)):
    logger.info(f"[checkout] token request user={user['id']} amount={payload.amount}")
    return create_payment_token(payload.amount)


# -------------------------------------------------
# STEP 2: QUOTE (totals before placing the order)
# -------------------------------------------------
@router.post("/quote")
def checkout_quote(
    payload: QuoteRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    cart = load_cart(conn, user["id"])
    return quote(conn, cart.items, payload.coupon_code, payload.credits_to_apply)


# -------------------------------------------------
# STEP 3: PLACE ORDER
# -------------------------------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
def place_order(
    payload: CheckoutRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    cart = load_cart(conn, user["id"])
    return create_order(
        conn,
        user["id"],
        cart.items,
        coupon_code=payload.coupon_code,
        credits_to_apply=payload.credits_to_apply,
        shipping_address=payload.shipping_address,
        payment_token=payload.payment_token,
    )
