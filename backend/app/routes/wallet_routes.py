# backend/app/routes/wallet_routes.py

from decimal import Decimal
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.db import get_conn
from app.models.wallet import PaymentMethodCreate, ReloadRequest, SpendRequest
from app.security import get_current_user
from app.services import wallet_service
from app.services.credits_service import credits_for_amount, credits_to_dollars, spend_credits

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("")
def get_wallet(user: Dict[str, Any] = Depends(get_current_user), conn=Depends(get_conn)):
    wallet = wallet_service.get_wallet(conn, user["id"])
    wallet["balance_usd"] = credits_to_dollars(wallet["current_balance"])
    return wallet


@router.get("/quote")
def reload_quote(amount: Decimal = Query(..., gt=0)):
    credits = credits_for_amount(amount)
    return {"amount": amount, "credits": credits, "value_usd": credits_to_dollars(credits)}


@router.post("/reload")
def reload_wallet(
    payload: ReloadRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    return wallet_service.reload_wallet(conn, user["id"], payload.amount, payload.payment_method_id)


@router.post("/spend")
def spend(
    payload: SpendRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    balance = spend_credits(conn, user["id"], payload.amount, payload.reason)
    return {"success": True, "current_balance": balance}


# -------------------------------------------------
# PAYMENT METHODS (last four + brand only)
# -------------------------------------------------
@router.post("/payment-methods", status_code=status.HTTP_201_CREATED)
def add_payment_method(
    payload: PaymentMethodCreate,
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    return wallet_service.add_payment_method(conn, user["id"], payload.card_last_four, payload.card_brand)


@router.post("/payment-methods/{method_id}/default")
def set_default(
    method_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    wallet_service.set_default_payment_method(conn, user["id"], str(method_id))
    return {"success": True}
