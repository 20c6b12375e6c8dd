# backend/app/routes/payment_routes.py

import json
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request

from app.db import get_conn
from app.services.order_service import mark_order_paid
from app.services.payment_service import verify_signature

logger = logging.getLogger("storefront.payments")

router = APIRouter(prefix="/payments", tags=["payments"])

SIGNATURE_HEADER = "x-chiron-signature"
PAID_EVENT = "payment.succeeded"


# -------------------------------------------------
# GATEWAY WEBHOOK (handles payment.succeeded)
# -------------------------------------------------
@router.post("/webhook")
async def payment_webhook(request: Request, conn=Depends(get_conn)):
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    if not signature:
        raise HTTPException(400, "Missing payment signature")

    if not verify_signature(raw_body, signature):
        raise HTTPException(400, "Invalid payment signature")

    try:
        event = json.loads(raw_body)
    except ValueError:
        raise HTTPException(400, "Invalid JSON")

    if not isinstance(event, dict):
        raise HTTPException(400, "Invalid JSON")

    if event.get("type") != PAID_EVENT:
        return {"status": "ignored"}

    data = event.get("data") or {}
    if not isinstance(data, dict):
        raise HTTPException(400, "Invalid event data")
    order_id = data.get("order_id") or (data.get("metadata") or {}).get("order_id")
    reference = data.get("id") or data.get("reference")

    if not order_id:
        logger.warning("Webhook missing order_id")
        return {"status": "ignored"}

    try:
        order_id = str(UUID(str(order_id)))
    except ValueError:
        raise HTTPException(400, "Invalid order_id")

    return mark_order_paid(conn, order_id, reference)
