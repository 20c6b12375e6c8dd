from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CartItemIn(BaseModel):
    product_id: str
    size: str
    quantity: int = Field(1, ge=1, le=20)


class CartQuantityUpdate(BaseModel):
    product_id: str
    size: str
    quantity: int


class CartItemRef(BaseModel):
    product_id: str
    size: str


class PaymentTokenRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)


class QuoteRequest(BaseModel):
    coupon_code: Optional[str] = None
    credits_to_apply: int = Field(0, ge=0)


class CheckoutRequest(QuoteRequest):
    shipping_address: Dict[str, Any] = Field(default_factory=dict)
    payment_token: Optional[str] = None


class ManualOrderItem(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    size: Optional[str] = None


class ManualOrderRequest(BaseModel):
    user_id: str
    items: List[ManualOrderItem] = Field(..., min_length=1)
    coupon_code: Optional[str] = None
    shipping_address: Dict[str, Any] = Field(default_factory=dict)


class OrderStatusUpdate(BaseModel):
    status: str
