from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ReloadRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_method_id: Optional[str] = None


class SpendRequest(BaseModel):
    amount: int = Field(..., gt=0)
    reason: str = Field(..., min_length=1)


class CreditGrant(BaseModel):
    amount: int = Field(..., gt=0)
    type: str = "admin_grant"
    notes: Optional[str] = None


class PaymentMethodCreate(BaseModel):
    # the browser keeps the full card number; only these two fields reach us
    card_last_four: str = Field(..., pattern=r"^\d{4}$")
    card_brand: Optional[str] = None
