from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    title: str = Field(..., min_length=1)
    brand: str = Field(..., min_length=1)
    category: Optional[str] = None
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    infinite_stock: bool = False
    limited: bool = False
    availability: str = "In Stock"
    size_type: str = Field("US", pattern="^(US|EU)$")
    materials: Optional[str] = None
    care_instructions: Optional[str] = None
    shipping_time: str = "5-9 days"
    images: List[str] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    brand: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    infinite_stock: Optional[bool] = None
    limited: Optional[bool] = None
    availability: Optional[str] = None
    size_type: Optional[str] = Field(None, pattern="^(US|EU)$")
    materials: Optional[str] = None
    care_instructions: Optional[str] = None
    shipping_time: Optional[str] = None
