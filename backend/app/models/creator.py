from typing import Optional

from pydantic import BaseModel, Field


class InviteCreate(BaseModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    display_name: Optional[str] = None
    tier: str = "tier1"
    coupon_code: str
    starting_credits: int = Field(0, ge=0)
    tiktok_username: Optional[str] = None
    followers: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class InviteStatusUpdate(BaseModel):
    status: str


class InviteAccept(BaseModel):
    token: str


class SocialApproval(BaseModel):
    verified_follower_count: Optional[int] = Field(None, ge=0)


class SocialRejection(BaseModel):
    reason: str


class CouponUpdate(BaseModel):
    code: str


class RoleUpdate(BaseModel):
    role: str


class PromoteRequest(BaseModel):
    tier: str = "tier1"
    coupon_code: Optional[str] = None
