# backend/app/routes/creator_routes.py

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from app.db import get_conn
from app.models.creator import (
    InviteAccept,
    InviteCreate,
    InviteStatusUpdate,
    PromoteRequest,
    RoleUpdate,
    SocialApproval,
    SocialRejection,
)
from app.security import get_current_user, require_admin, require_creator
from app.services import creator_service, social_service
from app.services.coupon_service import get_coupon_for_creator

router = APIRouter(prefix="/creator", tags=["creator"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


# -------------------------------------------------
# CREATOR
# -------------------------------------------------
@router.get("/dashboard")
def dashboard(user: Dict[str, Any] = Depends(require_creator), conn=Depends(get_conn)):
    return creator_service.creator_dashboard(conn, user["id"])


@router.get("/coupon")
def my_coupon(user: Dict[str, Any] = Depends(require_creator), conn=Depends(get_conn)):
    return {"coupon": get_coupon_for_creator(conn, user["id"])}


@router.post("/invites/accept")
def accept_invite(
    payload: InviteAccept,
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    return creator_service.accept_invite(conn, payload.token, user["id"])


@router.post("/social-requests", status_code=status.HTTP_201_CREATED)
async def submit_social_request(
    platform: str = Form(...),
    username: str = Form(...),
    follower_count: Optional[int] = Form(None),
    screenshot: Optional[UploadFile] = File(None),
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    content = await screenshot.read() if screenshot else None
    return social_service.submit_request(
        conn,
        user["id"],
        platform,
        username,
        follower_count,
        content,
        screenshot.content_type if screenshot else None,
    )


@router.get("/social-requests")
def my_social_requests(user: Dict[str, Any] = Depends(get_current_user), conn=Depends(get_conn)):
    return {"requests": social_service.list_requests(conn, status=None, user_id=user["id"])}


# -------------------------------------------------
# ADMIN: INVITES
# -------------------------------------------------
@admin_router.get("/creator-invites")
def list_invites(
    status_filter: Optional[str] = None,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return {"invites": creator_service.list_invites(conn, status_filter)}


@admin_router.post("/creator-invites", status_code=status.HTTP_201_CREATED)
def create_invite(
    payload: InviteCreate,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return creator_service.create_invite(conn, admin["id"], payload.model_dump())


@admin_router.patch("/creator-invites/{invite_id}")
def update_invite(
    invite_id: UUID,
    payload: InviteStatusUpdate,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return creator_service.update_invite_status(conn, str(invite_id), payload.status)


@admin_router.delete("/creator-invites/{invite_id}")
def delete_invite(
    invite_id: UUID,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    creator_service.delete_invite(conn, str(invite_id))
    return {"success": True}


# -------------------------------------------------
# ADMIN: ROLES
# -------------------------------------------------
@admin_router.post("/users/{user_id}/promote")
def promote(
    user_id: str,
    payload: PromoteRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return creator_service.promote_to_creator(conn, user_id, payload.tier, payload.coupon_code)


@admin_router.post("/users/{user_id}/demote")
def demote(user_id: str, admin: Dict[str, Any] = Depends(require_admin), conn=Depends(get_conn)):
    return creator_service.demote_from_creator(conn, user_id)


@admin_router.patch("/users/{user_id}/role")
def set_role(
    user_id: str,
    payload: RoleUpdate,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return creator_service.set_user_role(conn, user_id, payload.role)


# -------------------------------------------------
# ADMIN: SOCIAL VERIFICATION
# -------------------------------------------------
@admin_router.get("/social-requests")
def social_requests(
    status_filter: Optional[str] = "pending",
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return {"requests": social_service.list_requests(conn, status=status_filter)}


@admin_router.post("/social-requests/{request_id}/approve")
def approve_social_request(
    request_id: UUID,
    payload: SocialApproval,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return social_service.approve_request(conn, str(request_id), payload.verified_follower_count)


@admin_router.post("/social-requests/{request_id}/reject")
def reject_social_request(
    request_id: UUID,
    payload: SocialRejection,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    return social_service.reject_request(conn, str(request_id), payload.reason)
