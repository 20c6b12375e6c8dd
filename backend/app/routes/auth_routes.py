# backend/app/routes/auth_routes.py

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from app.db import get_conn
from app.errors import UpstreamError
from app.models.profile import RefreshRequest, SignInRequest, SignUpRequest
from app.security import get_auth_client, get_current_user
from app.services.auth_service import SupabaseAuthClient, create_profile
from app.services.profile_service import get_profile

logger = logging.getLogger("storefront.auth-routes")

router = APIRouter(prefix="/auth", tags=["auth"])


def _session(body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "access_token": body.get("access_token"),
        "refresh_token": body.get("refresh_token"),
        "expires_at": body.get("expires_at"),
        "user": body.get("user"),
    }


# -------------------------------------------------
# SIGN UP (also creates the profile row)
# -------------------------------------------------
@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignUpRequest,
    auth: SupabaseAuthClient = Depends(get_auth_client),
    conn=Depends(get_conn),
):
    body = auth.sign_up(payload.email, payload.password, payload.display_name)

    # email confirmation on → bare user; off → session with nested user
    user = body.get("user") or body
    user_id = user.get("id")
    if not user_id:
        logger.error(f"❌ Sign-up response without user id → {str(body)[:300]}")
        raise UpstreamError("Sign-up failed")

    profile = create_profile(conn, user_id, payload.display_name, payload.referral_code)

    return {
        "user": {"id": user_id, "email": user.get("email")},
        "profile": profile,
        "session": _session(body) if body.get("access_token") else None,
    }


@router.post("/signin")
def signin(payload: SignInRequest, auth: SupabaseAuthClient = Depends(get_auth_client)):
    return _session(auth.sign_in(payload.email, payload.password))


@router.post("/refresh")
def refresh(payload: RefreshRequest, auth: SupabaseAuthClient = Depends(get_auth_client)):
    return _session(auth.refresh_session(payload.refresh_token))


@router.post("/signout")
def signout(
    user: Dict[str, Any] = Depends(get_current_user),
    auth: SupabaseAuthClient = Depends(get_auth_client),
):
    auth.sign_out(user["access_token"])
    return {"success": True}


@router.get("/me")
def me(user: Dict[str, Any] = Depends(get_current_user), conn=Depends(get_conn)):
    return {
        "id": user["id"],
        "email": user.get("email"),
        "role": user.get("role"),
        "profile": get_profile(conn, user["id"]),
    }
