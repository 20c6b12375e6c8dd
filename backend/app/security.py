# backend/app/security.py

import logging
from typing import Any, Dict, Iterator, Optional

from fastapi import Depends, Header, HTTPException, status

from app.db import get_conn
from app.errors import InvalidRequest
from app.services.auth_service import SupabaseAuthClient

logger = logging.getLogger("storefront.security")


def get_auth_client() -> Iterator[SupabaseAuthClient]:
    """FastAPI dependency: one auth client per request, always closed."""
    auth = SupabaseAuthClient.from_env()
    try:
        yield auth
    finally:
        auth.close()


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    return authorization.split(" ", 1)[1].strip()


# -------------------------------------------------
# CURRENT USER
# -------------------------------------------------
def get_current_user(
    token: str = Depends(bearer_token),
    auth: SupabaseAuthClient = Depends(get_auth_client),
    conn=Depends(get_conn),
) -> Dict[str, Any]:
    try:
        auth_user = auth.get_user(token)
    except InvalidRequest:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired session")

    user_id = auth_user.get("id")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired session")

    cur = conn.cursor()
    cur.execute(
        "SELECT role, is_creator, display_name FROM profiles WHERE user_id = %s",
        (user_id,),
    )
    profile = cur.fetchone() or {}
    cur.close()

    return {
        "id": user_id,
        "email": auth_user.get("email"),
        "role": profile.get("role") or "user",
        "is_creator": bool(profile.get("is_creator")),
        "display_name": profile.get("display_name"),
        "access_token": token,
    }


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        logger.warning(f"⛔ Non-admin {user.get('id')} hit an admin route")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def require_creator(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not user.get("is_creator") and user.get("role") != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Creator access required")
    return user
