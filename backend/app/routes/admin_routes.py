# backend/app/routes/admin_routes.py

from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.db import get_conn
from app.models.wallet import CreditGrant
from app.security import get_auth_client, require_admin
from app.services import admin_service
from app.services.auth_service import SupabaseAuthClient
from app.services.credits_service import grant_credits

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard")
def dashboard(admin: Dict[str, Any] = Depends(require_admin), conn=Depends(get_conn)):
    return admin_service.load_dashboard(conn)


@router.get("/users")
def users(
    admin: Dict[str, Any] = Depends(require_admin),
    auth: SupabaseAuthClient = Depends(get_auth_client),
    conn=Depends(get_conn),
):
    return {"users": admin_service.users_with_emails(conn, auth)}


@router.get("/users/summary")
def users_summary(admin: Dict[str, Any] = Depends(require_admin), conn=Depends(get_conn)):
    return admin_service.load_user_summary(conn)


@router.post("/users/{user_id}/credits")
def add_user_credits(
    user_id: str,
    payload: CreditGrant,
    admin: Dict[str, Any] = Depends(require_admin),
    conn=Depends(get_conn),
):
    balance = grant_credits(conn, admin["id"], user_id, payload.amount, payload.type, payload.notes)
    return {"success": True, "current_balance": balance}


@router.get("/analytics")
def analytics(admin: Dict[str, Any] = Depends(require_admin), conn=Depends(get_conn)):
    return admin_service.load_analytics(conn)
