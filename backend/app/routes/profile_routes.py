# backend/app/routes/profile_routes.py

from typing import Any, Dict

from fastapi import APIRouter, Depends, File, UploadFile

from app.db import get_conn
from app.models.profile import ProfileUpdate
from app.security import get_current_user
from app.services import profile_service

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
def get_profile(user: Dict[str, Any] = Depends(get_current_user), conn=Depends(get_conn)):
    return profile_service.get_profile(conn, user["id"])


@router.patch("")
def update_profile(
    payload: ProfileUpdate,
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    return profile_service.update_profile(conn, user["id"], payload.model_dump(exclude_unset=True))


@router.post("/avatar")
async def upload_avatar(
    file: UploadFile = File(...),
    user: Dict[str, Any] = Depends(get_current_user),
    conn=Depends(get_conn),
):
    content = await file.read()
    return profile_service.upload_avatar(conn, user["id"], content, file.content_type)
