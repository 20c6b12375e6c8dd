# backend/app/services/profile_service.py

import logging
from typing import Any, Callable, Dict, Optional

from app.errors import InvalidRequest, NotFound
from app.services.storage_service import AVATAR_BUCKET, upload_image

logger = logging.getLogger("storefront.profile")

EDITABLE_FIELDS = ("display_name", "bio")


def get_profile(conn, user_id: str) -> Dict[str, Any]:
    cur = conn.cursor()
    cur.execute(
        """
        SELECT user_id, display_name, avatar_url, bio, role, is_creator,
               creator_tier, commission_rate, coupon_code, referral_code,
               referrals_count, created_at
        FROM profiles
        WHERE user_id = %s
        """,
        (user_id,),
    )
    profile = cur.fetchone()
    cur.close()
    if profile is None:
        raise NotFound("Profile not found")
    return profile


def update_profile(conn, user_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    fields = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
    if not fields:
        raise InvalidRequest("Nothing to update")

    assignments = ", ".join(f"{column} = %s" for column in fields)
    try:
        cur = conn.cursor()
        cur.execute(
            f"UPDATE profiles SET {assignments}, updated_at = now() WHERE user_id = %s RETURNING *",
            (*fields.values(), user_id),
        )
        profile = cur.fetchone()
        if profile is None:
            raise NotFound("Profile not found")
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    return profile


def upload_avatar(
    conn,
    user_id: str,
    content: bytes,
    content_type: Optional[str],
    uploader: Callable[..., str] = upload_image,
) -> Dict[str, Any]:
    # upload raises before the profile is touched
    url = uploader(AVATAR_BUCKET, user_id, content, content_type)

    try:
        cur = conn.cursor()
        cur.execute(
            "UPDATE profiles SET avatar_url = %s, updated_at = now() WHERE user_id = %s RETURNING user_id, avatar_url",
            (url, user_id),
        )
        profile = cur.fetchone()
        if profile is None:
            raise NotFound("Profile not found")
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"🖼 Avatar updated for {user_id}")
    return profile
