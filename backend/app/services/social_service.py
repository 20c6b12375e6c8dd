# backend/app/services/social_service.py

import logging
from typing import Any, Callable, Dict, List, Optional

from app.errors import Conflict, InvalidRequest, NotFound
from app.services.commission import payout_per_video
from app.services.storage_service import POSTS_BUCKET, upload_image

logger = logging.getLogger("storefront.social")

PLATFORMS = {"instagram", "tiktok", "youtube", "twitter"}
REQUEST_STATUSES = {"pending", "approved", "rejected"}


def normalize_username(username: str) -> str:
    value = (username or "").strip().lstrip("@").strip()
    if not value:
        raise InvalidRequest("Username is required")
    return value


def submit_request(
    conn,
    user_id: str,
    platform: str,
    username: str,
    follower_count: Optional[int] = None,
    screenshot: Optional[bytes] = None,
    screenshot_type: Optional[str] = None,
    uploader: Callable[..., str] = upload_image,
) -> Dict[str, Any]:
    platform = (platform or "").strip().lower()
    if platform not in PLATFORMS:
        raise InvalidRequest(f"Platform must be one of: {', '.join(sorted(PLATFORMS))}")
    if follower_count is not None and follower_count < 0:
        raise InvalidRequest("follower_count must be >= 0")

    username = normalize_username(username)

    # upload before touching the db; a failed upload leaves nothing behind
    screenshot_url = None
    if screenshot:
        screenshot_url = uploader(POSTS_BUCKET, user_id, screenshot, screenshot_type)

    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO social_verification_requests (user_id, platform, username, follower_count, screenshot_url, status)
            VALUES (%s, %s, %s, %s, %s, 'pending')
            RETURNING *
            """,
            (user_id, platform, username, follower_count, screenshot_url),
        )
        request = cur.fetchone()
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"📝 Social verification request {platform}/@{username} from {user_id}")
    return request


def list_requests(conn, status: Optional[str] = "pending", user_id: Optional[str] = None) -> List[Dict[str, Any]]:
    if status and status not in REQUEST_STATUSES:
        raise InvalidRequest(f"Unknown status: {status}")

    clauses = []
    params: List[Any] = []
    if status:
        clauses.append("r.status = %s")
        params.append(status)
    if user_id:
        clauses.append("r.user_id = %s")
        params.append(user_id)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    cur = conn.cursor()
    cur.execute(
        f"""
        SELECT r.*, p.display_name
        FROM social_verification_requests r
        LEFT JOIN profiles p ON p.user_id = r.user_id
        {where}
        ORDER BY r.created_at DESC
        """,
        tuple(params),
    )
    rows = cur.fetchall()
    cur.close()
    return rows


def _pending_request(cur, request_id: str) -> Dict[str, Any]:
    cur.execute(
        "SELECT * FROM social_verification_requests WHERE id = %s FOR UPDATE",
        (request_id,),
    )
    request = cur.fetchone()
    if request is None:
        raise NotFound("Request not found")
    if request["status"] != "pending":
        raise Conflict(f"Request already {request['status']}")
    return request


def approve_request(conn, request_id: str, verified_follower_count: Optional[int] = None) -> Dict[str, Any]:
    try:
        cur = conn.cursor()
        request = _pending_request(cur, request_id)

        followers = verified_follower_count
        if followers is None:
            followers = int(request.get("follower_count") or 0)

        cur.execute(
            """
            UPDATE social_verification_requests
            SET status = 'approved', verified_follower_count = %s, updated_at = now()
            WHERE id = %s
            """,
            (followers, request_id),
        )
        cur.execute(
            """
            INSERT INTO social_connections (user_id, platform, username, follower_count, is_verified, verified_at)
            VALUES (%s, %s, %s, %s, TRUE, now())
            ON CONFLICT (user_id, platform)
            DO UPDATE SET username = EXCLUDED.username,
                          follower_count = EXCLUDED.follower_count,
                          is_verified = TRUE,
                          verified_at = now(),
                          updated_at = now()
            """,
            (request["user_id"], request["platform"], request["username"], followers),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    payout = payout_per_video(followers)
    logger.info(f"✅ Approved {request['platform']}/@{request['username']} ({followers} followers, ${payout}/video)")
    return {
        "id": str(request_id),
        "status": "approved",
        "user_id": request["user_id"],
        "platform": request["platform"],
        "verified_follower_count": followers,
        "payout_per_video": payout,
    }


def reject_request(conn, request_id: str, reason: str) -> Dict[str, Any]:
    reason = (reason or "").strip()
    if not reason:
        raise InvalidRequest("A rejection reason is required")

    try:
        cur = conn.cursor()
        _pending_request(cur, request_id)
        cur.execute(
            """
            UPDATE social_verification_requests
            SET status = 'rejected', rejection_reason = %s, updated_at = now()
            WHERE id = %s
            RETURNING id, status, rejection_reason
            """,
            (reason, request_id),
        )
        result = cur.fetchone()
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"🚫 Rejected social request {request_id}: {reason}")
    return result
