# backend/app/services/storage_service.py

import logging
import uuid
from typing import Optional

import httpx

from app.config import get_feature_env, get_optional_env
from app.errors import InvalidRequest, UpstreamError

logger = logging.getLogger("storefront.storage")

AVATAR_BUCKET = "avatars"
POSTS_BUCKET = "user-posts"
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def upload_image(
    bucket: str,
    owner_id: str,
    content: bytes,
    content_type: Optional[str],
    client: Optional[httpx.Client] = None,
) -> str:
    """Uploads to `<bucket>/<owner_id>/<uuid>.<ext>` and returns the public URL."""
    extension = ALLOWED_IMAGE_TYPES.get(content_type or "")
    if extension is None:
        raise InvalidRequest("Only JPEG, PNG, WEBP or GIF images are accepted")
    if not content:
        raise InvalidRequest("Empty file")
    if len(content) > MAX_UPLOAD_BYTES:
        raise InvalidRequest("Image must be 5MB or smaller")

    base_url = get_feature_env("SUPABASE_URL").rstrip("/")
    key = get_optional_env("SUPABASE_SERVICE_ROLE_KEY") or get_feature_env("SUPABASE_ANON_KEY")
    path = f"{owner_id}/{uuid.uuid4()}.{extension}"

    http = client or httpx.Client(timeout=30)
    try:
        response = http.post(
            f"{base_url}/storage/v1/object/{bucket}/{path}",
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Content-Type": content_type,
                "x-upsert": "true",
            },
            content=content,
        )
    except httpx.HTTPError as e:
        logger.error(f"❌ Upload to {bucket} failed → {e}")
        raise UpstreamError("Upload failed")
    finally:
        if client is None:
            http.close()

    if response.is_error:
        logger.error(f"❌ Upload to {bucket} failed [{response.status_code}] → {response.text[:500]}")
        raise UpstreamError("Upload failed")

    logger.info(f"📤 Uploaded {bucket}/{path}")
    return f"{base_url}/storage/v1/object/public/{bucket}/{path}"
