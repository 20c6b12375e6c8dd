import os
from typing import List, Optional

from dotenv import load_dotenv

from app.errors import Misconfigured

load_dotenv()


# -------------------------------------------------
# ENV HELPERS
# -------------------------------------------------
def get_required_env(name: str) -> str:
    value = os.getenv(name)
    if not value or not value.strip():
        raise RuntimeError(f"❌ Missing required env var: {name}")
    return value


def get_optional_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def get_feature_env(name: str) -> str:
    """
    Like get_required_env, but for settings only some endpoints need.
    Read at call time so the API boots without them.
    """
    value = get_optional_env(name)
    if not value:
        raise Misconfigured(f"Server misconfigured: missing {name}")
    return value


# -------------------------------------------------
# GENERAL
# -------------------------------------------------
LOG_LEVEL: str = get_optional_env("LOG_LEVEL", "INFO").upper()
SITE_URL: str = get_optional_env("SITE_URL", "http://localhost:3000").rstrip("/")


def cors_origins() -> List[str]:
    raw = get_optional_env("CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
