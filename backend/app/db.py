import os
import logging
from typing import Iterator

import psycopg2
from psycopg2.extras import RealDictCursor

from app.config import get_optional_env

logger = logging.getLogger("storefront.db")

# -------------------------------------------------
# DATABASE CONFIG (SUPABASE POSTGRES)
# -------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    raise RuntimeError("❌ DATABASE_URL is not set")

DB_SSLMODE = get_optional_env("DB_SSLMODE", "require")


# -------------------------------------------------
# DB CONNECTION (LAZY, SAFE)
# -------------------------------------------------
def get_db() -> psycopg2.extensions.connection:
    """
    Returns a new PostgreSQL connection.
    Caller is responsible for closing it.
    Rows come back as dicts (RealDictCursor).
    """
    try:
        conn = psycopg2.connect(
            DATABASE_URL,
            cursor_factory=RealDictCursor,
            sslmode=DB_SSLMODE,
            connect_timeout=5,
        )
        return conn

    except Exception as e:
        logger.exception(f"❌ Database connection failed → {e}")
        raise RuntimeError("Database connection failed") from e


def get_conn() -> Iterator[psycopg2.extensions.connection]:
    """FastAPI dependency: one connection per request, always closed."""
    conn = get_db()
    try:
        yield conn
    finally:
        conn.close()
