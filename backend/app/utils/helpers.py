import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

CENT = Decimal("0.01")


# -------------------------------------------------
# MONEY
# -------------------------------------------------
def to_decimal(value: Any) -> Decimal:
    """Accepts Decimal/int/float/str (including "$899") and returns a Decimal."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str):
        value = value.replace("$", "").replace(",", "").strip() or "0"
    return Decimal(str(value))


def money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# -------------------------------------------------
# DATES
# -------------------------------------------------
def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def normalize_dt(value: Optional[object]) -> Optional[datetime.datetime]:
    """
    Ensures dt from DB is timezone-aware for safe comparison.
    Handles str/datetime/None.
    """
    if value is None:
        return None

    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=datetime.timezone.utc)
        return value

    # "2026-01-20T12:33:00+00:00" / "2026-01-20T12:33:00Z"
    try:
        dt = datetime.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=datetime.timezone.utc)
        return dt
    except ValueError:
        return None


def month_start(now: Optional[datetime.datetime] = None) -> datetime.datetime:
    now = now or utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def week_start(now: Optional[datetime.datetime] = None) -> datetime.datetime:
    """Sunday 00:00, matching the storefront's weekly leaderboard."""
    now = now or utcnow()
    days_since_sunday = (now.weekday() + 1) % 7
    start = now - datetime.timedelta(days=days_since_sunday)
    return start.replace(hour=0, minute=0, second=0, microsecond=0)


def short_order_id(order_id: Any) -> str:
    return str(order_id)[-8:].upper()
