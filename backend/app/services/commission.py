# backend/app/services/commission.py

from decimal import Decimal
from typing import Any, Optional

from app.errors import InvalidRequest
from app.utils.helpers import money, to_decimal


# ---------------------------------------------
# COMMISSION TIERS (fixed, three levels)
# ---------------------------------------------
TIER_RATES = {
    "tier1": Decimal("0.10"),
    "tier2": Decimal("0.15"),
    "tier3": Decimal("0.20"),
}

DEFAULT_TIER = "tier1"

# ---------------------------------------------
# MONTHLY REVENUE → TIER (USD, attributed paid sales)
# ---------------------------------------------
TIER2_MONTHLY_REVENUE = Decimal("5000")
TIER3_MONTHLY_REVENUE = Decimal("15000")

# ---------------------------------------------
# FOLLOWERS → PAYOUT PER VIDEO (USD)
# lower bound inclusive, checked top-down
# ---------------------------------------------
PAYOUT_TIERS = [
    (1_000_000, 150),
    (500_000, 100),
    (100_000, 75),
    (50_000, 50),
    (10_000, 35),
    (0, 20),
]


def commission_rate_for_tier(tier: Optional[str]) -> Decimal:
    key = (tier or DEFAULT_TIER).strip().lower()
    if key not in TIER_RATES:
        raise InvalidRequest(f"Unknown creator tier: {tier}")
    return TIER_RATES[key]


def tier_number(tier: Optional[str]) -> int:
    """'tier3' → 3. Anything unrecognised counts as tier 1."""
    return {"tier2": 2, "tier3": 3}.get((tier or "").lower(), 1)


def commission_amount(order_total: Any, rate: Any) -> Decimal:
    return money(to_decimal(order_total) * to_decimal(rate))


def tier_for_monthly_revenue(revenue: Any) -> str:
    value = to_decimal(revenue)
    if value < TIER2_MONTHLY_REVENUE:
        return "tier1"
    if value < TIER3_MONTHLY_REVENUE:
        return "tier2"
    return "tier3"


def payout_per_video(followers: Optional[int]) -> int:
    count = max(int(followers or 0), 0)
    for floor, payout in PAYOUT_TIERS:
        if count >= floor:
            return payout
    return PAYOUT_TIERS[-1][1]
