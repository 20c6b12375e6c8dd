import hmac
import hashlib
import logging
import time
from decimal import Decimal
from typing import Any, Dict

import requests

from app.config import get_feature_env
from app.errors import UpstreamError
from app.utils.helpers import money

logger = logging.getLogger("storefront.payment-service")

MIN_TOKEN_LENGTH = 6


# -------------------------------------------------
# PAYMENT TOKEN (CHIRON)
# -------------------------------------------------
def create_payment_token(amount: Decimal) -> Dict[str, Any]:
    """
    Ask the gateway for a one-time token bound to `amount`.
    The card form itself is the gateway's hosted script; no card data
    passes through here.
    """
    token_url = get_feature_env("CHIRON_TOKEN_URL")
    api_key = get_feature_env("CHIRON_API_KEY")

    # gateway expects the amount as a 2-decimal string, e.g. "183.60"
    amount_str = str(money(amount))
    start = time.time()

    try:
        response = requests.post(
            token_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            json={"amount": amount_str},
            timeout=15,
        )
    except requests.RequestException as e:
        logger.error(f"❌ Payment token request failed t={time.time() - start:.3f}s error={e}")
        raise UpstreamError("Unable to reach payment gateway")

    logger.info(f"[chiron token] status={response.status_code} t={time.time() - start:.3f}s")

    if not response.ok:
        logger.error(f"❌ Token request failed [{response.status_code}] → {response.text[:500]}")
        raise UpstreamError("Token request failed")

    try:
        data = response.json()
    except ValueError:
        logger.error("❌ Token response is not JSON")
        raise UpstreamError("Malformed token response")

    token = data.get("id") if isinstance(data, dict) else None
    if not isinstance(token, str) or len(token) < MIN_TOKEN_LENGTH:
        logger.error(f"❌ Malformed token response → {str(data)[:500]}")
        raise UpstreamError("Malformed token response")

    return {"token": token, "amount": amount_str}


# -------------------------------------------------
# WEBHOOK SIGNATURE
# -------------------------------------------------
def sign_payload(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature: str) -> bool:
    secret = get_feature_env("PAYMENT_WEBHOOK_SECRET")
    if not signature:
        return False
    expected = sign_payload(raw_body, secret)
    return hmac.compare_digest(expected, signature)
