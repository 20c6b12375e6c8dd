# backend/app/services/email_service.py

import logging
from typing import Any, Dict

import resend

from app.config import SITE_URL, get_feature_env, get_optional_env
from app.errors import UpstreamError

logger = logging.getLogger("storefront.email")

INVITE_SUBJECT = "You're invited to join our creator program"


def invite_link(token: str) -> str:
    return f"{SITE_URL}/creator-signup?token={token}"


def build_invite_html(link: str) -> str:
    return f"""<!doctype html>
<html>
  <body style="font-family: Arial, sans-serif; background: #0b0b0b; color: #ffffff; padding: 32px;">
    <h1 style="margin: 0 0 16px;">Welcome to the creator program</h1>
    <p>You've been invited to earn commission on every sale made with your own coupon code.</p>
    <p style="margin: 24px 0;">
      <a href="{link}" style="background: #ffffff; color: #000000; padding: 12px 24px; text-decoration: none; border-radius: 6px;">
        Accept invite
      </a>
    </p>
    <p style="color: #999999; font-size: 12px;">This invite expires in 30 days.</p>
  </body>
</html>"""


def send_email(payload: Dict[str, Any]) -> str:
    resend.api_key = get_feature_env("RESEND_API_KEY")
    try:
        response = resend.Emails.send(payload)
    except Exception as e:
        logger.error(f"❌ Resend send failed → {e}")
        raise UpstreamError("Failed to send email")

    if not isinstance(response, dict) or not response.get("id"):
        logger.error(f"❌ Unexpected Resend response → {str(response)[:500]}")
        raise UpstreamError("Failed to send email")

    return response["id"]


def send_creator_invite_email(email: str, token: str) -> str:
    sender = get_optional_env("INVITE_FROM_EMAIL", "onboarding@resend.dev")
    link = invite_link(token)

    message_id = send_email(
        {
            "from": sender,
            "to": [email],
            "subject": INVITE_SUBJECT,
            "html": build_invite_html(link),
            "text": f"You've been invited to our creator program. Accept here: {link}",
        }
    )
    logger.info(f"📧 Creator invite sent to {email} (id={message_id})")
    return message_id
