# backend/app/services/auth_service.py

import logging
import secrets
import string
from typing import Any, Dict, List, Optional

import httpx

from app.config import get_feature_env, get_optional_env
from app.errors import InvalidRequest, Misconfigured, UpstreamError

logger = logging.getLogger("storefront.auth")

ADMIN_PAGE_SIZE = 1000
REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits


class SupabaseAuthClient:
    """
    Thin wrapper over the hosted auth REST API (GoTrue).
    Every call returns the provider's JSON; failures become service errors.
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        service_role_key: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.service_role_key = service_role_key
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=20)

    @classmethod
    def from_env(cls) -> "SupabaseAuthClient":
        return cls(
            get_feature_env("SUPABASE_URL"),
            get_feature_env("SUPABASE_ANON_KEY"),
            get_optional_env("SUPABASE_SERVICE_ROLE_KEY"),
        )

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    # -------------------------------------------------
    # TRANSPORT
    # -------------------------------------------------
    def _headers(self, bearer: Optional[str] = None, key: Optional[str] = None) -> Dict[str, str]:
        key = key or self.anon_key
        return {
            "apikey": key,
            "Authorization": f"Bearer {bearer or key}",
            "Content-Type": "application/json",
        }

    def _request(
        self,
        method: str,
        path: str,
        headers: Dict[str, str],
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        client_errors_are_invalid: bool = False,
    ) -> Any:
        url = f"{self.base_url}/auth/v1{path}"
        try:
            response = self.client.request(method, url, headers=headers, json=json, params=params)
        except httpx.HTTPError as e:
            logger.error(f"❌ Auth request failed {method} {path} → {e}")
            raise UpstreamError("Unable to reach auth provider")

        if response.status_code in (400, 401, 403, 422) and client_errors_are_invalid:
            message = _error_message(response)
            logger.warning(f"⚠️ Auth rejected {method} {path} [{response.status_code}] → {message}")
            raise InvalidRequest(message)

        if response.is_error:
            logger.error(f"❌ Auth error {method} {path} [{response.status_code}] → {response.text[:500]}")
            raise UpstreamError("Auth provider error")

        if not response.content:
            return {}
        return response.json()

    # -------------------------------------------------
    # USER SESSION
    # -------------------------------------------------
    def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/signup",
            self._headers(),
            json={"email": email, "password": password, "data": {"display_name": display_name}},
            client_errors_are_invalid=True,
        )

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/token",
            self._headers(),
            json={"email": email, "password": password},
            params={"grant_type": "password"},
            client_errors_are_invalid=True,
        )

    def refresh_session(self, refresh_token: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/token",
            self._headers(),
            json={"refresh_token": refresh_token},
            params={"grant_type": "refresh_token"},
            client_errors_are_invalid=True,
        )

    def get_user(self, access_token: str) -> Dict[str, Any]:
        return self._request(
            "GET",
            "/user",
            self._headers(bearer=access_token),
            client_errors_are_invalid=True,
        )

    def sign_out(self, access_token: str) -> None:
        self._request("POST", "/logout", self._headers(bearer=access_token))

    # -------------------------------------------------
    # ADMIN (service role)
    # -------------------------------------------------
    def admin_list_users(self) -> List[Dict[str, Any]]:
        if not self.service_role_key:
            raise Misconfigured("Server misconfigured: missing SUPABASE_SERVICE_ROLE_KEY")

        headers = self._headers(key=self.service_role_key)
        users: List[Dict[str, Any]] = []
        page = 1
        while True:
            body = self._request(
                "GET",
                "/admin/users",
                headers,
                params={"page": page, "per_page": ADMIN_PAGE_SIZE},
            )
            batch = body.get("users", []) if isinstance(body, dict) else body
            users.extend(batch)
            if len(batch) < ADMIN_PAGE_SIZE:
                return users
            page += 1


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "Authentication failed"
    return (
        body.get("error_description")
        or body.get("msg")
        or body.get("message")
        or "Authentication failed"
    )


# -------------------------------------------------
# PROFILE BOOTSTRAP
# -------------------------------------------------
def generate_referral_code(length: int = 8) -> str:
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


def create_profile(
    conn,
    user_id: str,
    display_name: Optional[str],
    referral_code: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Creates the profile row for a new account. An unknown referral code is
    ignored rather than failing the sign-up.
    """
    try:
        cur = conn.cursor()
        referred_by = None
        if referral_code:
            cur.execute(
                "SELECT referral_code FROM profiles WHERE referral_code = %s",
                (referral_code.strip().upper(),),
            )
            row = cur.fetchone()
            referred_by = row["referral_code"] if row else None

        cur.execute(
            """
            INSERT INTO profiles (user_id, display_name, role, referral_code, referred_by)
            VALUES (%s, %s, 'user', %s, %s)
            ON CONFLICT (user_id) DO NOTHING
            RETURNING *
            """,
            (user_id, display_name, generate_referral_code(), referred_by),
        )
        profile = cur.fetchone()
        conn.commit()
    except Exception:
        conn.rollback()
        raise

    logger.info(f"👤 Profile created for {user_id} (referred_by={referred_by})")
    return profile or {"user_id": user_id}
