# backend/app/services/session_recovery.py
"""
Client-side helper for API consumers that keep a Supabase session in a
local store. The server never calls it; it refreshes the stored tokens
through SupabaseAuthClient.refresh_session or clears them.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from app.errors import InvalidRequest, StorefrontError

logger = logging.getLogger("storefront.session-recovery")

ACCESS_TOKEN_KEY = "sb-access-token"
REFRESH_TOKEN_KEY = "sb-refresh-token"
EXPIRES_AT_KEY = "sb-expires-at"

AUTH_KEY_MARKERS = ("supabase", "auth", "sb-")


class SessionRecoveryManager:
    """
    Best-effort recovery of a stored auth session.

    `store` is any mutable mapping the client persists its tokens in.
    Calls closer together than `debounce_seconds`, or overlapping a call
    still in flight, return False without touching anything.
    """

    def __init__(
        self,
        auth_client,
        store: MutableMapping[str, Any],
        clock: Callable[[], float] = time.monotonic,
        debounce_seconds: float = 1.0,
        max_retries: int = 3,
    ):
        self.auth_client = auth_client
        self.store = store
        self.clock = clock
        self.debounce_seconds = debounce_seconds
        self.max_retries = max_retries

        self.recovery_attempts = 0
        self.last_attempt_at: Optional[float] = None
        self._busy = threading.Lock()

    # -------------------------------------------------
    # STORE HELPERS
    # -------------------------------------------------
    def auth_keys(self) -> List[str]:
        return [k for k in list(self.store.keys()) if any(m in k for m in AUTH_KEY_MARKERS)]

    def _has_valid_session(self) -> bool:
        access_token = self.store.get(ACCESS_TOKEN_KEY)
        if not access_token:
            return False
        try:
            self.auth_client.get_user(access_token)
        except InvalidRequest:
            return False
        return True

    def _refresh(self) -> bool:
        refresh_token = self.store.get(REFRESH_TOKEN_KEY)
        if not refresh_token:
            logger.warning("⚠️ [SessionRecovery] Auth data present but no refresh token")
            return False

        try:
            session = self.auth_client.refresh_session(refresh_token)
        except StorefrontError as e:
            logger.error(f"❌ [SessionRecovery] Refresh failed: {e.detail}")
            return False

        if not session or not session.get("access_token"):
            return False

        self.store[ACCESS_TOKEN_KEY] = session["access_token"]
        self.store[REFRESH_TOKEN_KEY] = session.get("refresh_token", refresh_token)
        if session.get("expires_at") is not None:
            self.store[EXPIRES_AT_KEY] = session["expires_at"]
        return True

    def _clear_session(self) -> None:
        access_token = self.store.get(ACCESS_TOKEN_KEY)
        if access_token:
            try:
                self.auth_client.sign_out(access_token)
            except StorefrontError as e:
                logger.warning(f"⚠️ [SessionRecovery] Sign-out failed: {e.detail}")

        for key in self.auth_keys():
            self.store.pop(key, None)
        logger.info("🧹 [SessionRecovery] Corrupted session data cleared")

    # -------------------------------------------------
    # PUBLIC
    # -------------------------------------------------
    def attempt_recovery(self) -> bool:
        now = self.clock()
        if self.last_attempt_at is not None and now - self.last_attempt_at < self.debounce_seconds:
            logger.debug("🔄 [SessionRecovery] Debounced")
            return False

        if not self._busy.acquire(blocking=False):
            logger.debug("🔄 [SessionRecovery] Already in progress")
            return False

        self.last_attempt_at = now
        try:
            if self._has_valid_session():
                self.recovery_attempts = 0
                return True

            if not self.auth_keys():
                logger.info("🚫 [SessionRecovery] No session and no stored auth data")
                return False

            if self._refresh():
                logger.info("✅ [SessionRecovery] Session recovered")
                self.recovery_attempts = 0
                return True

            self.recovery_attempts += 1
            logger.warning(
                f"❌ [SessionRecovery] Recovery failed (attempt {self.recovery_attempts}/{self.max_retries})"
            )
            if self.recovery_attempts >= self.max_retries:
                self._clear_session()
                self.recovery_attempts = 0
            return False

        except Exception as e:
            logger.exception(f"💥 [SessionRecovery] Unexpected error: {e}")
            return False

        finally:
            self._busy.release()

    def diagnose(self) -> Dict[str, Any]:
        return {
            "has_session": bool(self.store.get(ACCESS_TOKEN_KEY)),
            "session_expiry": self.store.get(EXPIRES_AT_KEY),
            "auth_keys": self.auth_keys(),
            "last_attempt_at": self.last_attempt_at,
            "recovery_attempts": self.recovery_attempts,
        }
