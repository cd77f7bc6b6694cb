# src/codex_profiles/token_refresher.py

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import httpx

from .claims import summarize_profile
from .config import REFRESH_SCOPE, ProfileSettings
from .credential_store import CredentialStore
from .error_handler import (
    MissingRefreshTokenError,
    ProfileError,
    ProviderUnavailableError,
    RefreshFailureReason,
    TokenRejectedError,
)
from .refresh_audit import RefreshAuditLog
from .types import ProfileSummary, TokenData
from .utils import format_token_for_display, redact_sensitive_text

lib_logger = logging.getLogger("codex_profiles")

REFRESH_TOKEN_EXPIRED_MESSAGE = (
    "Your access token could not be refreshed because your refresh token has "
    "expired. Please log out and sign in again."
)
REFRESH_TOKEN_REUSED_MESSAGE = (
    "Your access token could not be refreshed because your refresh token was "
    "already used. Please log out and sign in again."
)
REFRESH_TOKEN_INVALIDATED_MESSAGE = (
    "Your access token could not be refreshed because your refresh token was "
    "revoked. Please log out and sign in again."
)
REFRESH_TOKEN_UNKNOWN_MESSAGE = (
    "Your access token could not be refreshed. Please log out and sign in again."
)

REFRESH_FAILURE_MESSAGES: Dict[RefreshFailureReason, str] = {
    RefreshFailureReason.EXPIRED: REFRESH_TOKEN_EXPIRED_MESSAGE,
    RefreshFailureReason.EXHAUSTED: REFRESH_TOKEN_REUSED_MESSAGE,
    RefreshFailureReason.REVOKED: REFRESH_TOKEN_INVALIDATED_MESSAGE,
    RefreshFailureReason.OTHER: REFRESH_TOKEN_UNKNOWN_MESSAGE,
}

_ERROR_CODE_REASONS = {
    "refresh_token_expired": RefreshFailureReason.EXPIRED,
    "refresh_token_reused": RefreshFailureReason.EXHAUSTED,
    "refresh_token_invalidated": RefreshFailureReason.REVOKED,
}

BAD_REQUEST_HINT = (
    " The stored refresh token is likely invalid or expired. Please "
    "re-authenticate and generate a fresh auth.json for this id."
)


def extract_refresh_token_error_code(body: str) -> Optional[str]:
    """
    Pull the error code out of a token endpoint error body.

    Checks `error.code`, then a string `error`, then a top-level `code`.
    """
    if not body or not body.strip():
        return None
    try:
        parsed = json.loads(body)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None

    error_field = parsed.get("error")
    if isinstance(error_field, dict):
        code = error_field.get("code")
        if isinstance(code, str):
            return code
    if isinstance(error_field, str):
        return error_field

    code = parsed.get("code")
    if isinstance(code, str):
        return code
    return None


def classify_refresh_token_failure(body: str) -> Tuple[RefreshFailureReason, str]:
    """Map a 401 body from the token endpoint to a reason and its fixed message."""
    code = extract_refresh_token_error_code(body)
    key = code.lower() if code else ""
    reason = _ERROR_CODE_REASONS.get(key, RefreshFailureReason.OTHER)
    return reason, REFRESH_FAILURE_MESSAGES[reason]


def _utc_now_iso() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def merge_refreshed_tokens(existing: TokenData, response: Dict[str, Any]) -> TokenData:
    """
    Overlay the token endpoint response on the stored tokens.

    Tokens are replaced only when the response carries them. account_id is
    always kept from the stored record.
    """

    def pick(name: str) -> Optional[str]:
        value = response.get(name)
        return value if isinstance(value, str) else getattr(existing, name)

    return TokenData(
        id_token=pick("id_token"),
        access_token=pick("access_token"),
        refresh_token=pick("refresh_token"),
        account_id=existing.account_id,
    )


class TokenRefresher:
    """
    Runs the OAuth refresh-token grant for a stored profile.

    At most one refresh per profile id is in flight: concurrent calls for the
    same id queue on a per-id lock, so the second caller reads the rotated
    refresh token written by the first instead of reusing the old one.
    """

    def __init__(
        self,
        store: CredentialStore,
        settings: ProfileSettings,
        audit: Optional[RefreshAuditLog] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._store = store
        self._settings = settings
        self._audit = audit or RefreshAuditLog(settings.audit_dir)
        self._transport = transport

        self._refresh_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._locks_lock = asyncio.Lock()  # Protects both dicts

    async def _get_lock(self, profile_id: str) -> asyncio.Lock:
        async with self._locks_lock:
            if profile_id not in self._refresh_locks:
                self._refresh_locks[profile_id] = asyncio.Lock()
            self._lock_users[profile_id] = self._lock_users.get(profile_id, 0) + 1
            return self._refresh_locks[profile_id]

    async def _release_lock(self, profile_id: str) -> None:
        """Forget a profile's lock once no caller holds or waits on it."""
        async with self._locks_lock:
            remaining = self._lock_users[profile_id] - 1
            if remaining:
                self._lock_users[profile_id] = remaining
            else:
                del self._lock_users[profile_id]
                del self._refresh_locks[profile_id]

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=self._settings.http_timeout_seconds,
        )

    async def refresh(self, profile_id: str) -> ProfileSummary:
        lock = await self._get_lock(profile_id)
        try:
            async with lock:
                return await self._refresh_locked(profile_id)
        finally:
            await self._release_lock(profile_id)

    async def _refresh_locked(self, profile_id: str) -> ProfileSummary:
        profile = self._store.load_profile(profile_id)

        existing = profile.tokens
        refresh_token = existing.refresh_token if existing else None
        if not refresh_token:
            lib_logger.error(f"No refresh_token found in auth file for '{profile_id}'")
            raise MissingRefreshTokenError(profile_id)

        lib_logger.debug(
            f"Refreshing OAuth token for '{profile_id}' "
            f"(refresh token {format_token_for_display(refresh_token)})..."
        )

        try:
            async with self._client() as client:
                response = await client.post(
                    self._settings.token_url,
                    headers={
                        "Content-Type": "application/json",
                        "Accept": "application/json",
                    },
                    json={
                        "client_id": self._settings.client_id,
                        "grant_type": "refresh_token",
                        "refresh_token": refresh_token,
                        "scope": REFRESH_SCOPE,
                    },
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            await self._audit.record_error(profile_id, e)
            raw_message = str(e) or type(e).__name__
            hint = BAD_REQUEST_HINT if "400 Bad Request" in raw_message else ""
            lib_logger.warning(f"Token refresh request failed for '{profile_id}': {raw_message}")
            raise ProviderUnavailableError(
                f"Failed to refresh token for '{profile_id}': {raw_message}.{hint}",
                profile_id,
            ) from e

        body = response.text

        if response.status_code == 401:
            await self._audit.record_error(profile_id, body or None)
            reason, message = classify_refresh_token_failure(body)
            lib_logger.warning(
                f"Refresh token rejected for '{profile_id}' ({reason.value}): "
                f"{redact_sensitive_text(body[:200])}"
            )
            raise TokenRejectedError(profile_id, reason, message)

        if not response.is_success:
            await self._audit.record_error(profile_id, body or None)
            lib_logger.error(
                f"HTTP {response.status_code} refreshing '{profile_id}': "
                f"{redact_sensitive_text(body[:200])}"
            )
            hint = BAD_REQUEST_HINT if response.status_code == 400 else ""
            raise ProviderUnavailableError(
                f"Failed to refresh token for '{profile_id}': "
                f"{response.status_code} {response.reason_phrase}: {body}{hint}",
                profile_id,
                status_code=response.status_code,
                body=body,
            )

        try:
            refreshed = response.json()
            if not isinstance(refreshed, dict):
                raise ValueError("token response is not a JSON object")
        except ValueError as e:
            await self._audit.record_error(profile_id, e)
            raise ProviderUnavailableError(
                f"Failed to decode refreshed token payload for '{profile_id}': {e}",
                profile_id,
                status_code=response.status_code,
                body=body,
            ) from e

        await self._audit.record(profile_id, refreshed)

        profile.tokens = merge_refreshed_tokens(existing, refreshed)
        profile.last_refresh = _utc_now_iso()

        try:
            self._store.persist_profile(profile_id, profile)
        except OSError as e:
            raise ProfileError(
                f"Failed to persist refreshed credentials for '{profile_id}': {e}",
                profile_id,
            ) from e

        lib_logger.info(f"Successfully refreshed OAuth token for '{profile_id}'.")
        return summarize_profile(profile_id, profile)
