# src/codex_profiles/usage_client.py
"""
Usage / rate limit lookup for a stored profile.

Calls the ChatGPT backend `/wham/usage` endpoint with the profile's access
token and normalizes the response.

Rate Limit Structure (from the usage API):
- primary_window: Short-term rate limit (5 hours)
- secondary_window: Long-term rate limit (weekly)
- credits: Account credit balance info
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional

import httpx

from .config import ProfileSettings
from .credential_store import CredentialStore
from .error_handler import (
    MissingAccessTokenError,
    MissingAccountIdError,
    ProviderUnavailableError,
)
from .types import CreditsSnapshot, RateLimitSnapshot, RateLimitWindow
from .utils import redact_sensitive_text

lib_logger = logging.getLogger("codex_profiles")

# Exact capitalization used by the Codex CLI
ACCOUNT_ID_HEADER = "ChatGPT-Account-Id"


# =============================================================================
# RESPONSE MAPPING
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _seconds_to_minutes(seconds: Any) -> Optional[int]:
    """Convert a window length to whole minutes, rounding up. None if unusable."""
    if not _is_number(seconds) or not math.isfinite(seconds) or seconds <= 0:
        return None
    return math.ceil(seconds / 60)


def map_rate_limit_window(data: Any) -> Optional[RateLimitWindow]:
    if not isinstance(data, dict):
        return None

    used_percent = data.get("used_percent")
    reset_at = data.get("reset_at")
    return RateLimitWindow(
        used_percent=used_percent if _is_number(used_percent) else 0,
        window_minutes=_seconds_to_minutes(data.get("limit_window_seconds")),
        resets_at=reset_at if _is_number(reset_at) else None,
    )


def map_credits(data: Any) -> Optional[CreditsSnapshot]:
    if not isinstance(data, dict):
        return None
    balance = data.get("balance")
    return CreditsSnapshot(
        has_credits=bool(data.get("has_credits", False)),
        unlimited=bool(data.get("unlimited", False)),
        balance=str(balance) if balance is not None else None,
    )


def map_rate_limit_snapshot(payload: Dict[str, Any]) -> RateLimitSnapshot:
    rate_limit = payload.get("rate_limit")
    if not isinstance(rate_limit, dict):
        rate_limit = {}

    plan_type = payload.get("plan_type")
    return RateLimitSnapshot(
        plan_type=plan_type if isinstance(plan_type, str) else None,
        primary=map_rate_limit_window(rate_limit.get("primary_window")),
        secondary=map_rate_limit_window(rate_limit.get("secondary_window")),
        credits=map_credits(payload.get("credits")),
    )


# =============================================================================
# CLIENT
# =============================================================================


class UsageClient:
    def __init__(
        self,
        store: CredentialStore,
        settings: ProfileSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._store = store
        self._settings = settings
        self._transport = transport

    async def get_limits(self, profile_id: str) -> RateLimitSnapshot:
        """
        Fetch the rate limit snapshot for a stored profile.

        Raises:
            ProfileNotFoundError / ProfileParseError: From the store
            MissingAccessTokenError: No access token stored
            MissingAccountIdError: No account id stored
            ProviderUnavailableError: Network failure, non-2xx or malformed body
        """
        profile = self._store.load_profile(profile_id)

        tokens = profile.tokens
        if not tokens or not tokens.access_token:
            raise MissingAccessTokenError(profile_id)
        if not tokens.account_id:
            raise MissingAccountIdError(profile_id)

        # Header values must be ASCII but stored tokens are arbitrary JSON strings
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self._settings.http_timeout_seconds,
            ) as client:
                response = await client.get(
                    self._settings.usage_url,
                    headers={
                        "Authorization": f"Bearer {tokens.access_token}",
                        ACCOUNT_ID_HEADER: tokens.account_id,
                        "Accept": "application/json",
                        "User-Agent": "codex-cli",
                    },
                )
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError) as e:
            lib_logger.warning(f"Failed to fetch rate limits for '{profile_id}': {e}")
            raise ProviderUnavailableError(
                f"Failed to fetch rate limits for '{profile_id}': {e}", profile_id
            ) from e

        if not response.is_success:
            body = response.text
            lib_logger.warning(
                f"Rate limits request failed for '{profile_id}': HTTP {response.status_code}: "
                f"{redact_sensitive_text(body[:200])}"
            )
            raise ProviderUnavailableError(
                f"Rate limits request failed for '{profile_id}': "
                f"{response.status_code} {response.reason_phrase} {body}",
                profile_id,
                status_code=response.status_code,
                body=body,
            )

        try:
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError("usage response is not a JSON object")
        except ValueError as e:
            raise ProviderUnavailableError(
                f"Failed to decode rate limits payload for '{profile_id}': {e}",
                profile_id,
                status_code=response.status_code,
                body=response.text,
            ) from e

        snapshot = map_rate_limit_snapshot(payload)
        lib_logger.debug(
            f"Fetched rate limits for '{profile_id}': "
            f"primary={snapshot.primary.used_percent if snapshot.primary else None}% used, "
            f"secondary={snapshot.secondary.used_percent if snapshot.secondary else None}% used"
        )
        return snapshot
