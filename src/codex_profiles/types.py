# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Type definitions for the profile library.

Profiles mirror the `auth.json` layout written by the Codex CLI. Rate limit
types mirror the shape the dashboards consume; their `to_dict()` output is the
camelCase wire form served by the HTTP API.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# =============================================================================
# STORED PROFILE
# =============================================================================


API_KEY_FIELD = "OPENAI_API_KEY"
TOKENS_FIELD = "tokens"
LAST_REFRESH_FIELD = "last_refresh"


@dataclass
class TokenData:
    """OAuth tokens stored for a profile. Any field may be missing on disk."""

    id_token: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    account_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id_token": self.id_token,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
        }
        if self.account_id is not None:
            data["account_id"] = self.account_id
        return data


@dataclass
class Profile:
    """
    One stored credential profile.

    `extra` keeps any top-level keys this library does not know about so that
    a load followed by a persist never drops data written by other tools.
    """

    api_key: Optional[str] = None
    tokens: Optional[TokenData] = None
    last_refresh: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        if self.api_key is not None:
            data[API_KEY_FIELD] = self.api_key
        data[TOKENS_FIELD] = self.tokens.to_dict() if self.tokens else None
        if self.last_refresh is not None:
            data[LAST_REFRESH_FIELD] = self.last_refresh
        return data


@dataclass
class ProfileSummary:
    """Display data derived from a stored profile and its decoded claims."""

    id: str
    has_api_key: bool
    email: Optional[str] = None
    plan_type: Optional[str] = None
    expires_at: Optional[str] = None
    access_token_last4: Optional[str] = None
    account_id: Optional[str] = None
    last_refresh: Optional[str] = None
    openai_user_type: Optional[str] = None
    openai_user_sub: Optional[str] = None
    openai_api_key: Optional[str] = field(default=None, repr=False)
    id_token: Optional[Dict[str, Any]] = field(default=None, repr=False)
    access_token: Optional[Dict[str, Any]] = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hasApiKey": self.has_api_key,
            "email": self.email,
            "planType": self.plan_type,
            "expiresAt": self.expires_at,
            "accessTokenLast4": self.access_token_last4,
            "accountId": self.account_id,
            "lastRefresh": self.last_refresh,
            "openaiUserType": self.openai_user_type,
            "openaiUserSub": self.openai_user_sub,
            "openaiApiKey": self.openai_api_key,
            "idToken": self.id_token,
            "accessToken": self.access_token,
        }


# =============================================================================
# RATE LIMITS
# =============================================================================


@dataclass
class RateLimitWindow:
    """A provider-reported quota window."""

    used_percent: float  # 0-100
    window_minutes: Optional[int] = None
    resets_at: Optional[float] = None  # Unix timestamp (seconds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "usedPercent": self.used_percent,
            "windowMinutes": self.window_minutes,
            "resetsAt": self.resets_at,
        }


@dataclass
class CreditsSnapshot:
    has_credits: bool = False
    unlimited: bool = False
    balance: Optional[str] = None  # Could be numeric string or "unlimited"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasCredits": self.has_credits,
            "unlimited": self.unlimited,
            "balance": self.balance,
        }


@dataclass
class RateLimitSnapshot:
    """
    Normalized usage data for one profile.

    `primary` is the short (5 hour) window, `secondary` the weekly one.
    """

    plan_type: Optional[str] = None
    primary: Optional[RateLimitWindow] = None
    secondary: Optional[RateLimitWindow] = None
    credits: Optional[CreditsSnapshot] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "planType": self.plan_type,
            "primary": self.primary.to_dict() if self.primary else None,
            "secondary": self.secondary.to_dict() if self.secondary else None,
            "credits": self.credits.to_dict() if self.credits else None,
        }


# =============================================================================
# AGGREGATES
# =============================================================================


@dataclass
class GlobalSummary:
    """Weekly-window aggregates across every profile with a valid window."""

    account_count: int = 0
    usage_sum: int = 0
    usage_average: int = 0
    elapsed_sum: int = 0
    elapsed_average: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accountCount": self.account_count,
            "usageSum": self.usage_sum,
            "usageAverage": self.usage_average,
            "elapsedSum": self.elapsed_sum,
            "elapsedAverage": self.elapsed_average,
        }


@dataclass
class Dashboard:
    profiles: List[ProfileSummary]
    current_id: Optional[str]
    limits: Dict[str, Optional[RateLimitSnapshot]]
    summary: GlobalSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profiles": [p.to_dict() for p in self.profiles],
            "currentId": self.current_id,
            "limits": {
                profile_id: snapshot.to_dict() if snapshot else None
                for profile_id, snapshot in self.limits.items()
            },
            "summary": self.summary.to_dict(),
        }
