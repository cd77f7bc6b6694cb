# src/codex_profiles/claims.py
"""
Best-effort decoding of token claims for display.

Tokens are JWT-shaped (`header.payload.signature`). Only the payload is read
and the signature is never checked: the decoded claims are shown to the
operator but nothing is authorized based on them.
"""

import base64
import binascii
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .types import Profile, ProfileSummary
from .utils import token_last4

# Custom claim namespace used by the provider
AUTH_CLAIM_NAMESPACE = "https://api.openai.com/auth"


def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def decode_jwt_claims(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Decode the payload segment of a JWT-shaped string.

    Accepts padded and unpadded base64url. Returns None for anything that is
    not exactly three dot-separated segments, does not decode, or is not a
    JSON object.
    """
    if not token or not isinstance(token, str):
        return None

    parts = token.split(".")
    if len(parts) != 3:
        return None

    try:
        decoded = _b64url_decode(parts[1].rstrip("="))
        claims = json.loads(decoded.decode("utf-8"))
    except (binascii.Error, ValueError, UnicodeDecodeError):
        return None

    if not isinstance(claims, dict):
        return None
    return claims


def _auth_claim(claims: Optional[Dict[str, Any]], key: str) -> Optional[Any]:
    if not claims:
        return None
    namespace = claims.get(AUTH_CLAIM_NAMESPACE)
    if not isinstance(namespace, dict):
        return None
    return namespace.get(key)


def _string_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _epoch_to_iso(value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        moment = datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def summarize_profile(profile_id: str, profile: Profile) -> ProfileSummary:
    """Derive the display summary for a stored profile."""
    tokens = profile.tokens
    id_claims = decode_jwt_claims(tokens.id_token) if tokens else None
    access_claims = decode_jwt_claims(tokens.access_token) if tokens else None

    account_id = tokens.account_id if tokens else None
    if not account_id:
        account_id = _string_or_none(_auth_claim(id_claims, "chatgpt_account_id"))

    user_sub = _string_or_none(id_claims.get("sub")) if id_claims else None
    user_type = user_sub.split("|", 1)[0] if user_sub and "|" in user_sub else None

    return ProfileSummary(
        id=profile_id,
        has_api_key=bool(profile.api_key),
        email=_string_or_none(id_claims.get("email")) if id_claims else None,
        plan_type=_string_or_none(_auth_claim(id_claims, "chatgpt_plan_type")),
        expires_at=_epoch_to_iso(id_claims.get("exp")) if id_claims else None,
        access_token_last4=token_last4(tokens.access_token) if tokens else None,
        account_id=account_id,
        last_refresh=profile.last_refresh,
        openai_user_type=user_type,
        openai_user_sub=user_sub,
        openai_api_key=profile.api_key,
        id_token=id_claims,
        access_token=access_claims,
    )
