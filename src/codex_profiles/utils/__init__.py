# src/codex_profiles/utils/__init__.py

from .credential_formatter import format_token_for_display, token_last4
from .redaction import redact_sensitive_text

__all__ = [
    "format_token_for_display",
    "token_last4",
    "redact_sensitive_text",
]
