"""
Utility for formatting tokens for display in logs and summaries.

Tokens are never shown in full: summaries expose the last 4 characters and
log lines use an ellipsis prefix so truncation is obvious.
"""

from typing import Optional


def token_last4(token: Optional[str]) -> Optional[str]:
    """
    Return the final 4 characters of a token, or None if it is shorter.

    Examples:
        >>> token_last4("eyJhbGciOi.payload.sig1234")
        "1234"
        >>> token_last4("abc")
        None
    """
    if not token or len(token) < 4:
        return None
    return token[-4:]


def format_token_for_display(token: Optional[str]) -> str:
    """
    Format a token for display in logs.

    Examples:
        >>> format_token_for_display("rt_abcdef123456")
        "...3456"
        >>> format_token_for_display(None)
        "<none>"
    """
    last4 = token_last4(token)
    if last4 is None:
        return "<none>"
    return f"...{last4}"
