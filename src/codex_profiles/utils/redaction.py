import re

REDACTED = "[REDACTED]"
_TOKEN_PATTERNS = [
    re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/=-]+"),
    re.compile(r"\bsk-[A-Za-z0-9_-]{16,}\b"),
    re.compile(r"\brt_[A-Za-z0-9_.-]{16,}\b"),
    re.compile(r"\b[A-Za-z0-9_-]{20,}\.[A-Za-z0-9_-]{20,}\.[A-Za-z0-9_-]{20,}\b"),
    re.compile(r'(?i)("(?:access|refresh|id)_token"\s*:\s*")[^"]+(")'),
]


def redact_sensitive_text(text: str) -> str:
    """Replace anything that looks like a bearer token, API key or JWT."""
    for pattern in _TOKEN_PATTERNS:
        if pattern.groups:
            text = pattern.sub(rf"\g<1>{REDACTED}\g<2>", text)
        else:
            text = pattern.sub(REDACTED, text)
    return text
