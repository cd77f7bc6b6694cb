"""
Server settings for the profile API: bind address and CORS policy.

Read from the environment after `.env` is loaded. CORS stays off unless
CORS_ALLOW_ORIGINS names at least one origin.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_CORS_METHODS = ("GET", "POST", "OPTIONS")
DEFAULT_CORS_HEADERS = ("Content-Type", "X-Requested-With")

_TRUTHY = {"1", "true", "yes", "on"}


class ServerConfigError(ValueError):
    """Raised at startup when the server environment is unusable."""


def _env_list(name: str, default: Tuple[str, ...]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_flag(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class CorsPolicy:
    origins: List[str]
    credentials: bool
    methods: List[str]
    headers: List[str]

    @property
    def enabled(self) -> bool:
        return bool(self.origins)


def load_cors_policy() -> CorsPolicy:
    """
    Build the CORS policy for the dashboard front-ends.

    Credentials default to on when origins are listed and are always off
    without origins. A wildcard origin cannot be combined with credentials.
    """
    origins = _env_list("CORS_ALLOW_ORIGINS", ())
    credentials = _env_flag("CORS_ALLOW_CREDENTIALS")
    if credentials is None:
        credentials = bool(origins)
    credentials = credentials and bool(origins)

    if credentials and "*" in origins:
        raise ServerConfigError(
            "CORS_ALLOW_ORIGINS='*' cannot be used with credentials; list the "
            "dashboard origins or set CORS_ALLOW_CREDENTIALS=false."
        )

    return CorsPolicy(
        origins=origins,
        credentials=credentials,
        methods=_env_list("CORS_ALLOW_METHODS", DEFAULT_CORS_METHODS),
        headers=_env_list("CORS_ALLOW_HEADERS", DEFAULT_CORS_HEADERS),
    )


def load_server_bind() -> Tuple[str, int]:
    host = (os.getenv("HOST") or "").strip() or DEFAULT_HOST
    raw_port = (os.getenv("PORT") or "").strip()
    if not raw_port:
        return host, DEFAULT_PORT
    try:
        port = int(raw_port)
    except ValueError:
        raise ServerConfigError(f"Invalid PORT value: {raw_port!r}")
    if not 0 < port < 65536:
        raise ServerConfigError(f"PORT out of range: {port}")
    return host, port
