# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Settings for the profile library.

Values are read from the environment (the app loads `.env` first). Every
directory is derived from a single project root unless overridden.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

lib_logger = logging.getLogger("codex_profiles")

# OAuth constants used by the Codex CLI. CLIENT_ID is public (native app client).
DEFAULT_CLIENT_ID = "app_EMoamEEZ73f0CkXaXp7hrann"
DEFAULT_TOKEN_URL = "https://auth.openai.com/oauth/token"
DEFAULT_CHATGPT_BASE_URL = "https://chatgpt.com/backend-api"
REFRESH_SCOPE = "openid profile email"

DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

# Activating this id switches the CLI to a non-profile credential backend.
NON_PROFILE_SENTINEL = "azure"

AUTH_FILE_SUFFIX = ".auth.json"
CURRENT_AUTH_FILENAME = "auth.json"
CURRENT_MARKER_FILENAME = "current.tmp"


def _default_project_root() -> Path:
    cwd = Path.cwd()
    if cwd.name == "backend":
        return cwd.parent
    return cwd


def _env_path(name: str) -> Optional[Path]:
    raw = (os.getenv(name) or "").strip()
    return Path(raw).expanduser() if raw else None


def _env_timeout(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        lib_logger.warning(f"Invalid {name} value: {raw}, using {default}")
        return default
    return max(1.0, value)


@dataclass(frozen=True)
class ProfileSettings:
    """
    Resolved locations and provider endpoints.

    auth_dir holds `<id>.auth.json` records, the `auth.json` current-credentials
    link and the `current.tmp` marker. audit_dir receives refresh payloads.
    """

    auth_dir: Path
    audit_dir: Path
    token_url: str = DEFAULT_TOKEN_URL
    client_id: str = DEFAULT_CLIENT_ID
    chatgpt_base_url: str = DEFAULT_CHATGPT_BASE_URL
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    sentinel_id: str = NON_PROFILE_SENTINEL

    @property
    def current_auth_path(self) -> Path:
        return self.auth_dir / CURRENT_AUTH_FILENAME

    @property
    def current_marker_path(self) -> Path:
        return self.auth_dir / CURRENT_MARKER_FILENAME

    @property
    def usage_url(self) -> str:
        return f"{self.chatgpt_base_url.rstrip('/')}/wham/usage"

    @classmethod
    def for_root(cls, root: Path, **overrides) -> "ProfileSettings":
        """Build settings with the default layout under a project root."""
        root = Path(root)
        return cls(
            auth_dir=overrides.pop("auth_dir", root / ".codex"),
            audit_dir=overrides.pop("audit_dir", root / "auth-refresh-payloads"),
            **overrides,
        )


def load_settings() -> ProfileSettings:
    """Build ProfileSettings from environment variables."""
    root = _env_path("CODEX_PROFILES_ROOT") or _default_project_root()

    token_url = (os.getenv("CODEX_REFRESH_TOKEN_URL_OVERRIDE") or "").strip()
    base_url = (os.getenv("CHATGPT_BASE_URL") or "").strip()

    settings = ProfileSettings(
        auth_dir=_env_path("CODEX_AUTH_DIR") or root / ".codex",
        audit_dir=_env_path("CODEX_REFRESH_PAYLOAD_DIR")
        or root / "auth-refresh-payloads",
        token_url=token_url or DEFAULT_TOKEN_URL,
        client_id=os.getenv("CODEX_CLIENT_ID", DEFAULT_CLIENT_ID),
        chatgpt_base_url=base_url or DEFAULT_CHATGPT_BASE_URL,
        http_timeout_seconds=_env_timeout(
            "CODEX_HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS
        ),
    )
    lib_logger.debug(
        f"Profile settings: auth_dir={settings.auth_dir}, "
        f"audit_dir={settings.audit_dir}, token_url={settings.token_url}"
    )
    return settings
