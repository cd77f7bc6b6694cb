# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from .claims import summarize_profile
from .config import AUTH_FILE_SUFFIX, ProfileSettings
from .error_handler import ProfileNotFoundError, ProfileParseError
from .types import (
    API_KEY_FIELD,
    LAST_REFRESH_FIELD,
    TOKENS_FIELD,
    Profile,
    ProfileSummary,
    TokenData,
)

lib_logger = logging.getLogger("codex_profiles")

_TOKEN_FIELDS = ("id_token", "access_token", "refresh_token", "account_id")


def is_valid_profile_id(profile_id: str) -> bool:
    """Ids are file stems, so anything that could escape the directory is rejected."""
    if not profile_id or profile_id.startswith("."):
        return False
    if "/" in profile_id or "\\" in profile_id or "\x00" in profile_id:
        return False
    return True


def _optional_string(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string or null")
    return value


def profile_from_dict(data: Any) -> Profile:
    """
    Build a Profile from a decoded record.

    Raises:
        ValueError: If the record does not have the auth.json shape
    """
    if not isinstance(data, dict):
        raise ValueError("auth record must be a JSON object")

    tokens = None
    raw_tokens = data.get(TOKENS_FIELD)
    if raw_tokens is not None:
        if not isinstance(raw_tokens, dict):
            raise ValueError(f"'{TOKENS_FIELD}' must be an object or null")
        tokens = TokenData(
            **{name: _optional_string(raw_tokens, name) for name in _TOKEN_FIELDS}
        )

    extra = {
        key: value
        for key, value in data.items()
        if key not in (API_KEY_FIELD, TOKENS_FIELD, LAST_REFRESH_FIELD)
    }
    return Profile(
        api_key=_optional_string(data, API_KEY_FIELD),
        tokens=tokens,
        last_refresh=_optional_string(data, LAST_REFRESH_FIELD),
        extra=extra,
    )


class CredentialStore:
    """
    Reads and writes `<id>.auth.json` records in the credentials directory.

    Writes go to a temp file in the same directory and are renamed over the
    target, so readers see either the old record or the new one. Every
    persist therefore creates a fresh file (new inode).
    """

    def __init__(self, settings: ProfileSettings):
        self._settings = settings

    @property
    def directory(self) -> Path:
        return self._settings.auth_dir

    def profile_path(self, profile_id: str) -> Path:
        return self.directory / f"{profile_id}{AUTH_FILE_SUFFIX}"

    def exists(self, profile_id: str) -> bool:
        if not is_valid_profile_id(profile_id):
            return False
        return self.profile_path(profile_id).is_file()

    def list_profile_ids(self) -> List[str]:
        try:
            entries = sorted(os.listdir(self.directory))
        except OSError:
            return []

        ids = []
        for entry in entries:
            if not entry.endswith(AUTH_FILE_SUFFIX):
                continue
            profile_id = entry[: -len(AUTH_FILE_SUFFIX)]
            if is_valid_profile_id(profile_id):
                ids.append(profile_id)
        return ids

    def list_profiles(self) -> List[ProfileSummary]:
        """Summarize every readable record. Unreadable records are skipped."""
        summaries = []
        for profile_id in self.list_profile_ids():
            try:
                profile = self.load_profile(profile_id)
            except (ProfileNotFoundError, ProfileParseError) as e:
                lib_logger.debug(f"Skipping auth file '{profile_id}': {e}")
                continue
            summaries.append(summarize_profile(profile_id, profile))
        return summaries

    def load_profile(self, profile_id: str) -> Profile:
        if not is_valid_profile_id(profile_id):
            raise ProfileNotFoundError(profile_id)

        path = self.profile_path(profile_id)
        try:
            with open(path, "rb") as f:
                raw = f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise ProfileNotFoundError(profile_id)
        except OSError as e:
            raise ProfileParseError(profile_id, f"could not read file: {e}")

        try:
            return profile_from_dict(json.loads(raw.decode("utf-8")))
        except RecursionError:
            raise ProfileParseError(profile_id, "record is nested too deeply")
        except ValueError as e:
            # UnicodeDecodeError and JSONDecodeError are both ValueErrors
            raise ProfileParseError(profile_id, str(e))

    def persist_profile(self, profile_id: str, profile: Profile) -> None:
        """Write the full record, replacing any previous content atomically."""
        if not is_valid_profile_id(profile_id):
            raise ProfileNotFoundError(profile_id)

        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.profile_path(profile_id)
        content = json.dumps(profile.to_dict(), indent=2)

        fd, temp_name = tempfile.mkstemp(
            dir=self.directory, prefix=f".{profile_id}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_name, 0o600)
            os.replace(temp_name, target)
        except BaseException:
            try:
                os.unlink(temp_name)
            except OSError:
                pass
            raise

        lib_logger.debug(f"Saved auth file for '{profile_id}' to '{target.name}'.")
