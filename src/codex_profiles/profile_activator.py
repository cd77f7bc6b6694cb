# src/codex_profiles/profile_activator.py

import logging
import os
import secrets
import threading
from pathlib import Path
from typing import Optional

from .config import ProfileSettings
from .credential_store import CredentialStore
from .error_handler import ActivationFailedError, ProfileNotFoundError

lib_logger = logging.getLogger("codex_profiles")


class ProfileActivator:
    """
    Designates one stored profile as the active one.

    Two records carry the designation:
    - `auth.json` in the credentials directory, a hard link to the active
      profile's record, which is where the Codex CLI reads its credentials
    - `current.tmp`, a plain marker holding the active id or the sentinel id

    The link is swapped in with a rename, so readers of `auth.json` see either
    the previous profile or the new one. Switching and re-linking share a
    threading lock so the link and the marker always name the same profile.
    """

    def __init__(self, store: CredentialStore, settings: ProfileSettings):
        self._store = store
        self._settings = settings
        self._switch_lock = threading.Lock()

    @property
    def current_auth_path(self) -> Path:
        return self._settings.current_auth_path

    @property
    def marker_path(self) -> Path:
        return self._settings.current_marker_path

    def get_current_profile_id(self) -> Optional[str]:
        """Read the marker. Returns None when it is missing, empty or unreadable."""
        try:
            raw = self.marker_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None
        trimmed = raw.strip()
        return trimmed or None

    def activate(self, profile_id: str) -> str:
        with self._switch_lock:
            return self._activate_locked(profile_id)

    def _activate_locked(self, profile_id: str) -> str:
        self._settings.auth_dir.mkdir(parents=True, exist_ok=True)

        if profile_id == self._settings.sentinel_id:
            self._clear_current_auth(profile_id)
            self._write_marker(profile_id)
            lib_logger.info(f"Switched to non-profile mode ('{profile_id}').")
            return profile_id

        if not self._store.exists(profile_id):
            raise ProfileNotFoundError(profile_id)

        self._link_current_auth(profile_id)
        self._write_marker(profile_id)
        lib_logger.info(f"Activated profile '{profile_id}'.")
        return profile_id

    def resync(self, profile_id: str) -> bool:
        """
        Re-point `auth.json` at a profile's record if that profile is active.

        The store replaces records with fresh files, which an existing hard
        link does not follow. Returns True when the link was re-established.
        """
        with self._switch_lock:
            return self._resync_locked(profile_id)

    def _resync_locked(self, profile_id: str) -> bool:
        if self.get_current_profile_id() != profile_id:
            return False
        if not self._store.exists(profile_id):
            lib_logger.warning(
                f"Active profile '{profile_id}' no longer exists; leaving auth.json as is."
            )
            return False
        self._link_current_auth(profile_id)
        lib_logger.debug(f"Re-linked auth.json to refreshed profile '{profile_id}'.")
        return True

    def _clear_current_auth(self, profile_id: str) -> None:
        try:
            self.current_auth_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise ActivationFailedError(profile_id, str(e))

    def _link_current_auth(self, profile_id: str) -> None:
        source = self._store.profile_path(profile_id)
        staging = self._settings.auth_dir / f".auth.json.{secrets.token_hex(4)}.link"
        try:
            os.link(source, staging)
            os.replace(staging, self.current_auth_path)
        except OSError as e:
            try:
                staging.unlink()
            except OSError:
                pass
            raise ActivationFailedError(profile_id, str(e))

    def _write_marker(self, value: str) -> None:
        staging = self.marker_path.with_name(f".{self.marker_path.name}.{secrets.token_hex(4)}")
        try:
            staging.write_text(value, encoding="utf-8")
            os.replace(staging, self.marker_path)
        except OSError as e:
            try:
                staging.unlink()
            except OSError:
                pass
            raise ActivationFailedError(value, f"could not write marker: {e}")
