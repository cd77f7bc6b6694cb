import asyncio
import logging
import time
from typing import Dict, List, Optional

import httpx

from .config import ProfileSettings, load_settings
from .credential_store import CredentialStore
from .error_handler import ProfileError, ProfileNotFoundError, ProfileParseError
from .profile_activator import ProfileActivator
from .refresh_audit import RefreshAuditLog
from .token_refresher import TokenRefresher
from .types import Dashboard, Profile, ProfileSummary, RateLimitSnapshot
from .usage_client import UsageClient
from .window_math import sort_by_weekly, summarize_global

lib_logger = logging.getLogger("codex_profiles")


class CodexProfileManager:
    """
    Entry point used by the HTTP API and any other consumer.

    Wires the store, refresher, activator and usage client to one set of
    settings. Holds no cached profile data: every call reads the store.
    """

    def __init__(
        self,
        settings: Optional[ProfileSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        audit: Optional[RefreshAuditLog] = None,
    ):
        self.settings = settings or load_settings()
        self.store = CredentialStore(self.settings)
        self.activator = ProfileActivator(self.store, self.settings)
        self.refresher = TokenRefresher(
            self.store,
            self.settings,
            audit=audit or RefreshAuditLog(self.settings.audit_dir),
            transport=transport,
        )
        self.usage = UsageClient(self.store, self.settings, transport=transport)

    def list_profiles(self) -> List[ProfileSummary]:
        return self.store.list_profiles()

    def load_profile(self, profile_id: str) -> Profile:
        return self.store.load_profile(profile_id)

    async def refresh_profile(self, profile_id: str) -> ProfileSummary:
        summary = await self.refresher.refresh(profile_id)
        try:
            self.activator.resync(profile_id)
        except ProfileError as e:
            # The refresh itself succeeded and is persisted; auth.json is only stale.
            lib_logger.warning(f"Refreshed '{profile_id}' but could not re-link auth.json: {e}")
        return summary

    def get_current_profile_id(self) -> Optional[str]:
        return self.activator.get_current_profile_id()

    def activate_profile(self, profile_id: str) -> str:
        return self.activator.activate(profile_id)

    def read_current_credentials(self) -> Optional[Profile]:
        """
        Resolve the active profile through the marker and a store lookup.

        Returns None when nothing is active, the sentinel is active, or the
        marker points at a profile that no longer loads.
        """
        current_id = self.get_current_profile_id()
        if not current_id or current_id == self.settings.sentinel_id:
            return None
        try:
            return self.store.load_profile(current_id)
        except (ProfileNotFoundError, ProfileParseError) as e:
            lib_logger.warning(f"Active profile marker is stale: {e}")
            return None

    async def get_limits(self, profile_id: str) -> RateLimitSnapshot:
        return await self.usage.get_limits(profile_id)

    async def _limits_or_none(self, profile_id: str) -> Optional[RateLimitSnapshot]:
        try:
            return await self.usage.get_limits(profile_id)
        except ProfileError as e:
            lib_logger.info(f"No rate limits for '{profile_id}': {e.message}")
            return None

    async def fetch_all_limits(
        self, profiles: List[ProfileSummary]
    ) -> Dict[str, Optional[RateLimitSnapshot]]:
        """Fetch limits for every profile concurrently; failures become None."""
        results = await asyncio.gather(
            *(self._limits_or_none(profile.id) for profile in profiles),
            return_exceptions=True,
        )

        limits: Dict[str, Optional[RateLimitSnapshot]] = {}
        for profile, result in zip(profiles, results):
            if isinstance(result, BaseException):
                lib_logger.warning(
                    f"Unexpected error fetching rate limits for '{profile.id}': {result!r}"
                )
                result = None
            limits[profile.id] = result
        return limits

    async def collect_dashboard(self, now: Optional[float] = None) -> Dashboard:
        profiles = self.list_profiles()
        current_id = self.get_current_profile_id()
        limits = await self.fetch_all_limits(profiles)
        now = time.time() if now is None else now
        return Dashboard(
            profiles=sort_by_weekly(profiles, limits),
            current_id=current_id,
            limits=limits,
            summary=summarize_global(profiles, limits, now),
        )
