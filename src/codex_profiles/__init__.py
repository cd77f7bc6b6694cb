from .config import ProfileSettings, load_settings
from .credential_store import CredentialStore
from .error_handler import (
    ActivationFailedError,
    MissingAccessTokenError,
    MissingAccountIdError,
    MissingRefreshTokenError,
    MissingTokenError,
    ProfileError,
    ProfileNotFoundError,
    ProfileParseError,
    ProviderUnavailableError,
    RefreshFailureReason,
    TokenRejectedError,
)
from .manager import CodexProfileManager
from .profile_activator import ProfileActivator
from .refresh_audit import RefreshAuditLog
from .token_refresher import TokenRefresher, classify_refresh_token_failure
from .types import (
    CreditsSnapshot,
    Dashboard,
    GlobalSummary,
    Profile,
    ProfileSummary,
    RateLimitSnapshot,
    RateLimitWindow,
    TokenData,
)
from .usage_client import UsageClient

__all__ = [
    "CodexProfileManager",
    "ProfileSettings",
    "load_settings",
    "CredentialStore",
    "TokenRefresher",
    "ProfileActivator",
    "UsageClient",
    "RefreshAuditLog",
    "classify_refresh_token_failure",
    # Types
    "TokenData",
    "Profile",
    "ProfileSummary",
    "RateLimitWindow",
    "CreditsSnapshot",
    "RateLimitSnapshot",
    "GlobalSummary",
    "Dashboard",
    # Errors
    "ProfileError",
    "ProfileNotFoundError",
    "ProfileParseError",
    "MissingTokenError",
    "MissingRefreshTokenError",
    "MissingAccessTokenError",
    "MissingAccountIdError",
    "ProviderUnavailableError",
    "TokenRejectedError",
    "RefreshFailureReason",
    "ActivationFailedError",
]
