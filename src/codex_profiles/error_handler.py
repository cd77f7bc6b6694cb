from enum import Enum
from typing import Optional


class RefreshFailureReason(str, Enum):
    """Why the token endpoint rejected a refresh token."""

    EXPIRED = "expired"
    EXHAUSTED = "exhausted"
    REVOKED = "revoked"
    OTHER = "other"


class ProfileError(Exception):
    """
    Base class for every failure surfaced by the profile library.

    Attributes:
        profile_id: Id of the profile the operation was about, if any
        message: Human-readable message with the id embedded
    """

    def __init__(self, message: str, profile_id: Optional[str] = None):
        self.profile_id = profile_id
        self.message = message
        super().__init__(message)


class ProfileNotFoundError(ProfileError):
    def __init__(self, profile_id: str, message: str = ""):
        super().__init__(
            message or f"Auth file not found for id '{profile_id}'", profile_id
        )


class ProfileParseError(ProfileError):
    def __init__(self, profile_id: str, detail: str):
        super().__init__(
            f"Failed to parse auth JSON for '{profile_id}': {detail}", profile_id
        )


class MissingTokenError(ProfileError):
    """The stored token set lacks a field the requested operation needs."""

    field_name = "token"

    def __init__(self, profile_id: str):
        super().__init__(
            f"No {self.field_name} present in auth file for '{profile_id}'.",
            profile_id,
        )


class MissingRefreshTokenError(MissingTokenError):
    field_name = "refresh_token"


class MissingAccessTokenError(MissingTokenError):
    field_name = "access_token"


class MissingAccountIdError(MissingTokenError):
    field_name = "account_id"


class ProviderUnavailableError(ProfileError):
    """
    Raised when the identity provider could not be reached or answered with a
    non-success status.

    Attributes:
        status_code: HTTP status returned by the provider, None for network errors
        body: Raw response body, when one was received
    """

    def __init__(
        self,
        message: str,
        profile_id: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message, profile_id)


class TokenRejectedError(ProfileError):
    """
    Raised when the token endpoint answers 401 to a refresh-token grant.

    The message is always one of the fixed messages in REFRESH_FAILURE_MESSAGES,
    never text supplied by the provider.
    """

    def __init__(self, profile_id: str, reason: RefreshFailureReason, message: str):
        self.reason = reason
        super().__init__(message, profile_id)


class ActivationFailedError(ProfileError):
    def __init__(self, profile_id: str, detail: str):
        super().__init__(
            f"Failed to activate profile '{profile_id}': {detail}", profile_id
        )
