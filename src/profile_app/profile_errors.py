from fastapi.responses import JSONResponse

from codex_profiles import (
    ProfileError,
    ProfileNotFoundError,
    ProviderUnavailableError,
    TokenRejectedError,
)


def status_for_error(error: ProfileError) -> int:
    if isinstance(error, ProfileNotFoundError):
        return 404
    if isinstance(error, TokenRejectedError):
        return 401
    if isinstance(error, ProviderUnavailableError):
        return 502
    # Parse, missing-token and activation failures
    return 500


def profile_error_response(error: ProfileError) -> JSONResponse:
    status_code = status_for_error(error)
    payload = {
        "statusCode": status_code,
        "message": error.message,
        "error": type(error).__name__,
    }
    if isinstance(error, TokenRejectedError):
        payload["reason"] = error.reason.value
    return JSONResponse(status_code=status_code, content=payload)
