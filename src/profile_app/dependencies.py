from fastapi import Request

from codex_profiles import CodexProfileManager


def get_profile_manager(request: Request) -> CodexProfileManager:
    """Dependency to get the profile manager instance from the app state."""
    return request.app.state.profile_manager
