from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from codex_profiles import CodexProfileManager, ProfileSummary
from profile_app.dependencies import get_profile_manager

router = APIRouter(prefix="/auth", tags=["auth"])
legacy_router = APIRouter(tags=["auth"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProfileSummaryResponse(CamelModel):
    id: str
    has_api_key: bool
    email: str | None = None
    plan_type: str | None = None
    expires_at: str | None = None
    access_token_last4: str | None = None
    account_id: str | None = None
    last_refresh: str | None = None
    openai_user_type: str | None = None
    openai_user_sub: str | None = None
    openai_api_key: str | None = None
    id_token: dict[str, Any] | None = None
    access_token: dict[str, Any] | None = None


class RateLimitWindowResponse(CamelModel):
    used_percent: int | float
    window_minutes: int | None = None
    resets_at: int | float | None = None


class CreditsResponse(CamelModel):
    has_credits: bool
    unlimited: bool
    balance: str | None = None


class RateLimitSnapshotResponse(CamelModel):
    plan_type: str | None = None
    primary: RateLimitWindowResponse | None = None
    secondary: RateLimitWindowResponse | None = None
    credits: CreditsResponse | None = None


class ActiveProfileResponse(BaseModel):
    id: str | None


class ActivatedProfileResponse(BaseModel):
    id: str


class GlobalSummaryResponse(CamelModel):
    account_count: int
    usage_sum: int
    usage_average: int
    elapsed_sum: int
    elapsed_average: int


class DashboardResponse(CamelModel):
    profiles: list[ProfileSummaryResponse]
    current_id: str | None
    limits: dict[str, RateLimitSnapshotResponse | None]
    summary: GlobalSummaryResponse


def _summary_response(summary: ProfileSummary) -> ProfileSummaryResponse:
    return ProfileSummaryResponse.model_validate(summary.to_dict())


@router.get("", response_model=list[ProfileSummaryResponse])
def list_auth_files(
    manager: CodexProfileManager = Depends(get_profile_manager),
) -> list[ProfileSummaryResponse]:
    """Summaries of every stored auth file. Unreadable files are left out."""
    return [_summary_response(summary) for summary in manager.list_profiles()]


@router.get("/current", response_model=ActiveProfileResponse)
def current_profile(
    manager: CodexProfileManager = Depends(get_profile_manager),
) -> ActiveProfileResponse:
    return ActiveProfileResponse(id=manager.get_current_profile_id())


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    manager: CodexProfileManager = Depends(get_profile_manager),
) -> DashboardResponse:
    """Every profile with its limits, the active id and the weekly aggregates."""
    result = await manager.collect_dashboard()
    return DashboardResponse.model_validate(result.to_dict())


@router.post("/refresh/{profile_id}", response_model=ProfileSummaryResponse)
async def refresh_auth_file(
    profile_id: str,
    manager: CodexProfileManager = Depends(get_profile_manager),
) -> ProfileSummaryResponse:
    return _summary_response(await manager.refresh_profile(profile_id))


@router.post("/activate/{profile_id}", response_model=ActivatedProfileResponse)
def activate_profile(
    profile_id: str,
    manager: CodexProfileManager = Depends(get_profile_manager),
) -> ActivatedProfileResponse:
    return ActivatedProfileResponse(id=manager.activate_profile(profile_id))


@router.get("/{profile_id}/limits", response_model=RateLimitSnapshotResponse)
async def profile_limits(
    profile_id: str,
    manager: CodexProfileManager = Depends(get_profile_manager),
) -> RateLimitSnapshotResponse:
    snapshot = await manager.get_limits(profile_id)
    return RateLimitSnapshotResponse.model_validate(snapshot.to_dict())


@legacy_router.post("/refresh-token/{profile_id}", response_model=ProfileSummaryResponse)
async def legacy_refresh_token(
    profile_id: str,
    manager: CodexProfileManager = Depends(get_profile_manager),
) -> ProfileSummaryResponse:
    """Back-compat alias for POST /auth/refresh/{profile_id}."""
    return _summary_response(await manager.refresh_profile(profile_id))
