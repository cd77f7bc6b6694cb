"""
Display arithmetic for usage windows.

Pure functions shared by every consumer so dashboards agree on the numbers.
No I/O. Functions that depend on the clock take an optional `now` (epoch
seconds) and fall back to time.time().
"""

import math
import time
from typing import Iterable, List, Mapping, Optional, Union

from .types import GlobalSummary, ProfileSummary, RateLimitSnapshot, RateLimitWindow

ProfileRef = Union[ProfileSummary, str]
LimitsMap = Mapping[str, Optional[RateLimitSnapshot]]


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _round_half_up(value: float) -> int:
    """Round like JavaScript's Math.round (x.5 goes up), not banker's rounding."""
    return int(math.floor(value + 0.5))


def _clamp_percent(value: float) -> float:
    return min(100.0, max(0.0, value))


def _entry_id(entry: ProfileRef) -> str:
    return entry if isinstance(entry, str) else entry.id


def time_progress_percent(
    window: Optional[RateLimitWindow], now: Optional[float] = None
) -> int:
    """How far through its window a quota period is, as an integer 0-100."""
    if window is None:
        return 0
    if not _is_number(window.window_minutes) or not _is_number(window.resets_at):
        return 0
    if window.window_minutes <= 0:
        return 0

    now_ms = (time.time() if now is None else now) * 1000
    duration_ms = window.window_minutes * 60 * 1000
    reset_ms = window.resets_at * 1000
    start_ms = reset_ms - duration_ms

    if now_ms <= start_ms:
        return 0
    if now_ms >= reset_ms:
        return 100

    percent = (now_ms - start_ms) / duration_ms * 100
    return _round_half_up(_clamp_percent(percent))


def is_valid_window(window: Optional[RateLimitWindow]) -> bool:
    """A window counts for aggregation only when all three fields are numeric."""
    if window is None:
        return False
    return (
        _is_number(window.used_percent)
        and _is_number(window.window_minutes)
        and _is_number(window.resets_at)
    )


def _weekly_window(snapshot: Optional[RateLimitSnapshot]) -> Optional[RateLimitWindow]:
    if snapshot is None:
        return None
    return snapshot.secondary


def has_valid_weekly(limits: LimitsMap, profile_id: str) -> bool:
    return is_valid_window(_weekly_window(limits.get(profile_id)))


def _weekly_windows(
    entries: Iterable[ProfileRef], limits: LimitsMap
) -> List[RateLimitWindow]:
    windows = []
    for entry in entries:
        weekly = _weekly_window(limits.get(_entry_id(entry)))
        if is_valid_window(weekly):
            windows.append(weekly)
    return windows


def _average(total: int, count: int) -> int:
    if not count:
        return 0
    return _round_half_up(_clamp_percent(total / count))


def global_weekly_account_count(entries: Iterable[ProfileRef], limits: LimitsMap) -> int:
    """Number of profiles with a valid weekly window."""
    return len(_weekly_windows(entries, limits))


def global_usage_sum(entries: Iterable[ProfileRef], limits: LimitsMap) -> int:
    windows = _weekly_windows(entries, limits)
    if not windows:
        return 0
    return _round_half_up(sum(window.used_percent for window in windows))


def global_usage_average(entries: Iterable[ProfileRef], limits: LimitsMap) -> int:
    entries = list(entries)
    count = global_weekly_account_count(entries, limits)
    return _average(global_usage_sum(entries, limits), count)


def global_weekly_elapsed_time_sum(
    entries: Iterable[ProfileRef], limits: LimitsMap, now: Optional[float] = None
) -> int:
    windows = _weekly_windows(entries, limits)
    if not windows:
        return 0
    now = time.time() if now is None else now
    return _round_half_up(sum(time_progress_percent(window, now) for window in windows))


def global_weekly_elapsed_time_average(
    entries: Iterable[ProfileRef], limits: LimitsMap, now: Optional[float] = None
) -> int:
    entries = list(entries)
    count = global_weekly_account_count(entries, limits)
    return _average(global_weekly_elapsed_time_sum(entries, limits, now), count)


def sort_by_weekly(
    entries: Iterable[ProfileSummary], limits: LimitsMap
) -> List[ProfileSummary]:
    """Profiles with a valid weekly window first, then by id."""
    return sorted(entries, key=lambda e: (not has_valid_weekly(limits, e.id), e.id))


def summarize_global(
    entries: Iterable[ProfileRef], limits: LimitsMap, now: Optional[float] = None
) -> GlobalSummary:
    entries = list(entries)
    now = time.time() if now is None else now
    return GlobalSummary(
        account_count=global_weekly_account_count(entries, limits),
        usage_sum=global_usage_sum(entries, limits),
        usage_average=global_usage_average(entries, limits),
        elapsed_sum=global_weekly_elapsed_time_sum(entries, limits, now),
        elapsed_average=global_weekly_elapsed_time_average(entries, limits, now),
    )
