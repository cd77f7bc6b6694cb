import json
import logging
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

lib_logger = logging.getLogger("codex_profiles")


def serialize_error(error: BaseException) -> Dict[str, Any]:
    """Turn an exception into a JSON-friendly dict for the audit trail."""
    return {
        "name": type(error).__name__,
        "message": str(error),
        "stack": "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )
        or None,
    }


def _timestamp_name(moment: Optional[datetime] = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    iso = moment.isoformat(timespec="microseconds").replace("+00:00", "Z")
    return iso.replace(":", "-").replace(".", "-")


class RefreshAuditLog:
    """
    Append-only trail of refresh responses, one JSON file per attempt under
    `<audit_dir>/<profile_id>/<timestamp>.json`.

    Writing is best-effort: record() never raises, so a broken audit
    directory cannot change the outcome of a refresh.
    """

    def __init__(self, audit_dir: Path):
        self.audit_dir = Path(audit_dir)

    async def record(self, profile_id: str, payload: Any) -> Optional[Path]:
        """Write one audit record. Returns the file written, or None on failure."""
        try:
            target_dir = self.audit_dir / profile_id
            target_dir.mkdir(parents=True, exist_ok=True)
            body = json.dumps(payload, indent=2, default=str)

            stem = _timestamp_name()
            path = target_dir / f"{stem}.json"
            counter = 1
            while path.exists():
                path = target_dir / f"{stem}-{counter}.json"
                counter += 1

            async with aiofiles.open(path, "x", encoding="utf-8") as f:
                await f.write(body)
            return path
        except Exception as e:
            lib_logger.debug(f"Could not write refresh audit for '{profile_id}': {e}")
            return None

    async def record_error(self, profile_id: str, error: Any) -> Optional[Path]:
        if isinstance(error, BaseException):
            error = serialize_error(error)
        return await self.record(
            profile_id, {"type": "refresh-error", "error": error or None}
        )
