# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

import logging
import time
from typing import Awaitable, Callable

from fastapi import Request, Response

http_logger = logging.getLogger("profile_app.http")


def format_request_line(method: str, path: str, status_code: int, duration_ms: float) -> str:
    return f"{method} {path} {status_code} +{int(duration_ms)}ms"


async def log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """
    Logs a concise, single-line summary of each request once it has finished.
    """
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - started) * 1000
        http_logger.info(
            format_request_line(request.method, request.url.path, status_code, duration_ms)
        )
