"""API middleware for request logging."""

import logging
import re
import time
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

_PROVIDER_PATH = re.compile(r"/providers/([^/]+)")


def request_context(request: Request) -> str:
    """Provider and date a scheduling request targets, for log lines."""
    parts = []
    match = _PROVIDER_PATH.search(request.url.path)
    if match:
        parts.append(f"provider={match.group(1)}")
    day: Optional[str] = request.query_params.get("date")
    if day:
        parts.append(f"date={day}")
    return "".join(f" {part}" for part in parts)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with its provider/date and marks booking conflicts."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        context = request_context(request)
        client = request.client.host if request.client else "unknown"

        logger.info(f"Request: {request.method} {request.url.path}{context} client={client}")

        response = await call_next(request)

        duration = time.time() - start_time
        level = logging.WARNING if response.status_code == 409 else logging.INFO
        logger.log(
            level,
            f"Response: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s{context}",
        )

        response.headers["X-Process-Time"] = f"{duration:.3f}"

        return response
