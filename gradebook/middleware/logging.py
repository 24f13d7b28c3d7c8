"""Request logging middleware."""

import logging
import time
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with its school scope, status and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Reuse a caller-supplied request ID so logs can be joined across services
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id
        school_id = request.headers.get("X-School-Id", "-")

        start_time = time.time()
        logger.info(
            f"[{request_id}] {request.method} {request.url.path} started (school={school_id})"
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = round((time.time() - start_time) * 1000, 2)
            logger.error(
                f"[{request_id}] {request.method} {request.url.path} failed "
                f"after {duration_ms}ms: {e}"
            )
            raise

        duration_ms = round((time.time() - start_time) * 1000, 2)
        logger.info(
            f"[{request_id}] {request.method} {request.url.path} -> "
            f"{response.status_code} in {duration_ms}ms"
        )
        response.headers["X-Request-ID"] = request_id
        return response
