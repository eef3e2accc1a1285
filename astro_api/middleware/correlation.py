"""
Correlation ID middleware for request tracing.

Every request gets an ID (taken from ``X-Request-ID`` or freshly generated)
that is bound into the log context for the duration of the request and echoed
back in the ``X-Correlation-ID`` response header.
"""
from __future__ import annotations

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from astro_api.logger import clear_correlation_id, get_logger, set_correlation_id

CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Bind a correlation ID to each request and log its start, end and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        set_correlation_id(correlation_id)

        log = get_logger(
            method=request.method,
            path=request.url.path,
            client_ip=self._client_ip(request),
        )
        started = time.perf_counter()
        log.info("request_started")

        try:
            response = await call_next(request)
        except Exception as exc:
            log.error(
                "request_failed",
                error_type=type(exc).__name__,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        else:
            log.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()

    @staticmethod
    def _client_ip(request: Request) -> str:
        # Behind a load balancer the first X-Forwarded-For entry is the client
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        if request.client:
            return request.client.host
        return "unknown"
