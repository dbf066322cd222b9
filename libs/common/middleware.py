"""Request tracing middleware.

Every request gets an id (propagated from ``X-Request-ID`` when the caller
sends one) that is bound to the logging context and echoed on the response.
Requests slower than ``SLOW_REQUEST_MS`` are logged at WARNING, which is how
lock waits on contended product rows show up in the logs.
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.config import get_settings
from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

QUIET_PATHS = frozenset({"/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, slow_request_ms: int):
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        quiet = request.url.path in QUIET_PATHS
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Request failed",
                extra={"extra_fields": {"duration_ms": _elapsed_ms(started)}},
            )
            raise
        else:
            duration_ms = _elapsed_ms(started)
            if not quiet:
                self._log_completion(request, response.status_code, duration_ms)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_request_context()

    def _log_completion(self, request: Request, status_code: int, duration_ms: float):
        fields = {"status_code": status_code, "duration_ms": duration_ms}
        if request.url.query:
            fields["query"] = str(request.url.query)

        if duration_ms >= self.slow_request_ms:
            logger.warning("Slow request", extra={"extra_fields": fields})
        elif status_code >= 400:
            logger.warning("Request rejected", extra={"extra_fields": fields})
        else:
            logger.info("Request completed", extra={"extra_fields": fields})


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install ``RequestContextMiddleware`` on ``app``."""
    configure_logging()
    app.add_middleware(
        RequestContextMiddleware, slow_request_ms=get_settings().SLOW_REQUEST_MS
    )
