"""Request middleware for context management and logging."""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from social.core.context import (
    clear_context,
    set_request_id,
    set_source,
    set_trace_id,
)


logger = structlog.get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request_id, trace_id and the acting source to the log context.

    The acting source is taken from the ``X-Source-Id`` / ``X-Source-Type``
    headers, which the upstream auth gateway sets after verifying the caller.
    """

    REQUEST_ID_HEADER = "X-Request-ID"
    TRACE_ID_HEADER = "X-Trace-ID"
    TRACEPARENT_HEADER = "traceparent"
    SOURCE_ID_HEADER = "X-Source-Id"
    SOURCE_TYPE_HEADER = "X-Source-Type"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = exclude_paths or ["/health"]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process the request inside a fresh logging context."""
        start_time = time.perf_counter()

        request_id = set_request_id(request.headers.get(self.REQUEST_ID_HEADER))
        request.state.request_id = request_id

        trace_id = request.headers.get(self.TRACE_ID_HEADER) or _extract_traceparent(
            request.headers.get(self.TRACEPARENT_HEADER)
        )
        if trace_id:
            set_trace_id(trace_id)

        set_source(
            request.headers.get(self.SOURCE_ID_HEADER),
            request.headers.get(self.SOURCE_TYPE_HEADER, "user"),
        )

        should_log = self.log_requests and not any(
            request.url.path.startswith(excluded) for excluded in self.exclude_paths
        )
        if should_log:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                query=str(request.query_params) if request.query_params else None,
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise
        else:
            if should_log:
                log_method = (
                    logger.warning if response.status_code >= 400 else logger.info
                )
                log_method(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
            response.headers[self.REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()


def _extract_traceparent(traceparent: str | None) -> str | None:
    """Extract the trace ID from a W3C ``traceparent`` header.

    Format: {version}-{trace-id}-{parent-id}-{trace-flags}
    """
    if not traceparent:
        return None
    parts = traceparent.split("-")
    if len(parts) >= 2:
        return parts[1]
    return None
