"""FastAPI middleware for request tracing and metrics"""

import logging
import re
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from lendbook.infrastructure.observability.metrics import request_duration_histogram

REQUEST_ID_HEADER = "X-Request-ID"
# Caller-supplied IDs are reused only when short and printable
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")
UNMATCHED_ROUTE = "unmatched"

logger = logging.getLogger("lendbook.http")


def resolve_request_id(incoming: str | None) -> str:
    """Reuse a well-formed caller ID, otherwise mint a new one"""
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


def route_label(request: Request) -> str:
    """
    Route template for metric labels.

    "/v1/installments/{installment_id}/payments" instead of the concrete
    path; requests that matched no route share a single label.
    """
    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED_ROUTE)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Propagate or assign a request ID for tracing across the reminder hand-off"""

    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Time every request and log ledger calls that end in a server error"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time
            endpoint = route_label(request)
            request_duration_histogram.labels(
                method=request.method,
                endpoint=endpoint,
                status=status_code,
            ).observe(duration)
            if status_code >= 500:
                logger.error(
                    "Request failed",
                    extra={
                        "request_id": getattr(request.state, "request_id", "unknown"),
                        "method": request.method,
                        "endpoint": endpoint,
                        "status": status_code,
                        "duration_ms": duration * 1000,
                    },
                )
