"""
Archives Transfer Service — Request Logging Middleware
========================================================

What:  One access log line for every HTTP request.
How:   Measures wall time around the handler and logs method, path, status,
       duration, request ID and client IP. The level follows the status:
       5xx → ERROR, 4xx → WARNING, otherwise INFO.

Not logged: request bodies (uploaded bytes) and form fields.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from transfer_service.middleware.request_id import request_id_var

logger = logging.getLogger("transfer_service.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs structured information about each HTTP request and response.

    Chunked uploads produce one line per chunk, which makes a stalled
    upload visible as a gap in the chunk sequence.
    """

    # Polled by load balancers every few seconds
    QUIET_PATHS = {"/healthcheck"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        rid = request_id_var.get("")
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
