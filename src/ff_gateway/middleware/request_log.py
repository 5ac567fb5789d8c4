"""Request logging middleware.

One line per request: method, path, status, latency and a request id.
A scheduler that sends ``X-Request-ID`` gets its own id reused, so a job run
can be traced from the trigger through to the response. The id is put on
``request.state`` for ApiResponse and echoed back in the response header.

    INFO [POST] /api/v1/jobs/execute -> 200 (1840ms) req_1a2b3c4d5e6f
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("ff.request")

REQUEST_ID_HEADER = "X-Request-ID"
_CALLER_ID = re.compile(r"^[A-Za-z0-9_.:-]{1,64}$")


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER, "")
    if _CALLER_ID.match(incoming):
        return incoming
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _request_id(request)
        request.state.request_id = request_id

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            "[%s] %s -> %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
