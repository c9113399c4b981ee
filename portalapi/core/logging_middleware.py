import logging
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger("portalapi")

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Access log for every request, tagged with a request id echoed back to the caller"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        client = request.client.host if request.client else "-"
        prefix = f"[{request_id}] {request.method} {request.url.path} from {client}"

        logger.info(f"{prefix} started")
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"{prefix} crashed")
            raise

        elapsed_ms = (time.perf_counter() - start) * 1000
        line = f"{prefix} -> {response.status_code} in {elapsed_ms:.1f}ms"
        if response.status_code >= 500:
            logger.error(line)
        elif response.status_code >= 400:
            logger.warning(line)
        else:
            logger.info(line)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
