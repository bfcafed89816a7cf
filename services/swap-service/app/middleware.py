import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger("swap-service.http")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                '{"request_id":"%s","method":"%s","path":"%s","status":500,"duration_ms":%.2f}',
                request_id, request.method, request.url.path, duration_ms,
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-Id"] = request_id

        user_sub = getattr(request.state, "user_sub", None)

        logger.info(
            '{"request_id":"%s","method":"%s","path":"%s","status":%d,"duration_ms":%.2f,"user_sub":"%s"}',
            request_id, request.method, request.url.path, response.status_code, duration_ms, user_sub,
        )
        return response
