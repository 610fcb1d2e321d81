"""FastAPI middleware for observability.

Provides request ID generation and logging for all HTTP requests.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .request_id import generate_request_id, reset_request_id, set_request_id
from .logging_config import get_logger

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind an X-Request-ID to every admin API call."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with request ID.

        Returns:
            Response: HTTP response with X-Request-ID header
        """
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        token = set_request_id(request_id)
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"{request.method} {request.url.path} failed after {duration_ms:.2f}ms: {e}",
                exc_info=True
            )
            raise
        else:
            duration_ms = (time.time() - start_time) * 1000
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} in {duration_ms:.2f}ms"
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            reset_request_id(token)
