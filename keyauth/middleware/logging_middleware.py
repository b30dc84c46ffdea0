import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from keyauth.core.logging_utils import mask_headers, sanitize_log_message

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log HTTP requests and responses and tag them with X-Request-ID."""

    # Endpoints to skip logging (reduce noise)
    SKIP_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")

    async def dispatch(self, request: Request, call_next):
        request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id = request.state.request_id

        if request.url.path.startswith(self.SKIP_PATHS):
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response

        start_time = time.time()
        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else None

        logger.debug(
            sanitize_log_message(
                f"Request: {method} {path}",
                RequestID=request_id,
                IP=client_ip,
                UserAgent=request.headers.get("user-agent"),
                Headers=mask_headers(dict(request.headers))
            )
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                sanitize_log_message(
                    f"Exception in request: {method} {path}",
                    RequestID=request_id,
                    ProcessTime=f"{time.time() - start_time:.3f}s",
                    IP=client_ip,
                    Error=str(e)
                )
            )
            raise

        response.headers["X-Request-ID"] = request_id
        logger.info(
            sanitize_log_message(
                f"Response: {method} {path}",
                RequestID=request_id,
                Status=response.status_code,
                ProcessTime=f"{time.time() - start_time:.3f}s",
                IP=client_ip
            )
        )
        return response
