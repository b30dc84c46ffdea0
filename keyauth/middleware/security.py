"""
Security middleware for request size limiting and security headers.
"""
import logging
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

# Action payloads are small JSON objects
DEFAULT_MAX_REQUEST_SIZE = 64 * 1024


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware to limit request body size.

    Checks Content-Length header and rejects requests exceeding the limit.
    """

    def __init__(self, app, max_size: int = DEFAULT_MAX_REQUEST_SIZE):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")

        if content_length and content_length.isdigit() and int(content_length) > self.max_size:
            logger.warning(
                f"Request body too large: {content_length} bytes (max: {self.max_size})",
                extra={
                    "path": request.url.path,
                    "ip": request.client.host if request.client else None
                }
            )
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"success": False, "message": "Request body too large"}
            )

        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to API responses (docs pages excluded).
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        path = request.url.path
        if not (path.endswith("/docs") or path.endswith("/redoc") or path.endswith("/openapi.json")):
            response.headers["Content-Security-Policy"] = (
                "default-src 'none'; "
                "frame-ancestors 'none'; "
                "base-uri 'none'; "
                "form-action 'none'"
            )

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"

        response.headers["Referrer-Policy"] = "no-referrer"

        # Validation answers must never be served from a cache
        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store"

        return response


def setup_security_middleware(app, max_request_size: int = DEFAULT_MAX_REQUEST_SIZE) -> None:
    """
    Configure security middleware for the FastAPI application.

    Args:
        app: FastAPI application instance
        max_request_size: Maximum allowed request body size in bytes
    """
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_size=max_request_size)

    logger.info(f"Security middleware enabled: max_request_size={max_request_size / 1024:.0f}KB")
