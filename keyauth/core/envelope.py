"""Uniform response envelope: ``{"success": bool, "message": str, ...extra}``."""
from datetime import datetime, timezone
from typing import Any
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def envelope(
    success: bool,
    message: str,
    status_code: int = status.HTTP_200_OK,
    **extra: Any
) -> JSONResponse:
    content = {"success": success, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def ok(message: str, **extra: Any) -> JSONResponse:
    """Successful outcome."""
    return envelope(True, message, **extra)


def rejected(message: str, **extra: Any) -> JSONResponse:
    """Expected negative outcome: HTTP 200 with ``success: false``."""
    return envelope(False, message, **extra)


def failure(status_code: int, message: str, **extra: Any) -> JSONResponse:
    """Error response for malformed requests, permission denials and faults."""
    return envelope(
        False,
        message,
        status_code=status_code,
        timestamp=datetime.now(timezone.utc).isoformat(),
        **extra
    )
