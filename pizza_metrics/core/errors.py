"""Exception types and handlers."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("pizza.errors")


class MetricsError(Exception):
    """Base class for failures raised by the metrics pipeline."""


class MetricsConfigError(MetricsError):
    """Export settings are missing or invalid at startup."""


class EncodingError(MetricsError):
    """A metric value cannot be represented on the wire.

    Raised per metric; the scheduler skips that metric and keeps going.
    """


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer with a JSON 500 carrying the request id so logs can be correlated."""

    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        "Unhandled %s on %s %s [rid=%s]",
        type(exc).__name__,
        request.method,
        request.url.path,
        request_id or "-",
    )
    headers = {"X-Request-ID": request_id} if request_id else None
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "Something unexpected happened. Please try again later.",
            "request_id": request_id,
        },
        headers=headers,
    )
