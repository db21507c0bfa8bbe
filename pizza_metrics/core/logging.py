"""Logging utilities for the service."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from fastapi import Request

logger = logging.getLogger("pizza.request")

LOG_FORMAT = "%(levelname)s %(name)s %(message)s"


def configure_logging(level: str) -> int:
    """Configure root logging once and return the numeric level applied."""

    resolved = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # Per-export request lines from httpx would drown the service logs.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return resolved


async def request_id_middleware(request: Request, call_next: Callable):
    """Tag the request with an id, echo it back and log the outcome."""

    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    request.state.request_id = request_id
    started = time.perf_counter()

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "%s %s -> %d in %.1fms [rid=%s]",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
        request_id,
    )
    return response
