"""Launch the service under Uvicorn."""

from __future__ import annotations

import logging
import os

import uvicorn

from pizza_metrics.core.config import get_settings
from pizza_metrics.core.logging import configure_logging

logger = logging.getLogger("pizza.launcher")


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    if not settings.metrics_configured:
        logger.warning("METRICS_URL/METRICS_API_KEY not set; metrics will not be exported")

    uvicorn.run("pizza_metrics.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
