"""Command-line entry point that serves the lead agent API."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

import structlog
import uvicorn

from .config import Settings


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog + stdlib logging."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


LOGGER = structlog.get_logger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(description="Serve the lead qualification and scheduling API.")
    parser.add_argument("--host", help="Interface to bind (defaults to HOST).")
    parser.add_argument("--port", type=int, help="Port to bind (defaults to PORT).")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def cli(argv: Optional[list[str]] = None) -> int:
    """Console script entrypoint."""
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.debug else logging.INFO)

    try:
        settings = Settings()
    except Exception as exc:  # pragma: no cover - startup validation
        LOGGER.exception("settings.error", error=str(exc))
        return 2

    host = args.host or settings.host
    port = args.port or settings.port
    LOGGER.info("server.start", url=f"http://{host}:{port}")
    uvicorn.run("lead_agent.api:app", host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(cli())
