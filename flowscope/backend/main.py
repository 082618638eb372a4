"""
main.py

FlowScope API server.

    python -m flowscope.backend.main --host 0.0.0.0 --port 8000 --log-level DEBUG
"""

from __future__ import annotations

import argparse
import logging

import uvicorn

from .api.main import create_app
from .config import settings

logger = logging.getLogger("flowscope.main")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="FlowScope topology & traffic analysis API")
    parser.add_argument("--host", default=settings.API_HOST)
    parser.add_argument("--port", default=settings.API_PORT, type=int)
    parser.add_argument(
        "--log-level", default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logger.info("Starting FlowScope API on %s:%d", args.host, args.port)
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
