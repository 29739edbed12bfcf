from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from manifestarr.infrastructure.config import load_config
from manifestarr.infrastructure.logging.setup import configure_logging
from manifestarr.interfaces.app import create_app

log = structlog.get_logger(__name__)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="manifestarr")

    # Server options
    parser.add_argument(
        "--host",
        default=None,
        help="Bind host (overrides HOST env).",
    )
    parser.add_argument(
        "--port",
        default=None,
        type=int,
        help="Bind port (overrides PORT env).",
    )

    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )
    parser.add_argument(
        "--headed",
        dest="headless",
        action="store_false",
        default=None,
        help="Show the browser window (debugging).",
    )

    return parser.parse_args(argv)


def _build_cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    # Plain HOST/PORT env vars are honoured for container platforms.
    host = args.host or os.getenv("HOST")
    port = args.port or os.getenv("PORT")
    if host:
        overrides["host"] = host
    if port:
        overrides["port"] = int(port)
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_format:
        overrides["log_format"] = args.log_format
    if args.headless is not None:
        overrides["browser_headless"] = args.headless
    return overrides


def start(argv: Iterable[str] | None = None) -> None:
    """
    Process entrypoint.

    Config is loaded exactly once here; the FastAPI app is built from it.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config = load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=_build_cli_overrides(args),
    )

    log_config = configure_logging(config)
    log.info(
        "manifestarr_starting",
        host=config.host,
        port=config.port,
        engine=config.browser.engine,
        endpoints=["/movie/{id}", "/tv/{id}/{season}/{episode}"],
    )

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_config=log_config,
    )


if __name__ == "__main__":
    raise SystemExit(start())
