"""pds-a11y: accessibility scores for every repository on a PDS."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _distribution_version

_LOCAL_VERSION_FALLBACK = "0.0.0+local"


def _resolve_version() -> str:
    """Resolve package version from installed metadata with deterministic fallback."""
    try:
        return _distribution_version("pds-a11y")
    except PackageNotFoundError:
        return _LOCAL_VERSION_FALLBACK


__version__ = _resolve_version()


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pds-a11y",
        description="Collect and serve PDS accessibility scores.",
    )
    parser.add_argument("--config", default=None, help="Path to a YAML settings file.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="Run the ingestion pipeline once.")
    sub.add_parser("schedule", help="Run the ingestion pipeline on a fixed cadence.")
    sub.add_parser("serve", help="Serve stored scores over HTTP.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the `pds-a11y` CLI."""
    from pds_a11y.config import load_settings
    from pds_a11y.errors import ConfigError
    from pds_a11y.models import RunOutcome
    from pds_a11y.scheduler import run_forever, run_once
    from pds_a11y.server import create_server
    from pds_a11y.store.file import JsonFileScoreStore

    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        logging.getLogger("pds_a11y").error("%s", exc)
        return 2

    if args.command == "run":
        report = asyncio.run(run_once(settings))
        return 1 if report.outcome is RunOutcome.ABORTED else 0

    if args.command == "schedule":
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(run_forever(settings))
        return 0

    server = create_server(settings, JsonFileScoreStore(settings.store_path))
    server.run(transport="streamable-http")
    return 0
