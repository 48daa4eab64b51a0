import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import structlog

from meta_ads_cli import __version__
from meta_ads_cli.commands import COMMAND_MODULES
from meta_ads_cli.commands.base import run_command
from meta_ads_cli.config import get_settings

DEFAULT_LOG_LEVEL = "warning"


def setup_logging(log_level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure structured logging; everything goes to stderr so stdout stays parseable."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def resolve_log_level(args: argparse.Namespace) -> str:
    if getattr(args, "quiet", False):
        return "error"
    if getattr(args, "verbose", None):
        return "debug"
    settings = get_settings()
    if settings.log_level:
        return settings.log_level
    if settings.verbose:
        return "debug"
    return DEFAULT_LOG_LEVEL


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meta-ads",
        description="Manage Meta (Facebook/Instagram) ad accounts, campaigns, ads and insights.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True, metavar="<command>")
    for module in COMMAND_MODULES:
        module.register(subparsers)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(resolve_log_level(args))
    logger = structlog.get_logger(__name__)
    logger.debug("command_started", command=args.command, action=getattr(args, "action", None))

    return asyncio.run(run_command(args.handler, args))


if __name__ == "__main__":
    sys.exit(main())
