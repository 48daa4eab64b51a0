"""
Shared plumbing for command handlers.

Every handler is ``async def handler(ctx, args)``. The CommandContext builds
the config, formatter and Graph client from the parsed flags; ``run_command``
is the single place where exceptions become the error envelope and exit
status 1.
"""

import argparse
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx
import structlog

from meta_ads_cli.config import ConfigManager, FlagValues
from meta_ads_cli.errors import CliError, ErrorCode, map_transport_error
from meta_ads_cli.models.envelope import PaginationMeta, create_success_response, to_plain
from meta_ads_cli.output import Column, OutputFormatter, filter_fields
from meta_ads_cli.services.graph_client import GraphClient

logger = structlog.get_logger(__name__)

Handler = Callable[["CommandContext", argparse.Namespace], Awaitable[None]]

ENTITY_STATUSES = ("ACTIVE", "PAUSED", "DELETED", "ARCHIVED")


def global_flags() -> argparse.ArgumentParser:
    """Parent parser carrying the flags every command accepts."""
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("-a", "--account", help="Ad account ID (e.g. act_123456789)")
    parser.add_argument("--token", help="Access token (overrides env and config)")
    parser.add_argument("-o", "--output", choices=("json", "table"), help="Output format")
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="Debug logging to stderr")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress status messages")
    parser.add_argument("--output-fields", help="Only keep these fields in the output (comma-separated)")
    return parser


GLOBAL_FLAGS = global_flags()


def add_list_flags(parser: argparse.ArgumentParser, statuses: Sequence[str] = ENTITY_STATUSES) -> None:
    parser.add_argument("-s", "--status", choices=statuses, help="Filter by status")
    parser.add_argument("-l", "--limit", type=int, default=25, help="Page size (default 25)")
    parser.add_argument("--after", help="Pagination cursor from a previous page")
    parser.add_argument("--fields", help="Comma-separated fields to request")
    parser.add_argument("--all", action="store_true", help="Fetch every page (ignores --limit)")


def split_csv(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_json_flag(value: Optional[str], flag: str) -> Optional[Any]:
    if value is None:
        return None
    try:
        return json.loads(value)
    except ValueError as e:
        raise CliError(ErrorCode.INVALID_PARAMETER, f"{flag} must be valid JSON: {e}")


def flag_values(args: argparse.Namespace) -> FlagValues:
    return FlagValues(
        token=getattr(args, "token", None),
        account=getattr(args, "account", None),
        output=getattr(args, "output", None),
        verbose=getattr(args, "verbose", None),
        quiet=getattr(args, "quiet", False),
    )


class CommandContext:
    """Per-invocation state: resolved config, output formatter and a lazily built client."""

    def __init__(
        self,
        args: argparse.Namespace,
        config: Optional[ConfigManager] = None,
        formatter: Optional[OutputFormatter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.args = args
        self.config = config or ConfigManager(flag_values(args))
        self.formatter = formatter or OutputFormatter(
            format=self.config.output_format(),
            verbose=self.config.verbose(),
            quiet=getattr(args, "quiet", False),
        )
        self.output_fields = split_csv(getattr(args, "output_fields", None))
        self._transport = transport
        self._client: Optional[GraphClient] = None

    @property
    def client(self) -> GraphClient:
        """Graph client; AUTH_NOT_CONFIGURED when no token is available."""
        if self._client is None:
            self._client = GraphClient(
                access_token=self.config.require_access_token(),
                account_id=self.config.account_id(),
                api_version=self.config.api_version(),
                timeout=self.config.request_timeout(),
                transport=self._transport,
            )
        return self._client

    def client_for(self, access_token: str) -> GraphClient:
        """Client for a token that is not (yet) configured, e.g. during login."""
        self._client = GraphClient(
            access_token=access_token,
            account_id=self.config.account_id(),
            api_version=self.config.api_version(),
            timeout=self.config.request_timeout(),
            transport=self._transport,
        )
        return self._client

    @property
    def account_id(self) -> Optional[str]:
        if self._client is not None:
            return self._client.account_id
        return self.config.account_id()

    def emit(
        self,
        data: Any,
        pagination: Optional[PaginationMeta] = None,
        changed: Optional[bool] = None,
        reason: Optional[str] = None,
        columns: Optional[Sequence[Column]] = None,
    ) -> None:
        """Write the success envelope for ``data``."""
        payload = filter_fields(to_plain(data), self.output_fields)
        response = create_success_response(
            payload,
            account_id=self.account_id,
            pagination=pagination,
            rate_limit=self._client.rate_limit if self._client else None,
            changed=changed,
            reason=reason,
        )
        self.formatter.output(response, columns)


def _fallback_formatter(args: argparse.Namespace) -> OutputFormatter:
    return OutputFormatter(format=getattr(args, "output", None) or "json")


async def run_command(
    handler: Handler,
    args: argparse.Namespace,
    context_factory: Callable[[argparse.Namespace], CommandContext] = CommandContext,
) -> int:
    """Run one handler; returns the process exit status."""
    formatter = _fallback_formatter(args)
    try:
        ctx = context_factory(args)
        formatter = ctx.formatter
        await handler(ctx, args)
        return 0
    except CliError as e:
        logger.debug("command_failed", code=e.code.value, message=e.message)
        formatter.output(e.to_response())
        return 1
    except Exception as e:  # noqa: BLE001 - command boundary
        logger.debug("command_crashed", error=str(e), exc_info=True)
        formatter.output(map_transport_error(e).to_response())
        return 1


async def toggle_status(ctx: CommandContext, repository, entity_id: str, target: str, label: str) -> None:
    """
    Idempotent activate / pause.

    The current status is read first; the write only happens when it differs.
    ``meta.changed`` / ``meta.reason`` tell the caller which path was taken.
    """
    current = await repository.get(entity_id)
    if current.status == target:
        ctx.formatter.success(f"Already {target.lower()} {label}: {entity_id}")
        ctx.emit(current, changed=False, reason=f"already_{target.lower()}")
        return

    updated = await repository.update_status(entity_id, target)
    verb = "Activated" if target == "ACTIVE" else "Paused"
    ctx.formatter.success(f"{verb} {label}: {entity_id}")
    ctx.emit(updated, changed=True, reason="status_changed")


ENTITY_COLUMNS: Dict[str, List[Column]] = {
    "campaign": [
        ("id", "ID"),
        ("name", "Name"),
        ("status", "Status"),
        ("objective", "Objective"),
        ("daily_budget", "Daily Budget"),
    ],
    "adset": [
        ("id", "ID"),
        ("name", "Name"),
        ("status", "Status"),
        ("optimization_goal", "Optimization"),
        ("daily_budget", "Daily Budget"),
    ],
    "ad": [
        ("id", "ID"),
        ("name", "Name"),
        ("status", "Status"),
        ("effective_status", "Delivery"),
        ("adset_id", "Ad Set"),
    ],
}
