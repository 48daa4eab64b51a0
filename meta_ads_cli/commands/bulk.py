"""Batch status changes and JSON exports."""

import argparse
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

import structlog

from meta_ads_cli.commands.base import ENTITY_STATUSES, CommandContext, GLOBAL_FLAGS, split_csv
from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.models.envelope import to_plain
from meta_ads_cli.services.repository import AdRepository, AdSetRepository, CampaignRepository, ListOptions

logger = structlog.get_logger(__name__)

STATUS_REPOSITORIES = {
    "campaign": CampaignRepository,
    "adset": AdSetRepository,
    "ad": AdRepository,
}

EXPORT_REPOSITORIES = {
    "campaigns": CampaignRepository,
    "adsets": AdSetRepository,
    "ads": AdRepository,
}

RESULT_COLUMNS = [("id", "ID"), ("success", "Success"), ("error", "Error")]


def register(subparsers) -> None:
    bulk = subparsers.add_parser("bulk", help="Batch operations")
    commands = bulk.add_subparsers(dest="action", required=True)

    for action, target in (("activate", "ACTIVE"), ("pause", "PAUSED")):
        toggle = commands.add_parser(action, parents=[GLOBAL_FLAGS], help=f"{action.title()} several entities")
        toggle.add_argument("--type", required=True, choices=tuple(STATUS_REPOSITORIES))
        toggle.add_argument("--ids", required=True, help="Comma-separated entity IDs")
        toggle.set_defaults(handler=bulk_status, target_status=target)

    export = commands.add_parser("export", parents=[GLOBAL_FLAGS], help="Export entities to a JSON file")
    export.add_argument("--type", required=True, choices=tuple(EXPORT_REPOSITORIES))
    export.add_argument("-s", "--status", choices=ENTITY_STATUSES, help="Filter by status")
    export.add_argument("-f", "--output-file", required=True, help="Where to write the JSON")
    export.add_argument("-l", "--limit", type=int, default=100, help="Maximum entities (default 100)")
    export.add_argument("--all", action="store_true", help="Export every page")
    export.set_defaults(handler=bulk_export)


async def bulk_status(ctx: CommandContext, args: argparse.Namespace) -> None:
    """
    Set the status of every ID in turn.

    A failure is recorded against its ID and the batch carries on; the
    envelope lists one ``{id, success, error?}`` entry per ID.
    """
    ids = split_csv(args.ids)
    if not ids:
        raise CliError(ErrorCode.MISSING_REQUIRED_FIELD, "--ids needs at least one ID.")

    repository = STATUS_REPOSITORIES[args.type](ctx.client)
    results: List[Dict[str, Any]] = []
    for entity_id in ids:
        try:
            await repository.update_status(entity_id, args.target_status)
            results.append({"id": entity_id, "success": True})
        except CliError as e:
            logger.warning("bulk_item_failed", id=entity_id, code=e.code.value, message=e.message)
            results.append({"id": entity_id, "success": False, "error": e.message})

    succeeded = sum(1 for r in results if r["success"])
    verb = "Activated" if args.target_status == "ACTIVE" else "Paused"
    ctx.formatter.success(f"{verb} {succeeded}/{len(ids)} {args.type}s")
    ctx.emit(results, columns=RESULT_COLUMNS)


async def bulk_export(ctx: CommandContext, args: argparse.Namespace) -> None:
    repository = EXPORT_REPOSITORIES[args.type](ctx.client)
    result = await repository.list(ListOptions(limit=args.limit, status=args.status, all=args.all))
    data = to_plain(result.data)

    path = Path(args.output_file).expanduser()
    document = {
        "data": data,
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "count": len(data),
    }
    path.write_text(json.dumps(document, indent=2, default=str) + "\n", encoding="utf-8")
    logger.info("entities_exported", kind=args.type, count=len(data), path=str(path))

    ctx.formatter.success(f"Exported {len(data)} {args.type} to {path}")
    ctx.emit({"file": str(path), "count": len(data)})
