"""
``insights get``: raw Graph rows, or the flattened / compact / summary views.

The entity lookups needed by --active-only and --with-context run
concurrently with the insights request, as do the two periods of --compare.
"""

import argparse
import asyncio
from typing import Dict, List, Optional

import structlog

from meta_ads_cli.commands.base import CommandContext, GLOBAL_FLAGS, split_csv
from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.models.schemas import FlatInsight, InsightRecord
from meta_ads_cli.services import insights as transform
from meta_ads_cli.services.fields import split_fields
from meta_ads_cli.services.periods import DATE_PRESETS, DateRange, PeriodSpec, parse_compare, validate_preset
from meta_ads_cli.services.repository import (
    AdRepository,
    AdSetRepository,
    CampaignRepository,
    InsightsQuery,
    InsightsRepository,
    ListOptions,
)

logger = structlog.get_logger(__name__)

LEVELS = ("account", "campaign", "adset", "ad")

CONTEXT_REPOSITORIES = {
    "campaign": CampaignRepository,
    "adset": AdSetRepository,
    "ad": AdRepository,
}

RAW_COLUMNS = [
    ("date_start", "Start"),
    ("date_stop", "End"),
    ("impressions", "Impressions"),
    ("clicks", "Clicks"),
    ("spend", "Spend"),
    ("ctr", "CTR"),
]

FLAT_COLUMNS = [
    ("spend", "Spend"),
    ("impressions", "Impressions"),
    ("clicks", "Clicks"),
    ("results", "Results"),
    ("result_type", "Result Type"),
    ("cost_per_result", "Cost/Result"),
]


def register(subparsers) -> None:
    insights = subparsers.add_parser("insights", help="Performance insights")
    commands = insights.add_subparsers(dest="action", required=True)

    get = commands.add_parser("get", parents=[GLOBAL_FLAGS], help="Fetch insights")
    get.add_argument("--level", required=True, choices=LEVELS, help="Aggregation level")
    get.add_argument("--date-preset", choices=DATE_PRESETS, help="Date preset (e.g. last_7d)")
    get.add_argument("--date-range", help="Explicit range YYYY-MM-DD:YYYY-MM-DD")
    get.add_argument("--breakdowns", help="Comma-separated breakdowns (age, gender, country, ...)")
    get.add_argument("--fields", help="Comma-separated fields replacing the default selection")
    get.add_argument("--extra-fields", help="Comma-separated fields added to the default selection")
    get.add_argument("-l", "--limit", type=int, default=25, help="Maximum rows (default 25)")
    get.add_argument("--all", action="store_true", help="Fetch every page")
    get.add_argument("--video-metrics", action="store_true", help="Include video plays and thruplays")

    views = get.add_argument_group("views")
    views.add_argument("--flatten", action="store_true", help="One flat record per row with the primary result")
    views.add_argument("--compact", action="store_true", help="Only name, id, spend, results, cost per result")
    views.add_argument("--summary", action="store_true", help="Totals, averages, best and worst performers")
    views.add_argument("--breakdowns-summary", action="store_true", help="Totals per breakdown value")
    views.add_argument("--compare", help="Compare two periods, e.g. last_7d:previous_7d")

    shaping = get.add_argument_group("filters and sorting")
    shaping.add_argument("--sort-by", help="Sort by a numeric field (cost fields ascending)")
    shaping.add_argument("--top", type=int, help="Keep the first N rows after sorting")
    shaping.add_argument("--bottom", type=int, help="Keep the last N rows after sorting")
    shaping.add_argument("--min-spend", type=float, help="Minimum spend")
    shaping.add_argument("--min-impressions", type=int, help="Minimum impressions")
    shaping.add_argument("--min-results", type=float, help="Minimum results")
    shaping.add_argument("--result-type", help="Only rows whose result type matches")
    shaping.add_argument("--active-only", action="store_true", help="Only entities whose delivery status is ACTIVE")
    shaping.add_argument("--with-context", action="store_true", help="Attach status and budgets")
    shaping.add_argument("--include-objective", action="store_true", help="Attach the campaign objective's result")
    get.set_defaults(handler=get_insights)


def wants_flat(args: argparse.Namespace) -> bool:
    """Any derived view, filter or sort works on flattened rows."""
    return any((
        args.flatten,
        args.compact,
        args.summary,
        args.breakdowns_summary,
        args.sort_by,
        args.top,
        args.bottom,
        args.min_spend is not None,
        args.min_impressions is not None,
        args.min_results is not None,
        args.result_type,
        args.active_only,
        args.with_context,
        args.include_objective,
    ))


def parse_date_range(value: Optional[str]) -> Optional[DateRange]:
    if not value:
        return None
    since, sep, until = value.partition(":")
    if not sep:
        raise CliError(ErrorCode.INVALID_PARAMETER, "Date range must be YYYY-MM-DD:YYYY-MM-DD.")
    return DateRange.parse(since, until)


def build_query(args: argparse.Namespace, period: Optional[PeriodSpec] = None) -> InsightsQuery:
    extra = split_fields(args.extra_fields) or []
    if args.include_objective and args.level != "account" and "objective" not in extra:
        extra.append("objective")

    if period is not None:
        date_preset, time_range = period.preset, period.time_range
    else:
        date_preset, time_range = args.date_preset, parse_date_range(args.date_range)
        if date_preset and time_range:
            raise CliError(ErrorCode.INVALID_PARAMETER, "Use either --date-preset or --date-range, not both.")
        if date_preset:
            validate_preset(date_preset)

    if args.limit is not None and args.limit < 1:
        raise CliError(ErrorCode.INVALID_PARAMETER, "--limit must be at least 1.")

    return InsightsQuery(
        level=args.level,
        date_preset=date_preset,
        time_range=time_range,
        fields=split_fields(args.fields),
        extra_fields=extra,
        breakdowns=split_csv(args.breakdowns) or [],
        limit=args.limit,
        include_video=args.video_metrics,
        all=args.all,
    )


async def fetch_entity_context(ctx: CommandContext, level: str) -> Dict[str, Dict[str, Optional[str]]]:
    """Delivery status and budgets of every entity at ``level``, keyed by ID."""
    repository = CONTEXT_REPOSITORIES[level](ctx.client)
    listed = await repository.list(ListOptions(all=True))
    context = {}
    for entity in listed.data:
        context[entity.id] = {
            "status": entity.effective_status,
            "daily_budget": getattr(entity, "daily_budget", None),
            "lifetime_budget": getattr(entity, "lifetime_budget", None),
        }
    logger.debug("entity_context_loaded", level=level, entities=len(context))
    return context


def attach_context(
    rows: List[FlatInsight],
    level: str,
    context: Dict[str, Dict[str, Optional[str]]],
    active_only: bool,
) -> List[FlatInsight]:
    attached = []
    for row in rows:
        values = context.get(row.entity_id(level) or "", {})
        row = row.model_copy(update={key: value for key, value in values.items() if value is not None})
        if active_only and row.status != "ACTIVE":
            continue
        attached.append(row)
    return attached


async def get_insights(ctx: CommandContext, args: argparse.Namespace) -> None:
    if args.top is not None and args.top < 1 or args.bottom is not None and args.bottom < 1:
        raise CliError(ErrorCode.INVALID_PARAMETER, "--top and --bottom must be at least 1.")

    repository = InsightsRepository(ctx.client)

    if args.compare:
        await compare(ctx, args, repository)
        return

    query = build_query(args)
    if not wants_flat(args):
        records: List[InsightRecord] = await repository.fetch(query)
        ctx.emit(records, columns=RAW_COLUMNS)
        return

    needs_context = (args.active_only or args.with_context) and args.level != "account"
    if (args.active_only or args.with_context) and not needs_context:
        ctx.formatter.warn("--active-only and --with-context have no effect at account level.")

    if needs_context:
        records, context = await asyncio.gather(
            repository.fetch(query),
            fetch_entity_context(ctx, args.level),
        )
    else:
        records, context = await repository.fetch(query), {}

    rows = transform.flatten_insights(records, breakdowns=query.breakdowns, include_objective=args.include_objective)
    if needs_context:
        rows = attach_context(rows, args.level, context, args.active_only)

    rows = transform.filter_insights(
        rows,
        min_spend=args.min_spend,
        min_impressions=args.min_impressions,
        min_results=args.min_results,
        result_type=args.result_type,
    )
    if args.sort_by:
        rows = transform.sort_insights(rows, args.sort_by)
    if args.top or args.bottom:
        rows = transform.select_top_bottom(rows, args.level, args.top, args.bottom)

    if args.summary:
        ctx.emit(transform.summarize(rows, args.level))
    elif args.breakdowns_summary:
        if not query.breakdowns:
            raise CliError(ErrorCode.MISSING_REQUIRED_FIELD, "--breakdowns-summary needs --breakdowns.")
        ctx.emit(transform.summarize_breakdowns(rows, query.breakdowns))
    elif args.compact:
        ctx.emit([transform.to_compact(row, args.level) for row in rows])
    else:
        name_key = f"{args.level}_name"
        ctx.emit(rows, columns=[(name_key, "Name")] + FLAT_COLUMNS)


async def compare(ctx: CommandContext, args: argparse.Namespace, repository: InsightsRepository) -> None:
    if args.date_preset or args.date_range:
        raise CliError(ErrorCode.INVALID_PARAMETER, "--compare sets its own periods; drop --date-preset / --date-range.")

    plan = parse_compare(args.compare)
    if plan.warning:
        ctx.formatter.warn(plan.warning)

    current_query = build_query(args, plan.current)
    previous_query = build_query(args, plan.previous)
    current, previous = await asyncio.gather(
        repository.fetch(current_query),
        repository.fetch(previous_query),
    )

    comparison = transform.compare_periods(
        transform.flatten_insights(current, breakdowns=current_query.breakdowns),
        transform.flatten_insights(previous, breakdowns=previous_query.breakdowns),
        current_range=plan.current.time_range,
        previous_range=plan.previous.time_range,
        warning=plan.warning,
    )
    logger.info("periods_compared", current=plan.current.label, previous=plan.previous.label, trend=comparison.trend)
    ctx.emit(comparison)
