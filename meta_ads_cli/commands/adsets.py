import argparse

from meta_ads_cli.commands.base import (
    CommandContext,
    ENTITY_COLUMNS,
    GLOBAL_FLAGS,
    add_list_flags,
    parse_json_flag,
    toggle_status,
)
from meta_ads_cli.services.fields import split_fields
from meta_ads_cli.services.repository import AdSetRepository, ListOptions

BILLING_EVENTS = ("IMPRESSIONS", "LINK_CLICKS", "APP_INSTALLS", "PAGE_LIKES")


def register(subparsers) -> None:
    adsets = subparsers.add_parser("adsets", help="Ad sets")
    commands = adsets.add_subparsers(dest="action", required=True)

    list_cmd = commands.add_parser("list", parents=[GLOBAL_FLAGS], help="List ad sets")
    add_list_flags(list_cmd)
    list_cmd.add_argument("--campaign", dest="campaign_id", help="Only ad sets of this campaign")
    list_cmd.add_argument("--include-delivery", action="store_true", help="Add learning phase and issues info")
    list_cmd.set_defaults(handler=list_adsets)

    get = commands.add_parser("get", parents=[GLOBAL_FLAGS], help="Get one ad set")
    get.add_argument("adset_id")
    get.add_argument("--fields", help="Comma-separated fields to request")
    get.set_defaults(handler=get_adset)

    create = commands.add_parser("create", parents=[GLOBAL_FLAGS], help="Create an ad set (PAUSED by default)")
    create.add_argument("--campaign", dest="campaign_id", required=True, help="Parent campaign ID")
    create.add_argument("--name", required=True)
    create.add_argument("--billing-event", required=True, choices=BILLING_EVENTS)
    create.add_argument("--optimization-goal", required=True, help="e.g. LINK_CLICKS, LEAD_GENERATION")
    create.add_argument("--targeting", required=True, help="Targeting spec as JSON")
    create.add_argument("--status", choices=("ACTIVE", "PAUSED"), default="PAUSED")
    create.add_argument("--daily-budget", type=int, help="Daily budget in cents")
    create.add_argument("--lifetime-budget", type=int, help="Lifetime budget in cents")
    create.add_argument("--start-time", help="ISO 8601 start time")
    create.add_argument("--end-time", help="ISO 8601 end time")
    create.add_argument("--bid-amount", type=int, help="Bid amount in cents")
    create.set_defaults(handler=create_adset)

    update = commands.add_parser("update", parents=[GLOBAL_FLAGS], help="Update an ad set")
    update.add_argument("adset_id")
    update.add_argument("--name")
    update.add_argument("--status", choices=("ACTIVE", "PAUSED"))
    update.add_argument("--daily-budget", type=int, help="Daily budget in cents")
    update.add_argument("--lifetime-budget", type=int, help="Lifetime budget in cents")
    update.add_argument("--targeting", help="Targeting spec as JSON")
    update.add_argument("--bid-amount", type=int, help="Bid amount in cents")
    update.set_defaults(handler=update_adset)

    for action, handler in (("activate", activate_adset), ("pause", pause_adset)):
        toggle = commands.add_parser(action, parents=[GLOBAL_FLAGS], help=f"{action.title()} an ad set")
        toggle.add_argument("adset_id")
        toggle.set_defaults(handler=handler)


async def list_adsets(ctx: CommandContext, args: argparse.Namespace) -> None:
    options = ListOptions(
        limit=args.limit,
        after=args.after,
        all=args.all,
        fields=split_fields(args.fields),
        status=args.status,
        campaign_id=args.campaign_id,
        include_delivery=args.include_delivery,
    )
    result = await AdSetRepository(ctx.client).list(options)
    ctx.emit(result.data, pagination=result.paging, columns=ENTITY_COLUMNS["adset"])


async def get_adset(ctx: CommandContext, args: argparse.Namespace) -> None:
    adset = await AdSetRepository(ctx.client).get(args.adset_id, split_fields(args.fields))
    ctx.emit(adset)


async def create_adset(ctx: CommandContext, args: argparse.Namespace) -> None:
    adset = await AdSetRepository(ctx.client).create({
        "campaign_id": args.campaign_id,
        "name": args.name,
        "billing_event": args.billing_event,
        "optimization_goal": args.optimization_goal,
        "targeting": parse_json_flag(args.targeting, "--targeting"),
        "status": args.status,
        "daily_budget": args.daily_budget,
        "lifetime_budget": args.lifetime_budget,
        "start_time": args.start_time,
        "end_time": args.end_time,
        "bid_amount": args.bid_amount,
    })
    ctx.formatter.success(f"Created ad set: {adset.id}")
    ctx.emit(adset)


async def update_adset(ctx: CommandContext, args: argparse.Namespace) -> None:
    adset = await AdSetRepository(ctx.client).update(args.adset_id, {
        "name": args.name,
        "status": args.status,
        "daily_budget": args.daily_budget,
        "lifetime_budget": args.lifetime_budget,
        "targeting": parse_json_flag(args.targeting, "--targeting"),
        "bid_amount": args.bid_amount,
    })
    ctx.formatter.success(f"Updated ad set: {args.adset_id}")
    ctx.emit(adset)


async def activate_adset(ctx: CommandContext, args: argparse.Namespace) -> None:
    await toggle_status(ctx, AdSetRepository(ctx.client), args.adset_id, "ACTIVE", "ad set")


async def pause_adset(ctx: CommandContext, args: argparse.Namespace) -> None:
    await toggle_status(ctx, AdSetRepository(ctx.client), args.adset_id, "PAUSED", "ad set")
