import argparse

from meta_ads_cli.commands.base import (
    CommandContext,
    ENTITY_COLUMNS,
    GLOBAL_FLAGS,
    add_list_flags,
    split_csv,
    toggle_status,
)
from meta_ads_cli.services.fields import split_fields
from meta_ads_cli.services.repository import CampaignRepository, ListOptions

OBJECTIVES = (
    "OUTCOME_AWARENESS",
    "OUTCOME_ENGAGEMENT",
    "OUTCOME_LEADS",
    "OUTCOME_SALES",
    "OUTCOME_TRAFFIC",
    "OUTCOME_APP_PROMOTION",
)

SPECIAL_AD_CATEGORIES = ("NONE", "EMPLOYMENT", "HOUSING", "CREDIT", "ISSUES_ELECTIONS_POLITICS")


def register(subparsers) -> None:
    campaigns = subparsers.add_parser("campaigns", help="Campaigns")
    commands = campaigns.add_subparsers(dest="action", required=True)

    list_cmd = commands.add_parser("list", parents=[GLOBAL_FLAGS], help="List campaigns")
    add_list_flags(list_cmd)
    list_cmd.set_defaults(handler=list_campaigns)

    get = commands.add_parser("get", parents=[GLOBAL_FLAGS], help="Get one campaign")
    get.add_argument("campaign_id")
    get.add_argument("--fields", help="Comma-separated fields to request")
    get.set_defaults(handler=get_campaign)

    create = commands.add_parser("create", parents=[GLOBAL_FLAGS], help="Create a campaign (PAUSED by default)")
    create.add_argument("--name", required=True)
    create.add_argument("--objective", required=True, choices=OBJECTIVES)
    create.add_argument("--status", choices=("ACTIVE", "PAUSED"), default="PAUSED")
    create.add_argument("--daily-budget", type=int, help="Daily budget in cents")
    create.add_argument("--lifetime-budget", type=int, help="Lifetime budget in cents")
    create.add_argument(
        "--special-ad-categories",
        help=f"Comma-separated, any of {', '.join(SPECIAL_AD_CATEGORIES)}",
    )
    create.set_defaults(handler=create_campaign)

    update = commands.add_parser("update", parents=[GLOBAL_FLAGS], help="Update a campaign")
    update.add_argument("campaign_id")
    update.add_argument("--name")
    update.add_argument("--status", choices=("ACTIVE", "PAUSED"))
    update.add_argument("--daily-budget", type=int, help="Daily budget in cents")
    update.add_argument("--lifetime-budget", type=int, help="Lifetime budget in cents")
    update.set_defaults(handler=update_campaign)

    for action, handler in (("activate", activate_campaign), ("pause", pause_campaign)):
        toggle = commands.add_parser(action, parents=[GLOBAL_FLAGS], help=f"{action.title()} a campaign")
        toggle.add_argument("campaign_id")
        toggle.set_defaults(handler=handler)


async def list_campaigns(ctx: CommandContext, args: argparse.Namespace) -> None:
    options = ListOptions(
        limit=args.limit,
        after=args.after,
        all=args.all,
        fields=split_fields(args.fields),
        status=args.status,
    )
    result = await CampaignRepository(ctx.client).list(options)
    ctx.emit(result.data, pagination=result.paging, columns=ENTITY_COLUMNS["campaign"])


async def get_campaign(ctx: CommandContext, args: argparse.Namespace) -> None:
    campaign = await CampaignRepository(ctx.client).get(args.campaign_id, split_fields(args.fields))
    ctx.emit(campaign)


async def create_campaign(ctx: CommandContext, args: argparse.Namespace) -> None:
    campaign = await CampaignRepository(ctx.client).create({
        "name": args.name,
        "objective": args.objective,
        "status": args.status,
        "daily_budget": args.daily_budget,
        "lifetime_budget": args.lifetime_budget,
        "special_ad_categories": split_csv(args.special_ad_categories),
    })
    ctx.formatter.success(f"Created campaign: {campaign.id}")
    ctx.emit(campaign)


async def update_campaign(ctx: CommandContext, args: argparse.Namespace) -> None:
    campaign = await CampaignRepository(ctx.client).update(args.campaign_id, {
        "name": args.name,
        "status": args.status,
        "daily_budget": args.daily_budget,
        "lifetime_budget": args.lifetime_budget,
    })
    ctx.formatter.success(f"Updated campaign: {args.campaign_id}")
    ctx.emit(campaign)


async def activate_campaign(ctx: CommandContext, args: argparse.Namespace) -> None:
    await toggle_status(ctx, CampaignRepository(ctx.client), args.campaign_id, "ACTIVE", "campaign")


async def pause_campaign(ctx: CommandContext, args: argparse.Namespace) -> None:
    await toggle_status(ctx, CampaignRepository(ctx.client), args.campaign_id, "PAUSED", "campaign")
