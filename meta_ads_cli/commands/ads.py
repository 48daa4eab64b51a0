import argparse

from meta_ads_cli.commands.base import (
    CommandContext,
    ENTITY_COLUMNS,
    GLOBAL_FLAGS,
    add_list_flags,
    toggle_status,
)
from meta_ads_cli.services.fields import split_fields
from meta_ads_cli.services.repository import AdRepository, ListOptions

# effective_status values Graph accepts in an ads filter
AD_DELIVERY_STATUSES = (
    "ACTIVE",
    "PAUSED",
    "DELETED",
    "ARCHIVED",
    "PENDING_REVIEW",
    "DISAPPROVED",
    "PREAPPROVED",
    "PENDING_BILLING_INFO",
    "CAMPAIGN_PAUSED",
    "ADSET_PAUSED",
    "IN_PROCESS",
    "WITH_ISSUES",
)


def register(subparsers) -> None:
    ads = subparsers.add_parser("ads", help="Ads")
    commands = ads.add_subparsers(dest="action", required=True)

    list_cmd = commands.add_parser("list", parents=[GLOBAL_FLAGS], help="List ads")
    add_list_flags(list_cmd, AD_DELIVERY_STATUSES)
    list_cmd.add_argument("--campaign", dest="campaign_id", help="Only ads of this campaign")
    list_cmd.add_argument("--adset", dest="adset_id", help="Only ads of this ad set")
    list_cmd.add_argument("--include-delivery", action="store_true", help="Add delivery issues info")
    list_cmd.add_argument("--include-creative", action="store_true", help="Add the nested creative")
    list_cmd.set_defaults(handler=list_ads)

    get = commands.add_parser("get", parents=[GLOBAL_FLAGS], help="Get one ad")
    get.add_argument("ad_id")
    get.add_argument("--fields", help="Comma-separated fields to request")
    get.set_defaults(handler=get_ad)

    create = commands.add_parser("create", parents=[GLOBAL_FLAGS], help="Create an ad (PAUSED by default)")
    create.add_argument("--adset", dest="adset_id", required=True, help="Parent ad set ID")
    create.add_argument("--name", required=True)
    create.add_argument("--creative-id", required=True, help="Existing ad creative ID")
    create.add_argument("--status", choices=("ACTIVE", "PAUSED"), default="PAUSED")
    create.set_defaults(handler=create_ad)

    update = commands.add_parser("update", parents=[GLOBAL_FLAGS], help="Update an ad")
    update.add_argument("ad_id")
    update.add_argument("--name")
    update.add_argument("--status", choices=("ACTIVE", "PAUSED"))
    update.add_argument("--creative-id", help="Swap in another ad creative")
    update.set_defaults(handler=update_ad)

    for action, handler in (("activate", activate_ad), ("pause", pause_ad)):
        toggle = commands.add_parser(action, parents=[GLOBAL_FLAGS], help=f"{action.title()} an ad")
        toggle.add_argument("ad_id")
        toggle.set_defaults(handler=handler)


def creative_ref(creative_id):
    return {"creative_id": creative_id} if creative_id else None


async def list_ads(ctx: CommandContext, args: argparse.Namespace) -> None:
    options = ListOptions(
        limit=args.limit,
        after=args.after,
        all=args.all,
        fields=split_fields(args.fields),
        status=args.status,
        campaign_id=args.campaign_id,
        adset_id=args.adset_id,
        include_delivery=args.include_delivery,
        include_creative=args.include_creative,
    )
    result = await AdRepository(ctx.client).list(options)
    ctx.emit(result.data, pagination=result.paging, columns=ENTITY_COLUMNS["ad"])


async def get_ad(ctx: CommandContext, args: argparse.Namespace) -> None:
    ad = await AdRepository(ctx.client).get(args.ad_id, split_fields(args.fields))
    ctx.emit(ad)


async def create_ad(ctx: CommandContext, args: argparse.Namespace) -> None:
    ad = await AdRepository(ctx.client).create({
        "adset_id": args.adset_id,
        "name": args.name,
        "creative": creative_ref(args.creative_id),
        "status": args.status,
    })
    ctx.formatter.success(f"Created ad: {ad.id}")
    ctx.emit(ad)


async def update_ad(ctx: CommandContext, args: argparse.Namespace) -> None:
    ad = await AdRepository(ctx.client).update(args.ad_id, {
        "name": args.name,
        "status": args.status,
        "creative": creative_ref(args.creative_id),
    })
    ctx.formatter.success(f"Updated ad: {args.ad_id}")
    ctx.emit(ad)


async def activate_ad(ctx: CommandContext, args: argparse.Namespace) -> None:
    await toggle_status(ctx, AdRepository(ctx.client), args.ad_id, "ACTIVE", "ad")


async def pause_ad(ctx: CommandContext, args: argparse.Namespace) -> None:
    await toggle_status(ctx, AdRepository(ctx.client), args.ad_id, "PAUSED", "ad")
