import argparse
from typing import Any, Dict, Optional

from meta_ads_cli.commands.base import CommandContext, GLOBAL_FLAGS
from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.services.fields import split_fields
from meta_ads_cli.services.repository import CreativeRepository, ListOptions

CTA_TYPES = (
    "LEARN_MORE",
    "SHOP_NOW",
    "SIGN_UP",
    "SUBSCRIBE",
    "WATCH_MORE",
    "APPLY_NOW",
    "BOOK_NOW",
    "CONTACT_US",
    "DOWNLOAD",
    "GET_OFFER",
    "GET_QUOTE",
    "ORDER_NOW",
)

CREATIVE_COLUMNS = [
    ("id", "ID"),
    ("name", "Name"),
    ("title", "Title"),
    ("call_to_action_type", "CTA"),
]


def register(subparsers) -> None:
    creatives = subparsers.add_parser("adcreatives", help="Ad creatives")
    commands = creatives.add_subparsers(dest="action", required=True)

    list_cmd = commands.add_parser("list", parents=[GLOBAL_FLAGS], help="List ad creatives")
    list_cmd.add_argument("-l", "--limit", type=int, default=25, help="Page size (default 25)")
    list_cmd.add_argument("--after", help="Pagination cursor")
    list_cmd.add_argument("--fields", help="Comma-separated fields to request")
    list_cmd.add_argument("--all", action="store_true", help="Fetch every page")
    list_cmd.set_defaults(handler=list_creatives)

    get = commands.add_parser("get", parents=[GLOBAL_FLAGS], help="Get one ad creative")
    get.add_argument("creative_id")
    get.add_argument("--fields", help="Comma-separated fields to request")
    get.set_defaults(handler=get_creative)

    create = commands.add_parser("create", parents=[GLOBAL_FLAGS], help="Create an image or video creative")
    create.add_argument("--name", required=True)
    create.add_argument("--page-id", required=True, help="Facebook Page ID")
    create.add_argument("--link", help="Destination URL")
    create.add_argument("--message", help="Primary text")
    create.add_argument("--image-hash", help="Image hash from adimages upload")
    create.add_argument("--video-id", help="Video ID from advideos upload")
    create.add_argument("--title", help="Headline (video creatives)")
    create.add_argument("--cta", choices=CTA_TYPES, help="Call to action type")
    create.set_defaults(handler=create_creative)


def _without_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def object_story_spec(
    page_id: str,
    link: Optional[str] = None,
    message: Optional[str] = None,
    image_hash: Optional[str] = None,
    video_id: Optional[str] = None,
    title: Optional[str] = None,
    cta: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the creative's object_story_spec.

    A video ID makes a video creative (the image hash becomes its thumbnail);
    otherwise it is a link creative around the image. The call to action
    needs both a type and a link.
    """
    if not image_hash and not video_id:
        raise CliError(ErrorCode.MISSING_REQUIRED_FIELD, "Either --image-hash or --video-id is required.")

    call_to_action = {"type": cta, "value": {"link": link}} if cta and link else None

    if video_id:
        return {
            "page_id": page_id,
            "video_data": _without_none({
                "video_id": video_id,
                "image_hash": image_hash,
                "title": title,
                "message": message,
                "call_to_action": call_to_action,
            }),
        }

    return {
        "page_id": page_id,
        "link_data": _without_none({
            "link": link or "",
            "message": message,
            "image_hash": image_hash,
            "call_to_action": call_to_action,
        }),
    }


async def list_creatives(ctx: CommandContext, args: argparse.Namespace) -> None:
    options = ListOptions(limit=args.limit, after=args.after, all=args.all, fields=split_fields(args.fields))
    result = await CreativeRepository(ctx.client).list(options)
    ctx.emit(result.data, pagination=result.paging, columns=CREATIVE_COLUMNS)


async def get_creative(ctx: CommandContext, args: argparse.Namespace) -> None:
    creative = await CreativeRepository(ctx.client).get(args.creative_id, split_fields(args.fields))
    ctx.emit(creative)


async def create_creative(ctx: CommandContext, args: argparse.Namespace) -> None:
    spec = object_story_spec(
        page_id=args.page_id,
        link=args.link,
        message=args.message,
        image_hash=args.image_hash,
        video_id=args.video_id,
        title=args.title,
        cta=args.cta,
    )
    creative = await CreativeRepository(ctx.client).create({"name": args.name, "object_story_spec": spec})
    ctx.formatter.success(f"Created creative: {creative.id}")
    ctx.emit(creative)
