import argparse

from meta_ads_cli.commands.base import CommandContext, GLOBAL_FLAGS
from meta_ads_cli.services.fields import split_fields
from meta_ads_cli.services.repository import ImageRepository, ListOptions

IMAGE_COLUMNS = [
    ("hash", "Hash"),
    ("name", "Name"),
    ("width", "Width"),
    ("height", "Height"),
    ("created_time", "Created"),
]


def register(subparsers) -> None:
    images = subparsers.add_parser("adimages", help="Ad images")
    commands = images.add_subparsers(dest="action", required=True)

    list_cmd = commands.add_parser("list", parents=[GLOBAL_FLAGS], help="List uploaded images")
    list_cmd.add_argument("-l", "--limit", type=int, default=25, help="Page size (default 25)")
    list_cmd.add_argument("--after", help="Pagination cursor")
    list_cmd.add_argument("--fields", help="Comma-separated fields to request")
    list_cmd.add_argument("--all", action="store_true", help="Fetch every page")
    list_cmd.set_defaults(handler=list_images)

    upload = commands.add_parser("upload", parents=[GLOBAL_FLAGS], help="Upload an image file")
    upload.add_argument("file", help="Path to the image")
    upload.add_argument("-n", "--name", help="Name for the image (default: file name)")
    upload.set_defaults(handler=upload_image)


async def list_images(ctx: CommandContext, args: argparse.Namespace) -> None:
    options = ListOptions(limit=args.limit, after=args.after, all=args.all, fields=split_fields(args.fields))
    result = await ImageRepository(ctx.client).list(options)
    ctx.emit(result.data, pagination=result.paging, columns=IMAGE_COLUMNS)


async def upload_image(ctx: CommandContext, args: argparse.Namespace) -> None:
    ctx.formatter.info(f"Uploading {args.file}...")
    image = await ImageRepository(ctx.client).upload(args.file, args.name)
    ctx.formatter.success(f"Uploaded image: {image.hash}")
    ctx.emit(image)
