import argparse

from meta_ads_cli.commands.base import CommandContext, GLOBAL_FLAGS
from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.services.fields import split_fields
from meta_ads_cli.services.repository import ListOptions, VideoRepository

VIDEO_COLUMNS = [
    ("id", "ID"),
    ("title", "Title"),
    ("length", "Length"),
    ("created_time", "Created"),
]


def register(subparsers) -> None:
    videos = subparsers.add_parser("advideos", help="Ad videos")
    commands = videos.add_subparsers(dest="action", required=True)

    list_cmd = commands.add_parser("list", parents=[GLOBAL_FLAGS], help="List uploaded videos")
    list_cmd.add_argument("-l", "--limit", type=int, default=25, help="Page size (default 25)")
    list_cmd.add_argument("--after", help="Pagination cursor")
    list_cmd.add_argument("--fields", help="Comma-separated fields to request")
    list_cmd.add_argument("--all", action="store_true", help="Fetch every page")
    list_cmd.set_defaults(handler=list_videos)

    get = commands.add_parser("get", parents=[GLOBAL_FLAGS], help="Get one video")
    get.add_argument("video_id")
    get.add_argument("--fields", help="Comma-separated fields to request")
    get.set_defaults(handler=get_video)

    upload = commands.add_parser("upload", parents=[GLOBAL_FLAGS], help="Upload a video from a file or URL")
    upload.add_argument("-f", "--file", help="Path to the video file")
    upload.add_argument("--url", help="Public URL Graph fetches the video from")
    upload.add_argument("-n", "--name", required=True, help="Name for the video")
    upload.set_defaults(handler=upload_video)


async def list_videos(ctx: CommandContext, args: argparse.Namespace) -> None:
    options = ListOptions(limit=args.limit, after=args.after, all=args.all, fields=split_fields(args.fields))
    result = await VideoRepository(ctx.client).list(options)
    ctx.emit(result.data, pagination=result.paging, columns=VIDEO_COLUMNS)


async def get_video(ctx: CommandContext, args: argparse.Namespace) -> None:
    video = await VideoRepository(ctx.client).get(args.video_id, split_fields(args.fields))
    ctx.emit(video)


async def upload_video(ctx: CommandContext, args: argparse.Namespace) -> None:
    if not args.file and not args.url:
        raise CliError(ErrorCode.MISSING_REQUIRED_FIELD, "Either --file or --url is required.")
    ctx.formatter.info(f"Uploading video: {args.name}...")
    video = await VideoRepository(ctx.client).upload(args.name, file_path=args.file, file_url=args.url)
    ctx.formatter.success(f"Uploaded video: {video.id}")
    ctx.emit(video)
