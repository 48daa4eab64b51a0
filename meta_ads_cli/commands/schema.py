import argparse

from meta_ads_cli.commands.base import CommandContext, GLOBAL_FLAGS
from meta_ads_cli.services.schema_data import SCHEMA_TYPES, build_schema

LEVELS = ("account", "campaign", "adset", "ad")


def register(subparsers) -> None:
    schema = subparsers.add_parser(
        "schema",
        parents=[GLOBAL_FLAGS],
        help="Discover insight fields, breakdowns, presets, action types and objectives",
    )
    schema.add_argument("type", nargs="?", default="all", choices=SCHEMA_TYPES)
    schema.add_argument("--level", choices=LEVELS, default="ad", help="Level for the fields section")
    schema.add_argument("--compact", action="store_true", help="Only names, no descriptions")
    schema.set_defaults(handler=show_schema)


async def show_schema(ctx: CommandContext, args: argparse.Namespace) -> None:
    ctx.emit(build_schema(args.type, level=args.level, compact=args.compact))
