import argparse

from meta_ads_cli.commands.base import CommandContext, GLOBAL_FLAGS
from meta_ads_cli.config import CONFIG_KEYS


def register(subparsers) -> None:
    config = subparsers.add_parser("config", help="Stored configuration")
    commands = config.add_subparsers(dest="action", required=True)

    get = commands.add_parser("get", parents=[GLOBAL_FLAGS], help="Show one stored value")
    get.add_argument("key", choices=CONFIG_KEYS)
    get.set_defaults(handler=get_value)

    set_cmd = commands.add_parser("set", parents=[GLOBAL_FLAGS], help="Store a value")
    set_cmd.add_argument("key", choices=CONFIG_KEYS)
    set_cmd.add_argument("value")
    set_cmd.set_defaults(handler=set_value)

    list_cmd = commands.add_parser("list", parents=[GLOBAL_FLAGS], help="Show the stored configuration")
    list_cmd.set_defaults(handler=list_values)


async def get_value(ctx: CommandContext, args: argparse.Namespace) -> None:
    ctx.emit({"key": args.key, "value": ctx.config.store.get(args.key)})


async def set_value(ctx: CommandContext, args: argparse.Namespace) -> None:
    value = ctx.config.store.set(args.key, args.value)
    ctx.formatter.success(f"Set {args.key} to {value}")
    ctx.emit({"key": args.key, "value": value, "message": f"Set {args.key} to {value}"})


async def list_values(ctx: CommandContext, args: argparse.Namespace) -> None:
    ctx.emit({
        "config": ctx.config.store.list_masked(),
        "effective": ctx.config.all(),
        "path": str(ctx.config.store.path),
    })
