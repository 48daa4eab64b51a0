import argparse

from meta_ads_cli.commands.base import CommandContext, GLOBAL_FLAGS
from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.services.graph_client import normalize_account_id
from meta_ads_cli.services.fields import split_fields
from meta_ads_cli.services.repository import AccountRepository, ListOptions

ACCOUNT_COLUMNS = [
    ("id", "ID"),
    ("name", "Name"),
    ("account_status", "Status"),
    ("currency", "Currency"),
    ("amount_spent", "Spent"),
]


def register(subparsers) -> None:
    accounts = subparsers.add_parser("accounts", help="Ad accounts")
    commands = accounts.add_subparsers(dest="action", required=True)

    list_cmd = commands.add_parser("list", parents=[GLOBAL_FLAGS], help="List ad accounts you can access")
    list_cmd.add_argument("-l", "--limit", type=int, default=25, help="Page size (default 25)")
    list_cmd.add_argument("--after", help="Pagination cursor")
    list_cmd.add_argument("--fields", help="Comma-separated fields to request")
    list_cmd.add_argument("--all", action="store_true", help="Fetch every page")
    list_cmd.set_defaults(handler=list_accounts)

    get = commands.add_parser("get", parents=[GLOBAL_FLAGS], help="Get one ad account")
    get.add_argument("account_id", nargs="?", help="Ad account ID (default: configured account)")
    get.add_argument("--fields", help="Comma-separated fields to request")
    get.set_defaults(handler=get_account)

    switch = commands.add_parser("switch", parents=[GLOBAL_FLAGS], help="Set the default ad account")
    switch.add_argument("account_id", help="Ad account ID (e.g. act_123456789)")
    switch.set_defaults(handler=switch_account)


async def list_accounts(ctx: CommandContext, args: argparse.Namespace) -> None:
    options = ListOptions(limit=args.limit, after=args.after, all=args.all, fields=split_fields(args.fields))
    result = await AccountRepository(ctx.client).list(options)
    ctx.emit(result.data, pagination=result.paging, columns=ACCOUNT_COLUMNS)


async def get_account(ctx: CommandContext, args: argparse.Namespace) -> None:
    account_id = args.account_id or ctx.config.account_id()
    if not account_id:
        raise CliError(ErrorCode.CONFIG_NOT_FOUND, "No account ID given and no default account configured.")
    account = await AccountRepository(ctx.client).get(account_id, split_fields(args.fields))
    ctx.emit(account)


async def switch_account(ctx: CommandContext, args: argparse.Namespace) -> None:
    account_id = normalize_account_id(args.account_id)
    ctx.config.store.set("account_id", account_id)
    ctx.formatter.success(f"Default account set to {account_id}")
    ctx.emit({"message": f"Default account set to {account_id}", "account_id": account_id})
