import argparse
import getpass
import sys

from meta_ads_cli.commands.base import CommandContext, GLOBAL_FLAGS
from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.services.token_manager import TokenManager, format_token_expiry, missing_permissions

TOKEN_HELP = """
To get an access token:
1. Go to Meta Business Suite > Business Settings
2. Navigate to Users > System Users
3. Generate a token with ads_management and ads_read permissions
"""


def register(subparsers) -> None:
    auth = subparsers.add_parser("auth", help="Authentication")
    commands = auth.add_subparsers(dest="action", required=True)

    login = commands.add_parser("login", parents=[GLOBAL_FLAGS], help="Validate and store an access token")
    login.set_defaults(handler=login_token)

    logout = commands.add_parser("logout", parents=[GLOBAL_FLAGS], help="Remove the stored access token")
    logout.set_defaults(handler=logout_token)

    status = commands.add_parser("status", parents=[GLOBAL_FLAGS], help="Check the configured access token")
    status.set_defaults(handler=token_status)


def prompt_for_token() -> str:
    print(TOKEN_HELP, file=sys.stderr)
    return getpass.getpass("Enter your access token: ").strip()


async def login_token(ctx: CommandContext, args: argparse.Namespace) -> None:
    token = args.token or prompt_for_token()
    if not token:
        raise CliError(ErrorCode.AUTH_NOT_CONFIGURED, "No access token provided.")

    ctx.formatter.info("Validating token...")
    info = await TokenManager(ctx.client_for(token)).validate()

    missing = missing_permissions(info)
    if missing:
        ctx.formatter.warn(f"Token is missing recommended permissions: {', '.join(missing)}")

    ctx.config.store.set("access_token", token)
    ctx.formatter.success("Token saved to config")
    ctx.emit({
        "message": "Successfully authenticated",
        "token_type": info.type,
        "app": info.application,
        "expires": format_token_expiry(info),
        "scopes": info.scopes,
    })


async def logout_token(ctx: CommandContext, args: argparse.Namespace) -> None:
    ctx.config.store.delete("access_token")
    ctx.formatter.success("Access token removed from config")
    ctx.emit({"message": "Successfully logged out"})


async def token_status(ctx: CommandContext, args: argparse.Namespace) -> None:
    if not ctx.config.access_token():
        raise CliError(
            ErrorCode.AUTH_NOT_CONFIGURED,
            "No access token configured. Run `meta-ads auth login` to authenticate.",
        )

    info = await TokenManager(ctx.client).validate()
    missing = missing_permissions(info)
    status = {
        "authenticated": True,
        "token_type": info.type,
        "app_id": info.app_id,
        "app": info.application,
        "expires": format_token_expiry(info),
        "scopes": info.scopes,
        "has_required_permissions": not missing,
    }
    if missing:
        status["missing_permissions"] = missing
    ctx.emit(status)
