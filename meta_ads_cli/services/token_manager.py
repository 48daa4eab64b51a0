"""Access token validation through Graph's debug_token endpoint."""

import time
from datetime import datetime
from typing import List, Optional

import structlog

from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.models.schemas import TokenInfo
from meta_ads_cli.services.graph_client import GraphClient

logger = structlog.get_logger(__name__)

REQUIRED_PERMISSIONS = ("ads_management", "ads_read", "business_management")


class TokenManager:
    """Validates tokens before they are stored."""

    def __init__(self, client: GraphClient):
        self.client = client

    async def validate(self, token: Optional[str] = None) -> TokenInfo:
        """
        Inspect ``token`` (default: the client's own) with debug_token.

        Raises:
            CliError: AUTH_TOKEN_INVALID when Graph reports it invalid,
                AUTH_TOKEN_EXPIRED when its expiry is in the past.
        """
        token = token or self.client.access_token
        payload = await self.client.get("debug_token", {"input_token": token})

        data = payload.get("data")
        if not data:
            raise CliError(ErrorCode.AUTH_TOKEN_INVALID, "Invalid token response.")

        info = TokenInfo.model_validate(data)
        if not info.is_valid:
            raise CliError(ErrorCode.AUTH_TOKEN_INVALID, "Token is not valid.")
        if info.expires_at and info.expires_at < time.time():
            raise CliError(ErrorCode.AUTH_TOKEN_EXPIRED)

        logger.info("token_validated", app_id=info.app_id, user_id=info.user_id, scopes=len(info.scopes))
        return info


def missing_permissions(info: TokenInfo) -> List[str]:
    return [perm for perm in REQUIRED_PERMISSIONS if perm not in info.scopes]


def format_token_expiry(info: TokenInfo, now: Optional[float] = None) -> str:
    """Human readable expiry, e.g. "Expires in 12 days (2026-10-30)"."""
    if not info.expires_at:
        return "Never expires (System User token)"

    now = time.time() if now is None else now
    remaining = info.expires_at - now
    days = int(remaining // 86400)
    hours = int((remaining % 86400) // 3600)

    if days > 0:
        expires_on = datetime.fromtimestamp(info.expires_at).strftime("%Y-%m-%d")
        return f"Expires in {days} day{'s' if days > 1 else ''} ({expires_on})"
    if hours > 0:
        return f"Expires in {hours} hour{'s' if hours > 1 else ''}"
    return "Expires soon"
