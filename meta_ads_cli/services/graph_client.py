"""
Async transport for the Meta Graph API.

Reads are GETs with the access token in the query string; writes are
form-encoded POSTs with the token in the body. Graph reports failures as an
``{"error": {...}}`` payload, sometimes inside a 200 response, so every
payload is inspected before it is handed back.
"""

import json
import re
from typing import Any, Dict, Optional

import httpx
import structlog

from meta_ads_cli.errors import CliError, ErrorCode, map_graph_error, map_transport_error
from meta_ads_cli.models.envelope import RateLimitInfo

logger = structlog.get_logger(__name__)

GRAPH_URL = "https://graph.facebook.com"
DEFAULT_API_VERSION = "v22.0"
DEFAULT_TIMEOUT = 30.0
RATE_LIMIT_HEADER = "x-business-use-case-usage"

_ACCOUNT_ID_RE = re.compile(r"^(act_)?(\d+)$")


def normalize_account_id(account_id: str) -> str:
    """Return ``act_<digits>`` for ``act_<digits>`` or bare ``<digits>``."""
    match = _ACCOUNT_ID_RE.match(account_id.strip())
    if not match:
        raise CliError(
            ErrorCode.INVALID_ACCOUNT_ID,
            f'Invalid ad account ID "{account_id}". Expected "act_<digits>".',
        )
    return f"act_{match.group(2)}"


def encode_params(values: Dict[str, Any]) -> Dict[str, str]:
    """Flatten request values: None is dropped, dicts/lists become JSON."""
    encoded = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, (dict, list, tuple)):
            encoded[key] = json.dumps(value, separators=(",", ":"))
        elif isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded


def parse_rate_limit(header: Optional[str]) -> Optional[RateLimitInfo]:
    """
    Parse ``x-business-use-case-usage``.

    The header maps an account ID to a list of usage objects; the first
    account's first entry is reported, with ``usage_pct`` the highest of
    call_count, total_cputime and total_time.
    """
    if not header:
        return None
    try:
        usage_by_account = json.loads(header)
        entries = next(iter(usage_by_account.values()), None)
        if not entries:
            return None
        usage = entries[0]
        call_count = float(usage.get("call_count") or 0)
        total_cputime = float(usage.get("total_cputime") or 0)
        total_time = float(usage.get("total_time") or 0)
    except (ValueError, TypeError, AttributeError, IndexError) as e:
        logger.debug("rate_limit_header_unparsed", header=header, error=str(e))
        return None

    return RateLimitInfo(
        call_count=call_count,
        total_cputime=total_cputime,
        total_time=total_time,
        usage_pct=max(call_count, total_cputime, total_time),
    )


class GraphClient:
    """Thin client over graph.facebook.com for a single access token and ad account."""

    def __init__(
        self,
        access_token: str,
        account_id: Optional[str] = None,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.account_id = normalize_account_id(account_id) if account_id else None
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport
        # Usage reported by the most recent response that carried the header
        self.rate_limit: Optional[RateLimitInfo] = None

    @property
    def base_url(self) -> str:
        return f"{GRAPH_URL}/{self.api_version}"

    def require_account_id(self) -> str:
        """The configured ad account, or CONFIG_NOT_FOUND before any request goes out."""
        if not self.account_id:
            raise CliError(
                ErrorCode.CONFIG_NOT_FOUND,
                "No ad account ID configured. Use --account or run `meta-ads config set account_id <id>`.",
            )
        return self.account_id

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        query = encode_params(params or {})
        query["access_token"] = self.access_token
        return await self._send("GET", path, params=query)

    async def post(self, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        form = encode_params(data or {})
        form["access_token"] = self.access_token
        return await self._send("POST", path, data=form)

    async def post_multipart(
        self,
        path: str,
        data: Dict[str, Any],
        files: Dict[str, Any],
    ) -> Dict[str, Any]:
        """POST multipart/form-data; ``files`` follows httpx's ``(filename, content)`` convention."""
        form = encode_params(data)
        form["access_token"] = self.access_token
        return await self._send("POST", path, data=form, files=files)

    async def _send(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug("graph_request", method=method, path=path)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.warning("graph_transport_error", method=method, path=path, error=str(e))
            raise map_transport_error(e) from e

        rate_limit = parse_rate_limit(response.headers.get(RATE_LIMIT_HEADER))
        if rate_limit:
            self.rate_limit = rate_limit

        return self._decode(response, method, path)

    def _decode(self, response: httpx.Response, method: str, path: str) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            logger.warning("graph_undecodable_response", method=method, path=path, status=response.status_code)
            raise CliError(
                ErrorCode.API_ERROR,
                f"Unexpected non-JSON response from Graph API (HTTP {response.status_code}).",
                {"status_code": response.status_code, "body": response.text[:500]},
            )

        if isinstance(payload, dict) and payload.get("error"):
            error = payload["error"]
            if not isinstance(error, dict):
                error = {"message": str(error)}
            logger.warning(
                "graph_error",
                method=method,
                path=path,
                status=response.status_code,
                code=error.get("code"),
                subcode=error.get("error_subcode"),
                fbtrace_id=error.get("fbtrace_id"),
            )
            raise map_graph_error(error)

        if response.is_error:
            raise CliError(
                ErrorCode.API_ERROR,
                f"Graph API returned HTTP {response.status_code}.",
                {"status_code": response.status_code},
            )

        if not isinstance(payload, dict):
            raise CliError(ErrorCode.API_ERROR, "Unexpected response shape from Graph API.", {"body": payload})

        logger.debug("graph_response", method=method, path=path, status=response.status_code)
        return payload
