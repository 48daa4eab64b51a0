"""Tests for the Graph API transport."""

import json

import httpx
import pytest

from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.services.graph_client import (
    RATE_LIMIT_HEADER,
    GraphClient,
    encode_params,
    normalize_account_id,
    parse_rate_limit,
)


class TestNormalizeAccountId:
    def test_adds_prefix(self):
        assert normalize_account_id("123456") == "act_123456"

    def test_keeps_prefix(self):
        assert normalize_account_id("act_123456") == "act_123456"

    @pytest.mark.parametrize("value", ["act_", "abc", "act_12x", "", "act_-1"])
    def test_rejects_malformed(self, value):
        with pytest.raises(CliError) as exc_info:
            normalize_account_id(value)
        assert exc_info.value.code == ErrorCode.INVALID_ACCOUNT_ID


class TestEncodeParams:
    def test_encoding(self):
        encoded = encode_params({
            "name": "x",
            "limit": 25,
            "skip": None,
            "filtering": [{"field": "status", "operator": "IN", "value": ["ACTIVE"]}],
            "flag": True,
        })
        assert encoded == {
            "name": "x",
            "limit": "25",
            "filtering": '[{"field":"status","operator":"IN","value":["ACTIVE"]}]',
            "flag": "true",
        }


class TestParseRateLimit:
    def test_usage_pct_is_max(self):
        header = json.dumps({"123": [{"call_count": 12, "total_cputime": 40, "total_time": 7}]})
        info = parse_rate_limit(header)
        assert info.usage_pct == 40
        assert info.call_count == 12

    def test_missing_or_garbage(self):
        assert parse_rate_limit(None) is None
        assert parse_rate_limit("not json") is None
        assert parse_rate_limit("{}") is None


class TestGraphClient:
    @pytest.mark.asyncio
    async def test_get_sends_token_in_query(self, graph, client):
        graph.add("GET", "act_123/campaigns", {"data": []})

        await client.get("act_123/campaigns", {"fields": "id,name"})

        request = graph.requests[0]
        assert request.url.host == "graph.facebook.com"
        assert request.url.path == "/v22.0/act_123/campaigns"
        assert graph.params(request) == {"fields": "id,name", "access_token": "test-token"}

    @pytest.mark.asyncio
    async def test_post_sends_token_in_form(self, graph, client):
        graph.add("POST", "111", {"success": True})

        await client.post("111", {"status": "PAUSED"})

        request = graph.requests[0]
        assert "access_token" not in graph.params(request)
        assert graph.form(request) == {"status": "PAUSED", "access_token": "test-token"}

    @pytest.mark.asyncio
    async def test_error_payload_in_200_response(self, graph, client):
        graph.add("GET", "111", {"error": {"message": "Invalid OAuth access token.", "code": 190}})

        with pytest.raises(CliError) as exc_info:
            await client.get("111")
        assert exc_info.value.code == ErrorCode.AUTH_TOKEN_INVALID

    @pytest.mark.asyncio
    async def test_error_status_without_error_payload(self, graph, client):
        graph.add("GET", "111", httpx.Response(500, json={"oops": True}))

        with pytest.raises(CliError) as exc_info:
            await client.get("111")
        assert exc_info.value.code == ErrorCode.API_ERROR

    @pytest.mark.asyncio
    async def test_non_json_body(self, graph, client):
        graph.add("GET", "111", httpx.Response(502, text="<html>Bad Gateway</html>"))

        with pytest.raises(CliError) as exc_info:
            await client.get("111")
        assert exc_info.value.code == ErrorCode.API_ERROR
        assert exc_info.value.details["status_code"] == 502

    @pytest.mark.asyncio
    async def test_timeout_maps_to_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = GraphClient("t", transport=httpx.MockTransport(handler))
        with pytest.raises(CliError) as exc_info:
            await client.get("me")
        assert exc_info.value.code == ErrorCode.TIMEOUT

    @pytest.mark.asyncio
    async def test_connect_error_maps_to_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = GraphClient("t", transport=httpx.MockTransport(handler))
        with pytest.raises(CliError) as exc_info:
            await client.get("me")
        assert exc_info.value.code == ErrorCode.NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_records_rate_limit(self, graph, client):
        usage = json.dumps({"123": [{"call_count": 5, "total_cputime": 1, "total_time": 2}]})
        graph.add("GET", "me", httpx.Response(200, json={"id": "1"}, headers={RATE_LIMIT_HEADER: usage}))

        await client.get("me")

        assert client.rate_limit.usage_pct == 5

    def test_require_account_id(self):
        with pytest.raises(CliError) as exc_info:
            GraphClient("t").require_account_id()
        assert exc_info.value.code == ErrorCode.CONFIG_NOT_FOUND

    def test_account_id_normalised(self):
        assert GraphClient("t", account_id="987").account_id == "act_987"

    def test_api_version_in_base_url(self):
        assert GraphClient("t", api_version="v21.0").base_url == "https://graph.facebook.com/v21.0"
