"""End-to-end command tests: argv in, envelope out, Graph faked."""

import io
import json
from unittest.mock import AsyncMock

import httpx
import pytest

from conftest import insight_row
from meta_ads_cli.commands.base import CommandContext, run_command, toggle_status
from meta_ads_cli.config import get_settings
from meta_ads_cli.main import build_parser, main
from meta_ads_cli.models.schemas import Campaign
from meta_ads_cli.output import OutputFormatter

AUTH = ["--token", "test-token", "--account", "123"]


async def run(graph, *argv):
    """Run one command; returns (exit code, parsed stdout envelope, stderr text)."""
    args = build_parser().parse_args(list(argv))
    out, err = io.StringIO(), io.StringIO()

    def context_factory(namespace):
        ctx = CommandContext(namespace, transport=graph.transport)
        ctx.formatter.stdout = out
        ctx.formatter.stderr = err
        return ctx

    code = await run_command(args.handler, args, context_factory=context_factory)
    body = json.loads(out.getvalue()) if out.getvalue() else None
    return code, body, err.getvalue()


def purchases(count, cost=None):
    row = {"actions": [{"action_type": "purchase", "value": str(count)}]}
    if cost is not None:
        row["cost_per_action_type"] = [{"action_type": "purchase", "value": str(cost)}]
    return row


class TestEntityCommands:
    @pytest.mark.asyncio
    async def test_campaigns_list(self, graph):
        graph.add("GET", "act_123/campaigns", {
            "data": [{"id": "1", "name": "Spring", "status": "ACTIVE"}],
            "paging": {"cursors": {"after": "next1"}, "next": "https://graph.facebook.com/..."},
        })

        code, body, _ = await run(graph, "campaigns", "list", *AUTH, "--status", "ACTIVE")

        assert code == 0
        assert body["success"] is True
        assert body["data"] == [{"id": "1", "name": "Spring", "status": "ACTIVE"}]
        assert body["meta"]["account_id"] == "act_123"
        assert body["meta"]["pagination"] == {"has_next": True, "cursor": "next1"}

    @pytest.mark.asyncio
    async def test_output_fields_projection(self, graph):
        graph.add("GET", "act_123/campaigns", {"data": [{"id": "1", "name": "Spring", "status": "ACTIVE"}]})

        _, body, _ = await run(graph, "campaigns", "list", *AUTH, "--output-fields", "id")

        assert body["data"] == [{"id": "1"}]

    @pytest.mark.asyncio
    async def test_nested_field_selection(self, graph):
        graph.add("GET", "act_123/ads", {"data": []})

        await run(graph, "ads", "list", *AUTH, "--fields", "id,creative{id,name},status")

        assert graph.params(graph.requests[0])["fields"] == "id,creative{id,name},status"

    @pytest.mark.asyncio
    async def test_activate_is_idempotent(self, graph):
        graph.add("GET", "555", {"id": "555", "name": "Spring", "status": "ACTIVE"})

        code, body, _ = await run(graph, "campaigns", "activate", "555", *AUTH)

        assert code == 0
        assert body["meta"]["changed"] is False
        assert body["meta"]["reason"] == "already_active"
        assert graph.paths("POST") == []

    @pytest.mark.asyncio
    async def test_pause_changes_status(self, graph):
        graph.add(
            "GET",
            "777",
            {"id": "777", "status": "ACTIVE"},
            {"id": "777", "status": "PAUSED"},
        )
        graph.add("POST", "777", {"success": True})

        code, body, err = await run(graph, "ads", "pause", "777", *AUTH)

        assert code == 0
        assert body["data"]["status"] == "PAUSED"
        assert body["meta"]["changed"] is True
        assert body["meta"]["reason"] == "status_changed"
        assert graph.form(graph.requests[1])["status"] == "PAUSED"
        assert "Paused ad: 777" in err

    @pytest.mark.asyncio
    async def test_ad_create_wraps_creative_id(self, graph):
        graph.add("POST", "act_123/ads", {"id": "9"})
        graph.add("GET", "9", {"id": "9", "name": "Hero", "status": "PAUSED"})

        code, _, _ = await run(
            graph, "ads", "create", *AUTH, "--adset", "s1", "--name", "Hero", "--creative-id", "cr1",
        )

        assert code == 0
        form = graph.form(graph.requests[0])
        assert json.loads(form["creative"]) == {"creative_id": "cr1"}
        assert form["status"] == "PAUSED"

    @pytest.mark.asyncio
    async def test_adset_create_rejects_bad_targeting(self, graph):
        code, body, _ = await run(
            graph, "adsets", "create", *AUTH,
            "--campaign", "c1", "--name", "Set", "--billing-event", "IMPRESSIONS",
            "--optimization-goal", "LINK_CLICKS", "--targeting", "{not json",
        )

        assert code == 1
        assert body["error"]["code"] == "INVALID_PARAMETER"
        assert graph.requests == []

    @pytest.mark.asyncio
    async def test_creative_needs_image_or_video(self, graph):
        code, body, _ = await run(graph, "adcreatives", "create", *AUTH, "--name", "C", "--page-id", "p1")

        assert code == 1
        assert body["error"]["code"] == "MISSING_REQUIRED_FIELD"

    @pytest.mark.asyncio
    async def test_missing_token(self, graph):
        code, body, _ = await run(graph, "campaigns", "list", "--account", "123")

        assert code == 1
        assert body["error"]["code"] == "AUTH_NOT_CONFIGURED"
        assert "suggestion" in body["error"]["details"]

    @pytest.mark.asyncio
    async def test_graph_error_becomes_envelope(self, graph):
        graph.add("GET", "404", {"error": {"message": "Unsupported get request. Object does not exist", "code": 100}})

        code, body, _ = await run(graph, "campaigns", "get", "404", *AUTH)

        assert code == 1
        assert body["error"]["code"] == "ENTITY_NOT_FOUND"
        assert body["error"]["retryable"] is False


class TestInsightsCommand:
    @pytest.mark.asyncio
    async def test_raw_rows(self, graph):
        graph.add("GET", "act_123/insights", {"data": [insight_row()]})

        code, body, _ = await run(graph, "insights", "get", *AUTH, "--level", "campaign", "--date-preset", "last_7d")

        assert code == 0
        assert body["data"][0]["spend"] == "10.00"
        params = graph.params(graph.requests[0])
        assert params["date_preset"] == "last_7d"
        assert params["level"] == "campaign"

    @pytest.mark.asyncio
    async def test_compact_sorted(self, graph):
        graph.add("GET", "act_123/insights", {"data": [
            insight_row(campaign_id="a", campaign_name="A", spend="30", **purchases(3, 10)),
            insight_row(campaign_id="b", campaign_name="B", spend="8"),
            insight_row(campaign_id="c", campaign_name="C", spend="10", **purchases(5, 2)),
        ]})

        _, body, _ = await run(
            graph, "insights", "get", *AUTH, "--level", "campaign", "--compact", "--sort-by", "cost_per_result",
        )

        assert [row["id"] for row in body["data"]] == ["c", "a", "b"]
        assert body["data"][0] == {
            "name": "C",
            "id": "c",
            "spend": 10.0,
            "results": 5,
            "cost_per_result": 2.0,
            "result_type": "purchase",
        }

    @pytest.mark.asyncio
    async def test_summary(self, graph):
        graph.add("GET", "act_123/insights", {"data": [
            insight_row(ad_id="1", ad_name="One", spend="10", **purchases(2, 5)),
            insight_row(ad_id="2", ad_name="Two", spend="20"),
            insight_row(ad_id="3", ad_name="Three", spend="5", **purchases(1, 5)),
        ]})

        _, body, _ = await run(graph, "insights", "get", *AUTH, "--level", "ad", "--summary")

        summary = body["data"]
        assert summary["total_spend"] == 35
        assert summary["avg_cost_per_result"] == 11.67
        assert summary["lowest_cpr"]["id"] == "1"

    @pytest.mark.asyncio
    async def test_active_only_fetches_statuses(self, graph):
        graph.add("GET", "act_123/insights", {"data": [
            insight_row(campaign_id="c1", campaign_name="Live"),
            insight_row(campaign_id="c2", campaign_name="Stopped"),
        ]})
        graph.add("GET", "act_123/campaigns", {"data": [
            {"id": "c1", "effective_status": "ACTIVE", "daily_budget": "5000"},
            {"id": "c2", "effective_status": "PAUSED"},
        ]})

        _, body, _ = await run(graph, "insights", "get", *AUTH, "--level", "campaign", "--active-only")

        assert [row["campaign_id"] for row in body["data"]] == ["c1"]
        assert body["data"][0]["status"] == "ACTIVE"
        assert body["data"][0]["daily_budget"] == "5000"
        assert sorted(graph.paths()) == ["act_123/campaigns", "act_123/insights"]

    @pytest.mark.asyncio
    async def test_compare_previous_window(self, graph):
        def insights(request):
            params = dict(request.url.params)
            spend = "100" if params.get("date_preset") == "last_7d" else "200"
            return httpx.Response(200, json={"data": [insight_row(spend=spend, **purchases(10))]})

        graph.add("GET", "act_123/insights", insights)

        code, body, _ = await run(
            graph, "insights", "get", *AUTH, "--level", "campaign", "--compare", "last_7d:previous_7d",
        )

        assert code == 0
        comparison = body["data"]
        assert comparison["cost_per_result"] == {"current": 10, "previous": 20, "change_pct": -50}
        assert comparison["trend"] == "improving"
        sent = [graph.params(r) for r in graph.requests]
        assert sum("time_range" in p for p in sent) == 1
        assert sum(p.get("date_preset") == "last_7d" for p in sent) == 1

    @pytest.mark.asyncio
    async def test_compare_length_mismatch_warns(self, graph):
        graph.add("GET", "act_123/insights", {"data": [insight_row(**purchases(10))]})

        code, body, err = await run(
            graph, "insights", "get", *AUTH, "--level", "campaign", "--compare", "last_7d:previous_14d",
        )

        assert code == 0
        assert "not directly comparable" in body["data"]["warning"]
        assert "not directly comparable" in err

    @pytest.mark.asyncio
    async def test_unknown_breakdown_rejected_before_request(self, graph):
        code, body, _ = await run(graph, "insights", "get", *AUTH, "--level", "ad", "--breakdowns", "zodiac")

        assert code == 1
        assert body["error"]["code"] == "INVALID_PARAMETER"
        assert graph.requests == []


class TestBulkCommands:
    @pytest.mark.asyncio
    async def test_failures_do_not_abort_batch(self, graph):
        graph.add("POST", "1", {"success": True})
        graph.add("GET", "1", {"id": "1", "status": "PAUSED"})
        graph.add("POST", "3", {"success": True})
        graph.add("GET", "3", {"id": "3", "status": "PAUSED"})

        code, body, err = await run(graph, "bulk", "pause", *AUTH, "--type", "campaign", "--ids", "1,2,3")

        assert code == 0
        assert [r["success"] for r in body["data"]] == [True, False, True]
        assert body["data"][1]["id"] == "2"
        assert body["data"][1]["error"]
        assert "Paused 2/3 campaigns" in err

    @pytest.mark.asyncio
    async def test_export_writes_file(self, graph, tmp_path):
        graph.add("GET", "act_123/ads", {"data": [{"id": "a1", "name": "Ad"}, {"id": "a2", "name": "Ad 2"}]})
        target = tmp_path / "ads.json"

        code, body, _ = await run(graph, "bulk", "export", *AUTH, "--type", "ads", "-f", str(target))

        assert code == 0
        assert body["data"] == {"file": str(target), "count": 2}
        exported = json.loads(target.read_text())
        assert exported["count"] == 2
        assert exported["data"][0] == {"id": "a1", "name": "Ad"}
        assert "exported_at" in exported
        assert graph.params(graph.requests[0])["limit"] == "100"


class TestAuthAndConfig:
    @pytest.mark.asyncio
    async def test_login_validates_then_saves(self, graph):
        graph.add("GET", "debug_token", {"data": {
            "is_valid": True,
            "app_id": "42",
            "type": "SYSTEM_USER",
            "application": "Ads Tool",
            "expires_at": 0,
            "scopes": ["ads_read", "ads_management"],
        }})

        code, body, err = await run(graph, "auth", "login", "--token", "EAABnewtoken5678")

        assert code == 0
        assert body["data"]["app"] == "Ads Tool"
        assert body["data"]["expires"] == "Never expires (System User token)"
        assert "business_management" in err
        assert graph.params(graph.requests[0])["input_token"] == "EAABnewtoken5678"
        stored = json.loads(get_settings().config_path().read_text())
        assert stored["access_token"] == "EAABnewtoken5678"

    @pytest.mark.asyncio
    async def test_login_rejects_invalid_token(self, graph):
        graph.add("GET", "debug_token", {"data": {"is_valid": False}})

        code, body, _ = await run(graph, "auth", "login", "--token", "bad")

        assert code == 1
        assert body["error"]["code"] == "AUTH_TOKEN_INVALID"
        assert not get_settings().config_path().exists()

    @pytest.mark.asyncio
    async def test_logout(self, graph):
        await run(graph, "config", "set", "account_id", "123")

        code, body, _ = await run(graph, "auth", "logout")

        assert code == 0
        assert body["data"]["message"] == "Successfully logged out"

    @pytest.mark.asyncio
    async def test_config_set_get_list(self, graph):
        code, body, _ = await run(graph, "config", "set", "account_id", "987")
        assert code == 0
        assert body["data"]["value"] == "act_987"

        _, body, _ = await run(graph, "config", "get", "account_id")
        assert body["data"] == {"key": "account_id", "value": "act_987"}

        _, body, _ = await run(graph, "config", "list")
        assert body["data"]["config"]["account_id"] == "act_987"
        assert body["data"]["effective"]["output_format"] == "json"
        assert graph.requests == []

    @pytest.mark.asyncio
    async def test_accounts_switch(self, graph):
        code, body, _ = await run(graph, "accounts", "switch", "555")

        assert code == 0
        assert body["data"]["account_id"] == "act_555"
        assert json.loads(get_settings().config_path().read_text())["account_id"] == "act_555"


class TestMain:
    def test_schema_without_credentials(self, capsys):
        code = main(["schema", "actions", "--compact"])

        body = json.loads(capsys.readouterr().out)
        assert code == 0
        assert body["data"]["actions"][0] == "purchase"

    def test_error_exit_code(self, capsys):
        code = main(["campaigns", "list"])

        body = json.loads(capsys.readouterr().out)
        assert code == 1
        assert body["error"]["code"] == "AUTH_NOT_CONFIGURED"


class TestToggleStatus:
    @pytest.mark.asyncio
    async def test_writes_only_when_status_differs(self):
        repository = AsyncMock()
        repository.get.return_value = Campaign(id="1", status="PAUSED")
        repository.update_status.return_value = Campaign(id="1", status="ACTIVE")
        out, err = io.StringIO(), io.StringIO()
        args = build_parser().parse_args(["campaigns", "activate", "1"])
        ctx = CommandContext(args, formatter=OutputFormatter(stdout=out, stderr=err))

        await toggle_status(ctx, repository, "1", "ACTIVE", "campaign")

        repository.update_status.assert_awaited_once_with("1", "ACTIVE")
        body = json.loads(out.getvalue())
        assert body["data"] == {"id": "1", "status": "ACTIVE"}
        assert body["meta"]["reason"] == "status_changed"
