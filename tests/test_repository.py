"""Tests for entity repositories and field sets."""

import json

import pytest

from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.services import fields as field_sets
from meta_ads_cli.services.graph_client import GraphClient
from meta_ads_cli.services.periods import DateRange
from meta_ads_cli.services.repository import (
    AccountRepository,
    AdRepository,
    AdSetRepository,
    CampaignRepository,
    CreativeRepository,
    ImageRepository,
    InsightsQuery,
    InsightsRepository,
    ListOptions,
    VideoRepository,
)


def page(data, after=None):
    paging = {"cursors": {"after": after or "end"}}
    if after:
        paging["next"] = f"https://graph.facebook.com/next?after={after}"
    return {"data": data, "paging": paging}


class TestFieldSets:
    def test_default_selection(self):
        assert field_sets.CAMPAIGN_FIELDS.resolve() == list(field_sets.CAMPAIGN_FIELDS.default)

    def test_unknown_field_rejected(self):
        with pytest.raises(CliError) as exc_info:
            field_sets.CAMPAIGN_FIELDS.resolve(["id", "bogus"])
        assert exc_info.value.code == ErrorCode.INVALID_PARAMETER
        assert exc_info.value.details["unknown_fields"] == ["bogus"]

    def test_nested_selection_validated_on_root(self):
        selection = field_sets.AD_FIELDS.resolve(["id"], [field_sets.AD_CREATIVE_SELECTION])
        assert selection[0] == "id"
        assert selection[1].startswith("creative{")

    def test_split_fields_respects_braces(self):
        assert field_sets.split_fields("id,creative{id,name},status") == ["id", "creative{id,name}", "status"]

    def test_insight_fields_default(self):
        selection = field_sets.insight_fields("adset")
        assert selection[:4] == ["campaign_id", "campaign_name", "adset_id", "adset_name"]
        assert "cost_per_action_type" in selection

    def test_insight_fields_video(self):
        selection = field_sets.insight_fields("ad", include_video=True)
        assert "video_play_actions" in selection
        assert "video_thruplay_watched_actions" in selection

    def test_unknown_breakdown(self):
        with pytest.raises(CliError) as exc_info:
            field_sets.validate_breakdowns(["age", "zodiac"])
        assert exc_info.value.details["unknown_breakdowns"] == ["zodiac"]


class TestEntityList:
    @pytest.mark.asyncio
    async def test_single_page_reports_paging(self, graph, client):
        graph.add("GET", "act_123/campaigns", page([{"id": "1", "name": "A"}], after="cur1"))

        result = await CampaignRepository(client).list(ListOptions(limit=10))

        assert [c.id for c in result.data] == ["1"]
        assert result.paging.has_next is True
        assert result.paging.cursor == "cur1"
        params = graph.params(graph.requests[0])
        assert params["limit"] == "10"
        assert "after" not in params

    @pytest.mark.asyncio
    async def test_last_page_has_no_next(self, graph, client):
        graph.add("GET", "act_123/campaigns", page([{"id": "1"}]))

        result = await CampaignRepository(client).list()

        assert result.paging.has_next is False
        assert result.paging.cursor is None

    @pytest.mark.asyncio
    async def test_after_cursor_forwarded(self, graph, client):
        graph.add("GET", "act_123/campaigns", page([]))

        await CampaignRepository(client).list(ListOptions(after="xyz"))

        assert graph.params(graph.requests[0])["after"] == "xyz"

    @pytest.mark.asyncio
    async def test_all_walks_every_page_at_fixed_size(self, graph, client):
        graph.add(
            "GET",
            "act_123/campaigns",
            page([{"id": "1"}, {"id": "2"}], after="c1"),
            page([{"id": "3"}]),
        )

        result = await CampaignRepository(client).list(ListOptions(limit=5, all=True))

        assert [c.id for c in result.data] == ["1", "2", "3"]
        assert result.paging.has_next is False
        first, second = (graph.params(r) for r in graph.requests)
        assert first["limit"] == second["limit"] == "100"
        assert second["after"] == "c1"

    @pytest.mark.asyncio
    async def test_status_filter(self, graph, client):
        graph.add("GET", "act_123/campaigns", page([]))

        await CampaignRepository(client).list(ListOptions(status="ACTIVE"))

        filtering = json.loads(graph.params(graph.requests[0])["filtering"])
        assert filtering == [{"field": "status", "operator": "IN", "value": ["ACTIVE"]}]

    @pytest.mark.asyncio
    async def test_ads_filter_on_effective_status(self, graph, client):
        graph.add("GET", "act_123/ads", page([]))

        await AdRepository(client).list(ListOptions(status="PAUSED"))

        filtering = json.loads(graph.params(graph.requests[0])["filtering"])
        assert filtering[0]["field"] == "effective_status"

    @pytest.mark.asyncio
    async def test_parent_scoping(self, graph, client):
        graph.add("GET", "c9/adsets", page([]))
        graph.add("GET", "s9/ads", page([]))

        await AdSetRepository(client).list(ListOptions(campaign_id="c9"))
        await AdRepository(client).list(ListOptions(campaign_id="c9", adset_id="s9"))

        assert graph.paths() == ["c9/adsets", "s9/ads"]

    @pytest.mark.asyncio
    async def test_include_delivery_and_creative(self, graph, client):
        graph.add("GET", "act_123/adsets", page([]))
        graph.add("GET", "act_123/ads", page([]))

        await AdSetRepository(client).list(ListOptions(include_delivery=True))
        await AdRepository(client).list(ListOptions(include_creative=True))

        adset_fields = graph.params(graph.requests[0])["fields"]
        ad_fields = graph.params(graph.requests[1])["fields"]
        assert "learning_phase_info" in adset_fields
        assert "issues_info" in adset_fields
        assert "creative{" in ad_fields

    @pytest.mark.asyncio
    async def test_unknown_field_fails_before_request(self, graph, client):
        with pytest.raises(CliError):
            await CampaignRepository(client).list(ListOptions(fields=["nope"]))
        assert graph.requests == []

    @pytest.mark.asyncio
    async def test_missing_account_fails_before_request(self, graph):
        client = GraphClient("t", transport=graph.transport)
        with pytest.raises(CliError) as exc_info:
            await CampaignRepository(client).list()
        assert exc_info.value.code == ErrorCode.CONFIG_NOT_FOUND
        assert graph.requests == []

    @pytest.mark.asyncio
    async def test_accounts_scoped_to_me(self, graph):
        client = GraphClient("t", transport=graph.transport)
        graph.add("GET", "me/adaccounts", page([{"id": "act_1", "name": "Main"}]))

        result = await AccountRepository(client).list()

        assert result.data[0].name == "Main"


class TestMutations:
    @pytest.mark.asyncio
    async def test_create_defaults_and_refetch(self, graph, client):
        graph.add("POST", "act_123/campaigns", {"id": "555"})
        graph.add("GET", "555", {"id": "555", "name": "Spring", "status": "PAUSED", "objective": "OUTCOME_SALES"})

        campaign = await CampaignRepository(client).create({"name": "Spring", "objective": "OUTCOME_SALES"})

        form = graph.form(graph.requests[0])
        assert form["status"] == "PAUSED"
        assert form["special_ad_categories"] == "[]"
        assert campaign.id == "555"
        assert campaign.status == "PAUSED"

    @pytest.mark.asyncio
    async def test_create_missing_required(self, graph, client):
        with pytest.raises(CliError) as exc_info:
            await CampaignRepository(client).create({"name": "No objective"})
        assert exc_info.value.code == ErrorCode.MISSING_REQUIRED_FIELD
        assert exc_info.value.details["missing_fields"] == ["objective"]
        assert graph.requests == []

    @pytest.mark.asyncio
    async def test_update_returns_server_state(self, graph, client):
        graph.add("POST", "777", {"success": True})
        graph.add("GET", "777", {"id": "777", "name": "Renamed", "status": "ACTIVE"})

        campaign = await CampaignRepository(client).update("777", {"name": "Renamed", "status": None})

        assert graph.form(graph.requests[0]) == {"name": "Renamed", "access_token": "test-token"}
        assert campaign.name == "Renamed"

    @pytest.mark.asyncio
    async def test_update_requires_a_change(self, client):
        with pytest.raises(CliError) as exc_info:
            await CampaignRepository(client).update("777", {"name": None})
        assert exc_info.value.code == ErrorCode.MISSING_REQUIRED_FIELD

    @pytest.mark.asyncio
    async def test_update_status_validates(self, client):
        with pytest.raises(CliError) as exc_info:
            await AdRepository(client).update_status("1", "DELETED")
        assert exc_info.value.code == ErrorCode.INVALID_PARAMETER

    @pytest.mark.asyncio
    async def test_creatives_cannot_be_updated(self, client):
        with pytest.raises(CliError) as exc_info:
            await CreativeRepository(client).update("1", {"name": "x"})
        assert exc_info.value.code == ErrorCode.OPERATION_FAILED


class TestUploads:
    @pytest.mark.asyncio
    async def test_image_upload_returns_first_image(self, graph, client, tmp_path):
        image = tmp_path / "banner.png"
        image.write_bytes(b"\x89PNG fake")
        graph.add("POST", "act_123/adimages", {
            "images": {"banner.png": {"hash": "abc123", "url": "https://cdn/banner.png"}},
        })

        uploaded = await ImageRepository(client).upload(str(image))

        assert uploaded.hash == "abc123"
        assert uploaded.name == "banner.png"
        assert b'filename="banner.png"' in graph.requests[0].content

    @pytest.mark.asyncio
    async def test_image_upload_missing_file(self, graph, client, tmp_path):
        with pytest.raises(CliError) as exc_info:
            await ImageRepository(client).upload(str(tmp_path / "missing.png"))
        assert exc_info.value.code == ErrorCode.INVALID_PARAMETER
        assert graph.requests == []

    @pytest.mark.asyncio
    async def test_video_upload_from_url(self, graph, client):
        graph.add("POST", "act_123/advideos", {"id": "v1"})

        video = await VideoRepository(client).upload("Promo", file_url="https://example.com/promo.mp4")

        assert video.id == "v1"
        assert video.title == "Promo"
        assert graph.form(graph.requests[0])["file_url"] == "https://example.com/promo.mp4"

    @pytest.mark.asyncio
    async def test_video_upload_needs_a_source(self, client):
        with pytest.raises(CliError) as exc_info:
            await VideoRepository(client).upload("Promo")
        assert exc_info.value.code == ErrorCode.MISSING_REQUIRED_FIELD


class TestInsightsRepository:
    def test_time_range_wins_over_preset(self, client):
        params = InsightsRepository(client).build_params(InsightsQuery(
            level="campaign",
            date_preset="last_7d",
            time_range=DateRange("2024-01-01", "2024-01-07"),
            breakdowns=["age"],
        ))
        assert params["time_range"] == {"since": "2024-01-01", "until": "2024-01-07"}
        assert "date_preset" not in params
        assert params["breakdowns"] == "age"
        assert params["level"] == "campaign"

    def test_invalid_level(self, client):
        with pytest.raises(CliError):
            InsightsRepository(client).build_params(InsightsQuery(level="creative"))

    @pytest.mark.asyncio
    async def test_fetch_single_page_uses_limit(self, graph, client):
        graph.add("GET", "act_123/insights", page([{"campaign_id": "c1", "spend": "1.5"}], after="more"))

        rows = await InsightsRepository(client).fetch(InsightsQuery(level="campaign", limit=10))

        assert len(rows) == 1
        assert rows[0].spend == "1.5"
        assert graph.params(graph.requests[0])["limit"] == "10"

    @pytest.mark.asyncio
    async def test_fetch_all(self, graph, client):
        graph.add(
            "GET",
            "act_123/insights",
            page([{"campaign_id": "c1"}], after="n1"),
            page([{"campaign_id": "c2"}]),
        )

        rows = await InsightsRepository(client).fetch(InsightsQuery(level="campaign", all=True))

        assert [r.campaign_id for r in rows] == ["c1", "c2"]
