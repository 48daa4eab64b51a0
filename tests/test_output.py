"""Tests for envelope construction and rendering."""

import io
import json

import pytest
from pydantic import ValidationError

from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.models.envelope import (
    PaginationMeta,
    api_response_adapter,
    create_success_response,
    to_plain,
)
from meta_ads_cli.models.schemas import Campaign
from meta_ads_cli.output import OutputFormatter, auto_columns, filter_fields, render_table


def formatter(format="json", **kwargs):
    out, err = io.StringIO(), io.StringIO()
    return OutputFormatter(format=format, stdout=out, stderr=err, **kwargs), out, err


class TestEnvelope:
    def test_success_shape(self):
        response = create_success_response(
            [Campaign(id="1", name="A")],
            account_id="act_1",
            pagination=PaginationMeta(has_next=True, cursor="c"),
        )
        body = response.to_dict()

        assert body["success"] is True
        assert body["data"] == [{"id": "1", "name": "A"}]
        assert body["meta"]["account_id"] == "act_1"
        assert body["meta"]["pagination"] == {"has_next": True, "cursor": "c"}
        assert "timestamp" in body["meta"]
        assert "changed" not in body["meta"]

    def test_discriminated_union(self):
        success = api_response_adapter.validate_python({"success": True, "data": [1], "meta": {}})
        error = api_response_adapter.validate_python({
            "success": False,
            "error": {"code": "API_ERROR", "message": "x"},
        })
        assert success.data == [1]
        assert error.error.code == "API_ERROR"

    def test_error_variant_requires_error(self):
        with pytest.raises(ValidationError):
            api_response_adapter.validate_python({"success": False, "data": []})

    def test_to_plain_drops_unselected_entity_fields(self):
        assert to_plain({"items": [Campaign(id="1", status="ACTIVE")]}) == {
            "items": [{"id": "1", "status": "ACTIVE"}],
        }


class TestFilterFields:
    def test_list(self):
        data = [{"id": "1", "name": "A", "status": "ACTIVE"}]
        assert filter_fields(data, ["id", "status"]) == [{"id": "1", "status": "ACTIVE"}]

    def test_dict_and_passthrough(self):
        assert filter_fields({"id": "1", "x": 2}, ["id"]) == {"id": "1"}
        assert filter_fields({"id": "1"}, None) == {"id": "1"}


class TestTable:
    def test_auto_columns_priority(self):
        columns = auto_columns({"spend": 1, "name": "A", "id": "1", "zeta": 0, "status": "ACTIVE"})
        assert [key for key, _ in columns][:3] == ["id", "name", "status"]

    def test_render_table(self):
        table = render_table([{"id": "1", "name": "Alpha", "budget": None}], [("id", "ID"), ("name", "Name"), ("budget", "Budget")])
        lines = table.splitlines()
        assert lines[0] == "+----+-------+--------+"
        assert lines[1] == "| ID | Name  | Budget |"
        assert lines[3] == "| 1  | Alpha | -      |"


class TestOutputFormatter:
    def test_json_to_stdout(self):
        fmt, out, err = formatter()
        fmt.output(create_success_response({"ok": True}))
        assert json.loads(out.getvalue())["data"] == {"ok": True}
        assert err.getvalue() == ""

    def test_json_error_to_stdout(self):
        fmt, out, _ = formatter()
        fmt.output(CliError(ErrorCode.TIMEOUT).to_response())
        body = json.loads(out.getvalue())
        assert body["success"] is False
        assert body["error"]["retryable"] is True

    def test_table_error_to_stderr(self):
        fmt, out, err = formatter("table")
        fmt.output(CliError(ErrorCode.RATE_LIMIT_EXCEEDED, retry_after=60).to_response())
        assert out.getvalue() == ""
        assert "Error: RATE_LIMIT_EXCEEDED" in err.getvalue()
        assert "Retry after: 60 seconds" in err.getvalue()

    def test_table_empty_list(self):
        fmt, out, _ = formatter("table")
        fmt.output(create_success_response([]))
        assert out.getvalue().strip() == "No results found."

    def test_quiet_suppresses_status_but_not_warnings(self):
        fmt, _, err = formatter(quiet=True)
        fmt.success("done")
        fmt.info("working")
        fmt.warn("careful")
        assert err.getvalue() == "⚠ careful\n"
