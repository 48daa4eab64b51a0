"""Tests for date ranges and compare-window resolution."""

from datetime import date

import pytest

from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.services.periods import (
    DateRange,
    parse_compare,
    previous_period_for,
    validate_preset,
)

TODAY = date(2024, 3, 15)


class TestDateRange:
    def test_last_n_days_excludes_today(self):
        window = DateRange.last_n_days(7, TODAY)
        assert (window.start_date, window.end_date) == ("2024-03-08", "2024-03-14")
        assert window.duration_days == 7

    def test_comparison_period_same_length(self):
        previous = DateRange("2024-03-08", "2024-03-14").get_comparison_period()
        assert (previous.start_date, previous.end_date) == ("2024-03-01", "2024-03-07")

    def test_comparison_period_explicit_days(self):
        previous = DateRange("2024-03-08", "2024-03-14").get_comparison_period(14)
        assert (previous.start_date, previous.end_date) == ("2024-02-23", "2024-03-07")

    def test_parse_rejects_bad_dates(self):
        with pytest.raises(CliError) as exc_info:
            DateRange.parse("2024-13-01", "2024-12-01")
        assert exc_info.value.code == ErrorCode.INVALID_PARAMETER

    def test_parse_rejects_reversed_range(self):
        with pytest.raises(CliError):
            DateRange.parse("2024-02-01", "2024-01-01")

    def test_meta_time_range(self):
        assert DateRange("2024-01-01", "2024-01-31").to_meta_time_range() == {
            "since": "2024-01-01",
            "until": "2024-01-31",
        }


class TestPresets:
    def test_known_preset(self):
        assert validate_preset("last_30d") == "last_30d"

    def test_unknown_preset(self):
        with pytest.raises(CliError) as exc_info:
            validate_preset("last_6d")
        assert "allowed_presets" in exc_info.value.details

    def test_previous_period_only_for_last_n(self):
        assert previous_period_for("this_month", today=TODAY) is None


class TestParseCompare:
    def test_previous_window_is_explicit_and_adjacent(self):
        plan = parse_compare("last_7d:previous_7d", TODAY)

        assert plan.current.preset == "last_7d"
        assert plan.previous.preset is None
        assert plan.previous.time_range == DateRange("2024-03-01", "2024-03-07")
        assert plan.warning is None

    def test_previous_window_length_mismatch_warns(self):
        plan = parse_compare("last_7d:previous_14d", TODAY)

        assert plan.previous.time_range == DateRange("2024-02-23", "2024-03-07")
        assert "not directly comparable" in plan.warning

    def test_overlapping_presets_warn(self):
        plan = parse_compare("last_7d:last_14d", TODAY)

        assert plan.previous.preset == "last_14d"
        assert "previous_7d" in plan.warning

    def test_same_length_rolling_windows_warn(self):
        plan = parse_compare("last_7d:last_7d", TODAY)
        assert "previous_7d" in plan.warning

    def test_identical_presets_warn(self):
        plan = parse_compare("this_month:this_month", TODAY)
        assert "same window" in plan.warning

    def test_preset_pair_passes_through(self):
        plan = parse_compare("this_month:last_month", TODAY)

        assert (plan.current.preset, plan.previous.preset) == ("this_month", "last_month")
        assert plan.warning is None

    @pytest.mark.parametrize("value", ["last_7d", "last_7d:", ":last_7d", "last_7d:previous_x", "this_month:previous_7d"])
    def test_invalid(self, value):
        with pytest.raises(CliError) as exc_info:
            parse_compare(value, TODAY)
        assert exc_info.value.code == ErrorCode.INVALID_PARAMETER
