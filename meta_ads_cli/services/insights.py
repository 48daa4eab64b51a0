"""
Insights transformations.

Raw /insights rows are sparse: metrics arrive as strings and conversions are
buried in ``actions`` / ``cost_per_action_type`` arrays under several
qualified names. Everything here is a pure function over those rows:
flatten, filter, sort, top/bottom selection, compact projection, summary,
breakdown summary and period comparison.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.models.schemas import (
    BreakdownDimensionSummary,
    BreakdownValue,
    CompactInsight,
    FlatInsight,
    InsightAction,
    InsightRecord,
    InsightsSummary,
    MetricChange,
    Number,
    OptionalMetricChange,
    PerformerRef,
    PeriodBounds,
    PeriodComparison,
)
from meta_ads_cli.services.periods import DateRange

logger = structlog.get_logger(__name__)

# Conversion action types, highest priority first
CONVERSION_ACTIONS = (
    "purchase",
    "lead",
    "complete_registration",
    "subscribe",
    "add_to_cart",
    "initiate_checkout",
    "app_install",
    "link_click",
    "landing_page_view",
)

# Names Graph reports the same logical action under
ACTION_ALIASES = ("{}", "offsite_conversion.fb_pixel_{}", "onsite_web_{}")

OBJECTIVE_TO_ACTION = {
    "OUTCOME_LEADS": "lead",
    "OUTCOME_SALES": "purchase",
    "OUTCOME_ENGAGEMENT": "link_click",
    "OUTCOME_TRAFFIC": "link_click",
    "OUTCOME_AWARENESS": "link_click",
    "OUTCOME_APP_PROMOTION": "app_install",
}

COST_FIELDS = frozenset({"cost_per_result", "cpc", "cpm", "objective_cost_per_result"})
SORTABLE_FIELDS = frozenset({
    "spend", "impressions", "reach", "clicks", "ctr", "cpc", "cpm",
    "results", "cost_per_result", "link_clicks", "landing_page_views",
    "video_plays", "thruplays", "objective_results", "objective_cost_per_result",
})

# Trend threshold on cost-per-result change, in percent
TREND_THRESHOLD_PCT = 10


def _parse_number(value) -> Optional[Number]:
    """Graph numeric string -> int/float; None when absent or unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return int(number) if number.is_integer() else number


def _number(value) -> Number:
    parsed = _parse_number(value)
    return 0 if parsed is None else parsed


def _round(value: float) -> float:
    return round(value, 2)


class ActionMatcher:
    """
    Resolves logical action types against ``actions`` entries.

    Each logical type (``purchase``) matches its bare name and each qualified
    alias (``offsite_conversion.fb_pixel_purchase``, ``onsite_web_purchase``).
    """

    def __init__(self, priority: Sequence[str] = CONVERSION_ACTIONS, aliases: Sequence[str] = ACTION_ALIASES):
        self.priority = tuple(priority)
        self._aliases = tuple(aliases)
        self._candidates: Dict[str, Tuple[str, ...]] = {}

    def candidates(self, action_type: str) -> Tuple[str, ...]:
        if action_type not in self._candidates:
            self._candidates[action_type] = tuple(alias.format(action_type) for alias in self._aliases)
        return self._candidates[action_type]

    def rank(self, action_type: str) -> int:
        """Priority position; unknown types rank after every known one."""
        try:
            return self.priority.index(action_type)
        except ValueError:
            return len(self.priority)

    def find(self, entries: Iterable[InsightAction], action_type: str) -> Optional[InsightAction]:
        """First entry for ``action_type`` carrying a defined, nonzero value."""
        names = self.candidates(action_type)
        for entry in entries:
            if entry.action_type in names and _parse_number(entry.value):
                return entry
        return None

    def cost(self, costs: Iterable[InsightAction], matched: InsightAction, action_type: str) -> Optional[float]:
        """Cost for the matched action, preferring the exact qualified name it was reported under."""
        costs = list(costs)
        for entry in costs:
            if entry.action_type == matched.action_type and _parse_number(entry.value) is not None:
                return _parse_number(entry.value)
        names = self.candidates(action_type)
        for entry in costs:
            if entry.action_type in names and _parse_number(entry.value) is not None:
                return _parse_number(entry.value)
        return None

    def primary(self, record: InsightRecord) -> Tuple[str, Number, Optional[float]]:
        """(result_type, results, cost_per_result) for the highest-priority action present."""
        for action_type in self.priority:
            matched = self.find(record.actions, action_type)
            if matched:
                return action_type, _number(matched.value), self.cost(record.cost_per_action_type, matched, action_type)
        return "none", 0, None

    def result_for(self, record: InsightRecord, action_type: str) -> Tuple[Number, Optional[float]]:
        matched = self.find(record.actions, action_type)
        if not matched:
            return 0, None
        return _number(matched.value), self.cost(record.cost_per_action_type, matched, action_type)


DEFAULT_MATCHER = ActionMatcher()


def _action_value(actions: List[InsightAction], action_type: str) -> Number:
    """Extract value for a specific action type from an actions list."""
    for action in actions:
        if action.action_type == action_type:
            return _number(action.value)
    return 0


def video_action_value(actions: Optional[List[InsightAction]]) -> Optional[Number]:
    """Total from a video action array: the ``video_view`` entry, else the first one."""
    if actions is None:
        return None
    if not actions:
        return 0
    for action in actions:
        if action.action_type == "video_view":
            return _number(action.value)
    return _number(actions[0].value)


def _dimensions(record: InsightRecord, breakdowns: Sequence[str]) -> Dict[str, str]:
    values = {}
    for name in breakdowns:
        value = record.dimension(name)
        if value is not None:
            values[name] = value
    return values


def flatten_insight(
    record: InsightRecord,
    matcher: ActionMatcher = DEFAULT_MATCHER,
    breakdowns: Sequence[str] = (),
    include_objective: bool = False,
) -> FlatInsight:
    """One raw row -> FlatInsight. Never drops a row; missing metrics become 0 / None."""
    result_type, results, cost_per_result = matcher.primary(record)

    flat = FlatInsight(
        account_id=record.account_id,
        account_name=record.account_name,
        campaign_id=record.campaign_id,
        campaign_name=record.campaign_name,
        adset_id=record.adset_id,
        adset_name=record.adset_name,
        ad_id=record.ad_id,
        ad_name=record.ad_name,
        spend=float(_number(record.spend)),
        impressions=int(_number(record.impressions)),
        reach=int(_number(record.reach)),
        clicks=int(_number(record.clicks)),
        ctr=float(_number(record.ctr)),
        cpc=_parse_number(record.cpc),
        cpm=_parse_number(record.cpm),
        results=results,
        result_type=result_type,
        cost_per_result=cost_per_result,
        link_clicks=_action_value(record.actions, "link_click"),
        landing_page_views=_action_value(record.actions, "landing_page_view"),
        video_plays=video_action_value(record.video_play_actions),
        thruplays=video_action_value(record.video_thruplay_watched_actions),
        breakdowns=_dimensions(record, breakdowns),
        date_start=record.date_start or "",
        date_stop=record.date_stop or "",
    )

    if include_objective:
        objective = record.dimension("objective")
        objective_action = OBJECTIVE_TO_ACTION.get(objective or "")
        if objective_action:
            objective_results, objective_cost = matcher.result_for(record, objective_action)
            flat.objective_result_type = objective_action
            flat.objective_results = objective_results
            flat.objective_cost_per_result = objective_cost

    return flat


def flatten_insights(
    records: Iterable[InsightRecord],
    matcher: ActionMatcher = DEFAULT_MATCHER,
    breakdowns: Sequence[str] = (),
    include_objective: bool = False,
) -> List[FlatInsight]:
    return [flatten_insight(r, matcher, breakdowns, include_objective) for r in records]


def filter_insights(
    rows: Iterable[FlatInsight],
    min_spend: Optional[float] = None,
    min_impressions: Optional[int] = None,
    min_results: Optional[float] = None,
    result_type: Optional[str] = None,
) -> List[FlatInsight]:
    """Keep rows meeting every given lower bound and the exact result type."""
    kept = []
    for row in rows:
        if min_spend is not None and row.spend < min_spend:
            continue
        if min_impressions is not None and row.impressions < min_impressions:
            continue
        if min_results is not None and row.results < min_results:
            continue
        if result_type is not None and row.result_type != result_type:
            continue
        kept.append(row)
    return kept


def sort_insights(rows: Iterable[FlatInsight], field: str) -> List[FlatInsight]:
    """
    Stable sort by a numeric field.

    Cost fields go ascending with missing values last; everything else goes
    descending with missing values counted as 0.
    """
    if field not in SORTABLE_FIELDS:
        raise CliError(
            ErrorCode.INVALID_PARAMETER,
            f"Cannot sort by {field}.",
            {"sortable_fields": sorted(SORTABLE_FIELDS)},
        )

    if field in COST_FIELDS:
        def cost_key(row: FlatInsight):
            value = getattr(row, field)
            return (value is None, value or 0)
        return sorted(rows, key=cost_key)

    return sorted(rows, key=lambda row: -(getattr(row, field) or 0))


def select_top_bottom(
    rows: Sequence[FlatInsight],
    level: str,
    top: Optional[int] = None,
    bottom: Optional[int] = None,
) -> List[FlatInsight]:
    """
    First ``top`` and/or last ``bottom`` rows of an already sorted list.

    When both slices are requested they are merged, top slice first, and a
    row falling in both appears once. Rows are identified by entity ID plus
    breakdown values; rows without an ID are identified by position so they
    are never merged with each other.
    """
    if top is None and bottom is None:
        return list(rows)

    candidates: List[Tuple[int, FlatInsight]] = []
    if top:
        candidates.extend(enumerate(rows[:top]))
    if bottom:
        start = max(len(rows) - bottom, 0)
        candidates.extend((index, rows[index]) for index in range(start, len(rows)))

    selected: List[FlatInsight] = []
    seen = set()
    for index, row in candidates:
        entity_id = row.entity_id(level)
        key = (entity_id, tuple(sorted(row.breakdowns.items()))) if entity_id else ("#position", index)
        if key in seen:
            continue
        seen.add(key)
        selected.append(row)
    return selected


def to_compact(row: FlatInsight, level: str) -> CompactInsight:
    return CompactInsight(
        name=row.entity_name(level) or "",
        id=row.entity_id(level) or "",
        spend=row.spend,
        results=row.results,
        cost_per_result=row.cost_per_result,
        result_type=row.result_type,
        status=row.status,
        daily_budget=row.daily_budget,
        lifetime_budget=row.lifetime_budget,
    )


def _date_bounds(rows: Sequence[FlatInsight]) -> Tuple[str, str]:
    starts = [r.date_start for r in rows if r.date_start]
    stops = [r.date_stop for r in rows if r.date_stop]
    return (min(starts) if starts else "", max(stops) if stops else "")


def summarize(rows: Sequence[FlatInsight], level: str) -> InsightsSummary:
    """Totals, averages and the lowest / highest cost-per-result entities."""
    total_spend = sum(r.spend for r in rows)
    total_results = sum(r.results for r in rows)
    total_impressions = sum(r.impressions for r in rows)
    total_clicks = sum(r.clicks for r in rows)

    ranked = sorted(
        (r for r in rows if r.results > 0 and r.cost_per_result is not None),
        key=lambda r: r.cost_per_result,
    )

    def performer(row: FlatInsight) -> PerformerRef:
        return PerformerRef(
            name=row.entity_name(level) or "",
            id=row.entity_id(level) or "",
            cost_per_result=row.cost_per_result,
        )

    date_start, date_stop = _date_bounds(rows)
    return InsightsSummary(
        total_spend=_round(total_spend),
        total_results=total_results,
        total_impressions=total_impressions,
        total_clicks=total_clicks,
        avg_cost_per_result=_round(total_spend / total_results) if total_results > 0 else None,
        avg_ctr=_round(total_clicks / total_impressions * 100) if total_impressions > 0 else 0,
        entity_count=len(rows),
        with_results_count=sum(1 for r in rows if r.results > 0),
        lowest_cpr=performer(ranked[0]) if ranked else None,
        highest_cpr=performer(ranked[-1]) if ranked else None,
        date_start=date_start,
        date_stop=date_stop,
    )


def primary_result_type(rows: Iterable[FlatInsight], matcher: ActionMatcher = DEFAULT_MATCHER) -> str:
    """Highest-priority result type present in the set, or "none"."""
    seen = {r.result_type for r in rows if r.result_type != "none"}
    if not seen:
        return "none"
    return min(seen, key=matcher.rank)


def summarize_breakdowns(
    rows: Sequence[FlatInsight],
    breakdowns: Sequence[str],
    matcher: ActionMatcher = DEFAULT_MATCHER,
) -> List[BreakdownDimensionSummary]:
    """
    Per breakdown dimension, totals per distinct value.

    Results count only the set's primary result type, so values are compared
    on the same conversion.
    """
    result_type = primary_result_type(rows, matcher)
    summaries = []

    for dimension in breakdowns:
        totals: Dict[str, Dict[str, Number]] = {}
        for row in rows:
            value = row.breakdowns.get(dimension, "unknown")
            bucket = totals.setdefault(value, {"spend": 0.0, "impressions": 0, "clicks": 0, "results": 0})
            bucket["spend"] += row.spend
            bucket["impressions"] += row.impressions
            bucket["clicks"] += row.clicks
            if row.result_type == result_type:
                bucket["results"] += row.results

        values = [
            BreakdownValue(
                value=value,
                spend=_round(bucket["spend"]),
                impressions=bucket["impressions"],
                clicks=bucket["clicks"],
                results=bucket["results"],
                cost_per_result=_round(bucket["spend"] / bucket["results"]) if bucket["results"] > 0 else None,
            )
            for value, bucket in totals.items()
        ]
        values.sort(key=lambda v: -v.spend)

        ranked = sorted((v for v in values if v.cost_per_result is not None), key=lambda v: v.cost_per_result)
        summaries.append(
            BreakdownDimensionSummary(
                dimension=dimension,
                result_type=result_type,
                lowest_cpr=ranked[0] if ranked else None,
                highest_cpr=ranked[-1] if ranked else None,
                values=values,
            )
        )

    return summaries


def change_pct(current: float, previous: float) -> float:
    """Percentage change; 100 when growing from zero, 0 when both are zero."""
    if previous == 0:
        return 100 if current > 0 else 0
    return _round((current - previous) / previous * 100)


def _bounds(rows: Sequence[FlatInsight], fallback: Optional[DateRange]) -> PeriodBounds:
    start, end = _date_bounds(rows)
    if not start and fallback:
        return PeriodBounds(start=fallback.start_date, end=fallback.end_date)
    return PeriodBounds(start=start, end=end)


def compare_periods(
    current: Sequence[FlatInsight],
    previous: Sequence[FlatInsight],
    current_range: Optional[DateRange] = None,
    previous_range: Optional[DateRange] = None,
    warning: Optional[str] = None,
) -> PeriodComparison:
    """
    Period-over-period totals and trend.

    The trend follows cost-per-result (lower is better) when both periods
    have one; otherwise the raw result counts decide.
    """
    curr_spend = sum(r.spend for r in current)
    prev_spend = sum(r.spend for r in previous)
    curr_results = sum(r.results for r in current)
    prev_results = sum(r.results for r in previous)
    curr_impressions = sum(r.impressions for r in current)
    prev_impressions = sum(r.impressions for r in previous)
    curr_clicks = sum(r.clicks for r in current)
    prev_clicks = sum(r.clicks for r in previous)

    curr_cpr = curr_spend / curr_results if curr_results > 0 else None
    prev_cpr = prev_spend / prev_results if prev_results > 0 else None
    curr_ctr = curr_clicks / curr_impressions * 100 if curr_impressions > 0 else 0
    prev_ctr = prev_clicks / prev_impressions * 100 if prev_impressions > 0 else 0

    trend = "stable"
    if curr_cpr is not None and prev_cpr is not None:
        # A free previous period has no ratio; change_pct maps it to 0 or 100.
        if prev_cpr == 0:
            cpr_change = change_pct(curr_cpr, prev_cpr)
        else:
            cpr_change = (curr_cpr - prev_cpr) / prev_cpr * 100
        if cpr_change < -TREND_THRESHOLD_PCT:
            trend = "improving"
        elif cpr_change > TREND_THRESHOLD_PCT:
            trend = "declining"
    elif curr_results > prev_results:
        trend = "improving"
    elif curr_results < prev_results:
        trend = "declining"

    logger.debug("periods_compared", current_rows=len(current), previous_rows=len(previous), trend=trend)

    both_cpr = curr_cpr is not None and prev_cpr is not None
    return PeriodComparison(
        current_period=_bounds(current, current_range),
        previous_period=_bounds(previous, previous_range),
        spend=MetricChange(
            current=_round(curr_spend),
            previous=_round(prev_spend),
            change_pct=change_pct(curr_spend, prev_spend),
        ),
        results=MetricChange(
            current=curr_results,
            previous=prev_results,
            change_pct=change_pct(curr_results, prev_results),
        ),
        impressions=MetricChange(
            current=curr_impressions,
            previous=prev_impressions,
            change_pct=change_pct(curr_impressions, prev_impressions),
        ),
        clicks=MetricChange(
            current=curr_clicks,
            previous=prev_clicks,
            change_pct=change_pct(curr_clicks, prev_clicks),
        ),
        cost_per_result=OptionalMetricChange(
            current=_round(curr_cpr) if curr_cpr is not None else None,
            previous=_round(prev_cpr) if prev_cpr is not None else None,
            change_pct=change_pct(curr_cpr, prev_cpr) if both_cpr else None,
        ),
        ctr=MetricChange(
            current=_round(curr_ctr),
            previous=_round(prev_ctr),
            change_pct=change_pct(curr_ctr, prev_ctr),
        ),
        trend=trend,
        warning=warning,
    )
