from pydantic import BaseModel, ConfigDict, Field, model_serializer
from typing import Any, Dict, List, Literal, Optional, Union


EntityStatus = Literal["ACTIVE", "PAUSED", "DELETED", "ARCHIVED"]
InsightLevel = Literal["account", "campaign", "adset", "ad"]
# Counts stay ints when Graph reports whole numbers
Number = Union[int, float]


class GraphEntity(BaseModel):
    """Base for Graph objects. Field selection can return attributes we don't name."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class AdAccount(GraphEntity):
    id: str
    account_id: Optional[str] = None
    name: Optional[str] = None
    account_status: Optional[int] = None
    amount_spent: Optional[str] = None
    balance: Optional[str] = None
    currency: Optional[str] = None
    spend_cap: Optional[str] = None
    business_name: Optional[str] = None
    business_city: Optional[str] = None
    business_country_code: Optional[str] = None


class Campaign(GraphEntity):
    id: str
    name: Optional[str] = None
    status: Optional[EntityStatus] = None
    effective_status: Optional[str] = None
    objective: Optional[str] = None
    created_time: Optional[str] = None
    updated_time: Optional[str] = None
    start_time: Optional[str] = None
    stop_time: Optional[str] = None
    daily_budget: Optional[str] = None
    lifetime_budget: Optional[str] = None
    budget_remaining: Optional[str] = None
    special_ad_categories: Optional[List[str]] = None


class AdSet(GraphEntity):
    id: str
    name: Optional[str] = None
    campaign_id: Optional[str] = None
    status: Optional[EntityStatus] = None
    effective_status: Optional[str] = None
    created_time: Optional[str] = None
    updated_time: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    daily_budget: Optional[str] = None
    lifetime_budget: Optional[str] = None
    budget_remaining: Optional[str] = None
    billing_event: Optional[str] = None
    optimization_goal: Optional[str] = None
    bid_strategy: Optional[str] = None
    bid_amount: Optional[str] = None
    targeting: Optional[Dict[str, Any]] = None
    learning_phase_info: Optional[Dict[str, Any]] = None
    issues_info: Optional[List[Dict[str, Any]]] = None


class AdCreative(GraphEntity):
    id: str
    name: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None
    image_hash: Optional[str] = None
    image_url: Optional[str] = None
    video_id: Optional[str] = None
    thumbnail_url: Optional[str] = None
    object_story_spec: Optional[Dict[str, Any]] = None
    call_to_action_type: Optional[str] = None


class Ad(GraphEntity):
    id: str
    name: Optional[str] = None
    adset_id: Optional[str] = None
    campaign_id: Optional[str] = None
    status: Optional[EntityStatus] = None
    effective_status: Optional[str] = None
    created_time: Optional[str] = None
    updated_time: Optional[str] = None
    creative: Optional[AdCreative] = None
    preview_shareable_link: Optional[str] = None
    issues_info: Optional[List[Dict[str, Any]]] = None


class AdImage(GraphEntity):
    hash: str
    name: Optional[str] = None
    url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    created_time: Optional[str] = None
    bytes: Optional[int] = None


class AdVideo(GraphEntity):
    id: str
    title: Optional[str] = None
    source: Optional[str] = None
    picture: Optional[str] = None
    created_time: Optional[str] = None
    updated_time: Optional[str] = None
    length: Optional[float] = None
    status: Optional[Dict[str, Any]] = None


class InsightAction(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    action_type: str
    value: Optional[str] = None


class InsightRecord(BaseModel):
    """One insights row as returned by /insights. Metrics arrive as strings."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    account_id: Optional[str] = None
    account_name: Optional[str] = None
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    adset_id: Optional[str] = None
    adset_name: Optional[str] = None
    ad_id: Optional[str] = None
    ad_name: Optional[str] = None
    date_start: Optional[str] = None
    date_stop: Optional[str] = None
    impressions: Optional[str] = None
    clicks: Optional[str] = None
    spend: Optional[str] = None
    reach: Optional[str] = None
    frequency: Optional[str] = None
    cpm: Optional[str] = None
    cpc: Optional[str] = None
    ctr: Optional[str] = None
    actions: List[InsightAction] = Field(default_factory=list)
    cost_per_action_type: List[InsightAction] = Field(default_factory=list)
    video_play_actions: Optional[List[InsightAction]] = None
    video_thruplay_watched_actions: Optional[List[InsightAction]] = None

    def dimension(self, name: str) -> Optional[str]:
        """Value of a breakdown dimension (age, country, ...) carried on this row."""
        value = (self.model_extra or {}).get(name, getattr(self, name, None))
        return None if value is None else str(value)


LEVEL_KEYS = ("account", "campaign", "adset", "ad")

# Optional attachments on a flattened row, omitted from output when unset
ATTACHED_FIELDS = (
    "status",
    "daily_budget",
    "lifetime_budget",
    "objective_result_type",
    "objective_results",
    "objective_cost_per_result",
    "video_plays",
    "thruplays",
)


class FlatInsight(BaseModel):
    # Identity
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    adset_id: Optional[str] = None
    adset_name: Optional[str] = None
    ad_id: Optional[str] = None
    ad_name: Optional[str] = None
    # Context, attached after flattening
    status: Optional[str] = None
    daily_budget: Optional[str] = None
    lifetime_budget: Optional[str] = None
    # Core metrics
    spend: float = 0
    impressions: int = 0
    reach: int = 0
    clicks: int = 0
    ctr: float = 0
    cpc: Optional[float] = None
    cpm: Optional[float] = None
    # Primary result
    results: Number = 0
    result_type: str = "none"
    cost_per_result: Optional[float] = None
    # Objective-based result (--include-objective)
    objective_result_type: Optional[str] = None
    objective_results: Optional[Number] = None
    objective_cost_per_result: Optional[float] = None
    # Secondary
    link_clicks: Number = 0
    landing_page_views: Number = 0
    video_plays: Optional[Number] = None
    thruplays: Optional[Number] = None
    # Breakdown dimension values (age, country, ...)
    breakdowns: Dict[str, str] = Field(default_factory=dict)
    date_start: str = ""
    date_stop: str = ""

    def entity_id(self, level: str) -> Optional[str]:
        return getattr(self, f"{level}_id", None) if level in LEVEL_KEYS else None

    def entity_name(self, level: str) -> Optional[str]:
        return getattr(self, f"{level}_name", None) if level in LEVEL_KEYS else None

    @model_serializer(mode="wrap")
    def _drop_unattached(self, handler):
        data = handler(self)
        for key in ATTACHED_FIELDS:
            if data.get(key) is None:
                data.pop(key, None)
        if not data.get("breakdowns"):
            data.pop("breakdowns", None)
        return data


class CompactInsight(BaseModel):
    name: str
    id: str
    spend: float
    results: Number
    cost_per_result: Optional[float] = None
    result_type: str
    status: Optional[str] = None
    daily_budget: Optional[str] = None
    lifetime_budget: Optional[str] = None

    @model_serializer(mode="wrap")
    def _drop_unattached(self, handler):
        data = handler(self)
        for key in ("status", "daily_budget", "lifetime_budget"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class PerformerRef(BaseModel):
    name: str
    id: str
    cost_per_result: float


class InsightsSummary(BaseModel):
    total_spend: float
    total_results: Number
    total_impressions: int
    total_clicks: int
    avg_cost_per_result: Optional[float] = None
    avg_ctr: float
    entity_count: int
    with_results_count: int
    lowest_cpr: Optional[PerformerRef] = None
    highest_cpr: Optional[PerformerRef] = None
    date_start: str = ""
    date_stop: str = ""


class BreakdownValue(BaseModel):
    value: str
    spend: float
    impressions: int
    clicks: int
    results: Number
    cost_per_result: Optional[float] = None


class BreakdownDimensionSummary(BaseModel):
    dimension: str
    result_type: str
    lowest_cpr: Optional[BreakdownValue] = None
    highest_cpr: Optional[BreakdownValue] = None
    values: List[BreakdownValue]


class PeriodBounds(BaseModel):
    start: str
    end: str


class MetricChange(BaseModel):
    current: Number
    previous: Number
    change_pct: float


class OptionalMetricChange(BaseModel):
    current: Optional[float] = None
    previous: Optional[float] = None
    change_pct: Optional[float] = None


class PeriodComparison(BaseModel):
    current_period: PeriodBounds
    previous_period: PeriodBounds
    spend: MetricChange
    results: MetricChange
    impressions: MetricChange
    clicks: MetricChange
    cost_per_result: OptionalMetricChange
    ctr: MetricChange
    trend: Literal["improving", "declining", "stable"]
    warning: Optional[str] = None


class TokenInfo(BaseModel):
    model_config = ConfigDict(extra="allow")

    app_id: Optional[str] = None
    type: Optional[str] = None
    application: Optional[str] = None
    data_access_expires_at: Optional[int] = None
    expires_at: Optional[int] = None
    is_valid: bool = False
    scopes: List[str] = Field(default_factory=list)
    user_id: Optional[str] = None
