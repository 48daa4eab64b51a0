"""
Discovery data for the ``schema`` command: insights fields per level,
breakdowns, date presets, action types and campaign objectives.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.services.insights import CONVERSION_ACTIONS, OBJECTIVE_TO_ACTION
from meta_ads_cli.services.periods import DATE_PRESETS


@dataclass(frozen=True)
class FieldInfo:
    name: str
    type: str
    description: str


@dataclass(frozen=True)
class BreakdownInfo:
    name: str
    category: str
    description: str


@dataclass(frozen=True)
class ActionTypeInfo:
    name: str
    category: str
    description: str


COMMON_FIELDS = [
    FieldInfo("impressions", "number", "Total impressions"),
    FieldInfo("clicks", "number", "Total clicks (all types)"),
    FieldInfo("spend", "currency", "Total spend in account currency"),
    FieldInfo("reach", "number", "Unique users reached"),
    FieldInfo("frequency", "decimal", "Average impressions per user"),
    FieldInfo("cpm", "currency", "Cost per 1000 impressions"),
    FieldInfo("cpc", "currency", "Cost per click"),
    FieldInfo("ctr", "percentage", "Click-through rate"),
    FieldInfo("cpp", "currency", "Cost per 1000 people reached"),
    FieldInfo("actions", "array", "Action types and counts"),
    FieldInfo("cost_per_action_type", "array", "Cost per action type"),
    FieldInfo("date_start", "string", "Start of the reporting period"),
    FieldInfo("date_stop", "string", "End of the reporting period"),
]

VIDEO_FIELDS = [
    FieldInfo("video_play_actions", "array", "3-second video plays"),
    FieldInfo("video_thruplay_watched_actions", "array", "ThruPlays (15s or complete)"),
    FieldInfo("video_p25_watched_actions", "array", "Watched to 25%"),
    FieldInfo("video_p50_watched_actions", "array", "Watched to 50%"),
    FieldInfo("video_p75_watched_actions", "array", "Watched to 75%"),
    FieldInfo("video_p100_watched_actions", "array", "Watched to 100%"),
    FieldInfo("video_avg_time_watched_actions", "array", "Average watch time"),
]

LEVEL_FIELDS: Dict[str, List[FieldInfo]] = {
    "account": [
        FieldInfo("account_id", "string", "Ad account ID"),
        FieldInfo("account_name", "string", "Ad account name"),
    ],
    "campaign": [
        FieldInfo("campaign_id", "string", "Campaign ID"),
        FieldInfo("campaign_name", "string", "Campaign name"),
    ],
    "adset": [
        FieldInfo("adset_id", "string", "Ad set ID"),
        FieldInfo("adset_name", "string", "Ad set name"),
        FieldInfo("campaign_id", "string", "Parent campaign ID"),
        FieldInfo("campaign_name", "string", "Parent campaign name"),
    ],
    "ad": [
        FieldInfo("ad_id", "string", "Ad ID"),
        FieldInfo("ad_name", "string", "Ad name"),
        FieldInfo("adset_id", "string", "Parent ad set ID"),
        FieldInfo("adset_name", "string", "Parent ad set name"),
        FieldInfo("campaign_id", "string", "Parent campaign ID"),
        FieldInfo("campaign_name", "string", "Parent campaign name"),
    ],
}

BREAKDOWNS = [
    BreakdownInfo("age", "demographics", "Age ranges (18-24, 25-34, 35-44, 45-54, 55-64, 65+)"),
    BreakdownInfo("gender", "demographics", "Gender (male, female, unknown)"),
    BreakdownInfo("country", "geography", "Country code (US, GB, CA, ...)"),
    BreakdownInfo("region", "geography", "State or region within a country"),
    BreakdownInfo("dma", "geography", "Designated Market Area (US only)"),
    BreakdownInfo("publisher_platform", "placement", "facebook, instagram, messenger, audience_network"),
    BreakdownInfo("platform_position", "placement", "feed, story, reels, right_column, ..."),
    BreakdownInfo("device_platform", "placement", "mobile or desktop"),
    BreakdownInfo("impression_device", "placement", "iPhone, Android, desktop, ..."),
    BreakdownInfo("hourly_stats_aggregated_by_advertiser_time_zone", "time", "Hour of day (0-23)"),
    BreakdownInfo("product_id", "product", "Catalog product ID"),
]

ACTION_TYPES = [
    ActionTypeInfo("purchase", "conversion", "Completed purchases"),
    ActionTypeInfo("lead", "conversion", "Lead form submissions"),
    ActionTypeInfo("complete_registration", "conversion", "Registration completions"),
    ActionTypeInfo("subscribe", "conversion", "Subscriptions"),
    ActionTypeInfo("add_to_cart", "conversion", "Items added to cart"),
    ActionTypeInfo("initiate_checkout", "conversion", "Checkouts started"),
    ActionTypeInfo("add_payment_info", "conversion", "Payment info added"),
    ActionTypeInfo("search", "conversion", "Searches"),
    ActionTypeInfo("view_content", "conversion", "Content or product views"),
    ActionTypeInfo("link_click", "engagement", "Link clicks"),
    ActionTypeInfo("landing_page_view", "engagement", "Landing page views"),
    ActionTypeInfo("post_engagement", "engagement", "Post engagements"),
    ActionTypeInfo("page_engagement", "engagement", "Page likes, follows, check-ins"),
    ActionTypeInfo("video_view", "engagement", "Video views (3+ seconds)"),
    ActionTypeInfo("post_reaction", "engagement", "Post reactions"),
    ActionTypeInfo("comment", "engagement", "Comments"),
    ActionTypeInfo("post_save", "engagement", "Post saves"),
    ActionTypeInfo("share", "engagement", "Shares"),
    ActionTypeInfo("app_install", "app", "App installs"),
    ActionTypeInfo("app_custom_event", "app", "Custom app events"),
    ActionTypeInfo("onsite_conversion.messaging_conversation_started_7d", "messaging", "Messaging conversations started"),
    ActionTypeInfo("onsite_conversion.messaging_first_reply", "messaging", "First replies"),
]

CAMPAIGN_OBJECTIVES = [
    {"name": "OUTCOME_AWARENESS", "description": "Reach and brand awareness"},
    {"name": "OUTCOME_ENGAGEMENT", "description": "Engagement, video views, page likes"},
    {"name": "OUTCOME_TRAFFIC", "description": "Website traffic"},
    {"name": "OUTCOME_LEADS", "description": "Lead generation"},
    {"name": "OUTCOME_APP_PROMOTION", "description": "App installs and engagement"},
    {"name": "OUTCOME_SALES", "description": "Conversions and catalog sales"},
]

SCHEMA_TYPES = ("all", "fields", "video-fields", "breakdowns", "date-presets", "actions", "objectives")


def fields_for_level(level: str) -> List[FieldInfo]:
    if level not in LEVEL_FIELDS:
        raise CliError(ErrorCode.INVALID_PARAMETER, f"Invalid level {level}. Use one of: {', '.join(LEVEL_FIELDS)}")
    return LEVEL_FIELDS[level] + COMMON_FIELDS


def build_schema(schema_type: str = "all", level: str = "ad", compact: bool = False) -> Dict[str, Any]:
    """
    Discovery document for ``schema_type``.

    With ``compact`` each section collapses to its list of names.
    """
    if schema_type not in SCHEMA_TYPES:
        raise CliError(
            ErrorCode.INVALID_PARAMETER,
            f"Unknown schema type {schema_type}. Use one of: {', '.join(SCHEMA_TYPES)}",
        )

    def wanted(name: str) -> bool:
        return schema_type in ("all", name)

    output: Dict[str, Any] = {}

    if wanted("fields"):
        fields = fields_for_level(level)
        output["fields"] = [f.name for f in fields] if compact else {
            "level": level,
            "available": [asdict(f) for f in fields],
            "note": "Use --extra-fields to request fields outside the default set",
        }

    if wanted("video-fields"):
        output["video_fields"] = [f.name for f in VIDEO_FIELDS] if compact else {
            "available": [asdict(f) for f in VIDEO_FIELDS],
            "note": "Request with --video-metrics or --extra-fields",
        }

    if wanted("breakdowns"):
        output["breakdowns"] = [b.name for b in BREAKDOWNS] if compact else {
            "available": [asdict(b) for b in BREAKDOWNS],
            "usage": "Use --breakdowns age,gender to break down by several dimensions",
            "combinations": [
                "age,gender - Demographics",
                "country,region - Geography",
                "publisher_platform,platform_position - Placement",
            ],
        }

    if wanted("date-presets"):
        output["date_presets"] = list(DATE_PRESETS) if compact else {
            "available": list(DATE_PRESETS),
            "usage": "Use --date-preset last_7d or --date-range 2024-01-01:2024-01-07",
            "compare_format": "Use --compare last_7d:previous_7d for a non-overlapping comparison",
        }

    if wanted("actions"):
        output["actions"] = list(CONVERSION_ACTIONS) if compact else {
            "conversion_priority": list(CONVERSION_ACTIONS),
            "all_types": [asdict(a) for a in ACTION_TYPES],
            "note": "result_type is the first match in conversion_priority order",
        }

    if wanted("objectives"):
        output["objectives"] = [o["name"] for o in CAMPAIGN_OBJECTIVES] if compact else {
            "available": CAMPAIGN_OBJECTIVES,
            "objective_to_action_mapping": OBJECTIVE_TO_ACTION,
            "note": "Use --include-objective to add objective_result_type and objective_cost_per_result",
        }

    return output
