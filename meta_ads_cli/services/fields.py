"""
Field selections per entity kind.

Each kind has a known field set and a default selection. Requested fields are
checked against the known set before any request is made, so a typo fails
locally with INVALID_PARAMETER instead of as a remote error.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from meta_ads_cli.errors import CliError, ErrorCode


def root_name(field: str) -> str:
    """``creative{id,name}`` and ``targeting.geo_locations`` validate as their root."""
    for marker in ("{", "."):
        field = field.split(marker, 1)[0]
    return field.strip()


def split_fields(value: Optional[str]) -> Optional[List[str]]:
    """
    Split a comma list while keeping nested selections together.

    ``"id,creative{id,name},status"`` -> ``["id", "creative{id,name}", "status"]``
    """
    if value is None:
        return None
    fields, depth, current = [], 0, ""
    for char in value:
        if char == "{":
            depth += 1
        elif char == "}":
            depth = max(depth - 1, 0)
        if char == "," and depth == 0:
            if current.strip():
                fields.append(current.strip())
            current = ""
            continue
        current += char
    if current.strip():
        fields.append(current.strip())
    return fields


@dataclass(frozen=True)
class FieldSet:
    kind: str
    known: FrozenSet[str]
    default: Tuple[str, ...]

    def validate(self, fields: Iterable[str]) -> List[str]:
        fields = list(fields)
        unknown = [f for f in fields if root_name(f) not in self.known]
        if unknown:
            raise CliError(
                ErrorCode.INVALID_PARAMETER,
                f"Unknown {self.kind} field(s): {', '.join(unknown)}",
                {"unknown_fields": unknown, "allowed_fields": sorted(self.known)},
            )
        return fields

    def resolve(self, requested: Optional[Sequence[str]] = None, extra: Sequence[str] = ()) -> List[str]:
        """Validated selection: the request (or the default) plus ``extra``, without repeats."""
        selection = list(requested) if requested else list(self.default)
        for field in extra:
            if field not in selection:
                selection.append(field)
        return self.validate(selection)


ACCOUNT_FIELDS = FieldSet(
    kind="account",
    known=frozenset({
        "id", "account_id", "name", "account_status", "age", "amount_spent", "balance",
        "currency", "spend_cap", "timezone_name", "timezone_offset_hours_utc",
        "business", "business_name", "business_city", "business_country_code",
        "created_time", "disable_reason", "funding_source", "min_daily_budget",
    }),
    default=(
        "id", "account_id", "name", "account_status", "amount_spent", "balance",
        "currency", "spend_cap", "business_name",
    ),
)

ACCOUNT_DETAIL_FIELDS = (
    "id", "account_id", "name", "account_status", "amount_spent", "balance", "currency",
    "spend_cap", "business_name", "business_city", "business_country_code",
)

CAMPAIGN_FIELDS = FieldSet(
    kind="campaign",
    known=frozenset({
        "id", "account_id", "name", "status", "configured_status", "effective_status",
        "objective", "buying_type", "bid_strategy", "created_time", "updated_time",
        "start_time", "stop_time", "daily_budget", "lifetime_budget", "budget_remaining",
        "spend_cap", "special_ad_categories", "special_ad_category", "issues_info",
        "recommendations", "source_campaign_id", "smart_promotion_type", "adsets", "ads",
        "insights",
    }),
    default=(
        "id", "name", "status", "effective_status", "objective", "created_time",
        "updated_time", "daily_budget", "lifetime_budget", "budget_remaining",
    ),
)

CAMPAIGN_DETAIL_FIELDS = CAMPAIGN_FIELDS.default + ("start_time", "stop_time", "special_ad_categories")

ADSET_FIELDS = FieldSet(
    kind="adset",
    known=frozenset({
        "id", "account_id", "name", "campaign_id", "campaign", "status", "configured_status",
        "effective_status", "created_time", "updated_time", "start_time", "end_time",
        "daily_budget", "lifetime_budget", "budget_remaining", "billing_event",
        "optimization_goal", "bid_strategy", "bid_amount", "targeting", "promoted_object",
        "destination_type", "attribution_spec", "learning_phase_info", "issues_info",
        "recommendations", "frequency_control_specs", "pacing_type", "ads", "insights",
    }),
    default=(
        "id", "name", "campaign_id", "status", "effective_status", "created_time",
        "updated_time", "daily_budget", "lifetime_budget", "budget_remaining",
        "billing_event", "optimization_goal",
    ),
)

ADSET_DETAIL_FIELDS = (
    "id", "name", "campaign_id", "status", "effective_status", "created_time", "updated_time",
    "start_time", "end_time", "daily_budget", "lifetime_budget", "budget_remaining",
    "billing_event", "optimization_goal", "bid_strategy", "bid_amount", "targeting",
)

AD_FIELDS = FieldSet(
    kind="ad",
    known=frozenset({
        "id", "account_id", "name", "adset_id", "adset", "campaign_id", "campaign",
        "status", "configured_status", "effective_status", "created_time", "updated_time",
        "creative", "tracking_specs", "conversion_specs", "preview_shareable_link",
        "issues_info", "recommendations", "bid_amount", "source_ad_id", "ad_review_feedback",
        "insights",
    }),
    default=(
        "id", "name", "adset_id", "campaign_id", "status", "effective_status",
        "created_time", "updated_time", "preview_shareable_link",
    ),
)

AD_DETAIL_FIELDS = (
    "id", "name", "adset_id", "campaign_id", "status", "effective_status",
    "created_time", "updated_time", "creative", "preview_shareable_link",
)

AD_CREATIVE_SELECTION = (
    "creative{id,name,title,body,image_url,video_id,thumbnail_url,call_to_action_type,object_story_spec}"
)

CREATIVE_FIELDS = FieldSet(
    kind="creative",
    known=frozenset({
        "id", "account_id", "name", "title", "body", "status", "image_hash", "image_url",
        "video_id", "thumbnail_url", "object_story_spec", "object_story_id", "object_type",
        "object_url", "call_to_action_type", "link_url", "asset_feed_spec",
        "degrees_of_freedom_spec", "url_tags", "effective_object_story_id",
        "instagram_permalink_url",
    }),
    default=(
        "id", "name", "title", "body", "image_hash", "image_url", "video_id",
        "thumbnail_url", "call_to_action_type",
    ),
)

CREATIVE_DETAIL_FIELDS = CREATIVE_FIELDS.default + ("object_story_spec",)

IMAGE_FIELDS = FieldSet(
    kind="image",
    known=frozenset({
        "id", "account_id", "hash", "name", "url", "url_128", "permalink_url", "width",
        "height", "original_width", "original_height", "created_time", "updated_time",
        "status", "bytes", "creatives",
    }),
    default=("hash", "name", "url", "width", "height", "created_time"),
)

VIDEO_FIELDS = FieldSet(
    kind="video",
    known=frozenset({
        "id", "title", "description", "source", "picture", "permalink_url",
        "created_time", "updated_time", "length", "status", "format", "thumbnails",
        "embed_html", "published",
    }),
    default=("id", "title", "source", "picture", "created_time", "updated_time", "length"),
)

VIDEO_DETAIL_FIELDS = VIDEO_FIELDS.default + ("status",)

# Insights fields

INSIGHT_LEVEL_FIELDS: Dict[str, Tuple[str, ...]] = {
    "account": ("account_id", "account_name"),
    "campaign": ("campaign_id", "campaign_name"),
    "adset": ("campaign_id", "campaign_name", "adset_id", "adset_name"),
    "ad": ("campaign_id", "campaign_name", "adset_id", "adset_name", "ad_id", "ad_name"),
}

INSIGHT_METRIC_FIELDS = (
    "impressions", "clicks", "spend", "reach", "frequency", "cpm", "cpc", "ctr",
    "actions", "cost_per_action_type",
)

INSIGHT_VIDEO_FIELDS = (
    "video_play_actions",
    "video_thruplay_watched_actions",
    "video_p25_watched_actions",
    "video_p50_watched_actions",
    "video_p75_watched_actions",
    "video_p100_watched_actions",
    "video_avg_time_watched_actions",
)

INSIGHT_FIELDS = FieldSet(
    kind="insights",
    known=frozenset(
        {f for level in INSIGHT_LEVEL_FIELDS.values() for f in level}
        | set(INSIGHT_METRIC_FIELDS)
        | set(INSIGHT_VIDEO_FIELDS)
        | {
            "cpp", "date_start", "date_stop", "unique_clicks", "unique_ctr",
            "inline_link_clicks", "inline_link_click_ctr", "cost_per_inline_link_click",
            "outbound_clicks", "cost_per_unique_click", "action_values",
            "purchase_roas", "website_purchase_roas", "conversions", "cost_per_conversion",
            "objective", "optimization_goal", "buying_type", "attribution_setting",
            "quality_ranking", "engagement_rate_ranking", "conversion_rate_ranking",
            "social_spend", "account_currency",
        }
    ),
    default=INSIGHT_METRIC_FIELDS,
)

INSIGHT_BREAKDOWNS = frozenset({
    "age", "gender", "country", "region", "dma", "publisher_platform",
    "platform_position", "device_platform", "impression_device",
    "hourly_stats_aggregated_by_advertiser_time_zone", "product_id",
})


def insight_fields(
    level: str,
    fields: Optional[Sequence[str]] = None,
    extra: Sequence[str] = (),
    include_video: bool = False,
) -> List[str]:
    """Selection for an insights query: level identity + metrics unless ``fields`` replaces them."""
    base = list(fields) if fields else list(INSIGHT_LEVEL_FIELDS[level]) + list(INSIGHT_METRIC_FIELDS)
    additions = list(INSIGHT_VIDEO_FIELDS[:2]) if include_video else []
    additions.extend(extra)
    return INSIGHT_FIELDS.resolve(base, additions)


def validate_breakdowns(breakdowns: Sequence[str]) -> List[str]:
    unknown = [b for b in breakdowns if b not in INSIGHT_BREAKDOWNS]
    if unknown:
        raise CliError(
            ErrorCode.INVALID_PARAMETER,
            f"Unknown breakdown(s): {', '.join(unknown)}",
            {"unknown_breakdowns": unknown, "allowed_breakdowns": sorted(INSIGHT_BREAKDOWNS)},
        )
    return list(breakdowns)
