from .schemas import (
    AdAccount,
    Campaign,
    AdSet,
    Ad,
    AdCreative,
    AdImage,
    AdVideo,
    InsightRecord,
    FlatInsight,
    CompactInsight,
    InsightsSummary,
    BreakdownDimensionSummary,
    PeriodComparison,
    TokenInfo,
)
from .envelope import (
    ApiResponse,
    ErrorDetail,
    ErrorResponse,
    PaginationMeta,
    RateLimitInfo,
    ResponseMeta,
    SuccessResponse,
    create_success_response,
)

__all__ = [
    "AdAccount",
    "Campaign",
    "AdSet",
    "Ad",
    "AdCreative",
    "AdImage",
    "AdVideo",
    "InsightRecord",
    "FlatInsight",
    "CompactInsight",
    "InsightsSummary",
    "BreakdownDimensionSummary",
    "PeriodComparison",
    "TokenInfo",
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    "PaginationMeta",
    "RateLimitInfo",
    "ResponseMeta",
    "SuccessResponse",
    "create_success_response",
]
