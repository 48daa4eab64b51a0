from .graph_client import GraphClient, normalize_account_id
from .pagination import Page, walk_pages
from .repository import (
    AccountRepository,
    AdRepository,
    AdSetRepository,
    CampaignRepository,
    CreativeRepository,
    ImageRepository,
    InsightsQuery,
    InsightsRepository,
    ListOptions,
    ListResult,
    VideoRepository,
)
from .token_manager import TokenManager

__all__ = [
    "GraphClient",
    "normalize_account_id",
    "Page",
    "walk_pages",
    "AccountRepository",
    "AdRepository",
    "AdSetRepository",
    "CampaignRepository",
    "CreativeRepository",
    "ImageRepository",
    "InsightsQuery",
    "InsightsRepository",
    "ListOptions",
    "ListResult",
    "VideoRepository",
    "TokenManager",
]
