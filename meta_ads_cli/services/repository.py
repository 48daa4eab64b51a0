"""
Entity repositories over the Graph client.

One repository per entity kind. Lists are scoped to the configured ad account
(or a parent entity), single pages by default or every page through the
pagination walker. Mutations re-read the entity afterwards because Graph only
acknowledges writes with ``{"id": ...}`` or ``{"success": true}``.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

import structlog
from pydantic import BaseModel

from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.models.envelope import PaginationMeta
from meta_ads_cli.models.schemas import (
    Ad,
    AdAccount,
    AdCreative,
    AdImage,
    AdSet,
    AdVideo,
    Campaign,
    InsightRecord,
)
from meta_ads_cli.services import fields as field_sets
from meta_ads_cli.services.graph_client import GraphClient, normalize_account_id
from meta_ads_cli.services.pagination import Page, walk_pages
from meta_ads_cli.services.periods import DateRange

logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 25
# Page size used when walking every page
ALL_PAGE_SIZE = 100

MUTABLE_STATUSES = ("ACTIVE", "PAUSED")


@dataclass
class ListOptions:
    limit: int = DEFAULT_PAGE_SIZE
    after: Optional[str] = None
    all: bool = False
    fields: Optional[List[str]] = None
    status: Optional[str] = None
    campaign_id: Optional[str] = None
    adset_id: Optional[str] = None
    include_delivery: bool = False
    include_creative: bool = False


@dataclass
class ListResult:
    data: List[Any]
    paging: PaginationMeta = field(default_factory=PaginationMeta)


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def _read_upload(file_path: str) -> Tuple[str, bytes]:
    path = Path(file_path).expanduser()
    try:
        return path.name, path.read_bytes()
    except FileNotFoundError:
        raise CliError(ErrorCode.INVALID_PARAMETER, f"File not found: {file_path}")
    except IsADirectoryError:
        raise CliError(ErrorCode.INVALID_PARAMETER, f"Not a file: {file_path}")


class EntityRepository:
    """List and get for one entity kind."""

    model: Type[BaseModel] = BaseModel
    field_set: field_sets.FieldSet
    detail_fields: Tuple[str, ...] = ()
    edge: str = ""
    status_filter_field = "status"

    def __init__(self, client: GraphClient):
        self.client = client

    def endpoint(self, options: ListOptions) -> str:
        return f"{self.client.require_account_id()}/{self.edge}"

    def list_fields(self, options: ListOptions) -> List[str]:
        return self.field_set.resolve(options.fields)

    def filtering(self, options: ListOptions) -> Optional[List[Dict[str, Any]]]:
        if not options.status:
            return None
        return [{"field": self.status_filter_field, "operator": "IN", "value": [options.status]}]

    def parse(self, raw: Dict[str, Any]) -> BaseModel:
        return self.model.model_validate(raw)

    async def list(self, options: Optional[ListOptions] = None) -> ListResult:
        options = options or ListOptions()
        # Scoping and field checks happen before any request goes out
        endpoint = self.endpoint(options)
        params: Dict[str, Any] = {"fields": ",".join(self.list_fields(options))}
        filtering = self.filtering(options)
        if filtering:
            params["filtering"] = filtering
        page_size = ALL_PAGE_SIZE if options.all else options.limit

        async def fetch_page(cursor: Optional[str]) -> Page:
            page_params = dict(params, limit=page_size)
            after = cursor or options.after
            if after:
                page_params["after"] = after
            return Page.from_graph(await self.client.get(endpoint, page_params))

        if options.all:
            items = await walk_pages(fetch_page)
            logger.info("entities_listed", kind=self.field_set.kind, count=len(items), all_pages=True)
            return ListResult(data=[self.parse(item) for item in items])

        page = await fetch_page(None)
        logger.info("entities_listed", kind=self.field_set.kind, count=len(page.data), has_next=bool(page.next_cursor))
        return ListResult(
            data=[self.parse(item) for item in page.data],
            paging=PaginationMeta(has_next=bool(page.next_cursor), cursor=page.next_cursor),
        )

    async def get(self, entity_id: str, fields: Optional[Sequence[str]] = None) -> BaseModel:
        selection = self.field_set.resolve(fields or self.detail_fields)
        raw = await self.client.get(entity_id, {"fields": ",".join(selection)})
        return self.parse(raw)


class MutableRepository(EntityRepository):
    """Adds create / update / status changes."""

    required_on_create: Tuple[str, ...] = ("name",)
    create_defaults: Dict[str, Any] = {"status": "PAUSED"}

    async def create(self, params: Dict[str, Any]) -> BaseModel:
        account_id = self.client.require_account_id()
        missing = [name for name in self.required_on_create if params.get(name) in (None, "")]
        if missing:
            raise CliError(
                ErrorCode.MISSING_REQUIRED_FIELD,
                f"Missing required field(s): {', '.join(missing)}",
                {"missing_fields": missing},
            )

        payload = dict(self.create_defaults)
        payload.update(_drop_none(params))
        result = await self.client.post(f"{account_id}/{self.edge}", payload)
        created_id = result.get("id")
        if not created_id:
            raise CliError(ErrorCode.OPERATION_FAILED, f"Create {self.field_set.kind} returned no ID.", {"response": result})

        logger.info("entity_created", kind=self.field_set.kind, id=created_id)
        return await self.get(created_id)

    async def update(self, entity_id: str, params: Dict[str, Any]) -> BaseModel:
        changes = _drop_none(params)
        if not changes:
            raise CliError(ErrorCode.MISSING_REQUIRED_FIELD, "Nothing to update. Provide at least one field to change.")

        await self.client.post(entity_id, changes)
        logger.info("entity_updated", kind=self.field_set.kind, id=entity_id, fields=sorted(changes))
        return await self.get(entity_id)

    async def update_status(self, entity_id: str, status: str) -> BaseModel:
        if status not in MUTABLE_STATUSES:
            raise CliError(
                ErrorCode.INVALID_PARAMETER,
                f"Status must be one of {', '.join(MUTABLE_STATUSES)}, got {status}.",
            )
        return await self.update(entity_id, {"status": status})


class AccountRepository(EntityRepository):
    model = AdAccount
    field_set = field_sets.ACCOUNT_FIELDS
    detail_fields = field_sets.ACCOUNT_DETAIL_FIELDS

    def endpoint(self, options: ListOptions) -> str:
        return "me/adaccounts"

    async def get(self, entity_id: str, fields: Optional[Sequence[str]] = None) -> AdAccount:
        return await super().get(normalize_account_id(entity_id), fields)


class CampaignRepository(MutableRepository):
    model = Campaign
    field_set = field_sets.CAMPAIGN_FIELDS
    detail_fields = field_sets.CAMPAIGN_DETAIL_FIELDS
    edge = "campaigns"
    required_on_create = ("name", "objective")
    create_defaults = {"status": "PAUSED", "special_ad_categories": []}


class AdSetRepository(MutableRepository):
    model = AdSet
    field_set = field_sets.ADSET_FIELDS
    detail_fields = field_sets.ADSET_DETAIL_FIELDS
    edge = "adsets"
    required_on_create = ("name", "campaign_id", "billing_event", "optimization_goal", "targeting")

    def endpoint(self, options: ListOptions) -> str:
        if options.campaign_id:
            return f"{options.campaign_id}/adsets"
        return super().endpoint(options)

    def list_fields(self, options: ListOptions) -> List[str]:
        extra = ["learning_phase_info", "issues_info"] if options.include_delivery else []
        return self.field_set.resolve(options.fields, extra)


class AdRepository(MutableRepository):
    model = Ad
    field_set = field_sets.AD_FIELDS
    detail_fields = field_sets.AD_DETAIL_FIELDS
    edge = "ads"
    # Graph rejects filtering ads on "status"
    status_filter_field = "effective_status"
    required_on_create = ("name", "adset_id", "creative")

    def endpoint(self, options: ListOptions) -> str:
        if options.adset_id:
            return f"{options.adset_id}/ads"
        if options.campaign_id:
            return f"{options.campaign_id}/ads"
        return super().endpoint(options)

    def list_fields(self, options: ListOptions) -> List[str]:
        extra = []
        if options.include_delivery:
            extra.append("issues_info")
        if options.include_creative:
            extra.append(field_sets.AD_CREATIVE_SELECTION)
        return self.field_set.resolve(options.fields, extra)


class CreativeRepository(MutableRepository):
    model = AdCreative
    field_set = field_sets.CREATIVE_FIELDS
    detail_fields = field_sets.CREATIVE_DETAIL_FIELDS
    edge = "adcreatives"
    create_defaults: Dict[str, Any] = {}

    async def update(self, entity_id: str, params: Dict[str, Any]) -> BaseModel:
        raise CliError(ErrorCode.OPERATION_FAILED, "Ad creatives cannot be edited once created.")


class ImageRepository(EntityRepository):
    model = AdImage
    field_set = field_sets.IMAGE_FIELDS
    detail_fields = field_sets.IMAGE_FIELDS.default
    edge = "adimages"

    async def upload(self, file_path: str, name: Optional[str] = None) -> AdImage:
        account_id = self.client.require_account_id()
        file_name, content = _read_upload(file_path)
        file_name = name or file_name

        logger.info("image_upload_started", file=file_name, size=len(content))
        result = await self.client.post_multipart(
            f"{account_id}/adimages",
            data={},
            files={"filename": (file_name, content)},
        )
        # {"images": {"<file name>": {"hash": ..., "url": ...}}}
        images = result.get("images") or {}
        if not images:
            raise CliError(ErrorCode.OPERATION_FAILED, "No image data in upload response.", {"response": result})
        first = next(iter(images.values()))
        return AdImage.model_validate(dict(first, name=first.get("name") or file_name))


class VideoRepository(EntityRepository):
    model = AdVideo
    field_set = field_sets.VIDEO_FIELDS
    detail_fields = field_sets.VIDEO_DETAIL_FIELDS
    edge = "advideos"

    async def upload(
        self,
        name: str,
        file_path: Optional[str] = None,
        file_url: Optional[str] = None,
    ) -> AdVideo:
        account_id = self.client.require_account_id()
        endpoint = f"{account_id}/advideos"

        if file_url:
            logger.info("video_upload_started", source="url", name=name)
            result = await self.client.post(endpoint, {"file_url": file_url, "name": name})
        elif file_path:
            file_name, content = _read_upload(file_path)
            logger.info("video_upload_started", source="file", name=name, size=len(content))
            result = await self.client.post_multipart(
                endpoint,
                data={"name": name},
                files={"source": (file_name, content)},
            )
        else:
            raise CliError(ErrorCode.MISSING_REQUIRED_FIELD, "Provide either a file path or --url to upload a video.")

        if not result.get("id"):
            raise CliError(ErrorCode.OPERATION_FAILED, "Video upload returned no ID.", {"response": result})
        return AdVideo.model_validate(dict(result, title=result.get("title") or name))


@dataclass
class InsightsQuery:
    level: str = "campaign"
    date_preset: Optional[str] = None
    time_range: Optional[DateRange] = None
    fields: Optional[List[str]] = None
    extra_fields: List[str] = field(default_factory=list)
    breakdowns: List[str] = field(default_factory=list)
    limit: Optional[int] = None
    include_video: bool = False
    all: bool = False


class InsightsRepository:
    """Reads ``<account>/insights``."""

    def __init__(self, client: GraphClient):
        self.client = client

    def build_params(self, query: InsightsQuery) -> Dict[str, Any]:
        if query.level not in field_sets.INSIGHT_LEVEL_FIELDS:
            raise CliError(
                ErrorCode.INVALID_PARAMETER,
                f"Invalid level {query.level}. Use one of: {', '.join(field_sets.INSIGHT_LEVEL_FIELDS)}",
            )
        selection = field_sets.insight_fields(query.level, query.fields, query.extra_fields, query.include_video)
        params: Dict[str, Any] = {"level": query.level, "fields": ",".join(selection)}
        if query.time_range:
            params["time_range"] = query.time_range.to_meta_time_range()
        elif query.date_preset:
            params["date_preset"] = query.date_preset
        if query.breakdowns:
            params["breakdowns"] = ",".join(field_sets.validate_breakdowns(query.breakdowns))
        return params

    async def fetch(self, query: InsightsQuery) -> List[InsightRecord]:
        endpoint = f"{self.client.require_account_id()}/insights"
        params = self.build_params(query)

        async def fetch_page(cursor: Optional[str]) -> Page:
            page_params = dict(params)
            if query.all:
                page_params["limit"] = ALL_PAGE_SIZE
            elif query.limit:
                page_params["limit"] = query.limit
            if cursor:
                page_params["after"] = cursor
            return Page.from_graph(await self.client.get(endpoint, page_params))

        if query.all:
            rows = await walk_pages(fetch_page)
        else:
            rows = (await fetch_page(None)).data

        logger.info(
            "insights_fetched",
            level=query.level,
            date_preset=query.date_preset,
            time_range=query.time_range.to_meta_time_range() if query.time_range else None,
            rows=len(rows),
        )
        return [InsightRecord.model_validate(row) for row in rows]
