"""
Response envelope written to stdout by every command.

The envelope is a discriminated union on ``success``: a SuccessResponse
always carries ``data`` and ``meta``, an ErrorResponse always carries
``error``. Neither variant can hold the other's fields.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from .schemas import GraphEntity


class PaginationMeta(BaseModel):
    has_next: bool = False
    cursor: Optional[str] = None


class RateLimitInfo(BaseModel):
    call_count: float = 0
    total_cputime: float = 0
    total_time: float = 0
    usage_pct: float = 0


class ResponseMeta(BaseModel):
    account_id: Optional[str] = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    pagination: Optional[PaginationMeta] = None
    rate_limit: Optional[RateLimitInfo] = None
    changed: Optional[bool] = None
    reason: Optional[str] = None


class SuccessResponse(BaseModel):
    success: Literal[True] = True
    data: Any = None
    meta: ResponseMeta = Field(default_factory=ResponseMeta)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "data": to_plain(self.data),
            "meta": self.meta.model_dump(exclude_none=True),
        }


class ErrorDetail(BaseModel):
    code: str
    message: str
    retryable: bool = False
    details: Dict[str, Any] = Field(default_factory=dict)
    retry_after: Optional[int] = None


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    error: ErrorDetail

    def to_dict(self) -> Dict[str, Any]:
        error = self.error.model_dump()
        if error["retry_after"] is None:
            del error["retry_after"]
        return {"success": False, "error": error}


ApiResponse = Annotated[Union[SuccessResponse, ErrorResponse], Field(discriminator="success")]

api_response_adapter = TypeAdapter(ApiResponse)


def to_plain(value: Any) -> Any:
    """Dump pydantic models nested anywhere inside a payload."""
    if isinstance(value, BaseModel):
        # Graph objects only carry the fields that were selected
        return value.model_dump(exclude_none=isinstance(value, GraphEntity))
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


def create_success_response(
    data: Any,
    account_id: Optional[str] = None,
    pagination: Optional[PaginationMeta] = None,
    rate_limit: Optional[RateLimitInfo] = None,
    changed: Optional[bool] = None,
    reason: Optional[str] = None,
) -> SuccessResponse:
    return SuccessResponse(
        data=data,
        meta=ResponseMeta(
            account_id=account_id,
            pagination=pagination,
            rate_limit=rate_limit,
            changed=changed,
            reason=reason,
        ),
    )
