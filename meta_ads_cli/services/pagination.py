"""
Cursor pagination over Graph API list edges.

Pages are fetched strictly one after another: each cursor comes from the
previous response. A failing page propagates and discards what was
collected so far.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_MAX_PAGES = 100


@dataclass
class Page:
    """One page of a list edge."""
    data: List[Any] = field(default_factory=list)
    next_cursor: Optional[str] = None

    @classmethod
    def from_graph(cls, payload: Dict[str, Any]) -> "Page":
        """
        Build a page from a ``{data, paging}`` Graph response.

        The last page can still carry ``cursors.after``; only the presence of
        ``paging.next`` means there is more to read.
        """
        paging = payload.get("paging") or {}
        cursor = None
        if paging.get("next"):
            cursor = (paging.get("cursors") or {}).get("after")
        return cls(data=list(payload.get("data") or []), next_cursor=cursor)


FetchPage = Callable[[Optional[str]], Awaitable[Page]]


async def walk_pages(fetch_page: FetchPage, max_pages: int = DEFAULT_MAX_PAGES) -> List[Any]:
    """
    Follow cursors until the edge is exhausted or ``max_pages`` pages were read.

    Args:
        fetch_page: Coroutine taking the cursor (None for the first page).
        max_pages: Upper bound on pages fetched.

    Returns:
        Items of every fetched page, in server order, without de-duplication.
    """
    if max_pages < 1:
        raise ValueError("max_pages must be at least 1")

    items: List[Any] = []
    cursor: Optional[str] = None
    pages = 0

    while pages < max_pages:
        page = await fetch_page(cursor)
        pages += 1
        items.extend(page.data)
        logger.debug("pagination_page", page=pages, items=len(page.data), has_next=bool(page.next_cursor))

        if not page.next_cursor:
            break
        cursor = page.next_cursor
    else:
        logger.warning("pagination_cap_reached", max_pages=max_pages, items=len(items))

    return items
