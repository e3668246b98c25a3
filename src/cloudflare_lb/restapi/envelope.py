"""Response envelope and pagination for the Cloudflare REST API.

Every API response is wrapped in the same envelope::

    {
        "success": true,
        "errors": [],
        "messages": [],
        "result": {...},
        "result_info": {"page": 1, "per_page": 20, "count": 1, "total_count": 1}
    }

List endpoints are paginated through ``result_info``; :func:`paginate`
drives the page loop lazily.
"""

from collections.abc import Callable, Iterator
from typing import Any, TypeAlias

import structlog
from pydantic import BaseModel, field_validator

logger = structlog.get_logger(__name__)


class ResponseInfo(BaseModel):
    """A single error or message entry from the envelope."""

    code: int = 0
    message: str = ""


class ResultInfo(BaseModel):
    """Pagination descriptor returned by list endpoints."""

    page: int = 1
    per_page: int = 0
    count: int = 0
    total_count: int = 0
    total_pages: int | None = None


class Envelope(BaseModel):
    """Uniform wrapper around every API response."""

    success: bool
    errors: list[ResponseInfo] = []
    messages: list[ResponseInfo | str] = []
    result: Any = None
    result_info: ResultInfo | None = None

    @field_validator("errors", "messages", mode="before")
    @classmethod
    def null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


PageFetcher: TypeAlias = Callable[[int, int], Envelope]


def paginate(fetch_page: PageFetcher, per_page: int) -> Iterator[Envelope]:
    """Iterate over every page of a list endpoint.

    Pages are requested lazily, starting at page 1 and advancing by one
    after each fetch. Iteration ends once ``page * per_page`` reaches the
    server's ``total_count``, when a page carries no ``result_info``, or
    when a page reports ``count == 0``. Calling ``paginate`` again starts
    over from page 1.

    A failing fetch propagates out of the iterator immediately; pages that
    were already yielded stay with the consumer.

    Args:
        fetch_page: Called as ``fetch_page(page, per_page)``; returns the
            decoded envelope for that page.
        per_page: Requested page size.

    Yields:
        The envelope of each page, in order.

    Raises:
        ValueError: If per_page is less than 1.
    """
    if per_page < 1:
        msg = "per_page must be at least 1"
        raise ValueError(msg)

    page = 1
    while True:
        envelope = fetch_page(page, per_page)
        yield envelope

        info = envelope.result_info
        if info is None:
            return
        if info.count == 0:
            logger.debug("Empty page, stopping pagination", page=page)
            return

        # Trust the server's page size when it reports one
        effective_per_page = info.per_page if info.per_page >= 1 else per_page
        if page * effective_per_page >= info.total_count:
            return
        page += 1
