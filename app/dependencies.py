from fastapi import Query

from app.config import settings


class PaginationParams:
    """
    Query-string paging shared by every list endpoint.

    ``sort_by`` and ``sort_order`` are optional: when the caller leaves
    them out, ``as_kwargs`` omits them and the service's own default
    ordering applies (``published_at`` for the news feeds, ``created_at``
    elsewhere).  ``page_size`` is clamped to ``settings.MAX_PAGE_SIZE``.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="1-based page number."),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            description="Items per page; capped at MAX_PAGE_SIZE.",
        ),
        sort_by: str | None = Query(
            None,
            description="Column to order by; unknown columns fall back to created_at.",
        ),
        sort_order: str | None = Query(None, pattern="^(asc|desc)$"),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)
        self.sort_by = sort_by
        self.sort_order = sort_order

    def as_kwargs(self) -> dict:
        kwargs = {"page": self.page, "page_size": self.page_size}
        if self.sort_by is not None:
            kwargs["sort_by"] = self.sort_by
        if self.sort_order is not None:
            kwargs["sort_order"] = self.sort_order
        return kwargs
