"""marketsync contract models.

Shapes exchanged between data sources, controllers and screens. Item payloads
stay opaque (``Any``): the controller only ever touches them through the
caller-supplied id, status and search-field extractors.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from marketsync.errors import DataSourceError

ALL_STATUSES = "all"

CollectionStatus = Literal["idle", "loading", "refreshing", "loading_more", "error"]
StatusFilterMode = Literal["local", "server"]
FailureKind = Literal["network", "server", "validation", "concurrency_rejected"]


# === Pagination ===


class Pagination(BaseModel):
    """Page-count metadata as reported by the API.

    Endpoints disagree on naming (``total_pages`` vs ``totalPages``) and some
    omit fields entirely, so every field is optional.
    """

    model_config = ConfigDict(extra="ignore")

    current_page: int | None = Field(
        default=None, validation_alias=AliasChoices("current_page", "currentPage")
    )
    total_pages: int | None = Field(
        default=None, validation_alias=AliasChoices("total_pages", "totalPages")
    )
    has_more: bool | None = Field(default=None, validation_alias=AliasChoices("has_more", "hasMore"))

    def more_after(self, requested_page: int) -> bool:
        """Whether another page exists after the one fetched for ``requested_page``."""
        if self.has_more is not None:
            return self.has_more
        if self.total_pages is None:
            return False
        current = self.current_page if self.current_page is not None else requested_page
        return current < self.total_pages


class Page(BaseModel):
    """One normalized page of a remote collection."""

    items: list[Any] = []
    pagination: Pagination | None = None

    def more_after(self, requested_page: int) -> bool:
        if self.pagination is None:
            return False
        return self.pagination.more_after(requested_page)


class PageRequest(BaseModel):
    """Parameters handed to ``DataSource.fetch_page``."""

    page: int = Field(ge=1)
    page_size: int = Field(ge=1)
    status: str | None = None  # only set for server-side status filtering


# === Filtering ===


class FilterCriteria(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    status: str = ALL_STATUSES

    @property
    def is_empty(self) -> bool:
        return not self.text.strip() and self.status.lower() == ALL_STATUSES


# === Failures & results ===


class Failure(BaseModel):
    """Presentation-ready failure, shared by collections and mutations."""

    kind: FailureKind
    message: str
    retryable: bool
    status_code: int | None = None

    @classmethod
    def from_error(cls, exc: DataSourceError, message: str | None = None) -> Failure:
        return cls(
            kind=exc.kind,
            message=message if message is not None else exc.message,
            retryable=exc.retryable,
            status_code=exc.status_code,
        )


class MutationResult(BaseModel):
    action: str
    outcome: Literal["success", "declined", "failed"]
    data: Any = None
    error: Failure | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == "success"

    @property
    def rejected(self) -> bool:
        """True when the call was refused because the same action was in flight."""
        return self.error is not None and self.error.kind == "concurrency_rejected"


class CollectionSnapshot(BaseModel):
    """Immutable view of a collection's state, handed to listeners and tests."""

    model_config = ConfigDict(frozen=True)

    collection_id: str
    items: list[Any]
    view: list[Any]
    page: int
    has_more: bool
    status: CollectionStatus
    error: Failure | None = None
    filter: FilterCriteria
