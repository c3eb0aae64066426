"""PaginatedCollectionController — one instance per remote list on screen.

Owns the ordered items, page cursor, status and filter of one collection.
Fetches go through a RequestGate keyed by the collection id, so whichever
fetch was issued last (load, refresh or load_more) is authoritative and every
earlier result is dropped on arrival.

Status machine:
    idle -> loading | refreshing | loading_more -> idle | error
    error -> (explicit load / refresh / load_more retry)

Fetch failures never escape the public methods; they land in ``status`` and
``error``. The filtered ``view`` is recomputed on every read.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from typing import Any, Generic, Literal, TypeVar, Union

import structlog

from marketsync.config import settings
from marketsync.controllers.gate import RequestGate
from marketsync.errors import DataSourceError, ServerError
from marketsync.interfaces import DataSource
from marketsync.models.contracts import (
    ALL_STATUSES,
    CollectionSnapshot,
    CollectionStatus,
    Failure,
    FilterCriteria,
    Page,
    PageRequest,
    StatusFilterMode,
)

logger = structlog.get_logger()

T = TypeVar("T")

ResponseAdapter = Callable[[Any], Page]
SearchField = Union[str, Callable[[Any], Any]]
Listener = Callable[[CollectionSnapshot], None]
FetchOp = Literal["load", "refresh", "load_more"]

_OP_STATUS: dict[str, CollectionStatus] = {
    "load": "loading",
    "refresh": "refreshing",
    "load_more": "loading_more",
}

_collection_ids = itertools.count(1)


def field_value(item: Any, field: str) -> Any:
    """Read ``field`` from a dict-like payload or an attribute-bearing object."""
    if isinstance(item, Mapping):
        return item.get(field)
    return getattr(item, field, None)


def default_id(item: Any) -> Hashable | None:
    for key in ("id", "_id"):
        value = field_value(item, key)
        if value is not None:
            return value
    return None


def default_status(item: Any) -> str | None:
    value = field_value(item, "status")
    return None if value is None else str(value)


def _search_values(item: Any, fields: Sequence[SearchField]) -> Iterable[str]:
    for field in fields:
        value = field(item) if callable(field) else field_value(item, field)
        if value is not None:
            yield str(value)


def apply_filter(
    items: Sequence[T],
    criteria: FilterCriteria,
    *,
    search_fields: Sequence[SearchField],
    status_of: Callable[[Any], str | None] = default_status,
    match_status: bool = True,
) -> list[T]:
    """Filter ``items`` by criteria without reordering them.

    Text matches are case-insensitive substrings of any search field. Status
    matches are case-insensitive equality; ``"all"`` matches everything.
    """
    needle = criteria.text.strip().lower()
    wanted = criteria.status.strip().lower()
    check_status = match_status and wanted != ALL_STATUSES

    result: list[T] = []
    for item in items:
        if check_status and (status_of(item) or "").lower() != wanted:
            continue
        if needle and not any(needle in v.lower() for v in _search_values(item, search_fields)):
            continue
        result.append(item)
    return result


class PaginatedCollectionController(Generic[T]):
    """Fetch / refresh / load-more / filter state for one remote collection."""

    def __init__(
        self,
        source: DataSource,
        adapter: ResponseAdapter = Page.model_validate,
        *,
        id_of: Callable[[T], Hashable | None] = default_id,
        search_fields: Sequence[SearchField] = ("title",),
        status_of: Callable[[T], str | None] = default_status,
        status_filter_mode: StatusFilterMode = "local",
        page_size: int | None = None,
        collection_id: str | None = None,
        initial_filter: FilterCriteria | None = None,
        gate: RequestGate | None = None,
    ) -> None:
        if status_filter_mode not in ("local", "server"):
            raise ValueError(f"Unknown status filter mode: {status_filter_mode!r}")
        self._source = source
        self._adapter = adapter
        self._id_of = id_of
        self._search_fields = tuple(search_fields)
        self._status_of = status_of
        self._status_filter_mode: StatusFilterMode = status_filter_mode
        self._page_size = page_size or settings.default_page_size
        self._collection_id = collection_id or f"collection-{next(_collection_ids)}"
        self._gate = gate or RequestGate()

        self._items: list[T] = []
        self._page = 1
        self._has_more = True
        self._status: CollectionStatus = "idle"
        self._error: Failure | None = None
        self._failed_op: FetchOp | None = None
        self._filter = initial_filter or FilterCriteria()
        self._closed = False
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task[None]] = set()

    # --- Read-only state ---

    @property
    def collection_id(self) -> str:
        return self._collection_id

    @property
    def items(self) -> tuple[T, ...]:
        return tuple(self._items)

    @property
    def page(self) -> int:
        return self._page

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def status(self) -> CollectionStatus:
        return self._status

    @property
    def error(self) -> Failure | None:
        return self._error

    @property
    def filter(self) -> FilterCriteria:
        return self._filter

    @property
    def status_filter_mode(self) -> StatusFilterMode:
        return self._status_filter_mode

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def view(self) -> list[T]:
        return apply_filter(
            self._items,
            self._filter,
            search_fields=self._search_fields,
            status_of=self._status_of,
            match_status=self._status_filter_mode == "local",
        )

    def snapshot(self) -> CollectionSnapshot:
        return CollectionSnapshot(
            collection_id=self._collection_id,
            items=list(self._items),
            view=self.view,
            page=self._page,
            has_more=self._has_more,
            status=self._status,
            error=self._error,
            filter=self._filter,
        )

    # --- Fetch operations ---

    async def load(self) -> None:
        """Initial fetch of page 1. Only from ``idle``, or ``error`` as a retry."""
        if self._closed or self._status not in ("idle", "error"):
            return
        await self._fetch("load")

    async def refresh(self) -> None:
        """Refetch page 1, keeping current items visible until it arrives.

        Always allowed: a refresh supersedes whatever fetch is in flight.
        """
        if self._closed:
            return
        await self._fetch("refresh")

    async def reload(self) -> None:
        await self.refresh()

    async def load_more(self) -> None:
        """Append the next page. Returns immediately when there is nothing to do."""
        if self._closed or not self._has_more:
            return
        retrying = self._status == "error" and self._failed_op == "load_more"
        if self._status != "idle" and not retrying:
            return
        await self._fetch("load_more")

    # --- Filtering ---

    def set_filter(
        self,
        criteria: FilterCriteria | None = None,
        *,
        text: str | None = None,
        status: str | None = None,
    ) -> asyncio.Task[None] | None:
        """Replace the filter criteria and recompute the view.

        Never fetches in ``local`` mode. In ``server`` mode a status change
        changes the underlying page set, so a refresh is scheduled and its
        task returned.
        """
        if criteria is not None and (text is not None or status is not None):
            raise TypeError("Pass either criteria or text/status, not both")
        if criteria is None:
            criteria = FilterCriteria(
                text=self._filter.text if text is None else text,
                status=self._filter.status if status is None else status,
            )
        previous = self._filter
        self._filter = criteria
        logger.debug(
            "collection_filter_set",
            collection=self._collection_id,
            text=criteria.text,
            status=criteria.status,
        )
        self._notify()

        status_changed = previous.status.strip().lower() != criteria.status.strip().lower()
        if self._status_filter_mode == "server" and status_changed and not self._closed:
            task = asyncio.get_running_loop().create_task(self.refresh())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return task
        return None

    # --- Lifecycle & observation ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for state changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def close(self) -> None:
        """Detach from the screen: outstanding results are discarded from now on."""
        if self._closed:
            return
        self._closed = True
        self._gate.invalidate(self._collection_id)
        self._listeners.clear()
        logger.debug("collection_closed", collection=self._collection_id)

    # --- Internals ---

    def _server_status(self) -> str | None:
        if self._status_filter_mode != "server":
            return None
        status = self._filter.status.strip()
        return None if status.lower() == ALL_STATUSES else status

    def _normalize(self, raw: Any) -> Page:
        try:
            return self._adapter(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            # pydantic.ValidationError is a ValueError
            raise ServerError(f"Malformed page payload: {type(exc).__name__}") from exc

    def _appendable(self, incoming: Iterable[T]) -> list[T]:
        seen = {self._id_of(item) for item in self._items}
        fresh: list[T] = []
        for item in incoming:
            item_id = self._id_of(item)
            if item_id is not None:
                if item_id in seen:
                    continue
                seen.add(item_id)
            fresh.append(item)
        return fresh

    async def _fetch(self, op: FetchOp) -> None:
        page = self._page + 1 if op == "load_more" else 1
        token = self._gate.issue(self._collection_id)
        self._status = _OP_STATUS[op]
        self._notify()

        log = logger.bind(collection=self._collection_id, op=op, page=page, token=token)
        request = PageRequest(page=page, page_size=self._page_size, status=self._server_status())
        log.debug("collection_fetch_start", status_param=request.status)

        try:
            raw = await self._source.fetch_page(request)
            result = self._normalize(raw)
        except DataSourceError as exc:
            if not self._gate.is_current(self._collection_id, token):
                log.debug("collection_stale_discarded", outcome="failure")
                return
            log.warning("collection_fetch_failed", error_kind=exc.kind, error=exc.message)
            self._fail(op, exc)
            return
        except Exception as exc:
            if not self._gate.is_current(self._collection_id, token):
                log.debug("collection_stale_discarded", outcome="failure")
                return
            log.exception("collection_fetch_crashed", error_type=type(exc).__name__)
            error = ServerError(f"Unexpected {type(exc).__name__} while fetching page {page}")
            self._fail(op, error)
            return

        if not self._gate.is_current(self._collection_id, token):
            log.debug("collection_stale_discarded", outcome="success")
            return

        if op == "load_more":
            self._items = self._items + self._appendable(result.items)
        else:
            self._items = list(result.items)
        self._page = page
        self._has_more = result.more_after(page)
        self._error = None
        self._failed_op = None
        self._status = "idle"
        log.info(
            "collection_fetch_complete",
            received=len(result.items),
            total=len(self._items),
            has_more=self._has_more,
        )
        self._notify()

    def _fail(self, op: FetchOp, exc: DataSourceError) -> None:
        self._error = Failure.from_error(exc)
        self._failed_op = op
        self._status = "error"
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("collection_listener_failed", collection=self._collection_id)
