"""Response adapters: raw endpoint payloads -> ``Page``.

Each list endpoint names its items differently (``jobs``, ``projects``,
``orders`` or ``order_list``) and carries pagination either under a
``pagination`` object or at the top level. Call sites declare which shape
they expect by building an adapter here, instead of probing the payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from marketsync.controllers.collection import ResponseAdapter
from marketsync.models.contracts import Page, Pagination

_PAGE_FIELDS = ("current_page", "currentPage", "total_pages", "totalPages", "has_more", "hasMore")


def keyed_page(*item_keys: str, pagination_key: str | None = "pagination") -> ResponseAdapter:
    """Adapter for payloads carrying their items under the first present ``item_keys``.

    A payload with none of the keys is an empty page (the API omits empty
    lists). ``pagination_key=None`` reads page counts from the top level.
    """
    if not item_keys:
        raise ValueError("keyed_page needs at least one item key")

    def _adapt(raw: Any) -> Page:
        if not isinstance(raw, Mapping):
            raise TypeError(f"Expected a mapping payload, got {type(raw).__name__}")

        items: list[Any] = []
        for key in item_keys:
            if key in raw and raw[key] is not None:
                value = raw[key]
                if not isinstance(value, list):
                    raise TypeError(f"Expected a list under {key!r}, got {type(value).__name__}")
                items = value
                break

        if pagination_key is None:
            meta = raw if any(field in raw for field in _PAGE_FIELDS) else None
        else:
            meta = raw.get(pagination_key)
        pagination = Pagination.model_validate(meta) if isinstance(meta, Mapping) else None
        return Page(items=items, pagination=pagination)

    return _adapt


def list_page(raw: Any) -> Page:
    """Adapter for endpoints that return a bare list: a single, final page."""
    if not isinstance(raw, list):
        raise TypeError(f"Expected a list payload, got {type(raw).__name__}")
    return Page(items=raw)
