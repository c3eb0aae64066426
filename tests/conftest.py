"""Shared fakes for controller tests.

ScriptedSource parks every call on a future so tests decide the completion
order; PagedSource answers immediately from a fixed page table.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest

from marketsync.models.contracts import PageRequest


def make_items(start: int, count: int, status: str = "open") -> list[dict[str, Any]]:
    return [
        {"id": i, "title": f"Job {i}", "status": status}
        for i in range(start, start + count)
    ]


def page_payload(
    items: list[dict[str, Any]], page: int, total_pages: int | None
) -> dict[str, Any]:
    payload: dict[str, Any] = {"items": items}
    if total_pages is not None:
        payload["pagination"] = {"current_page": page, "total_pages": total_pages}
    return payload


class ScriptedSource:
    """DataSource whose calls block until the test resolves them."""

    def __init__(self) -> None:
        self.requests: list[PageRequest] = []
        self.mutations: list[tuple[str, dict[str, Any]]] = []
        self._fetches: list[asyncio.Future[Any]] = []
        self._mutates: list[asyncio.Future[Any]] = []

    async def fetch_page(self, request: PageRequest) -> Any:
        self.requests.append(request)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._fetches.append(future)
        return await future

    async def mutate(self, action: str, payload: Mapping[str, Any]) -> Any:
        self.mutations.append((action, dict(payload)))
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._mutates.append(future)
        return await future

    def resolve(self, index: int, payload: Any) -> None:
        self._fetches[index].set_result(payload)

    def fail(self, index: int, exc: Exception) -> None:
        self._fetches[index].set_exception(exc)

    def resolve_mutation(self, index: int, payload: Any = None) -> None:
        self._mutates[index].set_result(payload)

    def fail_mutation(self, index: int, exc: Exception) -> None:
        self._mutates[index].set_exception(exc)


class PagedSource:
    """DataSource that serves ``pages`` immediately, ``page_size`` items each."""

    def __init__(self, pages: dict[int, list[dict[str, Any]]], total_pages: int | None) -> None:
        self.pages = pages
        self.total_pages = total_pages
        self.requests: list[PageRequest] = []
        self.mutations: list[tuple[str, dict[str, Any]]] = []
        self.mutate_error: Exception | None = None

    async def fetch_page(self, request: PageRequest) -> Any:
        self.requests.append(request)
        return page_payload(self.pages.get(request.page, []), request.page, self.total_pages)

    async def mutate(self, action: str, payload: Mapping[str, Any]) -> Any:
        self.mutations.append((action, dict(payload)))
        if self.mutate_error is not None:
            raise self.mutate_error
        return {"status": "ok"}


async def settle() -> None:
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def scripted_source() -> ScriptedSource:
    return ScriptedSource()


@pytest.fixture
def two_page_source() -> PagedSource:
    """Two pages of three items each."""
    return PagedSource({1: make_items(1, 3), 2: make_items(4, 3)}, total_pages=2)
