"""Collaborators the controllers talk to but do not own."""

from __future__ import annotations

from collections.abc import Awaitable, Mapping
from typing import Any, Protocol

from marketsync.models.contracts import PageRequest


class DataSource(Protocol):
    """Remote collection plus the actions that can be performed on it.

    Both methods raise ``marketsync.errors.DataSourceError`` subclasses on
    failure. ``fetch_page`` returns the raw payload; the controller's adapter
    turns it into a ``Page``.
    """

    async def fetch_page(self, request: PageRequest) -> Any: ...

    async def mutate(self, action: str, payload: Mapping[str, Any]) -> Any: ...


class NavigationHost(Protocol):
    """Fire-and-forget navigation; the host reports the new route later."""

    def navigate(self, route: str, params: Mapping[str, Any] | None = None) -> None: ...


class ConfirmationPrompt(Protocol):
    def __call__(self, message: str) -> Awaitable[bool]: ...
