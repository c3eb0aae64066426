"""MutationCoordinator — one remote action, then refetch.

Nothing is applied optimistically. After the data source accepts an action,
the bound collection is reloaded so the list always reflects server state.
Failures come back as a ``MutationResult`` and leave the collection alone.

Only one perform per (action, target) may be in flight; a second call (a
double tap on "Cancel") is rejected immediately instead of being queued.
"""

from __future__ import annotations

import inspect
import json
from collections.abc import Awaitable, Callable, Hashable, Mapping
from typing import TYPE_CHECKING, Any, Union

import structlog

from marketsync.errors import DataSourceError
from marketsync.interfaces import ConfirmationPrompt, DataSource
from marketsync.models.contracts import Failure, MutationResult

if TYPE_CHECKING:
    from marketsync.controllers.collection import PaginatedCollectionController

logger = structlog.get_logger()

Confirm = Callable[[], Union[bool, Awaitable[bool]]]

# Id-bearing payload keys, most specific last so a bare "id" wins.
_TARGET_KEYS = (
    "job_id",
    "project_id",
    "order_id",
    "proposal_id",
    "product_id",
    "customer_id",
    "_id",
    "id",
)


def target_of(payload: Mapping[str, Any]) -> Hashable:
    """Identify the record an action applies to, for double-submit detection."""
    for key in reversed(_TARGET_KEYS):
        value = payload.get(key)
        if value is not None:
            return str(value)
    return json.dumps(payload, sort_keys=True, default=str)


def confirm_with(prompt: ConfirmationPrompt, message: str) -> Confirm:
    """Adapt a ConfirmationPrompt into a ``confirm`` callable for ``perform``."""

    def _confirm() -> Awaitable[bool]:
        return prompt(message)

    return _confirm


def _failure_message(action: str, exc: DataSourceError) -> str:
    if exc.kind == "validation":
        return exc.message
    readable = action.replace("_", " ")
    return f"Failed to {readable}. Please try again."


class MutationCoordinator:
    """Performs named actions against a DataSource and reconciles collections."""

    def __init__(self, source: DataSource) -> None:
        self._source = source
        self._in_flight: set[tuple[str, Hashable]] = set()

    def in_progress(self, action: str, target: Hashable) -> bool:
        return (action, str(target)) in self._in_flight

    async def perform(
        self,
        action: str,
        payload: Mapping[str, Any],
        *,
        confirm: Confirm | None = None,
        on_collection: PaginatedCollectionController[Any] | None = None,
        target: Hashable | None = None,
    ) -> MutationResult:
        key = (action, str(target) if target is not None else target_of(payload))
        log = logger.bind(action=action, target=key[1])

        if key in self._in_flight:
            log.info("mutation_rejected", reason="already_in_progress")
            return MutationResult(
                action=action,
                outcome="failed",
                error=Failure(
                    kind="concurrency_rejected",
                    message=f"{action} is already in progress",
                    retryable=False,
                ),
            )

        self._in_flight.add(key)
        try:
            if confirm is not None:
                answer = confirm()
                if inspect.isawaitable(answer):
                    answer = await answer
                if not answer:
                    log.info("mutation_declined")
                    return MutationResult(action=action, outcome="declined")

            log.info("mutation_start")
            try:
                data = await self._source.mutate(action, payload)
            except DataSourceError as exc:
                log.warning("mutation_failed", error_kind=exc.kind, error=exc.message)
                return MutationResult(
                    action=action,
                    outcome="failed",
                    error=Failure.from_error(exc, _failure_message(action, exc)),
                )

            log.info("mutation_complete", reload=on_collection is not None)
            if on_collection is not None:
                await on_collection.reload()
            return MutationResult(action=action, outcome="success", data=data)
        finally:
            self._in_flight.discard(key)
