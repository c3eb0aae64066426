"""Tests for MutationCoordinator — double-submit guard, confirmation, refetch after success."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import PagedSource, ScriptedSource, make_items, settle

from marketsync.controllers.collection import PaginatedCollectionController
from marketsync.controllers.mutation import MutationCoordinator, confirm_with, target_of
from marketsync.errors import NetworkError, ServerError, ValidationError


class TestTargetOf:
    def test_prefers_plain_id(self) -> None:
        assert target_of({"id": 7, "project_id": 3}) == "7"

    def test_uses_specific_id_keys(self) -> None:
        assert target_of({"project_id": "p-1", "reason": "late"}) == "p-1"

    def test_falls_back_to_stable_payload_rendering(self) -> None:
        assert target_of({"b": 1, "a": 2}) == target_of({"a": 2, "b": 1})


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_double_submit_is_rejected(self, scripted_source: ScriptedSource) -> None:
        coordinator = MutationCoordinator(scripted_source)
        first = asyncio.create_task(coordinator.perform("cancel", {"id": 7}))
        await settle()

        second = await coordinator.perform("cancel", {"id": 7})
        assert second.rejected
        assert second.outcome == "failed"
        assert second.error is not None
        assert second.error.kind == "concurrency_rejected"
        assert len(scripted_source.mutations) == 1

        scripted_source.resolve_mutation(0, {"status": "cancelled"})
        result = await first
        assert result.ok
        assert result.data == {"status": "cancelled"}

    @pytest.mark.asyncio
    async def test_other_targets_and_actions_run_concurrently(
        self, scripted_source: ScriptedSource
    ) -> None:
        coordinator = MutationCoordinator(scripted_source)
        tasks = [
            asyncio.create_task(coordinator.perform("cancel", {"id": 7})),
            asyncio.create_task(coordinator.perform("cancel", {"id": 8})),
            asyncio.create_task(coordinator.perform("complete", {"id": 7})),
        ]
        await settle()
        assert len(scripted_source.mutations) == 3
        assert coordinator.in_progress("cancel", 7)

        for index in range(3):
            scripted_source.resolve_mutation(index)
        results = await asyncio.gather(*tasks)
        assert all(r.ok for r in results)
        assert not coordinator.in_progress("cancel", 7)

    @pytest.mark.asyncio
    async def test_slot_released_after_failure(self, scripted_source: ScriptedSource) -> None:
        coordinator = MutationCoordinator(scripted_source)
        task = asyncio.create_task(coordinator.perform("cancel", {"id": 7}))
        await settle()
        scripted_source.fail_mutation(0, NetworkError("offline"))
        await task

        retry = asyncio.create_task(coordinator.perform("cancel", {"id": 7}))
        await settle()
        assert len(scripted_source.mutations) == 2
        scripted_source.resolve_mutation(1)
        assert (await retry).ok

    @pytest.mark.asyncio
    async def test_explicit_target_overrides_payload(self, scripted_source: ScriptedSource) -> None:
        coordinator = MutationCoordinator(scripted_source)
        first = asyncio.create_task(coordinator.perform("accept", {"proposal": 1}, target="job-9"))
        await settle()

        second = await coordinator.perform("accept", {"proposal": 2}, target="job-9")
        assert second.rejected

        scripted_source.resolve_mutation(0)
        await first


class TestConfirmation:
    @pytest.mark.asyncio
    async def test_declined_sends_nothing(self, two_page_source: PagedSource) -> None:
        coordinator = MutationCoordinator(two_page_source)
        result = await coordinator.perform("cancel", {"id": 1}, confirm=lambda: False)

        assert result.outcome == "declined"
        assert result.error is None
        assert two_page_source.mutations == []

    @pytest.mark.asyncio
    async def test_async_confirmation(self, two_page_source: PagedSource) -> None:
        coordinator = MutationCoordinator(two_page_source)
        confirm = AsyncMock(return_value=True)

        result = await coordinator.perform("complete", {"id": 1}, confirm=confirm)

        confirm.assert_awaited_once()
        assert result.ok
        assert two_page_source.mutations == [("complete", {"id": 1})]

    @pytest.mark.asyncio
    async def test_double_tap_while_prompt_open_is_rejected(
        self, two_page_source: PagedSource
    ) -> None:
        coordinator = MutationCoordinator(two_page_source)
        answer: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        prompt = MagicMock(return_value=answer)

        first = asyncio.create_task(
            coordinator.perform("cancel", {"id": 7}, confirm=confirm_with(prompt, "Cancel job?"))
        )
        await settle()
        second = await coordinator.perform("cancel", {"id": 7}, confirm=confirm_with(prompt, "Cancel job?"))

        assert second.rejected
        prompt.assert_called_once_with("Cancel job?")

        answer.set_result(True)
        assert (await first).ok
        assert len(two_page_source.mutations) == 1


class TestReconciliation:
    @pytest.mark.asyncio
    async def test_success_reloads_bound_collection(self, two_page_source: PagedSource) -> None:
        collection = PaginatedCollectionController(two_page_source, page_size=3)
        await collection.load()
        await collection.load_more()
        coordinator = MutationCoordinator(two_page_source)

        two_page_source.pages[1] = make_items(1, 2)
        result = await coordinator.perform("cancel", {"id": 3}, on_collection=collection)

        assert result.ok
        assert [item["id"] for item in collection.items] == [1, 2]
        assert collection.page == 1
        assert two_page_source.requests[-1].page == 1

    @pytest.mark.asyncio
    async def test_failure_leaves_collection_untouched(self, two_page_source: PagedSource) -> None:
        collection = PaginatedCollectionController(two_page_source, page_size=3)
        await collection.load()
        requests_before = len(two_page_source.requests)
        coordinator = MutationCoordinator(two_page_source)
        two_page_source.mutate_error = ServerError("HTTP 500", status_code=500)

        result = await coordinator.perform("cancel", {"id": 3}, on_collection=collection)

        assert result.outcome == "failed"
        assert len(two_page_source.requests) == requests_before
        assert len(collection.items) == 3

    @pytest.mark.asyncio
    async def test_validation_message_is_verbatim(self, two_page_source: PagedSource) -> None:
        coordinator = MutationCoordinator(two_page_source)
        two_page_source.mutate_error = ValidationError("Job already has an accepted proposal")

        result = await coordinator.perform("accept_proposal", {"id": 3})

        assert result.error is not None
        assert result.error.kind == "validation"
        assert result.error.message == "Job already has an accepted proposal"
        assert result.error.retryable is False

    @pytest.mark.asyncio
    async def test_server_failure_gets_generic_retry_message(
        self, two_page_source: PagedSource
    ) -> None:
        coordinator = MutationCoordinator(two_page_source)
        two_page_source.mutate_error = NetworkError("Timeout calling /client/cancel_project")

        result = await coordinator.perform("cancel_project", {"id": 3})

        assert result.error is not None
        assert result.error.kind == "network"
        assert result.error.message == "Failed to cancel project. Please try again."
        assert result.error.retryable is True

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self) -> None:
        source = MagicMock()
        source.mutate = AsyncMock(side_effect=RuntimeError("bug"))
        coordinator = MutationCoordinator(source)

        with pytest.raises(RuntimeError, match="bug"):
            await coordinator.perform("cancel", {"id": 1})
        assert not coordinator.in_progress("cancel", 1)
