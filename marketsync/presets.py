"""Collection presets for the marketplace list screens.

A preset pins everything a screen would otherwise re-decide: the response
shape, which fields the search box looks at, the status choices, and whether
status filtering happens locally or on the server.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from marketsync.adapters import keyed_page
from marketsync.controllers.collection import (
    PaginatedCollectionController,
    ResponseAdapter,
    SearchField,
    field_value,
)
from marketsync.interfaces import DataSource
from marketsync.models.contracts import ALL_STATUSES, FilterCriteria, StatusFilterMode


def _short_id(item: Any) -> str | None:
    raw = field_value(item, "id") or field_value(item, "_id")
    return None if raw is None else f"#{str(raw)[:8]}"


def job_number(job: Any) -> str | None:
    return field_value(job, "project_id") or _short_id(job)


def order_number(order: Any) -> str | None:
    return field_value(order, "order_no") or field_value(order, "order_number") or _short_id(order)


def customer_name(order: Any) -> str | None:
    if field_value(order, "customer_name"):
        return field_value(order, "customer_name")
    customer = field_value(order, "customer")
    if customer is not None and field_value(customer, "name"):
        return field_value(customer, "name")
    return field_value(order, "client_name")


@dataclass(frozen=True)
class CollectionPreset:
    name: str
    adapter: ResponseAdapter
    search_fields: tuple[SearchField, ...]
    status_options: tuple[str, ...]
    status_filter_mode: StatusFilterMode = "local"
    initial_status: str = ALL_STATUSES
    page_size: int | None = None

    def build(self, source: DataSource, **overrides: Any) -> PaginatedCollectionController[Any]:
        """Create a controller for this preset; keyword overrides win."""
        options: dict[str, Any] = {
            "search_fields": self.search_fields,
            "status_filter_mode": self.status_filter_mode,
            "page_size": self.page_size,
            "collection_id": self.name,
            "initial_filter": FilterCriteria(status=self.initial_status),
        }
        options.update(overrides)
        return PaginatedCollectionController(source, self.adapter, **options)


CLIENT_JOBS = CollectionPreset(
    name="client_jobs",
    adapter=keyed_page("jobs"),
    search_fields=(job_number, "title", "_id", "id", "status"),
    status_options=(
        ALL_STATUSES,
        "open",
        "bidding open",
        "under review",
        "awarded",
        "in progress",
        "completed",
        "cancelled",
    ),
)

CLIENT_PROJECTS = CollectionPreset(
    name="client_projects",
    adapter=keyed_page("projects"),
    search_fields=("title", "description", "category"),
    status_options=(ALL_STATUSES, "ongoing", "planning", "review", "completed"),
)

SUPPLIER_ORDERS = CollectionPreset(
    name="supplier_orders",
    adapter=keyed_page("orders", "order_list"),
    search_fields=(order_number, customer_name, "_id", "id", "status"),
    status_options=(ALL_STATUSES, "pending", "processing", "completed", "delivered", "cancelled"),
)

# Service-provider orders are filtered by the API, one status at a time.
PROVIDER_ORDERS = CollectionPreset(
    name="provider_orders",
    adapter=keyed_page("projects"),
    search_fields=("title", "client_name", "status"),
    status_options=(ALL_STATUSES, "ongoing", "completed", "cancelled", "paused"),
    status_filter_mode="server",
    initial_status="ongoing",
)

AVAILABLE_JOBS = CollectionPreset(
    name="available_jobs",
    adapter=keyed_page("jobs"),
    search_fields=("title", "description", "category", "location"),
    status_options=(ALL_STATUSES,),
)

PRESETS: dict[str, CollectionPreset] = {
    preset.name: preset
    for preset in (CLIENT_JOBS, CLIENT_PROJECTS, SUPPLIER_ORDERS, PROVIDER_ORDERS, AVAILABLE_JOBS)
}
