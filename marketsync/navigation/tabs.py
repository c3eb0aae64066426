"""Bottom-navigation tabs kept in step with the navigation route.

The active route is the single source of truth. ``on_route_changed`` derives
the highlighted tab from it; ``on_tab_pressed`` only asks the navigation host
to move and waits for the resulting route change before the highlight moves.
Detail routes absent from the table leave the highlight where it was.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

import structlog

from marketsync.errors import TabRouteMapError
from marketsync.interfaces import NavigationHost

logger = structlog.get_logger()

TabListener = Callable[[str], None]


@dataclass(frozen=True)
class Tab:
    """One bottom-navigation destination.

    ``route`` is where pressing the tab navigates. ``aliases`` are secondary
    routes that highlight this tab without being its destination.
    """

    tab_id: str
    route: str
    aliases: tuple[str, ...] = ()


class TabRouteMap:
    """Declarative tab table, used for both lookup directions."""

    def __init__(self, tabs: Iterable[Tab], *, host_route: str | None = None) -> None:
        self._tabs = tuple(tabs)
        self.host_route = host_route
        if not self._tabs:
            raise TabRouteMapError("A tab table needs at least one tab")

        self._route_by_tab: dict[str, str] = {}
        self._tab_by_route: dict[str, str] = {}
        for tab in self._tabs:
            if tab.tab_id in self._route_by_tab:
                raise TabRouteMapError(f"Duplicate tab: {tab.tab_id!r}")
            if tab.route in self._tab_by_route:
                raise TabRouteMapError(
                    f"Route {tab.route!r} is the destination of both "
                    f"{self._tab_by_route[tab.route]!r} and {tab.tab_id!r}"
                )
            self._route_by_tab[tab.tab_id] = tab.route
            self._tab_by_route[tab.route] = tab.tab_id

        # An alias may not shadow any primary route, wherever it sits in the table.
        for tab in self._tabs:
            for alias in tab.aliases:
                if alias in self._tab_by_route:
                    raise TabRouteMapError(
                        f"Alias {alias!r} of {tab.tab_id!r} already maps to "
                        f"{self._tab_by_route[alias]!r}"
                    )
                self._tab_by_route[alias] = tab.tab_id

    @property
    def tabs(self) -> tuple[Tab, ...]:
        return self._tabs

    @property
    def tab_ids(self) -> tuple[str, ...]:
        return tuple(tab.tab_id for tab in self._tabs)

    @property
    def default_tab(self) -> str:
        return self._tabs[0].tab_id

    def tab_for_route(self, route: str) -> str | None:
        return self._tab_by_route.get(route)

    def route_for_tab(self, tab_id: str) -> str | None:
        return self._route_by_tab.get(tab_id)


class TabRouteSynchronizer:
    """Mediates between a bottom-navigation bar and a navigation host."""

    def __init__(
        self,
        tab_map: TabRouteMap,
        navigation: NavigationHost,
        *,
        initial_tab: str | None = None,
        initial_route: str | None = None,
    ) -> None:
        self._map = tab_map
        self._navigation = navigation
        tab = initial_tab or tab_map.default_tab
        if tab_map.route_for_tab(tab) is None:
            raise TabRouteMapError(f"Unknown initial tab: {tab!r}")
        self._active_tab = tab
        self._pending_route: str | None = None
        self._listeners: list[TabListener] = []
        if initial_route is not None:
            self._active_tab = tab_map.tab_for_route(initial_route) or self._active_tab

    @property
    def active_tab(self) -> str:
        return self._active_tab

    @property
    def pending_route(self) -> str | None:
        """Route requested by a tab press that hasn't been reported back yet."""
        return self._pending_route

    @property
    def tab_map(self) -> TabRouteMap:
        return self._map

    def tab_for_route(self, route: str) -> str | None:
        return self._map.tab_for_route(route)

    def route_for_tab(self, tab_id: str) -> str | None:
        return self._map.route_for_tab(tab_id)

    def on_route_changed(self, route: str) -> None:
        """Derive the active tab from a reported route.

        Routes outside the table (the dashboard host itself, detail screens)
        neither move the highlight nor settle a pending press.
        """
        tab = self._map.tab_for_route(route)
        if tab is None:
            return
        self._pending_route = None
        if tab == self._active_tab:
            return
        previous = self._active_tab
        self._active_tab = tab
        logger.debug("tab_activated", tab=tab, previous=previous, route=route)
        for listener in list(self._listeners):
            try:
                listener(tab)
            except Exception:
                logger.exception("tab_listener_failed", tab=tab)

    def on_tab_pressed(self, tab_id: str) -> bool:
        """Request navigation to ``tab_id``'s route. Returns whether navigation was requested."""
        if tab_id == self._active_tab:
            return False
        route = self._map.route_for_tab(tab_id)
        if route is None:
            logger.warning("tab_unknown", tab=tab_id)
            return False
        if route == self._pending_route:
            return False

        self._pending_route = route
        logger.info("tab_navigate", tab=tab_id, route=route, host=self._map.host_route)
        if self._map.host_route is not None:
            self._navigation.navigate(self._map.host_route, {"screen": route})
        else:
            self._navigation.navigate(route)
        return True

    def subscribe(self, listener: TabListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe


# === Dashboard tab tables ===

CLIENT_TABS = TabRouteMap(
    (
        Tab(
            "Home",
            "DashboardMain",
            aliases=(
                "NotificationsScreen",
                "BrowseProductsScreen",
                "BrowseServicesScreen",
                "ServiceProvidersScreen",
                "SearchScreen",
            ),
        ),
        Tab("Jobs", "JobsScreen"),
        Tab("Projects", "MyProjectsScreen"),
        Tab("Orders", "OrdersScreen", aliases=("PaymentHistoryScreen",)),
        Tab("Messages", "MessagesScreen"),
        Tab("Profile", "Profile", aliases=("FavoritesScreen", "Settings")),
    ),
    host_route="ClientDashboard",
)

SERVICE_PROVIDER_TABS = TabRouteMap(
    (
        Tab("Home", "ServiceProviderDashboard"),
        Tab("Jobs", "JobsScreen"),
        Tab("Orders", "OrdersScreen"),
        Tab("Messages", "MessagesScreen"),
        Tab("Profile", "ProfileScreen"),
    )
)

SUPPLIER_TABS = TabRouteMap(
    (
        Tab("Home", "SupplierDashboard"),
        Tab("Products", "ProductsScreen"),
        Tab("Customers", "CustomersScreen"),
        Tab("Orders", "OrdersScreen"),
        Tab("Profile", "ProfileScreen"),
    ),
    host_route="SupplierHome",
)
