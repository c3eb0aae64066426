"""marketsync — list, mutation and tab-navigation controllers for marketplace screens."""

from marketsync.controllers.collection import PaginatedCollectionController
from marketsync.controllers.gate import RequestGate
from marketsync.controllers.mutation import MutationCoordinator, confirm_with
from marketsync.logging import configure_logging, screen_context
from marketsync.navigation.tabs import Tab, TabRouteMap, TabRouteSynchronizer

__version__ = "0.1.0"

__all__ = [
    "MutationCoordinator",
    "PaginatedCollectionController",
    "RequestGate",
    "Tab",
    "TabRouteMap",
    "TabRouteSynchronizer",
    "configure_logging",
    "confirm_with",
    "screen_context",
]
