"""Failure taxonomy shared by data sources, controllers and the coordinator.

Data sources raise these; controllers and the mutation coordinator never let
them escape their public methods. Fetch failures become ``status="error"`` on
the collection, mutation failures become a ``MutationResult``.
"""

from __future__ import annotations

from typing import ClassVar, Literal

ErrorKind = Literal["network", "server", "validation"]


class DataSourceError(Exception):
    """Base class for failures reported by a DataSource."""

    kind: ClassVar[ErrorKind] = "server"
    default_retryable: ClassVar[bool] = True

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retryable = self.default_retryable if retryable is None else retryable

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class NetworkError(DataSourceError):
    """Transport failure or timeout. Retry by re-invoking the same operation."""

    kind: ClassVar[ErrorKind] = "network"


class ServerError(DataSourceError):
    """Opaque server-side failure, including malformed payloads."""

    kind: ClassVar[ErrorKind] = "server"


class ValidationError(DataSourceError):
    """User-correctable rejection. The message is shown to the user verbatim."""

    kind: ClassVar[ErrorKind] = "validation"
    default_retryable: ClassVar[bool] = False


class TabRouteMapError(ValueError):
    """Raised when a tab/route table is not a total bidirectional mapping."""
