"""structlog setup for apps that embed marketsync.

The host app calls ``configure_logging`` once at startup. Explicit arguments
win over the LOG_LEVEL / ENVIRONMENT / LOG_FILE settings, so a screen shell
can pick its own renderer without touching the environment.

Every event carries ``library="marketsync"``. ``screen_context`` binds the
active screen (and any extra keys) to all events emitted inside it: collection
fetches, mutations and tab presses alike.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import IO, Any, Literal

import structlog

from marketsync.config import settings

Renderer = Literal["console", "json"]

_LOG_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def resolve_level(name: str) -> int:
    """Map a level name to a stdlib level, defaulting to INFO."""
    return _LOG_LEVEL_MAP.get(name.upper(), logging.INFO)


def _tag_library(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("library", "marketsync")
    return event_dict


class _LogSink:
    """Fan rendered lines out to stdout plus an optional file.

    A file that can't be opened, or later fails, is dropped with one warning
    on stderr; stdout keeps receiving every line.
    """

    def __init__(self, log_file: str | None = None) -> None:
        self._file: IO[str] | None = None
        self._path = log_file
        if log_file:
            try:
                self._file = open(log_file, "a")  # noqa: SIM115
            except OSError as exc:
                # structlog is not configured yet
                print(f"WARNING: marketsync cannot open {log_file!r}: {exc}", file=sys.stderr)

    @property
    def mirrors_to_file(self) -> bool:
        return self._file is not None

    def write(self, data: str) -> None:
        sys.stdout.write(data)
        self._to_file(lambda f: f.write(data))

    def flush(self) -> None:
        sys.stdout.flush()
        self._to_file(lambda f: f.flush())

    def _to_file(self, op) -> None:
        if self._file is None:
            return
        try:
            op(self._file)
            self._file.flush()
        except (OSError, ValueError):
            self._file = None
            print(f"WARNING: marketsync stopped writing to {self._path!r}", file=sys.stderr)


def configure_logging(
    level: str | None = None,
    *,
    renderer: Renderer | None = None,
    log_file: str | None = None,
    context: Mapping[str, Any] | None = None,
) -> None:
    """Configure structlog for marketsync events.

    ``renderer`` defaults to console in development and JSON elsewhere.
    ``context`` is merged into every event (e.g. ``{"app": "supplier"}``).
    """
    if renderer is None:
        renderer = "console" if settings.environment == "development" else "json"
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _tag_library,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if context:
        fixed = dict(context)
        processors.insert(1, lambda _l, _m, event_dict: {**fixed, **event_dict})
    if renderer == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    sink_path = settings.log_file if log_file is None else log_file
    factory = (
        structlog.PrintLoggerFactory(file=_LogSink(sink_path))  # type: ignore[arg-type]
        if sink_path
        else structlog.PrintLoggerFactory()
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            resolve_level(level or settings.log_level)
        ),
        context_class=dict,
        logger_factory=factory,
        cache_logger_on_first_use=True,
    )


@contextmanager
def screen_context(screen: str, **context: Any) -> Iterator[None]:
    """Tag every marketsync event emitted inside the block with ``screen``."""
    with structlog.contextvars.bound_contextvars(screen=screen, **context):
        yield
