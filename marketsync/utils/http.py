"""HTTP DataSource for marketplace list endpoints and actions.

Maps transport failures and HTTP error statuses onto the marketsync error
taxonomy so controllers never see httpx exceptions.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx
import structlog

from marketsync.config import settings
from marketsync.errors import DataSourceError, NetworkError, ServerError, ValidationError
from marketsync.models.contracts import PageRequest

logger = structlog.get_logger()

TokenProvider = Callable[[], Awaitable[str | None]]
PayloadDecoder = Callable[[Any], Any]

# Statuses whose body explains what the user has to change.
_VALIDATION_STATUSES = frozenset({400, 409, 422})


def create_client(base_url: str | None = None) -> httpx.AsyncClient:
    """Build the shared AsyncClient for one API base URL."""
    return httpx.AsyncClient(
        base_url=base_url or settings.api_base_url,
        headers={"Content-Type": "application/json"},
        timeout=settings.request_timeout_seconds,
    )


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, Mapping):
        return None
    for key in ("message", "error", "detail"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
        if isinstance(value, list) and value:
            return "; ".join(str(v.get("msg", v)) if isinstance(v, Mapping) else str(v) for v in value)
    return None


def error_for_response(response: httpx.Response) -> DataSourceError:
    """Translate an HTTP error response into a DataSourceError."""
    status = response.status_code
    message = _error_message(response)
    if status in _VALIDATION_STATUSES:
        return ValidationError(message or "The request was rejected", status_code=status)
    # 429 is retryable (throttling); other 4xx are non-retryable client errors
    retryable = status >= 500 or status == 429
    return ServerError(
        message or f"HTTP {status} from {response.request.url.path}",
        status_code=status,
        retryable=retryable,
    )


class HttpDataSource:
    """DataSource over one list endpoint plus a table of action endpoints."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        list_path: str,
        actions: Mapping[str, str] | None = None,
        *,
        params: Mapping[str, Any] | None = None,
        token_provider: TokenProvider | None = None,
        decode: PayloadDecoder | None = None,
        timeout: float | None = None,
    ) -> None:
        self._client = client
        self._list_path = list_path
        self._actions = dict(actions or {})
        self._params = dict(params or {})
        self._token_provider = token_provider
        self._decode_payload = decode
        self._timeout = timeout if timeout is not None else settings.request_timeout_seconds

    @property
    def actions(self) -> tuple[str, ...]:
        return tuple(self._actions)

    async def fetch_page(self, request: PageRequest) -> Any:
        query: dict[str, Any] = {**self._params, "page": request.page, "limit": request.page_size}
        if request.status:
            query["status"] = request.status
        response = await self._send("GET", self._list_path, params=query)
        return self._decode(response)

    async def mutate(self, action: str, payload: Mapping[str, Any]) -> Any:
        path = self._actions.get(action)
        if path is None:
            raise ValueError(f"No endpoint configured for action {action!r}")
        response = await self._send("POST", path, json=dict(payload))
        return self._decode(response)

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers: dict[str, str] = {}
        if self._token_provider is not None:
            try:
                token = await self._token_provider()
            except Exception as exc:
                logger.warning(
                    "http_token_failed", method=method, path=path, error_type=type(exc).__name__
                )
                raise ServerError(
                    f"Could not obtain credentials for {path}: {type(exc).__name__}"
                ) from exc
            if token:
                headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._client.request(
                method, path, headers=headers, timeout=self._timeout, **kwargs
            )
        except httpx.TimeoutException as exc:
            logger.warning("http_timeout", method=method, path=path)
            raise NetworkError(f"Timeout calling {path}") from exc
        except httpx.RequestError as exc:
            logger.warning("http_request_error", method=method, path=path, error_type=type(exc).__name__)
            raise NetworkError(f"Network error calling {path}: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            error = error_for_response(response)
            logger.warning(
                "http_error_status",
                method=method,
                path=path,
                status=response.status_code,
                error_kind=error.kind,
            )
            raise error
        return response

    def _decode(self, response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError as exc:
            raise ServerError(
                f"Response from {response.request.url.path} is not JSON",
                status_code=response.status_code,
            ) from exc
        if self._decode_payload is None:
            return body
        try:
            return self._decode_payload(body)
        except (KeyError, TypeError, ValueError) as exc:
            raise ServerError(
                f"Could not decode payload from {response.request.url.path}",
                status_code=response.status_code,
            ) from exc
