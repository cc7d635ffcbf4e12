# connector_commons/backend.py

import logging
from typing import Any, AsyncIterator, Callable, Dict, Optional

import httpx
from fastapi import Request

from .errors import BackendError, BackendUnauthorizedError, UnknownBackendError
from .logging_config import get_request_id

logger = logging.getLogger(__name__)

UnauthorizedPredicate = Callable[[httpx.Response], bool]


def is_unauthorized(response: httpx.Response) -> bool:
    return response.status_code == 401


def response_json(response: httpx.Response) -> Any:
    """Decoded body of a backend response, None when empty."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise UnknownBackendError(
            f"Malformed response from {response.request.url}", response.text
        ) from e


class BackendClient:
    """
    Thin wrapper over httpx.AsyncClient that turns every non-2xx answer
    into a BackendError. Each connector supplies its own predicate to
    recognise the backend's way of saying the credentials are no longer valid.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        unauthorized: UnauthorizedPredicate = is_unauthorized,
        default_headers: Optional[Dict[str, str]] = None,
    ):
        self._client = client
        self._unauthorized = unauthorized
        self.default_headers = dict(default_headers or {})

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        merged = {**self.default_headers, **(headers or {})}
        request_id = get_request_id()
        if request_id:
            merged.setdefault("x-request-id", request_id)

        try:
            response = await self._client.request(method, url, headers=merged, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise UnknownBackendError(f"{method} {url} failed: {e}") from e

        if response.is_success:
            return response

        logger.warning("%s %s answered %s", method, url, response.status_code)
        raise self._error_for(response)

    def _error_for(self, response: httpx.Response) -> BackendError:
        try:
            body = response.json()
        except ValueError:
            body = response.text
        message = response.text or response.reason_phrase
        if self._unauthorized(response):
            return BackendUnauthorizedError(message, body)
        return BackendError(response.status_code, message, body)

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        return response_json(await self.request("GET", url, **kwargs))

    async def post_json(self, url: str, **kwargs: Any) -> Any:
        return response_json(await self.request("POST", url, **kwargs))

    async def put_json(self, url: str, **kwargs: Any) -> Any:
        return response_json(await self.request("PUT", url, **kwargs))

    async def patch_json(self, url: str, **kwargs: Any) -> Any:
        return response_json(await self.request("PATCH", url, **kwargs))


def backend_client(
    unauthorized: UnauthorizedPredicate = is_unauthorized,
) -> Callable[[Request], AsyncIterator[BackendClient]]:
    """
    Builds a dependency yielding a BackendClient for the duration of a request.

    Tests swap the network out by setting app.state.http_transport to an
    httpx.MockTransport.
    """

    async def dependency(request: Request) -> AsyncIterator[BackendClient]:
        state = request.app.state
        async with httpx.AsyncClient(
            transport=getattr(state, "http_transport", None),
            timeout=getattr(state, "backend_timeout", 30.0),
        ) as client:
            yield BackendClient(client, unauthorized=unauthorized)

    return dependency
