"""HTTP transport for evaluation providers."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx
from loguru import logger

from flowkit import __version__
from flowkit.errors import EvaluationRequestError

CLIENT_HEADER = f"flowkit-py/{__version__}"

type TokenProvider = Callable[[], str | None | Awaitable[str | None]]


class EvaluationTransport(Protocol):
    async def post(self, url: str, body: dict[str, Any], headers: dict[str, str]) -> Any: ...


class HttpxTransport:
    """POST JSON bodies to evaluation endpoints with ``httpx.AsyncClient``.

    Credentials are not acquired here. Pass a ``token_provider`` returning
    an access token (sync or async) and it is sent as a bearer token.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider | None = None,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token_provider = token_provider
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def _headers(self, url: str, extra: dict[str, str]) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json", "X-Goog-Api-Client": CLIENT_HEADER}
        if self._token_provider is not None:
            try:
                token = self._token_provider()
                if inspect.isawaitable(token):
                    token = await token
            except Exception as exc:
                raise EvaluationRequestError(url, exc) from exc
            if token:
                headers["Authorization"] = f"Bearer {token}"
        headers.update(extra)
        return headers

    async def post(self, url: str, body: dict[str, Any], headers: dict[str, str]) -> Any:
        request_headers = await self._headers(url, headers)
        logger.debug("transport.post url={}", url)
        try:
            response = await self._client.post(url, headers=request_headers, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("transport.post.failed url={} status={}", url, exc.response.status_code)
            raise EvaluationRequestError(url, exc, status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            logger.warning("transport.post.failed url={} error={}", url, exc)
            raise EvaluationRequestError(url, exc) from exc
        try:
            return response.json()
        except ValueError as exc:
            raise EvaluationRequestError(url, exc, status_code=response.status_code) from exc

    async def aclose(self) -> None:
        await self._client.aclose()
