from __future__ import annotations

import json

import httpx
import pytest

from flowkit import __version__
from flowkit.errors import EvaluationRequestError
from flowkit.plugins.checks import CLIENT_HEADER, HttpxTransport


def _transport(handler, **kwargs) -> HttpxTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxTransport(client=client, **kwargs)


@pytest.mark.asyncio
async def test_post_sends_json_with_client_and_auth_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    transport = _transport(handler, token_provider=lambda: "secret-token")
    result = await transport.post("https://eval.example.com/score", {"a": 1}, {"X-Goog-User-Project": "p"})
    await transport.aclose()

    assert result == {"ok": True}
    [request] = seen
    assert request.method == "POST"
    assert json.loads(request.content) == {"a": 1}
    assert request.headers["X-Goog-Api-Client"] == CLIENT_HEADER == f"flowkit-py/{__version__}"
    assert request.headers["Authorization"] == "Bearer secret-token"
    assert request.headers["X-Goog-User-Project"] == "p"
    assert request.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_async_token_provider_and_no_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    async def token() -> str:
        return "async-token"

    await _transport(handler, token_provider=token).post("https://eval.example.com", {}, {})
    await _transport(handler).post("https://eval.example.com", {}, {})

    assert seen[0].headers["Authorization"] == "Bearer async-token"
    assert "Authorization" not in seen[1].headers


@pytest.mark.asyncio
async def test_http_status_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": "denied"})

    with pytest.raises(EvaluationRequestError) as exc_info:
        await _transport(handler).post("https://eval.example.com/score", {}, {})

    assert exc_info.value.status_code == 403
    assert exc_info.value.url == "https://eval.example.com/score"


@pytest.mark.asyncio
async def test_network_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    with pytest.raises(EvaluationRequestError) as exc_info:
        await _transport(handler).post("https://eval.example.com/score", {}, {})

    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.cause, httpx.ConnectError)


@pytest.mark.asyncio
async def test_token_provider_failure_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    def token() -> str:
        raise PermissionError("no credentials")

    with pytest.raises(EvaluationRequestError):
        await _transport(handler, token_provider=token).post("https://eval.example.com", {}, {})


@pytest.mark.asyncio
async def test_non_json_body_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(EvaluationRequestError) as exc_info:
        await _transport(handler).post("https://eval.example.com", {}, {})

    assert exc_info.value.status_code == 200
