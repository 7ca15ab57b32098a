# tests/unit/test_http_transport.py

from __future__ import annotations
import httpx
import pytest

from llmbridge.bridge import LLMBridge
from llmbridge.core.errors import ProviderClientError, ServerError, TransportError
from llmbridge.transport.http import HttpTransport


def _sse(request: httpx.Request) -> httpx.Response:
    body = (
        "event: content_block_delta\n"
        'data: {"type":"content_block_delta","delta":{"text":"Hel"}}\n'
        "\n"
        'data: {"type":"content_block_delta","delta":{"text":"lo"}}\n'
        "\n"
        'data: {"type":"message_stop"}\n'
    )
    return httpx.Response(200, text=body, headers={"content-type": "text/event-stream"})


def test_claude_stream_over_mock_transport():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _sse(request)

    transport = HttpTransport(transport=httpx.MockTransport(handler))
    bridge = LLMBridge(target="claude", api_key="sk-ant", transport=transport)

    assert bridge.send_message("hi").content == "Hello"
    req = seen[0]
    assert str(req.url) == "https://api.anthropic.com/v1/messages"
    assert req.headers["x-api-key"] == "sk-ant"
    assert req.headers["accept"] == "text/event-stream"


def test_get_json_ok_and_status_mapping():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/api/tags"):
            return httpx.Response(200, json={"models": [{"name": "llama3.2"}]})
        return httpx.Response(404, json={"error": "nope"})

    transport = HttpTransport(transport=httpx.MockTransport(handler))
    assert transport.get_json("http://ollama.test/api/tags", {}) == {"models": [{"name": "llama3.2"}]}

    with pytest.raises(ServerError) as exc:
        transport.get_json("http://ollama.test/v1/models", {})
    assert exc.value.status_code == 404
    assert isinstance(exc.value, ProviderClientError)


def test_connect_error_maps_to_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    transport = HttpTransport(transport=httpx.MockTransport(handler))
    with pytest.raises(TransportError):
        transport.get_json("http://ollama.test/api/tags", {})

    bridge = LLMBridge(transport=transport)
    with pytest.raises(TransportError):
        bridge.send_message("hi")


def test_non_200_stream_is_server_error():
    transport = HttpTransport(transport=httpx.MockTransport(lambda r: httpx.Response(503, text="busy")))
    bridge = LLMBridge("http://localhost", 1234, "lmstudio", transport=transport)
    with pytest.raises(ServerError) as exc:
        bridge.send_message("hi")
    assert exc.value.status_code == 503
    assert exc.value.body == "busy"
