# tests/unit/test_adapters.py

from __future__ import annotations
import json
import sys
from pathlib import Path
from typing import List

import httpx
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from mansplain.bootstrap import RunSettings  # type: ignore
from mansplain.core.errors import DecodeError, TransportError  # type: ignore
from mansplain.core.ports import ChatTurn  # type: ignore
from mansplain.providers.backends import get_backend  # type: ignore
from mansplain.providers.http import HttpTransport  # type: ignore
from mansplain.providers.ollama_adapter import OllamaAdapter  # type: ignore
from mansplain.providers.openai_compat_adapter import OpenAICompatAdapter  # type: ignore


TURNS = [ChatTurn("system", "be smug"), ChatTurn("user", "explain ls")]


# -------- fakes --------

class Recorder:
    """MockTransport handler that records requests and replays a body."""

    def __init__(self, chunks: List[bytes], status: int = 200):
        self.chunks = chunks
        self.status = status
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, content=b"".join(self.chunks))

    @property
    def payload(self):
        return json.loads(self.requests[-1].content)


class ChunkedStream(httpx.SyncByteStream):
    def __init__(self, chunks, fail_after=None):
        self.chunks = chunks
        self.fail_after = fail_after

    def __iter__(self):
        for i, c in enumerate(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise httpx.ReadError("connection reset")
            yield c


def _transport(handler) -> HttpTransport:
    return HttpTransport(httpx.Client(transport=httpx.MockTransport(handler)))


# -------- ollama --------

def test_ollama_stream_posts_generate_and_yields_fragments():
    rec = Recorder([b'{"response":"Hel"}\n{"response":"lo"}\n', b'{"response":"","done":true}\n'])
    adapter = OllamaAdapter(model="gemma3:12b", api_url="http://localhost:11434/", transport=_transport(rec))

    pieces = list(adapter.chat_stream(TURNS))

    assert "".join(pieces) == "Hello"
    req = rec.requests[0]
    assert req.method == "POST"
    assert str(req.url) == "http://localhost:11434/api/generate"
    assert rec.payload == {
        "model": "gemma3:12b",
        "prompt": "explain ls",
        "system": "be smug",
        "stream": True,
    }


def test_ollama_chat_non_streaming():
    rec = Recorder([b'{"model":"m","response":"whole answer","done":true}'])
    adapter = OllamaAdapter(model="m", api_url="http://localhost:11434", transport=_transport(rec))
    assert adapter.chat(TURNS) == {"content": "whole answer"}
    assert rec.payload["stream"] is False


def test_ollama_error_status_is_transport_error():
    rec = Recorder([b'{"error":"model not found"}'], status=404)
    adapter = OllamaAdapter(model="nope", api_url="http://localhost:11434", transport=_transport(rec))
    with pytest.raises(TransportError) as ei:
        list(adapter.chat_stream(TURNS))
    assert "404" in str(ei.value)
    assert "model not found" in str(ei.value)


def test_connect_failure_is_transport_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    adapter = OllamaAdapter(model="m", api_url="http://localhost:1", transport=_transport(refuse))
    with pytest.raises(TransportError):
        adapter.chat(TURNS)


def test_read_failure_mid_stream_is_decode_error():
    def handler(request):
        return httpx.Response(200, stream=ChunkedStream([b'{"response":"a"}\n', b"never"], fail_after=1))

    adapter = OllamaAdapter(model="m", api_url="http://localhost:11434", transport=_transport(handler))
    gen = adapter.chat_stream(TURNS)
    assert next(gen) == "a"
    with pytest.raises(DecodeError):
        next(gen)


# -------- openai-compatible --------

SSE_BODY = [
    b'data: {"choices":[{"delta":{"role":"assistant"}}]}\n\n',
    b'data: {"choices":[{"delta":{"content":"he"}}]}\n\ndata: {"choices":[{"del',
    b'ta":{"content":"llo"}}]}\n\n',
    b"data: [DONE]\n\n",
]


def test_openai_stream_sends_bearer_and_messages():
    rec = Recorder(SSE_BODY)
    adapter = OpenAICompatAdapter(
        model="gpt-4o-mini", api_url="https://api.openai.com/v1", api_key="sk-test",
        transport=_transport(rec),
    )

    assert "".join(adapter.chat_stream(TURNS)) == "hello"

    req = rec.requests[0]
    assert str(req.url) == "https://api.openai.com/v1/chat/completions"
    assert req.headers["Authorization"] == "Bearer sk-test"
    assert rec.payload == {
        "model": "gpt-4o-mini",
        "messages": [
            {"role": "system", "content": "be smug"},
            {"role": "user", "content": "explain ls"},
        ],
        "stream": True,
    }
    # Adapter exposes model attribute
    assert adapter.model == "gpt-4o-mini"


def test_openai_without_key_sends_no_authorization():
    rec = Recorder(SSE_BODY)
    adapter = OpenAICompatAdapter(model="local", api_url="http://localhost:8080/v1", transport=_transport(rec))
    list(adapter.chat_stream(TURNS))
    assert "Authorization" not in rec.requests[0].headers


def test_openai_chat_non_streaming_completion():
    body = json.dumps({
        "choices": [{"index": 0, "message": {"role": "assistant", "content": "hello world"}}],
    }).encode()
    rec = Recorder([body])
    adapter = OpenAICompatAdapter(model="sonar", api_url="https://api.perplexity.ai", api_key="k",
                                  transport=_transport(rec))
    assert adapter.chat(TURNS) == {"content": "hello world"}
    assert rec.payload["stream"] is False


def test_openai_chat_accepts_streamed_body():
    adapter = OpenAICompatAdapter(model="m", api_url="https://x.test", api_key="k",
                                  transport=_transport(Recorder(SSE_BODY)))
    assert adapter.chat(TURNS) == {"content": "hello"}


def test_openai_chat_without_content_raises():
    adapter = OpenAICompatAdapter(model="m", api_url="https://x.test", api_key="k",
                                  transport=_transport(Recorder([b'{"choices":[]}'])))
    with pytest.raises(TransportError):
        adapter.chat(TURNS)


def test_openai_error_status_includes_details():
    rec = Recorder([b'{"error":{"message":"Incorrect API key provided"}}'], status=401)
    adapter = OpenAICompatAdapter(model="m", api_url="https://x.test", api_key="bad", transport=_transport(rec))
    with pytest.raises(TransportError) as ei:
        adapter.chat(TURNS)
    assert "401" in str(ei.value)
    assert "Incorrect API key" in str(ei.value)


# -------- construction from settings --------

def _settings(provider: str, url: str, key=None) -> RunSettings:
    return RunSettings(backend=get_backend(provider), model="m1", api_url=url, api_key=key, system_prompt="s")


def test_create_reads_model_url_and_key_from_settings():
    rec = Recorder([b'{"choices":[{"message":{"content":"ok"}}]}'])
    adapter = OpenAICompatAdapter.create(settings=_settings("openai", "https://x.test/v1/", "sk-1"),
                                         transport=_transport(rec))
    assert adapter.model == "m1"
    assert adapter.url == "https://x.test/v1/chat/completions"
    assert adapter.chat(TURNS) == {"content": "ok"}
    assert rec.requests[-1].headers["authorization"] == "Bearer sk-1"

    ollama = OllamaAdapter.create(settings=_settings("ollama", "http://localhost:11434"))
    assert ollama.model == "m1"
    assert ollama.url == "http://localhost:11434/api/generate"
    ollama.close()
