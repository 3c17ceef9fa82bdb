# src/mansplain/providers/openai_compat_adapter.py
from __future__ import annotations
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Sequence

from mansplain.core.errors import TransportError
from mansplain.core.ports import ChatTurn, messages_for
from mansplain.decoding.stream_decoder import StreamDecoder, WireFormat, completion_content
from mansplain.providers.http import HttpTransport

if TYPE_CHECKING:
    from mansplain.bootstrap import RunSettings


class OpenAICompatAdapter:
    """
    Thin adapter for any OpenAI-compatible ``/chat/completions`` endpoint
    (OpenAI itself, Perplexity, local gateways).
    - streams Server-Sent Events, terminated by ``data: [DONE]``
    - sends ``Authorization: Bearer`` only when a key is configured
    """

    wire_format = WireFormat.SSE

    def __init__(
        self,
        model: str,
        api_url: str,
        api_key: Optional[str] = None,
        *,
        transport: Optional[HttpTransport] = None,
    ):
        self.model = model
        self.url = f"{api_url.rstrip('/')}/chat/completions"
        self.api_key = api_key
        self.transport = transport or HttpTransport()

    @classmethod
    def create(cls, *, settings: "RunSettings", transport: Optional[HttpTransport] = None) -> "OpenAICompatAdapter":
        return cls(
            model=settings.model,
            api_url=settings.api_url,
            api_key=settings.api_key,
            transport=transport,
        )

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def build_payload(self, turns: Sequence[ChatTurn], *, stream: bool) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages_for(turns),
            "stream": stream,
        }

    def chat(self, turns: Sequence[ChatTurn]) -> Dict[str, str]:
        body = self.transport.read_body(
            self.url, self.build_payload(turns, stream=False), self.headers()
        )
        content = completion_content(body)
        if content is None:
            # Some gateways stream regardless of the flag
            content = StreamDecoder(self.wire_format).decode_body(body) or None
        if content is None:
            raise TransportError("No response content in API response")
        return {"content": content}

    def chat_stream(self, turns: Sequence[ChatTurn]) -> Iterable[str]:
        chunks = self.transport.stream_bytes(
            self.url, self.build_payload(turns, stream=True), self.headers()
        )
        try:
            yield from StreamDecoder(self.wire_format).iter_fragments(chunks)
        finally:
            chunks.close()

    def close(self) -> None:
        self.transport.close()
