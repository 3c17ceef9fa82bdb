# src/mansplain/providers/ollama_adapter.py
from __future__ import annotations
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Sequence

from mansplain.core.ports import ChatTurn
from mansplain.decoding.stream_decoder import StreamDecoder, WireFormat
from mansplain.providers.http import HttpTransport

if TYPE_CHECKING:
    from mansplain.bootstrap import RunSettings


class OllamaAdapter:
    """
    Ollama ``/api/generate``: system and user turns travel as separate
    ``system`` / ``prompt`` fields; the reply is newline-delimited JSON.
    """

    wire_format = WireFormat.NDJSON

    def __init__(self, model: str, api_url: str, *, transport: Optional[HttpTransport] = None):
        self.model = model
        self.url = f"{api_url.rstrip('/')}/api/generate"
        self.transport = transport or HttpTransport()

    @classmethod
    def create(cls, *, settings: "RunSettings", transport: Optional[HttpTransport] = None) -> "OllamaAdapter":
        return cls(model=settings.model, api_url=settings.api_url, transport=transport)

    def build_payload(self, turns: Sequence[ChatTurn], *, stream: bool) -> Dict[str, Any]:
        system = "\n\n".join(t.text for t in turns if t.role == "system")
        prompt = "\n\n".join(t.text for t in turns if t.role != "system")
        return {
            "model": self.model,
            "prompt": prompt,
            "system": system,
            "stream": stream,
        }

    def chat(self, turns: Sequence[ChatTurn]) -> Dict[str, str]:
        body = self.transport.read_body(self.url, self.build_payload(turns, stream=False))
        return {"content": StreamDecoder(self.wire_format).decode_body(body)}

    def chat_stream(self, turns: Sequence[ChatTurn]) -> Iterable[str]:
        chunks = self.transport.stream_bytes(self.url, self.build_payload(turns, stream=True))
        try:
            yield from StreamDecoder(self.wire_format).iter_fragments(chunks)
        finally:
            # Releases the connection when `done` arrives before EOF
            chunks.close()

    def close(self) -> None:
        self.transport.close()
