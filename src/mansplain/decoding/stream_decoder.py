# src/mansplain/decoding/stream_decoder.py
"""
Incremental decoder for LLM response bodies.

Two wire formats are understood:

- NDJSON (Ollama ``/api/generate``): one JSON object per line,
  ``{"response": "...", "done": false}``; ``done: true`` ends the stream.
- SSE (OpenAI-compatible ``/chat/completions``): ``data: {...}`` lines,
  terminated by ``data: [DONE]``.

Bytes may arrive split at any point, including inside a line or inside a
multi-byte UTF-8 sequence. Lines that fail to parse are dropped and decoding
carries on with the next one.
"""
from __future__ import annotations
import codecs
import json
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, List, NamedTuple, Optional, Union

Sink = Callable[[str], None]

SSE_MARKER = "data:"
SSE_DONE = "[DONE]"


class WireFormat(str, Enum):
    NDJSON = "ndjson"
    SSE = "sse"


class LineResult(NamedTuple):
    fragment: Optional[str]
    done: bool = False


def decode_ndjson_line(line: str) -> Optional[LineResult]:
    try:
        obj = json.loads(line)
    except ValueError:
        return None
    if not isinstance(obj, dict):
        return None
    text = obj.get("response")
    done = obj.get("done", False)
    if text is not None and not isinstance(text, str):
        return None
    if not isinstance(done, bool):
        return None
    return LineResult(text, done)


def decode_sse_line(line: str) -> Optional[LineResult]:
    line = line.rstrip()
    if not line.startswith(SSE_MARKER):
        return None
    data = line[len(SSE_MARKER):].strip()
    if data == SSE_DONE:
        return LineResult(None, True)
    try:
        obj = json.loads(data)
    except ValueError:
        return None
    return LineResult(_first_choice_field(obj, "delta"))


def _first_choice_field(obj: Any, field: str) -> Optional[str]:
    # choices[0].<field>.content, or None for any other shape
    if not isinstance(obj, dict):
        return None
    choices = obj.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    inner = first.get(field)
    if not isinstance(inner, dict):
        return None
    content = inner.get("content")
    return content if isinstance(content, str) else None


def completion_content(body: Union[bytes, str]) -> Optional[str]:
    """
    Content of a non-streamed chat completion (``choices[0].message.content``),
    or None when the body is not such an object.
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    try:
        obj = json.loads(body)
    except ValueError:
        return None
    return _first_choice_field(obj, "message")


_LINE_DECODERS = {
    WireFormat.NDJSON: decode_ndjson_line,
    WireFormat.SSE: decode_sse_line,
}


class StreamDecoder:
    """
    Reassembles logical lines from arbitrarily chunked bytes and extracts
    text fragments for one response.

    Each fragment is passed to ``sink`` (if any) as soon as it is decoded and
    appended to ``text``. One instance serves exactly one response.
    """

    def __init__(self, wire_format: WireFormat, sink: Optional[Sink] = None):
        self.wire_format = WireFormat(wire_format)
        self._decode_line = _LINE_DECODERS[self.wire_format]
        self._sink = sink
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._parts: List[str] = []
        self._done = False

    @property
    def done(self) -> bool:
        """True once the completion signal has been seen."""
        return self._done

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def feed(self, chunk: bytes) -> List[str]:
        """Consume one chunk; return the fragments it completed."""
        if self._done:
            return []
        self._buffer += self._utf8.decode(chunk)
        out: List[str] = []
        while not self._done:
            pos = self._buffer.find("\n")
            if pos < 0:
                break
            line = self._buffer[:pos]
            self._buffer = self._buffer[pos + 1:]
            self._consume_line(line, out)
        if self._done:
            # Anything after the completion signal is never parsed
            self._buffer = ""
        return out

    def iter_fragments(self, chunks: Iterable[bytes]) -> Iterator[str]:
        for chunk in chunks:
            yield from self.feed(chunk)
            if self._done:
                return
        # End of stream: an unterminated trailing line is dropped
        self._buffer = ""

    def decode(self, chunks: Iterable[bytes]) -> str:
        for _ in self.iter_fragments(chunks):
            pass
        return self.text

    def decode_body(self, body: Union[bytes, str]) -> str:
        """
        Non-streaming mode: decode a complete response body without writing
        to the sink. The last line is parsed even without a trailing newline.
        """
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        sink, self._sink = self._sink, None
        try:
            for line in body.split("\n"):
                self._consume_line(line, [])
                if self._done:
                    break
        finally:
            self._sink = sink
        return self.text

    def _consume_line(self, line: str, out: List[str]) -> None:
        if line.endswith("\r"):
            line = line[:-1]
        result = self._decode_line(line)
        if result is None:
            return
        if result.fragment is not None:
            self._parts.append(result.fragment)
            out.append(result.fragment)
            if self._sink is not None:
                self._sink(result.fragment)
        if result.done:
            self._done = True
