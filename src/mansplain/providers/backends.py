from __future__ import annotations
from dataclasses import dataclass
from typing import Dict

from mansplain.core.errors import ConfigError
from mansplain.decoding.stream_decoder import WireFormat


@dataclass(frozen=True)
class Backend:
    name: str
    label: str
    wire_format: WireFormat
    default_url: str
    default_model: str
    requires_key: bool


BACKENDS: Dict[str, Backend] = {
    "ollama": Backend(
        name="ollama",
        label="Ollama",
        wire_format=WireFormat.NDJSON,
        default_url="http://localhost:11434",
        default_model="gemma3:12b",
        requires_key=False,
    ),
    "perplexity": Backend(
        name="perplexity",
        label="Perplexity",
        wire_format=WireFormat.SSE,
        default_url="https://api.perplexity.ai",
        default_model="sonar",
        requires_key=True,
    ),
    "openai": Backend(
        name="openai",
        label="OpenAI",
        wire_format=WireFormat.SSE,
        default_url="https://api.openai.com/v1",
        default_model="gpt-4o-mini",
        requires_key=True,
    ),
}


def get_backend(name: str) -> Backend:
    key = str(name).strip().lower()
    if key not in BACKENDS:
        raise ConfigError(
            f"Unknown provider '{name}'. Supported providers: {', '.join(BACKENDS)}"
        )
    return BACKENDS[key]
