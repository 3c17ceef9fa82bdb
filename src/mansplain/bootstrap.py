from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .config_loader import load_config
from .core.errors import ConfigError
from .core.explain_session import ExplainSession
from .providers.backends import Backend, get_backend
from .providers.http import HttpTransport, make_http_client
from .providers.ollama_adapter import OllamaAdapter
from .providers.openai_compat_adapter import OpenAICompatAdapter
from .decoding.stream_decoder import WireFormat
from .secrets.sources import SecretsResolver
from .source.man_reader import ManPageReader

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "ollama"
PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"

_ADAPTERS = {
    WireFormat.NDJSON: OllamaAdapter,
    WireFormat.SSE: OpenAICompatAdapter,
}


@dataclass(frozen=True)
class RunSettings:
    backend: Backend
    model: str
    api_url: str
    api_key: Optional[str]
    system_prompt: str
    stream: bool = False
    debug: bool = False


def default_system_prompt() -> str:
    path = PROMPTS_DIR / "system.txt"
    return path.read_text(encoding="utf-8") if path.exists() else "You explain man pages."


def _system_prompt(cli_prompt: Optional[str], cfg: Dict[str, Any]) -> str:
    if cli_prompt:
        return cli_prompt
    prompt_cfg = cfg.get("prompt") or {}
    if prompt_cfg.get("text"):
        return prompt_cfg["text"]
    if prompt_cfg.get("file"):
        p = Path(prompt_cfg["file"])
        if not p.exists():
            raise ConfigError(f"Prompt file not found: {p}")
        return p.read_text(encoding="utf-8")
    return default_system_prompt()


def _is_insecure(url: str) -> bool:
    return not url.startswith(("https://", "http://localhost", "http://127.0.0.1"))


def resolve_settings(
    *,
    config_path: Optional[Path] = None,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    api_url: Optional[str] = None,
    api_key: Optional[str] = None,
    prompt: Optional[str] = None,
    stream: Optional[bool] = None,
    debug: bool = False,
) -> RunSettings:
    """
    Merge CLI/env values over the YAML config over backend defaults.
    Fails with ConfigError before any manual page is read or request sent.
    """
    cfg = load_config(config_path)
    model_cfg = cfg.get("model") or {}

    backend = get_backend(provider or model_cfg.get("provider") or DEFAULT_PROVIDER)
    backend_cfg = (cfg.get("providers") or {}).get(backend.name) or {}

    url = api_url or backend_cfg.get("api_url") or backend.default_url
    if api_url and _is_insecure(api_url):
        logger.warning("using non-HTTPS API URL; this may expose your API key.")

    key = api_key
    if not key:
        secrets_cfg = cfg.get("secrets") or {}
        resolver = SecretsResolver(
            method=secrets_cfg.get("method") or "env",
            mapping=secrets_cfg.get("mapping") or {},
        )
        key = resolver.secret(backend.name)
    if backend.requires_key and not key:
        raise ConfigError(
            f"API key required for {backend.label}. Set MANSPLAIN_API_KEY "
            "environment variable or use --api-key flag"
        )

    if stream is None:
        stream = bool((cfg.get("runtime") or {}).get("stream", False))

    return RunSettings(
        backend=backend,
        model=model or model_cfg.get("name") or backend.default_model,
        api_url=url,
        api_key=key,
        system_prompt=_system_prompt(prompt, cfg),
        stream=stream,
        debug=debug,
    )


def build_provider(settings: RunSettings):
    Adapter = _ADAPTERS[settings.backend.wire_format]
    transport = HttpTransport(make_http_client())
    return Adapter.create(settings=settings, transport=transport)


def build_app(settings: RunSettings) -> Dict[str, Any]:
    """
    Composition root: manual reader, backend adapter and session for one run.
    """
    provider = build_provider(settings)
    logger.debug("Backend %s, model %s, url %s", settings.backend.name, settings.model, settings.api_url)
    return {
        "settings": settings,
        "source": ManPageReader(),
        "provider": provider,
        "session": ExplainSession(provider, settings.system_prompt),
    }
