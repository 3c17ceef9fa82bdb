# src/mansplain/config_loader.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

from mansplain.core.errors import ConfigError
from mansplain.providers.backends import BACKENDS


def _optional(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            return None
        cur = cur[k]
    if cur is None:
        return None
    if typ is bool and not isinstance(cur, bool):
        raise ConfigError(f"'{dotted}' must be a boolean")
    if typ is str and not isinstance(cur, str):
        raise ConfigError(f"'{dotted}' must be a string")
    if typ is dict and not isinstance(cur, dict):
        raise ConfigError(f"'{dotted}' must be a mapping")
    return cur


def load_config(path: Optional[Path]) -> Dict[str, Any]:
    """
    Load the optional YAML config. Every key is optional; CLI flags and
    MANSPLAIN_* variables take precedence over whatever is set here.
    """
    if path is None:
        return {}
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Config is not valid YAML: {path}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a mapping: {path}")

    # Sections must be mappings before their leaves are looked at
    for section in ("model", "providers", "prompt", "runtime", "secrets"):
        _optional(raw, section, dict)

    _optional(raw, "model.name", str)
    _optional(raw, "prompt.text", str)
    _optional(raw, "prompt.file", str)
    _optional(raw, "runtime.stream", bool)

    method = _optional(raw, "secrets.method", object)
    if method is not None:
        if isinstance(method, list):
            if not all(isinstance(m, str) for m in method):
                raise ConfigError("'secrets.method' must be a string or a list of strings")
        elif not isinstance(method, str):
            raise ConfigError("'secrets.method' must be a string or a list of strings")

    mapping = _optional(raw, "secrets.mapping", dict) or {}
    for name, entry in mapping.items():
        if not isinstance(entry, dict):
            raise ConfigError(f"'secrets.mapping.{name}' must be a mapping")
        if not all(isinstance(v, str) for v in entry.values()):
            raise ConfigError(f"'secrets.mapping.{name}' values must be strings")

    provider = _optional(raw, "model.provider", str)
    if provider is not None:
        provider = provider.lower()
        if provider not in BACKENDS:
            raise ConfigError(
                f"Unknown model.provider '{provider}' (expected one of: {', '.join(BACKENDS)})."
            )
        raw["model"]["provider"] = provider

    providers = _optional(raw, "providers", dict) or {}
    for name, entry in providers.items():
        if entry is None:
            continue
        if not isinstance(entry, dict):
            raise ConfigError(f"'providers.{name}' must be a mapping")
        if entry.get("api_url") is not None and not isinstance(entry["api_url"], str):
            raise ConfigError(f"'providers.{name}.api_url' must be a string")

    # prompt.file is resolved against the config file, not the cwd
    prompt_file = _optional(raw, "prompt.file", str)
    if prompt_file:
        p = Path(prompt_file).expanduser()
        raw["prompt"]["file"] = str(p if p.is_absolute() else (path.resolve().parent / p))

    return raw
