# src/mansplain/secrets/sources.py

from __future__ import annotations
from typing import Protocol, Optional, Dict, Iterable, List, Union
import logging
import os

import keyring
from keyring.errors import KeyringError

from mansplain.core.errors import ConfigError

logger = logging.getLogger(__name__)

KEYRING_ACCOUNTS = ("API_KEY", "mansplain", "default")


class SecretSource(Protocol):
    def get(self, service: str) -> Optional[str]: ...


class EnvSource:
    def get(self, service: str) -> Optional[str]:
        # `service` is either an exact env var name or a provider name
        for key in (service, f"{service.upper()}_API_KEY"):
            val = os.getenv(key)
            if val and val.strip():
                return val.strip()
        return None


class KeyringSource:
    """OS keyring (macOS Keychain, Secret Service, Windows Credential Locker)."""

    def get(self, service: str) -> Optional[str]:
        try:
            cred = keyring.get_credential(service, None)
            if cred is not None and cred.password:
                return cred.password.strip()
            accounts = [*KEYRING_ACCOUNTS, os.getenv("USER")]
            for account in filter(None, accounts):
                val = keyring.get_password(service, account)
                if val:
                    return val.strip()
        except KeyringError as e:
            logger.debug("Keyring lookup for %r failed: %s", service, e)
        return None


_SOURCES = {"env": EnvSource, "keyring": KeyringSource}


def build_secret_sources(method: Union[str, Iterable[str]]) -> List[SecretSource]:
    names = [method] if isinstance(method, str) else list(method)
    sources: List[SecretSource] = []
    seen = set()
    for m in names:
        key = str(m).strip().lower()
        if key not in _SOURCES:
            raise ConfigError(f"Unknown secrets method '{m}'. Allowed: {sorted(_SOURCES)}")
        if key not in seen:
            seen.add(key)
            sources.append(_SOURCES[key]())
    return sources


class SecretsResolver:
    """
    Looks up a provider's API key through the configured sources, in order.
    mapping: provider -> {name: service-or-env-var}
      e.g. { "openai": { "api_key": "OPENAI_API_KEY" } }
    """

    def __init__(self, method: Union[str, Iterable[str]] = "env",
                 mapping: Dict[str, Dict[str, str]] | None = None):
        self._sources = build_secret_sources(method)
        self._map = mapping or {}

    def secret(self, provider: str, name: str = "api_key") -> Optional[str]:
        service = (self._map.get(provider) or {}).get(name, provider)
        for src in self._sources:
            val = src.get(service)
            if val:
                return val
        return None
