# tests/unit/test_secrets_sources.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from mansplain.core.errors import ConfigError  # type: ignore
from mansplain.secrets.sources import (  # type: ignore
    SecretsResolver,
    build_secret_sources,
)


def test_env_exact_name_and_derived(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    r1 = SecretsResolver(method="env", mapping={"openai": {"api_key": "OPENAI_API_KEY"}})
    assert r1.secret("openai") == "sk-env"

    # provider name -> <PROVIDER>_API_KEY
    r2 = SecretsResolver(method=["env"])
    assert r2.secret("openai") == "sk-env"


def test_env_missing_returns_none(monkeypatch):
    monkeypatch.delenv("PERPLEXITY_API_KEY", raising=False)
    monkeypatch.delenv("perplexity", raising=False)
    assert SecretsResolver(method="env").secret("perplexity") is None


def test_unknown_method_raises():
    with pytest.raises(ConfigError):
        build_secret_sources("nope")


def test_keyring_then_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")

    class Cred:
        password = "sk-from-keyring"

    import mansplain.secrets.sources as src
    monkeypatch.setattr(src.keyring, "get_credential", lambda service, user: Cred(), raising=True)
    monkeypatch.setattr(src.keyring, "get_password", lambda *_: None, raising=True)

    r = SecretsResolver(method=["keyring", "env"])
    assert r.secret("openai") == "sk-from-keyring"

    # keyring misses -> env wins
    monkeypatch.setattr(src.keyring, "get_credential", lambda *_: None, raising=True)
    r2 = SecretsResolver(method=["keyring", "env"])
    assert r2.secret("openai") == "sk-from-env"


def test_keyring_backend_failure_is_a_miss(monkeypatch):
    from keyring.errors import NoKeyringError
    import mansplain.secrets.sources as src

    def boom(*_):
        raise NoKeyringError("no backend")

    monkeypatch.setattr(src.keyring, "get_credential", boom, raising=True)
    assert SecretsResolver(method="keyring").secret("openai") is None
