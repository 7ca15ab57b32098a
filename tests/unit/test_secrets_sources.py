# tests/unit/test_secrets_sources.py

from __future__ import annotations
import pytest
from keyring.errors import KeyringError

import llmbridge.secrets.sources as src
from llmbridge.secrets.sources import (
    SecretsResolver,
    build_secret_sources,
)


def test_method_string_and_list(monkeypatch):
    monkeypatch.setenv("MY_OPENAI_KEY", "sk-mapped")
    r1 = SecretsResolver(method="env", mapping={"openai": {"api_key": "MY_OPENAI_KEY"}})
    assert r1.secret("openai") == "sk-mapped"

    # mapped var unset -> <TARGET>_API_KEY
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    r2 = SecretsResolver(method=["env"], mapping={"openai": {"api_key": "UNSET_VAR"}})
    assert r2.secret("OpenAI") == "sk-env"


def test_default_mapping_for_claude(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", " sk-ant ")
    assert SecretsResolver(method="env").secret("claude") == "sk-ant"


def test_missing_secret_is_none(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert SecretsResolver(method="env").secret("openai") is None


def test_unknown_method_raises():
    with pytest.raises(ValueError):
        build_secret_sources("nope")


def test_duplicate_methods_collapse():
    sources = build_secret_sources(["env", "ENV", "keyring"])
    assert [type(s).__name__ for s in sources] == ["EnvSource", "KeyringSource"]


def test_keyring_then_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
    store = {("llmbridge", "openai"): "sk-from-keyring"}
    monkeypatch.setattr(src.keyring, "get_password", lambda service, user: store.get((service, user)))

    r = SecretsResolver(method=["keyring", "env"])
    assert r.secret("openai") == "sk-from-keyring"

    # keyring misses -> env wins
    store.clear()
    assert r.secret("openai") == "sk-from-env"


def test_keyring_falls_back_to_mapped_service(monkeypatch):
    store = {("ANTHROPIC_API_KEY", "api_key"): "sk-ant-kr"}
    monkeypatch.setattr(src.keyring, "get_password", lambda service, user: store.get((service, user)))
    assert SecretsResolver(method="keyring").secret("claude") == "sk-ant-kr"


def test_keyring_errors_are_not_fatal(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")

    def broken(service, user):
        raise KeyringError("no backend")

    monkeypatch.setattr(src.keyring, "get_password", broken)
    assert SecretsResolver(method=["keyring", "env"]).secret("claude") == "sk-ant"
