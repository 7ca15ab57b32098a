# tests/unit/test_bootstrap.py

from __future__ import annotations
from pathlib import Path

from conftest import FakeTransport
from llmbridge.bootstrap import build_app
from llmbridge.bridge import LLMBridge
from llmbridge.core.models import Target


def _write(tmp_path: Path, body: str) -> Path:
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir(parents=True)
    cfg = cfg_dir / "default.yaml"
    cfg.write_text(body, encoding="utf-8")
    return cfg


def test_build_app_local(tmp_path: Path):
    cfg = _write(
        tmp_path,
        """
        bridge:
          target: lmstudio
          host: "http://127.0.0.1"
          port: 1234
          model: qwen2.5
        runtime:
          stream: true
        """,
    )
    t = FakeTransport()
    ctx = build_app(cfg, transport=t)

    assert isinstance(ctx["bridge"], LLMBridge)
    assert ctx["bridge"].base_url == "http://127.0.0.1:1234"
    assert ctx["bridge"].transport is t
    assert ctx["model"] == "qwen2.5"
    assert ctx["warnings"] == []


def test_build_app_cloud_resolves_key(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
    cfg = _write(
        tmp_path,
        """
        bridge:
          target: claude
        secrets:
          method: env
        runtime:
          stream: false
        """,
    )
    t = FakeTransport(models={"data": [{"id": "claude-x"}]})
    ctx = build_app(cfg, transport=t)

    assert ctx["bridge"].target is Target.CLAUDE
    assert ctx["model"] == "claude-3-5-sonnet-20241022"
    assert ctx["bridge"].list_models() == ["claude-x"]
    assert t.model_requests[0]["headers"]["x-api-key"] == "sk-ant"


def test_build_app_missing_key_warns(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI", raising=False)
    cfg = _write(
        tmp_path,
        """
        bridge:
          target: ollama
          host: "http://localhost"
          port: 11434
        secrets:
          method: env
        runtime:
          stream: true
        """,
    )
    ctx = build_app(cfg, transport=FakeTransport(), overrides={"target": "openai", "port": None})
    assert ctx["bridge"].target is Target.OPENAI
    assert ctx["warnings"] == ["No API key found for 'openai'"]
