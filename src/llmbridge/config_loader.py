# src/llmbridge/config_loader.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import yaml

from llmbridge.core.models import Target


class ConfigError(ValueError):
    pass


def _require(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            raise ConfigError(f"Missing config key: {dotted}")
        cur = cur[k]
    if typ is bool and not isinstance(cur, bool):
        raise ConfigError(f"'{dotted}' must be a boolean")
    if typ is str and not isinstance(cur, str):
        raise ConfigError(f"'{dotted}' must be a string")
    if typ is int and (isinstance(cur, bool) or not isinstance(cur, int)):
        raise ConfigError(f"'{dotted}' must be an integer")
    return cur


def load_config(path: Path) -> Dict[str, Any]:
    if not path or not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    raw = yaml.safe_load(path.read_text())
    if not isinstance(raw, dict) or not raw:
        raise ConfigError(f"Config is empty or invalid YAML: {path}")

    # Validate required keys (no defaults here)
    _require(raw, "bridge.target", str)
    _require(raw, "runtime.stream", bool)

    # Normalise enumerations
    try:
        target = Target.parse(raw["bridge"]["target"])
    except ValueError as e:
        raise ConfigError(str(e))
    raw["bridge"]["target"] = target.value

    # host/port only matter for local servers
    if target.is_local:
        _require(raw, "bridge.host", str)
        _require(raw, "bridge.port", int)

    model = raw["bridge"].get("model")
    if model is not None and not isinstance(model, str):
        raise ConfigError("'bridge.model' must be a string or null")

    timeout = (raw.get("transport") or {}).get("timeout")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
        raise ConfigError("'transport.timeout' must be a positive number")

    return raw
