from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv

from .bridge import LLMBridge
from .config_loader import load_config
from .core.models import Target
from .secrets.sources import SecretsResolver
from .transport.http import DEFAULT_TIMEOUT, HttpTransport

logger = logging.getLogger(__name__)


def build_app(config_path: Path, *, transport=None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Composition root: load YAML, resolve the API key, build transport + bridge.
    overrides: optional {target, host, port, model} from the command line.
    Returns: dict with cfg, bridge, model, warnings.
    """
    load_dotenv()
    cfg = load_config(config_path)
    bridge_cfg = cfg["bridge"]

    for key, value in (overrides or {}).items():
        if value is not None:
            bridge_cfg[key] = value
    target = Target.parse(bridge_cfg["target"])
    bridge_cfg["target"] = target.value

    warnings = []

    # ----- Secrets -----
    api_key = None
    if not target.is_local:
        secrets_cfg = cfg.get("secrets") or {}
        resolver = SecretsResolver(
            method=secrets_cfg.get("method", "env"),
            mapping=secrets_cfg.get("mapping") or {},
        )
        api_key = resolver.secret(target.value, "api_key")
        if not api_key:
            # not fatal here: the bridge raises MissingCredential on first use
            warnings.append(f"No API key found for '{target.value}'")
            logger.warning("No API key found for %s", target.value)

    # ----- Transport -----
    if transport is None:
        timeout = (cfg.get("transport") or {}).get("timeout") or DEFAULT_TIMEOUT
        transport = HttpTransport(timeout=float(timeout))

    bridge = LLMBridge(
        host=bridge_cfg.get("host", "http://localhost"),
        port=int(bridge_cfg.get("port", 11434)),
        target=target,
        api_key=api_key,
        transport=transport,
    )

    return {
        "cfg": cfg,
        "bridge": bridge,
        "model": bridge_cfg.get("model") or bridge.default_model,
        "warnings": warnings,
    }
