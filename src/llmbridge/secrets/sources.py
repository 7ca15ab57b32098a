# src/llmbridge/secrets/sources.py

from __future__ import annotations
import logging
import os
from typing import Dict, Iterable, List, Optional, Protocol, Union

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

# keyring entries live under this service, one per target:
#   keyring set llmbridge claude
KEYRING_SERVICE = "llmbridge"

# target -> conventional env var for its key
DEFAULT_MAPPING: Dict[str, Dict[str, str]] = {
    "claude": {"api_key": "ANTHROPIC_API_KEY"},
    "openai": {"api_key": "OPENAI_API_KEY"},
}


class SecretSource(Protocol):
    def get(self, target: str, name: str) -> Optional[str]: ...


class EnvSource:
    """Looks up the mapped variable, then <TARGET>_API_KEY."""

    def get(self, target: str, name: str) -> Optional[str]:
        for var in (name, f"{target.upper()}_API_KEY"):
            val = os.getenv(var)
            if val and val.strip():
                return val.strip()
        return None


class KeyringSource:
    """System keyring: service 'llmbridge', username = target."""

    def get(self, target: str, name: str) -> Optional[str]:
        for service, user in ((KEYRING_SERVICE, target), (name, "api_key")):
            try:
                val = keyring.get_password(service, user)
            except KeyringError as e:
                logger.debug("keyring lookup %s/%s failed: %s", service, user, e)
                continue
            if val and val.strip():
                return val.strip()
        return None


_SOURCES = {"env": EnvSource, "keyring": KeyringSource}


def build_secret_sources(method: Union[str, Iterable[str]]) -> List[SecretSource]:
    methods = [method] if isinstance(method, str) else list(method)
    seen: List[str] = []
    for m in methods:
        key = str(m).strip().lower()
        if key not in _SOURCES:
            raise ValueError(f"Unknown secrets method '{m}'. Allowed: {sorted(_SOURCES)}")
        if key not in seen:
            seen.append(key)
    return [_SOURCES[key]() for key in seen]


class SecretsResolver:
    """
    Resolve a target's API key from the configured sources, first hit wins.
    mapping is merged over DEFAULT_MAPPING, e.g. { "openai": { "api_key": "MY_OPENAI_KEY" } }
    """

    def __init__(self, method: Union[str, Iterable[str]] = "env", mapping: Optional[Dict[str, Dict[str, str]]] = None):
        self._sources = build_secret_sources(method)
        self._map = {k: dict(v) for k, v in DEFAULT_MAPPING.items()}
        for target, names in (mapping or {}).items():
            self._map.setdefault(str(target).lower(), {}).update(names or {})

    def secret(self, target: str, name: str = "api_key") -> Optional[str]:
        target = target.lower()
        key_name = self._map.get(target, {}).get(name, f"{target.upper()}_API_KEY")
        for src in self._sources:
            val = src.get(target, key_name)
            if val:
                return val
        return None
