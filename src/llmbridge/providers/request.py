from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from llmbridge.core.ports import ProviderCodec
from .profiles import ProviderProfile


@dataclass(frozen=True)
class ChatRequest:
    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]

    def summary(self) -> Dict[str, Any]:
        """Loggable view: no headers (they carry keys), no message bodies."""
        messages = self.body.get("messages") or []
        return {
            "url": self.url,
            "model": self.body.get("model"),
            "stream": self.body.get("stream"),
            "messages_count": len(messages),
        }


def build_headers(profile: ProviderProfile, api_key: Optional[str]) -> Dict[str, str]:
    # auth first: MissingCredential must fire before anything else is prepared
    auth = profile.auth_headers(api_key)
    headers = {
        "Content-Type": "application/json",
        "Accept": "text/event-stream" if profile.target.uses_sse else "application/json",
        "Cache-Control": "no-cache",
    }
    headers.update(auth)
    return headers


def build_models_headers(profile: ProviderProfile, api_key: Optional[str]) -> Dict[str, str]:
    auth = profile.auth_headers(api_key)
    headers = {"Content-Type": "application/json"} if auth else {}
    headers.update(auth)
    return headers


def build_chat_request(
    profile: ProviderProfile,
    codec: ProviderCodec,
    api_key: Optional[str],
    history: List[Dict[str, str]],
    text: str,
    image: Optional[str] = None,
    model: Optional[str] = None,
) -> ChatRequest:
    """
    history: prior turns, oldest first, NOT including the new user turn.
    """
    headers = build_headers(profile, api_key)
    body = codec.build_body(history, text, image, model or profile.default_model)
    return ChatRequest(url=profile.chat_url, headers=headers, body=body)
