from __future__ import annotations
from typing import Any, Dict, List, Optional

from llmbridge.core.models import DONE, IGNORABLE, NormalizedEvent, Target, TextDelta
from llmbridge.providers.registry import ProviderRegistry


@ProviderRegistry.register("ollama")
class OllamaCodec:
    """
    Ollama /api/chat: newline-delimited JSON objects, no SSE envelope.
    Images ride on the current user message as a list of base64 strings.
    """

    def __init__(self, target: Target = Target.OLLAMA):
        self.target = target

    def build_body(self, history: List[Dict[str, str]], text: str, image: Optional[str], model: str) -> Dict[str, Any]:
        messages: List[Dict[str, Any]] = [dict(m) for m in history]
        current: Dict[str, Any] = {"role": "user", "content": text}
        if image:
            current["images"] = [image]
        messages.append(current)
        return {
            "model": model,
            "messages": messages,
            "stream": True,
            "temperature": 0.7,
            "top_p": 0.9,
            "top_k": 40,
        }

    def normalize(self, payload: Dict[str, Any]) -> List[NormalizedEvent]:
        events: List[NormalizedEvent] = []
        message = payload.get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            events.append(TextDelta(message["content"]))
        if payload.get("done") is True:
            events.append(DONE)
        return events or [IGNORABLE]
