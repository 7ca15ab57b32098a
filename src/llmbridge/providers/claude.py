from __future__ import annotations
from typing import Any, Dict, List, Optional

from llmbridge.core.models import DONE, IGNORABLE, NormalizedEvent, Target, TextDelta
from llmbridge.providers.registry import ProviderRegistry


@ProviderRegistry.register("claude")
class ClaudeCodec:
    """Anthropic Messages API."""

    def __init__(self, target: Target = Target.CLAUDE):
        self.target = target

    def build_body(self, history: List[Dict[str, str]], text: str, image: Optional[str], model: str) -> Dict[str, Any]:
        messages: List[Dict[str, Any]] = [dict(m) for m in history]

        # current turn is always a block list; image goes before the text
        blocks: List[Dict[str, Any]] = []
        if image:
            blocks.append({
                "type": "image",
                "source": {"type": "base64", "media_type": "image/jpeg", "data": image},
            })
        blocks.append({"type": "text", "text": text})
        messages.append({"role": "user", "content": blocks})

        return {
            "model": model,
            "messages": messages,
            "max_tokens": 4096,
            "stream": True,
            "temperature": 0.7,
        }

    def normalize(self, payload: Dict[str, Any]) -> List[NormalizedEvent]:
        kind = payload.get("type")
        if kind == "content_block_delta":
            delta = payload.get("delta")
            if isinstance(delta, dict) and isinstance(delta.get("text"), str):
                return [TextDelta(delta["text"])]
            return [IGNORABLE]
        if kind == "message_stop":
            return [DONE]
        return [IGNORABLE]
