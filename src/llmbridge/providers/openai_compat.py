from __future__ import annotations
from typing import Any, Dict, List, Optional

from llmbridge.core.models import DONE, IGNORABLE, NormalizedEvent, Target, TextDelta
from llmbridge.providers.registry import ProviderRegistry


def _first_choice(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return None


@ProviderRegistry.register("lmstudio", "openai")
class OpenAICompatCodec:
    """
    Chat-completions shape shared by LM Studio and OpenAI.
    - LM Studio: text only, max_tokens 2048
    - OpenAI: optional image as an image_url content part, max_tokens 4096
    """

    def __init__(self, target: Target):
        self.target = target

    @property
    def max_tokens(self) -> int:
        return 4096 if self.target is Target.OPENAI else 2048

    @property
    def supports_images(self) -> bool:
        return self.target is Target.OPENAI

    def _user_content(self, text: str, image: Optional[str]) -> Any:
        if image and self.supports_images:
            return [
                {"type": "text", "text": text},
                {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{image}"}},
            ]
        return text

    def build_body(self, history: List[Dict[str, str]], text: str, image: Optional[str], model: str) -> Dict[str, Any]:
        messages: List[Dict[str, Any]] = [dict(m) for m in history]
        messages.append({"role": "user", "content": self._user_content(text, image)})
        return {
            "model": model,
            "messages": messages,
            "stream": True,
            "temperature": 0.7,
            "max_tokens": self.max_tokens,
        }

    def normalize(self, payload: Dict[str, Any]) -> List[NormalizedEvent]:
        choice = _first_choice(payload)
        if choice is None:
            return [IGNORABLE]
        events: List[NormalizedEvent] = []
        delta = choice.get("delta")
        if isinstance(delta, dict) and isinstance(delta.get("content"), str):
            events.append(TextDelta(delta["content"]))
        if choice.get("finish_reason") == "stop":
            events.append(DONE)
        return events or [IGNORABLE]
