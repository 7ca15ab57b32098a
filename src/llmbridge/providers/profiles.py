from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from llmbridge.core.errors import MissingCredential
from llmbridge.core.models import Target

ANTHROPIC_ORIGIN = "https://api.anthropic.com"
OPENAI_ORIGIN = "https://api.openai.com"
ANTHROPIC_VERSION = "2023-06-01"

CLAUDE_KNOWN_MODELS: List[str] = [
    "claude-opus-4-20250514",
    "claude-sonnet-4-20250514",
    "claude-3-7-sonnet-20250219",
    "claude-3-5-sonnet-20241022",
    "claude-3-5-haiku-20241022",
    "claude-3-opus-20240229",
    "claude-3-sonnet-20240229",
    "claude-3-haiku-20240307",
]

OPENAI_KNOWN_MODELS: List[str] = [
    "gpt-3.5-turbo",
    "gpt-4",
    "gpt-4-turbo-preview",
    "gpt-4-vision-preview",
]

# target -> (models path, chat path, default model)
_TABLE = {
    Target.OLLAMA: ("api/tags", "api/chat", "llama3.2"),
    Target.LMSTUDIO: ("v1/models", "v1/chat/completions", "llama3.2"),
    Target.CLAUDE: ("v1/models", "v1/messages", "claude-3-5-sonnet-20241022"),
    Target.OPENAI: ("v1/models", "v1/chat/completions", "gpt-4"),
}


@dataclass(frozen=True)
class ProviderProfile:
    target: Target
    base_url: str
    models_path: str
    chat_path: str
    default_model: str

    @property
    def models_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.models_path}"

    @property
    def chat_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.chat_path}"

    @property
    def requires_key(self) -> bool:
        return not self.target.is_local

    def auth_headers(self, api_key: Optional[str]) -> Dict[str, str]:
        if self.target is Target.CLAUDE:
            if not api_key:
                raise MissingCredential("Claude")
            return {"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION}
        if self.target is Target.OPENAI:
            if not api_key:
                raise MissingCredential("OpenAI")
            return {"Authorization": f"Bearer {api_key}"}
        return {}


def resolve_base_url(target: Target, host: str, port: int) -> str:
    if target is Target.CLAUDE:
        return ANTHROPIC_ORIGIN
    if target is Target.OPENAI:
        return OPENAI_ORIGIN
    return f"{host.rstrip('/')}:{int(port)}"


def profile_for(target: Union[str, Target], host: str = "http://localhost", port: int = 11434) -> ProviderProfile:
    """Pure lookup. host/port only matter for local targets."""
    t = Target.parse(target)
    models_path, chat_path, default_model = _TABLE[t]
    return ProviderProfile(
        target=t,
        base_url=resolve_base_url(t, host, port),
        models_path=models_path,
        chat_path=chat_path,
        default_model=default_model,
    )
