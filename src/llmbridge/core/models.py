from __future__ import annotations
import datetime as dt
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional, Union

Role = Literal["user", "assistant"]


class Target(str, Enum):
    OLLAMA = "ollama"
    LMSTUDIO = "lmstudio"
    CLAUDE = "claude"
    OPENAI = "openai"

    @classmethod
    def parse(cls, value: Union[str, "Target"]) -> "Target":
        if isinstance(value, Target):
            return value
        key = str(value).strip().lower()
        for t in cls:
            if t.value == key:
                return t
        raise ValueError(f"Unknown target '{value}'. Expected one of {[t.value for t in cls]}.")

    @property
    def is_local(self) -> bool:
        return self in (Target.OLLAMA, Target.LMSTUDIO)

    @property
    def uses_sse(self) -> bool:
        # ollama streams newline-delimited JSON, everyone else speaks SSE
        return self is not Target.OLLAMA


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True)
class Message:
    role: Role
    content: str
    image: Optional[str] = None  # base64, already encoded
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: dt.datetime = field(default_factory=_now)

    @property
    def is_user(self) -> bool:
        return self.role == "user"

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "has_image": self.image is not None,
            "created_at": self.created_at.isoformat(),
        }


# ---- normalized stream events ----

@dataclass(frozen=True)
class TextDelta:
    text: str


class _Marker:
    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


DONE = _Marker("Done")
IGNORABLE = _Marker("Ignorable")

NormalizedEvent = Union[TextDelta, _Marker]


class GenerationStatus(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class GenerationState:
    is_active: bool = False
    accumulated_text: str = ""
    last_error: Optional[BaseException] = None
    status: GenerationStatus = GenerationStatus.IDLE


@dataclass(frozen=True)
class GenerationEvent:
    """
    Published to subscribers while a generation runs.
    kind: 'started' | 'delta' | 'completed' | 'cancelled' | 'failed'
    generation: id returned by Generation.start()
    text: the delta for 'delta', the accumulated buffer otherwise.
    """
    kind: str
    generation: int = 0
    text: str = ""
    message: Optional[Message] = None
    error: Optional[BaseException] = None
