from __future__ import annotations
from typing import Dict, Iterator, List, Optional

from .models import Message, Role


class ConversationHistory:
    """
    In-memory, insertion-ordered list of Messages.
    - Mutated only by append() and clear()
    - .messages returns a copy, never the backing list
    - .as_turns() gives the provider-ready [{'role', 'content'}] view
    """

    def __init__(self, messages: Optional[List[Message]] = None):
        self._messages: List[Message] = list(messages or [])

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    @property
    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def append(self, message: Message) -> Message:
        self._messages.append(message)
        return message

    def append_message(self, role: Role, content: str, image: Optional[str] = None) -> Message:
        return self.append(Message(role=role, content=content, image=image))

    def clear(self) -> None:
        self._messages.clear()

    def as_turns(self, exclude_last: bool = False) -> List[Dict[str, str]]:
        msgs = self._messages[:-1] if exclude_last else self._messages
        return [{"role": m.role, "content": m.content} for m in msgs]
