from __future__ import annotations
import logging
import queue
from typing import Any, Iterator, List, Optional, Union

from llmbridge.core.errors import ProviderError
from llmbridge.core.generation import FAILED_TEXT, Generation
from llmbridge.core.models import GenerationEvent, Message, Target
from llmbridge.core.ports import Transport
from llmbridge.providers.profiles import (
    CLAUDE_KNOWN_MODELS,
    OPENAI_KNOWN_MODELS,
    profile_for,
)
from llmbridge.providers.registry import ProviderRegistry
from llmbridge.providers.request import build_models_headers

logger = logging.getLogger(__name__)

_TERMINAL = ("completed", "cancelled", "failed")


class LLMBridge:
    """
    One configured connection to one backend.

    Configuration (target, endpoint, key) is fixed at construction; use
    reconfigure() to get a fresh bridge. History lives in memory only.
    """

    def __init__(
        self,
        host: str = "http://localhost",
        port: int = 11434,
        target: Union[str, Target] = Target.OLLAMA,
        api_key: Optional[str] = None,
        *,
        transport: Optional[Transport] = None,
    ):
        self._target = Target.parse(target)
        self._host = host
        self._requested_port = int(port)
        self._port = 443 if not self._target.is_local else int(port)
        self._api_key = api_key
        self.profile = profile_for(self._target, host, port)
        if transport is None:
            from llmbridge.transport.http import HttpTransport
            transport = HttpTransport()
        self.transport = transport
        self._generation = Generation(
            profile=self.profile,
            codec=ProviderRegistry.codec_for(self._target),
            transport=transport,
            api_key=api_key,
        )

    def reconfigure(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        target: Union[str, Target, None] = None,
        api_key: Optional[str] = None,
    ) -> "LLMBridge":
        """
        New bridge; unspecified settings are copied from this one (the key only
        when the target is unchanged). Shares the transport, never the history.
        """
        new_target = Target.parse(target) if target is not None else self._target
        if api_key is None and new_target is self._target:
            api_key = self._api_key
        return LLMBridge(
            host if host is not None else self._host,
            port if port is not None else self._requested_port,
            new_target,
            api_key,
            transport=self.transport,
        )

    # ---- configuration views ----

    @property
    def target(self) -> Target:
        return self._target

    @property
    def base_url(self) -> str:
        return self.profile.base_url

    @property
    def port(self) -> int:
        return self._port

    @property
    def default_model(self) -> str:
        return self.profile.default_model

    # ---- state views ----

    @property
    def messages(self) -> List[Message]:
        return self._generation.history.messages

    @property
    def current_response(self) -> str:
        return self._generation.current_response

    @property
    def is_loading(self) -> bool:
        return self._generation.is_active

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._generation.state.last_error

    def subscribe(self, listener):
        return self._generation.subscribe(listener)

    # ---- models ----

    def list_models(self) -> List[str]:
        # MissingCredential is raised here, never masked by the Claude fallback
        headers = build_models_headers(self.profile, self._api_key)
        try:
            payload = self.transport.get_json(self.profile.models_url, headers)
        except ProviderError as e:
            if self._target is Target.CLAUDE:
                logger.warning("Claude model list unavailable (%s); using known models", e)
                return list(CLAUDE_KNOWN_MODELS)
            raise
        return self._parse_models(payload)

    def _parse_models(self, payload: Any) -> List[str]:
        t = self._target
        key, field = ("models", "name") if t is Target.OLLAMA else ("data", "id")
        items = payload.get(key) if isinstance(payload, dict) else None
        if isinstance(items, list):
            ids = [i[field] for i in items if isinstance(i, dict) and isinstance(i.get(field), str)]
            if t is Target.OPENAI and not ids:
                return list(OPENAI_KNOWN_MODELS)
            return ids
        if t is Target.CLAUDE:
            return list(CLAUDE_KNOWN_MODELS)
        if t is Target.OPENAI:
            return list(OPENAI_KNOWN_MODELS)
        return [self.profile.default_model]

    # ---- chat ----

    def _follow(self, text: str, image: Optional[str], model: Optional[str]):
        # subscribe before start() so no event of the new generation is missed
        events: "queue.Queue[GenerationEvent]" = queue.Queue()
        unsubscribe = self._generation.subscribe(events.put)
        try:
            gen_id = self._generation.start(text, image=image, model=model)
        except Exception:
            unsubscribe()
            raise
        return gen_id, events, unsubscribe

    def send_message(self, text: str, image: Optional[str] = None, model: Optional[str] = None) -> Message:
        """Blocking form: returns the assistant Message once this turn settles."""
        gen_id, events, unsubscribe = self._follow(text, image, model)
        try:
            while True:
                ev = events.get()
                if ev.generation != gen_id or ev.kind not in _TERMINAL:
                    continue
                if ev.kind == "failed" and ev.error is not None:
                    raise ev.error
                return ev.message or Message(role="assistant", content=FAILED_TEXT)
        finally:
            unsubscribe()

    def send_message_stream(self, text: str, image: Optional[str] = None, model: Optional[str] = None) -> Iterator[str]:
        """
        Push form: yields text deltas as they arrive.
        Closing the iterator early cancels its own generation, never a newer one.
        """
        gen_id, events, unsubscribe = self._follow(text, image, model)

        def gen() -> Iterator[str]:
            finished = False
            try:
                while True:
                    ev = events.get()
                    if ev.generation != gen_id:
                        continue
                    if ev.kind == "delta":
                        yield ev.text
                    elif ev.kind in _TERMINAL:
                        finished = True
                        if ev.kind == "failed" and ev.error is not None:
                            raise ev.error
                        return
            finally:
                unsubscribe()
                if not finished:
                    self._generation.cancel(gen_id)
        return gen()

    def cancel_generation(self) -> None:
        self._generation.cancel()
        self._generation.join()

    def clear_messages(self) -> None:
        self._generation.clear()

    def close(self) -> None:
        self._generation.cancel()
        close = getattr(self.transport, "close", None)
        if callable(close):
            close()
