from __future__ import annotations
import logging
import threading
from typing import Callable, List, Optional

from .errors import GenerationActiveError, classify_status
from .history import ConversationHistory
from .models import (
    DONE,
    GenerationEvent,
    GenerationState,
    GenerationStatus,
    TextDelta,
)
from .ports import ProviderCodec, Transport
from llmbridge.providers.profiles import ProviderProfile
from llmbridge.providers.request import ChatRequest, build_chat_request
from llmbridge.stream.decoder import FrameDecoder

logger = logging.getLogger(__name__)

FAILED_TEXT = "Failed to generate response."
CANCELLED_SUFFIX = "\nCancelled by user."
ERROR_SUFFIX = "\nAn error occurred."

Listener = Callable[[GenerationEvent], None]


class Generation:
    """
    Owns the one in-flight generation for a bridge.

    IDLE -> STREAMING -> COMPLETED | CANCELLED | FAILED

    - start() settles any running generation first, appends the user turn,
      then consumes the provider stream on a worker thread
    - cancel() may be called from any thread; partial text is flushed to
      history with a cancellation note and no later frame is applied
    - every history/state mutation happens under self._lock
    """

    def __init__(
        self,
        profile: ProviderProfile,
        codec: ProviderCodec,
        transport: Transport,
        api_key: Optional[str] = None,
        history: Optional[ConversationHistory] = None,
    ):
        self.profile = profile
        self.codec = codec
        self.transport = transport
        self.api_key = api_key
        self.history = history if history is not None else ConversationHistory()
        self.state = GenerationState()

        self._lock = threading.RLock()
        # serializes start(): settle old, append, spawn
        self._start_lock = threading.Lock()
        self._listeners: List[Listener] = []
        self._thread: Optional[threading.Thread] = None
        self._cancel = threading.Event()
        self._response = None
        self._generation_id = 0

    # ---- observers ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def _publish(self, event: GenerationEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for fn in listeners:
            fn(event)

    # ---- read-only views ----

    @property
    def is_active(self) -> bool:
        return self.state.is_active

    @property
    def current_response(self) -> str:
        return self.state.accumulated_text

    @property
    def status(self) -> GenerationStatus:
        return self.state.status

    @property
    def generation_id(self) -> int:
        return self._generation_id

    # ---- state machine ----

    def start(self, text: str, image: Optional[str] = None, model: Optional[str] = None) -> int:
        """
        Begin a new generation and return its id. Raises MissingCredential
        before any network activity when the target needs a key.
        Concurrent callers are served one at a time; each pre-empts the last.
        """
        with self._start_lock:
            if self.state.is_active:
                self.cancel()
            self.join()

            with self._lock:
                prior = self.history.as_turns()
                self.history.append_message("user", text, image=image)
                self._generation_id += 1
                gen_id = self._generation_id
                self.state.last_error = None
                self.state.accumulated_text = ""

                try:
                    request = build_chat_request(
                        self.profile, self.codec, self.api_key, prior, text, image, model
                    )
                except Exception as e:
                    self.state.status = GenerationStatus.FAILED
                    self.state.last_error = e
                    raise

                cancel = threading.Event()
                self._cancel = cancel
                self.state.is_active = True
                self.state.status = GenerationStatus.STREAMING
                logger.debug("generation %d request %s", gen_id, request.summary())

                thread = threading.Thread(
                    target=self._run,
                    args=(gen_id, request, cancel),
                    name=f"llmbridge-generation-{gen_id}",
                    daemon=True,
                )
                self._thread = thread

            self._publish(GenerationEvent(kind="started", generation=gen_id))
            thread.start()
            return gen_id

    def cancel(self, gen_id: Optional[int] = None) -> None:
        """
        Stop consuming the stream and flush any partial text.
        With gen_id, only that generation is cancelled; a newer one is left alone.
        """
        with self._lock:
            if not self.state.is_active:
                return
            if gen_id is not None and gen_id != self._generation_id:
                return
            self._cancel.set()
            gen_id = self._generation_id
            partial = self.state.accumulated_text
            message = None
            if partial:
                message = self.history.append_message("assistant", partial + CANCELLED_SUFFIX)
            response = self._response
            self._settle(GenerationStatus.CANCELLED)

        # unblock a worker waiting on the next line
        if response is not None:
            try:
                response.close()
            except Exception:
                logger.debug("closing cancelled stream failed", exc_info=True)

        logger.info("generation %d cancelled (%d chars kept)", gen_id, len(partial))
        self._publish(GenerationEvent(kind="cancelled", generation=gen_id, text=partial, message=message))

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def clear(self) -> None:
        with self._lock:
            if self.state.is_active:
                raise GenerationActiveError("Cancel the running generation before clearing history")
            self.history.clear()
            self.state.last_error = None
            self.state.accumulated_text = ""
            self.state.status = GenerationStatus.IDLE

    # ---- worker ----

    def _settle(self, status: GenerationStatus) -> None:
        # caller holds the lock
        self.state.status = status
        self.state.is_active = False
        self.state.accumulated_text = ""
        self._response = None

    def _owns(self, gen_id: int, cancel: threading.Event) -> bool:
        # caller holds the lock
        return gen_id == self._generation_id and self.state.is_active and not cancel.is_set()

    def _run(self, gen_id: int, request: ChatRequest, cancel: threading.Event) -> None:
        try:
            self._consume(gen_id, request, cancel)
        except Exception as e:
            self._fail(gen_id, cancel, e)
        else:
            self._complete(gen_id, cancel)

    def _consume(self, gen_id: int, request: ChatRequest, cancel: threading.Event) -> None:
        with self.transport.open_stream(request.url, request.headers, request.body) as response:
            if response.status_code != 200:
                raise classify_status(response.status_code, response.read_text())

            with self._lock:
                if not self._owns(gen_id, cancel):
                    return
                self._response = response

            decoder = FrameDecoder(sse=self.profile.target.uses_sse)
            for line in response.iter_lines():
                if cancel.is_set():
                    return
                payload = decoder.feed(line)
                if decoder.finished:
                    return
                if payload is None:
                    continue
                for event in self.codec.normalize(payload):
                    if isinstance(event, TextDelta):
                        if not self._apply_delta(gen_id, cancel, event.text):
                            return
                    elif event is DONE:
                        return

    def _apply_delta(self, gen_id: int, cancel: threading.Event, text: str) -> bool:
        with self._lock:
            if not self._owns(gen_id, cancel):
                return False
            self.state.accumulated_text += text
        self._publish(GenerationEvent(kind="delta", generation=gen_id, text=text))
        return True

    def _complete(self, gen_id: int, cancel: threading.Event) -> None:
        with self._lock:
            if not self._owns(gen_id, cancel):
                return
            text = self.state.accumulated_text
            message = self.history.append_message("assistant", text) if text else None
            self._settle(GenerationStatus.COMPLETED)
        logger.info("generation %d completed (%d chars)", gen_id, len(text))
        self._publish(GenerationEvent(kind="completed", generation=gen_id, text=text, message=message))

    def _fail(self, gen_id: int, cancel: threading.Event, error: Exception) -> None:
        with self._lock:
            if not self._owns(gen_id, cancel):
                # errors raised by a stream we closed on cancel are expected
                logger.debug("generation %d ended after cancel: %s", gen_id, error)
                return
            partial = self.state.accumulated_text
            message = None
            if partial:
                message = self.history.append_message("assistant", partial + ERROR_SUFFIX)
            self._settle(GenerationStatus.FAILED)
            self.state.last_error = error
        logger.warning("generation %d failed: %s", gen_id, error)
        self._publish(GenerationEvent(kind="failed", generation=gen_id, text=partial, message=message, error=error))
