# tests/unit/conftest.py

from __future__ import annotations
import queue
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from llmbridge.core.errors import classify_status  # noqa: E402


class FakeStream:
    """Replays scripted lines. Items that are exceptions get raised mid-stream."""

    def __init__(self, lines: Iterable[Any], status_code: int = 200, body: str = ""):
        self._lines = lines
        self.status_code = status_code
        self._body = body
        self.closed = False
        self.consumed: List[str] = []

    def iter_lines(self):
        for item in self._lines:
            if self.closed:
                return
            if isinstance(item, BaseException):
                raise item
            self.consumed.append(item)
            yield item

    def read_text(self) -> str:
        return self._body

    def close(self) -> None:
        self.closed = True


class GatedStream(FakeStream):
    """
    Lines are pushed by the test with .push(); the worker blocks until then.
    close() (called on cancel) ends the iteration.
    """

    def __init__(self):
        self._q: "queue.Queue[Optional[str]]" = queue.Queue()
        super().__init__(self._drain())

    def _drain(self):
        while True:
            item = self._q.get()
            if item is None:
                return
            yield item

    def push(self, *lines: str) -> None:
        for line in lines:
            self._q.put(line)

    def end(self) -> None:
        self._q.put(None)

    def close(self) -> None:
        super().close()
        self._q.put(None)


class FakeTransport:
    def __init__(self, stream: Optional[FakeStream] = None, models: Any = None, error: Optional[Exception] = None):
        self.stream = stream
        self.streams: List[FakeStream] = []
        self.models = models
        self.error = error
        self.requests: List[Dict[str, Any]] = []
        self.model_requests: List[Dict[str, Any]] = []

    def get_json(self, url: str, headers: Dict[str, str]) -> Any:
        self.model_requests.append({"url": url, "headers": dict(headers)})
        if self.error is not None:
            raise self.error
        return self.models

    @contextmanager
    def open_stream(self, url: str, headers: Dict[str, str], body: Dict[str, Any]):
        self.requests.append({"url": url, "headers": dict(headers), "body": body})
        if self.error is not None:
            raise self.error
        stream = self.streams.pop(0) if self.streams else self.stream
        try:
            yield stream
        finally:
            stream.close()


def lines_stream(*lines: str, status_code: int = 200) -> FakeStream:
    return FakeStream(list(lines), status_code=status_code)


def server_error(status: int):
    return classify_status(status)


@pytest.fixture
def fake_transport():
    return FakeTransport()
