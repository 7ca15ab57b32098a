"""
Line-stream -> JSON payload frames.

SSE targets wrap each payload in a `data: ` line and may end with `data: [DONE]`;
ollama sends one bare JSON object per line. Either way a bad frame is logged and
skipped, never fatal.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Dict, Iterable, Iterator, Optional

from llmbridge.core.errors import DecodeError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_TOKEN = "[DONE]"


def parse_payload(text: str) -> Optional[Dict[str, Any]]:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("%s", DecodeError(text, str(e)))
        return None
    if not isinstance(obj, dict):
        logger.warning("%s", DecodeError(text, "not a JSON object"))
        return None
    return obj


class FrameDecoder:
    """
    Feed raw body lines one at a time; get a payload dict or None back.
    Once `[DONE]` is seen on an SSE stream, .finished is set and every later
    line is ignored.
    """

    def __init__(self, sse: bool):
        self.sse = sse
        self.finished = False

    def _unwrap_sse(self, line: str) -> Optional[str]:
        if line.startswith(DATA_PREFIX):
            payload = line[len(DATA_PREFIX):].strip()
            if payload == DONE_TOKEN:
                self.finished = True
                return None
            return payload or None
        if line.startswith("event:") or line.startswith(":"):
            return None
        if not line.startswith("{"):
            logger.debug("skipping non-payload line: %r", line[:200])
            return None
        return line

    def feed(self, raw: str) -> Optional[Dict[str, Any]]:
        if self.finished:
            return None
        line = raw.rstrip("\r\n")
        if not line.strip():
            return None
        text = self._unwrap_sse(line) if self.sse else line
        if text is None:
            return None
        return parse_payload(text)


def decode_frames(lines: Iterable[str], sse: bool) -> Iterator[Dict[str, Any]]:
    """
    Lazily turn raw body lines into payload dicts, in arrival order.
    Stops at the first `[DONE]` for SSE streams; ends when `lines` ends otherwise.
    """
    decoder = FrameDecoder(sse)
    for raw in lines:
        obj = decoder.feed(raw)
        if decoder.finished:
            return
        if obj is not None:
            yield obj
