# tests/unit/test_images.py

from __future__ import annotations
from pathlib import Path
import pytest

from conftest import FakeTransport, lines_stream
from llmbridge.bridge import LLMBridge
from llmbridge.images import encode_image, load_image


def test_encode_and_load(tmp_path: Path):
    assert encode_image(b"ABC") == "QUJD"
    p = tmp_path / "pic.jpg"
    p.write_bytes(b"ABC")
    assert load_image(p) == "QUJD"
    with pytest.raises(FileNotFoundError):
        load_image(tmp_path / "missing.jpg")


def test_image_is_kept_on_user_message_and_sent_once():
    t = FakeTransport()
    t.streams = [lines_stream('{"message":{"content":"a cat"}}'), lines_stream('{"message":{"content":"yes"}}')]
    bridge = LLMBridge(transport=t)
    bridge.send_message("what is this?", image=encode_image(b"ABC"))
    bridge.send_message("sure?")

    assert bridge.messages[0].image == "QUJD"
    assert t.requests[0]["body"]["messages"][-1]["images"] == ["QUJD"]
    # prior turns go out as plain text
    assert all("images" not in m for m in t.requests[1]["body"]["messages"])
