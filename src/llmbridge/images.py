from __future__ import annotations
import base64
from pathlib import Path
from typing import Union


def encode_image(data: bytes) -> str:
    """Base64 text for an image attachment. Resizing/re-encoding is the caller's job."""
    return base64.b64encode(data).decode("ascii")


def load_image(path: Union[str, Path]) -> str:
    p = Path(path).expanduser()
    if not p.is_file():
        raise FileNotFoundError(f"Image not found: {p}")
    return encode_image(p.read_bytes())
