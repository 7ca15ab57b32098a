from __future__ import annotations
from typing import Any, ContextManager, Dict, Iterator, List, Optional, Protocol

from .models import NormalizedEvent, Target


class StreamResponse(Protocol):
    status_code: int

    def iter_lines(self) -> Iterator[str]:
        """Lines of the response body, as they arrive. Single pass."""
        ...

    def read_text(self) -> str:
        """Remaining body as text (used for error details on non-200)."""
        ...

    def close(self) -> None:
        """Abort the body; a reader blocked in iter_lines() gets an error."""
        ...


class Transport(Protocol):
    """
    What the bridge needs from an HTTP client. TLS, pooling and timeouts live
    behind this seam.
    """

    def get_json(self, url: str, headers: Dict[str, str]) -> Any:
        """GET url and return the decoded JSON body. Raises ServerError / TransportError."""
        ...

    def open_stream(self, url: str, headers: Dict[str, str], body: Dict[str, Any]) -> ContextManager[StreamResponse]:
        """POST body as JSON and hand back the response without reading it."""
        ...


class ProviderCodec(Protocol):
    """
    Per-target request builder + event normalizer, picked once per bridge.
    """

    target: Target

    def build_body(
        self,
        history: List[Dict[str, str]],
        text: str,
        image: Optional[str],
        model: str,
    ) -> Dict[str, Any]:
        ...

    def normalize(self, payload: Dict[str, Any]) -> List[NormalizedEvent]:
        ...
