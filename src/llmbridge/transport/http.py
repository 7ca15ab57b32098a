"""
httpx-backed Transport.

Owns timeouts and connection reuse; maps httpx failures to TransportError and
non-200 statuses to ServerError so nothing above this module imports httpx.
"""
from __future__ import annotations
import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import httpx

from llmbridge.core.errors import TransportError, classify_status

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0


class HttpStreamResponse:
    def __init__(self, response: httpx.Response):
        self._response = response
        self.status_code = response.status_code

    def iter_lines(self) -> Iterator[str]:
        try:
            for line in self._response.iter_lines():
                yield line
        except httpx.HTTPError as e:
            raise TransportError(f"Stream interrupted: {e}") from e

    def read_text(self) -> str:
        try:
            self._response.read()
            return self._response.text[:300]
        except httpx.HTTPError:
            return ""

    def close(self) -> None:
        self._response.close()


class HttpTransport:
    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.timeout = float(timeout)
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 30.0)),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def get_json(self, url: str, headers: Dict[str, str]) -> Any:
        try:
            resp = self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"GET {url} failed: {e}") from e
        if resp.status_code != 200:
            raise classify_status(resp.status_code, resp.text[:300])
        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise TransportError(f"GET {url} returned invalid JSON") from e

    @contextmanager
    def open_stream(self, url: str, headers: Dict[str, str], body: Dict[str, Any]) -> Iterator[HttpStreamResponse]:
        try:
            with self._client.stream("POST", url, headers=headers, json=body) as resp:
                yield HttpStreamResponse(resp)
        except httpx.HTTPError as e:
            raise TransportError(f"POST {url} failed: {e}") from e
