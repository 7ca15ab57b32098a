from __future__ import annotations
from typing import Optional


class ProviderError(Exception):
    """Base class for provider-level failures."""


class ProviderClientError(ProviderError):
    """
    Non-retryable: caller/config issue (missing key, 4xx invalid request, auth,
    unknown model). The fix is change input/config, not retry.
    """


class ProviderTransientError(ProviderError):
    """
    Retryable in principle: timeouts, dropped connections, 429, 5xx.
    The bridge itself never retries; callers decide.
    """


class MissingCredential(ProviderClientError):
    """Target requires an API key and none was configured."""

    def __init__(self, target: str):
        super().__init__(f"{target} API key is required")
        self.target = target


class ServerError(ProviderError):
    """Non-200 initial response from the provider."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Server error: HTTP {status_code}")
        self.status_code = int(status_code)
        self.body = body

    @property
    def retryable(self) -> bool:
        return self.status_code == 429 or self.status_code >= 500


class ClientServerError(ServerError, ProviderClientError):
    pass


class TransientServerError(ServerError, ProviderTransientError):
    pass


class TransportError(ProviderTransientError):
    """Connection or IO failure while talking to the provider."""


class DecodeError(ProviderError):
    """A single stream frame could not be parsed. Never aborts a stream."""

    def __init__(self, payload: str, reason: Optional[str] = None):
        super().__init__(f"Undecodable frame: {payload[:200]!r}" + (f" ({reason})" if reason else ""))
        self.payload = payload


class GenerationActiveError(RuntimeError):
    """Raised when history is cleared while a generation is still streaming."""


def classify_status(status_code: int, body: str = "") -> ServerError:
    """
    Convert a non-200 HTTP status into a neutral ServerError subclass.
    429/5xx are transient; anything else is a client error.
    """
    s = int(status_code)
    if s == 429 or 500 <= s <= 599:
        return TransientServerError(s, body)
    return ClientServerError(s, body)
