"""Custom exceptions for the tradewatch dashboard.

Fetch failures are raised by the gateway and decoders, and caught at the
aggregator boundary. They never reach the rendering layer.
"""


class TradewatchError(Exception):
    """Base exception for all tradewatch errors."""


class FetchError(TradewatchError):
    """Base for failures of a single backend fetch."""


class NetworkError(FetchError):
    """Raised when a request could not be sent or its response not received."""


class HttpStatusError(FetchError):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(self, status: int, url: str = "") -> None:
        self.status = status
        self.url = url
        super().__init__(f"HTTP {status} for {url}" if url else f"HTTP {status}")


class DecodeError(FetchError):
    """Raised when a response body is not JSON or does not match the expected shape."""
