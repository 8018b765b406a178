"""Error taxonomy for the kline fetch pipeline."""

from typing import Optional


class KlineFetchError(Exception):
    """Base class for every unrecoverable fetch-path error."""


class TransportError(KlineFetchError):
    """Timeout, connection failure or non-retryable HTTP status."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RateLimitExceeded(TransportError):
    """Server answered "too many requests"."""

    def __init__(self, message: str = "Rate limit exceeded", status: int = 429):
        super().__init__(message, status=status)


class APIError(KlineFetchError):
    """Envelope carried a non-zero result code."""

    def __init__(self, ret_code: int, ret_msg: str):
        super().__init__(f"API error {ret_code}: {ret_msg}")
        self.ret_code = ret_code
        self.ret_msg = ret_msg


class MalformedPayloadError(KlineFetchError):
    """Response body could not be decoded into candles."""
