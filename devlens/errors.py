from typing import Optional


class DevLensError(Exception):
    """Base error. `status_code` is the classification surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DevLensError):
    status_code = 404


class RateLimitedError(DevLensError):
    status_code = 429

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class InvalidInputError(DevLensError):
    status_code = 400


class TransientNetworkError(DevLensError):
    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class UnparsableResponseError(DevLensError):
    """Model output held no JSON object. Recovered locally, never surfaced."""


class LLMError(DevLensError):
    """The inference call itself failed. Recovered locally, never surfaced."""
