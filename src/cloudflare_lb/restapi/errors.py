"""Exceptions raised by the Cloudflare REST API client.

Every client method either returns a fully decoded result or raises one of
these. Lower-level causes (httpx errors, pydantic validation errors) are
chained via ``__cause__``.
"""

from .envelope import ResponseInfo


class CloudflareError(Exception):
    """Base exception for all client errors."""


class RequestError(CloudflareError):
    """The HTTP exchange failed or the body was not a JSON envelope."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class APIError(CloudflareError):
    """The API reported a failure (``success: false`` or a non-2xx status).

    Attributes:
        status_code: HTTP status of the response.
        errors: Every error entry from the envelope, in response order.
    """

    def __init__(self, status_code: int, errors: list[ResponseInfo]):
        self.status_code = status_code
        self.errors = list(errors)
        super().__init__(self._format())

    def _format(self) -> str:
        if not self.errors:
            return f"API request failed with HTTP {self.status_code}"
        details = "; ".join(f"{e.code}: {e.message}" for e in self.errors)
        return f"API request failed with HTTP {self.status_code}: {details}"

    @property
    def error_codes(self) -> list[int]:
        """Codes of all reported errors, in order."""
        return [e.code for e in self.errors]


class UnmarshalError(CloudflareError):
    """The envelope ``result`` did not match the expected payload type."""
