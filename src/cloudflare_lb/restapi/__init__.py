"""Cloudflare REST API client package.

Provides a lightweight HTTP client for the Cloudflare v4 API that decodes
the common response envelope, aggregates API errors, paginates list
endpoints and returns validated payload types.

Exports:
    CloudflareRestApiClient: HTTP client with authentication and error handling.
    types: Module containing Pydantic models for API payloads.
    paginate: Lazy page iterator for list endpoints.
    RequestError, APIError, UnmarshalError: Client error types.
"""

from . import types
from .client import (
    DEFAULT_BASE_URL,
    DEFAULT_PER_PAGE,
    DEFAULT_TIMEOUT,
    CloudflareRestApiClient,
)
from .envelope import Envelope, ResponseInfo, ResultInfo, paginate
from .errors import APIError, CloudflareError, RequestError, UnmarshalError

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_PER_PAGE",
    "DEFAULT_TIMEOUT",
    "APIError",
    "CloudflareError",
    "CloudflareRestApiClient",
    "Envelope",
    "RequestError",
    "ResponseInfo",
    "ResultInfo",
    "UnmarshalError",
    "paginate",
    "types",
]
