"""Cloudflare REST API client.

Provides an HTTP client with token or key based authentication, thread
safety, envelope decoding and pagination, plus typed methods for the load
balancing and device fallback domain endpoints.
"""

import threading
import time
from collections.abc import Iterator
from pathlib import Path
from typing import Any, TypeVar

import httpx
import pydantic
import structlog

from .envelope import Envelope, paginate
from .errors import APIError, RequestError, UnmarshalError
from .types import (
    ApiModel,
    FallbackDomain,
    LoadBalancer,
    LoadBalancerMonitor,
    LoadBalancerPool,
    LoadBalancerPoolHealth,
)

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.cloudflare.com/client/v4"

DEFAULT_TIMEOUT = 30.0

DEFAULT_PER_PAGE = 20

T = TypeVar("T")


def _encode_body(body: Any) -> Any:
    """Convert request payloads into JSON-compatible values."""
    if isinstance(body, ApiModel):
        return body.to_payload()
    if isinstance(body, list | tuple):
        return [_encode_body(item) for item in body]
    return body


class CloudflareRestApiClient:
    """HTTP client for the Cloudflare REST API.

    Every call issues exactly one HTTP request, decodes the response
    envelope and either returns the typed result or raises
    :class:`~.errors.RequestError`, :class:`~.errors.APIError` or
    :class:`~.errors.UnmarshalError`. Nothing is retried.

    Thread-safe through thread-local storage of httpx.Client instances.
    Can be used as a context manager for automatic cleanup.
    """

    def __init__(  # noqa: PLR0913
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_token: str | None = None,
        token_file: str | Path | None = None,
        api_email: str | None = None,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the REST API client.

        Args:
            base_url: Base URL of the API (default: Cloudflare v4 API).
            api_token: API token sent as a bearer token.
            token_file: Path to a file containing the API token; used when
                api_token is not given.
            api_email: Account email for legacy API key authentication.
            api_key: Global API key for legacy authentication.
            timeout: Request timeout in seconds (default: 30.0).
            transport: Optional httpx transport replacing the network
                (e.g. httpx.MockTransport).

        Raises:
            ValueError: If base_url is empty, timeout is not positive, or
                no credentials are given.
            FileNotFoundError: If token_file is specified but doesn't exist.
        """
        if not base_url:
            msg = "base_url cannot be empty"
            raise ValueError(msg)
        if timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)

        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

        if api_token is None and token_file:
            token_path = Path(token_file)
            if not token_path.exists():
                msg = f"Token file not found: {token_file}"
                raise FileNotFoundError(msg)
            api_token = token_path.read_text().strip()

        if api_token:
            self._headers["Authorization"] = f"Bearer {api_token}"
        elif api_email and api_key:
            self._headers["X-Auth-Email"] = api_email
            self._headers["X-Auth-Key"] = api_key
        else:
            msg = "either api_token/token_file or api_email and api_key are required"
            raise ValueError(msg)

        # Use thread-local storage for httpx.Client (thread safety)
        self._local = threading.local()

    @property
    def client(self) -> httpx.Client:
        """Get or create the thread-local httpx client.

        Returns:
            Thread-local httpx.Client instance.
        """
        if not hasattr(self._local, "client") or self._local.client.is_closed:
            self._local.client = httpx.Client(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._local.client

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and cleanup resources."""
        self.close()

    def close(self):
        """Close the thread-local HTTP client if open."""
        if hasattr(self._local, "client") and not self._local.client.is_closed:
            self._local.client.close()

    # -----------------------------------------------------------------------
    # Envelope layer
    # -----------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Envelope:
        """Perform one API call and decode its envelope.

        Args:
            method: HTTP verb.
            path: Path relative to the base URL, identifiers already
                interpolated.
            body: Request payload; None sends no body.
            params: Optional query parameters.
            timeout: Deadline in seconds for this call only; None uses the
                client-wide timeout.

        Returns:
            The decoded, successful envelope.

        Raises:
            RequestError: If the HTTP exchange fails or the body is not an
                envelope.
            APIError: If the status is not 2xx or the envelope reports
                failure.
        """
        start_time = time.time()
        payload = _encode_body(body)
        options: dict[str, Any] = {"params": params}
        if payload is not None:
            options["json"] = payload
        if timeout is not None:
            options["timeout"] = timeout

        try:
            logger.debug(
                "Making API request",
                method=method,
                endpoint=path,
                params=params or {},
            )
            response = self.client.request(method, path, **options)
        except httpx.HTTPError as exc:
            duration = time.time() - start_time
            logger.exception(
                "API request failed",
                method=method,
                endpoint=path,
                duration_seconds=round(duration, 3),
            )
            msg = f"{method} {path} failed: {exc}"
            raise RequestError(msg) from exc

        duration = time.time() - start_time
        logger.debug(
            "API request completed",
            status_code=response.status_code,
            duration_seconds=round(duration, 3),
        )

        try:
            envelope = Envelope.model_validate_json(response.content)
        except pydantic.ValidationError as exc:
            msg = (
                f"{method} {path} returned HTTP {response.status_code} "
                "with a body that is not an API envelope"
            )
            raise RequestError(msg, status_code=response.status_code) from exc

        if not response.is_success or not envelope.success:
            for error in envelope.errors:
                logger.error(
                    "API error response",
                    error_code=error.code,
                    error_message=error.message,
                )
            raise APIError(response.status_code, envelope.errors)

        return envelope

    def execute(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Perform one API call and return the envelope's raw ``result``.

        Args:
            method: HTTP verb.
            path: Path relative to the base URL.
            body: Request payload (model, list of models or plain JSON
                value); None sends no body.
            params: Optional query parameters.
            timeout: Deadline in seconds for this call only; None uses the
                client-wide timeout.

        Returns:
            The ``result`` member of the response envelope.

        Raises:
            RequestError: If the HTTP exchange fails.
            APIError: If the API reports a failure.
        """
        return self._request(
            method,
            path,
            body=body,
            params=params,
            timeout=timeout,
        ).result

    @staticmethod
    def _decode(result_type: type[T], result: Any) -> T:
        """Validate a raw ``result`` payload into its typed structure.

        Raises:
            UnmarshalError: If the payload does not match result_type.
        """
        try:
            return pydantic.TypeAdapter(result_type).validate_python(result)
        except pydantic.ValidationError as exc:
            msg = f"failed to decode API result as {result_type}"
            raise UnmarshalError(msg) from exc

    def _iter_results(
        self,
        path: str,
        item_type: type[T],
        per_page: int,
        timeout: float | None = None,
    ) -> Iterator[T]:
        """Yield every item of a paginated list endpoint, page by page.

        The timeout, when given, applies to each page request separately.
        """

        def fetch_page(page: int, size: int) -> Envelope:
            return self._request(
                "GET",
                path,
                params={"page": page, "per_page": size},
                timeout=timeout,
            )

        for envelope in paginate(fetch_page, per_page):
            yield from self._decode(list[item_type], envelope.result or [])

    @staticmethod
    def _require_id(resource: str, identifier: str) -> str:
        if not identifier:
            msg = f"{resource} id is required"
            raise ValueError(msg)
        return identifier

    # -----------------------------------------------------------------------
    # Device fallback domains
    #
    # Every endpoint method takes an optional keyword-only ``timeout`` in
    # seconds that overrides the client-wide timeout for that call.
    # -----------------------------------------------------------------------

    def list_fallback_domains(
        self,
        account_id: str,
        *,
        timeout: float | None = None,
    ) -> list[FallbackDomain]:
        """Fetch the local domain fallback list of an account's device policy.

        Args:
            account_id: Account identifier.
            timeout: Optional per-call deadline in seconds.

        Returns:
            Fallback domain entries.
        """
        result = self.execute(
            "GET",
            f"/accounts/{account_id}/devices/policy/fallback_domains",
            timeout=timeout,
        )
        return self._decode(list[FallbackDomain], result)

    def update_fallback_domain(
        self,
        account_id: str,
        domains: list[FallbackDomain],
        *,
        timeout: float | None = None,
    ) -> list[FallbackDomain]:
        """Replace the local domain fallback list of an account.

        Args:
            account_id: Account identifier.
            domains: Complete new list of fallback domains.
            timeout: Optional per-call deadline in seconds.

        Returns:
            Fallback domain entries as stored by the API.
        """
        result = self.execute(
            "PUT",
            f"/accounts/{account_id}/devices/policy/fallback_domains",
            body=domains,
            timeout=timeout,
        )
        return self._decode(list[FallbackDomain], result)

    # -----------------------------------------------------------------------
    # Pools
    # -----------------------------------------------------------------------

    def create_load_balancer_pool(
        self,
        pool: LoadBalancerPool,
        *,
        timeout: float | None = None,
    ) -> LoadBalancerPool:
        """Create a new load balancer pool."""
        result = self.execute(
            "POST",
            "/user/load_balancers/pools",
            body=pool,
            timeout=timeout,
        )
        return self._decode(LoadBalancerPool, result)

    def iter_load_balancer_pools(
        self,
        per_page: int = DEFAULT_PER_PAGE,
        *,
        timeout: float | None = None,
    ) -> Iterator[LoadBalancerPool]:
        """Lazily iterate over all load balancer pools, one page at a time."""
        return self._iter_results(
            "/user/load_balancers/pools",
            LoadBalancerPool,
            per_page,
            timeout,
        )

    def list_load_balancer_pools(
        self,
        per_page: int = DEFAULT_PER_PAGE,
        *,
        timeout: float | None = None,
    ) -> list[LoadBalancerPool]:
        """Fetch all load balancer pools across every page."""
        return list(self.iter_load_balancer_pools(per_page, timeout=timeout))

    def load_balancer_pool_details(
        self,
        pool_id: str,
        *,
        timeout: float | None = None,
    ) -> LoadBalancerPool:
        """Fetch a single load balancer pool."""
        result = self.execute(
            "GET",
            f"/user/load_balancers/pools/{pool_id}",
            timeout=timeout,
        )
        return self._decode(LoadBalancerPool, result)

    def delete_load_balancer_pool(
        self,
        pool_id: str,
        *,
        timeout: float | None = None,
    ) -> None:
        """Delete a load balancer pool."""
        self.execute("DELETE", f"/user/load_balancers/pools/{pool_id}", timeout=timeout)

    def modify_load_balancer_pool(
        self,
        pool: LoadBalancerPool,
        *,
        timeout: float | None = None,
    ) -> LoadBalancerPool:
        """Replace the configuration of an existing pool.

        Args:
            pool: Full pool definition; pool.id selects the pool.
            timeout: Optional per-call deadline in seconds.

        Raises:
            ValueError: If pool.id is empty.
        """
        pool_id = self._require_id("pool", pool.id)
        result = self.execute(
            "PUT",
            f"/user/load_balancers/pools/{pool_id}",
            body=pool,
            timeout=timeout,
        )
        return self._decode(LoadBalancerPool, result)

    def pool_health_details(
        self,
        pool_id: str,
        *,
        timeout: float | None = None,
    ) -> LoadBalancerPoolHealth:
        """Fetch the latest health of a pool from every point of presence."""
        result = self.execute(
            "GET",
            f"/user/load_balancers/pools/{pool_id}/health",
            timeout=timeout,
        )
        return self._decode(LoadBalancerPoolHealth, result)

    # -----------------------------------------------------------------------
    # Monitors
    # -----------------------------------------------------------------------

    def create_load_balancer_monitor(
        self,
        monitor: LoadBalancerMonitor,
        *,
        timeout: float | None = None,
    ) -> LoadBalancerMonitor:
        """Create a new health check monitor."""
        result = self.execute(
            "POST",
            "/user/load_balancers/monitors",
            body=monitor,
            timeout=timeout,
        )
        return self._decode(LoadBalancerMonitor, result)

    def iter_load_balancer_monitors(
        self,
        per_page: int = DEFAULT_PER_PAGE,
        *,
        timeout: float | None = None,
    ) -> Iterator[LoadBalancerMonitor]:
        """Lazily iterate over all monitors, one page at a time."""
        return self._iter_results(
            "/user/load_balancers/monitors",
            LoadBalancerMonitor,
            per_page,
            timeout,
        )

    def list_load_balancer_monitors(
        self,
        per_page: int = DEFAULT_PER_PAGE,
        *,
        timeout: float | None = None,
    ) -> list[LoadBalancerMonitor]:
        """Fetch all monitors across every page."""
        return list(self.iter_load_balancer_monitors(per_page, timeout=timeout))

    def load_balancer_monitor_details(
        self,
        monitor_id: str,
        *,
        timeout: float | None = None,
    ) -> LoadBalancerMonitor:
        """Fetch a single monitor."""
        result = self.execute(
            "GET",
            f"/user/load_balancers/monitors/{monitor_id}",
            timeout=timeout,
        )
        return self._decode(LoadBalancerMonitor, result)

    def delete_load_balancer_monitor(
        self,
        monitor_id: str,
        *,
        timeout: float | None = None,
    ) -> None:
        """Delete a monitor."""
        self.execute(
            "DELETE",
            f"/user/load_balancers/monitors/{monitor_id}",
            timeout=timeout,
        )

    def modify_load_balancer_monitor(
        self,
        monitor: LoadBalancerMonitor,
        *,
        timeout: float | None = None,
    ) -> LoadBalancerMonitor:
        """Replace the configuration of an existing monitor.

        Raises:
            ValueError: If monitor.id is empty.
        """
        monitor_id = self._require_id("monitor", monitor.id)
        result = self.execute(
            "PUT",
            f"/user/load_balancers/monitors/{monitor_id}",
            body=monitor,
            timeout=timeout,
        )
        return self._decode(LoadBalancerMonitor, result)

    # -----------------------------------------------------------------------
    # Load balancers
    # -----------------------------------------------------------------------

    def create_load_balancer(
        self,
        zone_id: str,
        load_balancer: LoadBalancer,
        *,
        timeout: float | None = None,
    ) -> LoadBalancer:
        """Create a load balancer in a zone."""
        result = self.execute(
            "POST",
            f"/zones/{zone_id}/load_balancers",
            body=load_balancer,
            timeout=timeout,
        )
        return self._decode(LoadBalancer, result)

    def iter_load_balancers(
        self,
        zone_id: str,
        per_page: int = DEFAULT_PER_PAGE,
        *,
        timeout: float | None = None,
    ) -> Iterator[LoadBalancer]:
        """Lazily iterate over the load balancers of a zone."""
        return self._iter_results(
            f"/zones/{zone_id}/load_balancers",
            LoadBalancer,
            per_page,
            timeout,
        )

    def list_load_balancers(
        self,
        zone_id: str,
        per_page: int = DEFAULT_PER_PAGE,
        *,
        timeout: float | None = None,
    ) -> list[LoadBalancer]:
        """Fetch all load balancers of a zone across every page."""
        return list(self.iter_load_balancers(zone_id, per_page, timeout=timeout))

    def load_balancer_details(
        self,
        zone_id: str,
        load_balancer_id: str,
        *,
        timeout: float | None = None,
    ) -> LoadBalancer:
        """Fetch a single load balancer."""
        result = self.execute(
            "GET",
            f"/zones/{zone_id}/load_balancers/{load_balancer_id}",
            timeout=timeout,
        )
        return self._decode(LoadBalancer, result)

    def delete_load_balancer(
        self,
        zone_id: str,
        load_balancer_id: str,
        *,
        timeout: float | None = None,
    ) -> None:
        """Delete a load balancer."""
        self.execute(
            "DELETE",
            f"/zones/{zone_id}/load_balancers/{load_balancer_id}",
            timeout=timeout,
        )

    def modify_load_balancer(
        self,
        zone_id: str,
        load_balancer: LoadBalancer,
        *,
        timeout: float | None = None,
    ) -> LoadBalancer:
        """Replace the configuration of an existing load balancer.

        Raises:
            ValueError: If load_balancer.id is empty.
        """
        load_balancer_id = self._require_id("load balancer", load_balancer.id)
        result = self.execute(
            "PUT",
            f"/zones/{zone_id}/load_balancers/{load_balancer_id}",
            body=load_balancer,
            timeout=timeout,
        )
        return self._decode(LoadBalancer, result)
