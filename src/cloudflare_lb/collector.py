"""Prometheus collector for load balancing data.

A single collector class is composed from a fetcher (API calls with the
client pre-bound), a metrics generator and a throttled cache, so pools and
pool health share the same scrape bookkeeping.
"""

from collections.abc import Callable, Iterator
from typing import Generic, TypeAlias, TypeVar

import structlog
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from .cache import AtomicThrottledCache
from .restapi import CloudflareError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

METRIC_NAMESPACE = "cloudflare_lb"

Fetcher: TypeAlias = Callable[[], list[T]]
MetricsGenerator: TypeAlias = Callable[[list[T]], Iterator[Metric]]


class LoadBalancingCollector(Collector, Generic[T]):
    """Prometheus collector backed by the Cloudflare API.

    Each scrape yields ``<namespace>_<prefix>_scrape_duration`` (seconds,
    -1 on a cache hit or failed fetch) and ``<namespace>_<prefix>_scrape_error``
    (failed fetches since start), followed by the generator's metrics when
    data is available.
    """

    def __init__(
        self,
        fetcher: Fetcher[T],
        generator: MetricsGenerator[T],
        metric_prefix: str,
        poll_limit: float,
        source_description: str,
    ):
        """Initialize the collector.

        Args:
            fetcher: Zero-argument function returning fresh records.
            generator: Function turning records into metric families.
            metric_prefix: Metric name prefix (e.g. "pool", "pool_health").
            poll_limit: Minimum seconds between API fetches.
            source_description: Human-readable data source used in metric
                help texts (e.g. the API base URL).
        """
        self._fetcher = fetcher
        self._generator = generator
        self._metric_prefix = metric_prefix
        self._cache = AtomicThrottledCache[list[T]](poll_limit)
        self._error_count = 0
        self._source = source_description

    def fetch_records(self) -> tuple[list[T], float | None]:
        """Return records from the cache, fetching when the cache is stale."""
        return self._cache.fetch_or_throttle(self._fetcher)

    def collect(self) -> Iterator[Metric]:
        """Yield scrape bookkeeping followed by domain metrics."""
        records: list[T] | None = None
        try:
            records, fetch_duration = self.fetch_records()
            duration_value = fetch_duration if fetch_duration is not None else -1.0
        except CloudflareError:
            logger.exception(
                "Failed to fetch records for collection",
                metric_prefix=self._metric_prefix,
            )
            self._error_count += 1
            duration_value = -1.0

        name = f"{METRIC_NAMESPACE}_{self._metric_prefix}"

        scrape_duration = GaugeMetricFamily(
            f"{name}_scrape_duration",
            f"scrape duration from {self._source} in seconds, "
            f"-1 indicates cache hit or error",
        )
        scrape_duration.add_metric([], duration_value)
        yield scrape_duration

        scrape_errors = CounterMetricFamily(
            f"{name}_scrape_error",
            f"{self._metric_prefix} scrape errors",
        )
        scrape_errors.add_metric([], self._error_count)
        yield scrape_errors

        if records is not None:
            yield from self._generator(records)
