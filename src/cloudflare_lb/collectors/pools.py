"""Pool configuration metrics.

Lists every load balancer pool through the paginated pools endpoint and
exports its identity, enabled and healthy flags, and origin counts.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.metrics_core import Metric

from .. import restapi


@dataclass
class PoolMetric:
    """Normalized pool record."""

    pool_id: str
    name: str = ""
    monitor: str = ""
    enabled: bool = False
    healthy: bool = False
    origins: int = 0
    enabled_origins: int = 0


def _transform_pool(raw: restapi.types.LoadBalancerPool) -> PoolMetric:
    return PoolMetric(
        pool_id=raw.id,
        name=raw.name,
        monitor=raw.monitor,
        enabled=raw.enabled,
        healthy=raw.healthy,
        origins=len(raw.origins),
        enabled_origins=sum(1 for origin in raw.origins if origin.enabled),
    )


def fetch(client: restapi.CloudflareRestApiClient) -> list[PoolMetric]:
    """Fetch every pool, following pagination.

    Args:
        client: REST API client to use for fetching.

    Returns:
        List of pool metrics.
    """
    return [_transform_pool(pool) for pool in client.iter_load_balancer_pools()]


def generate_metrics(pools: list[PoolMetric]) -> Iterator[Metric]:
    """Generate Prometheus metrics from pool records.

    Args:
        pools: List of pool metrics.

    Yields:
        Prometheus Metric objects.
    """
    info = GaugeMetricFamily(
        "cloudflare_lb_pool_info",
        "Information about load balancer pools",
        labels=["pool_id", "name", "monitor"],
    )
    enabled = GaugeMetricFamily(
        "cloudflare_lb_pool_enabled",
        "Whether the pool is enabled (1) or disabled (0)",
        labels=["pool_id"],
    )
    healthy = GaugeMetricFamily(
        "cloudflare_lb_pool_healthy",
        "Whether the API reports the pool as healthy (1) or not (0)",
        labels=["pool_id"],
    )
    origins = GaugeMetricFamily(
        "cloudflare_lb_pool_origins",
        "Number of origins configured in the pool",
        labels=["pool_id", "state"],
    )

    for pool in pools:
        info.add_metric([pool.pool_id, pool.name, pool.monitor], 1)
        enabled.add_metric([pool.pool_id], float(pool.enabled))
        healthy.add_metric([pool.pool_id], float(pool.healthy))
        origins.add_metric([pool.pool_id, "enabled"], pool.enabled_origins)
        origins.add_metric(
            [pool.pool_id, "disabled"],
            pool.origins - pool.enabled_origins,
        )

    yield info
    yield enabled
    yield healthy
    yield origins
