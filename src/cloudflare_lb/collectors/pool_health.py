"""Pool health metrics.

Fetches health reports for load balancer pools and flattens them into one
record per (pool, point of presence, origin). A pool's health report looks
like::

    {
        "pool_id": "...",
        "pop_health": {
            "Amsterdam, NL": {
                "healthy": true,
                "origins": [{"2001:DB8::5": {"healthy": true, "rtt": "12.1ms", ...}}]
            }
        }
    }
"""

from collections.abc import Iterator
from dataclasses import dataclass

import structlog
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.metrics_core import Metric

from .. import restapi

logger = structlog.get_logger(__name__)


@dataclass
class OriginHealthMetric:
    """Health of one origin as seen from one point of presence.

    ``origin`` is None for points of presence that report no origins, so the
    PoP-level health is still exported.
    """

    pool_id: str
    pop: str
    pop_healthy: bool
    origin: str | None = None
    healthy: bool = False
    rtt_seconds: float | None = None
    response_code: int = 0
    failure_reason: str = ""


def _transform_health(
    pool_id: str,
    raw: restapi.types.LoadBalancerPoolHealth,
) -> list[OriginHealthMetric]:
    """Flatten a pool health report into per-origin records."""
    records: list[OriginHealthMetric] = []
    for pop, pop_health in raw.pop_health.items():
        origins = [
            (address, health)
            for entry in pop_health.origins
            for address, health in entry.items()
        ]
        if not origins:
            records.append(
                OriginHealthMetric(pool_id=pool_id, pop=pop, pop_healthy=pop_health.healthy),
            )
            continue
        for address, health in origins:
            records.append(
                OriginHealthMetric(
                    pool_id=pool_id,
                    pop=pop,
                    pop_healthy=pop_health.healthy,
                    origin=address,
                    healthy=health.healthy,
                    rtt_seconds=(
                        health.rtt.total_seconds() if health.rtt is not None else None
                    ),
                    response_code=health.response_code,
                    failure_reason=health.failure_reason,
                ),
            )
    return records


def fetch(
    client: restapi.CloudflareRestApiClient,
    pool_ids: list[str] | None = None,
) -> list[OriginHealthMetric]:
    """Fetch health for the given pools, or for every pool when none given.

    Args:
        client: REST API client to use for fetching.
        pool_ids: Pools to report on; None or empty discovers all pools.

    Returns:
        List of origin health records.
    """
    if not pool_ids:
        pool_ids = [pool.id for pool in client.iter_load_balancer_pools()]
        logger.debug("Discovered pools", pool_count=len(pool_ids))

    records: list[OriginHealthMetric] = []
    for pool_id in pool_ids:
        health = client.pool_health_details(pool_id)
        records.extend(_transform_health(pool_id, health))
    return records


def generate_metrics(records: list[OriginHealthMetric]) -> Iterator[Metric]:
    """Generate Prometheus metrics from origin health records.

    Args:
        records: List of origin health records.

    Yields:
        Prometheus Metric objects.
    """
    pop_healthy = GaugeMetricFamily(
        "cloudflare_lb_pop_healthy",
        "Whether the pool is healthy as seen from the point of presence",
        labels=["pool_id", "pop"],
    )
    origin_labels = ["pool_id", "pop", "origin"]
    origin_healthy = GaugeMetricFamily(
        "cloudflare_lb_origin_healthy",
        "Whether the origin is healthy as seen from the point of presence",
        labels=origin_labels,
    )
    origin_rtt = GaugeMetricFamily(
        "cloudflare_lb_origin_rtt_seconds",
        "Round trip time of the last health check in seconds",
        labels=origin_labels,
    )
    origin_code = GaugeMetricFamily(
        "cloudflare_lb_origin_response_code",
        "HTTP status code of the last health check",
        labels=origin_labels,
    )

    seen_pops: set[tuple[str, str]] = set()
    for record in records:
        pop_key = (record.pool_id, record.pop)
        if pop_key not in seen_pops:
            seen_pops.add(pop_key)
            pop_healthy.add_metric(list(pop_key), float(record.pop_healthy))

        if record.origin is None:
            continue
        labels = [record.pool_id, record.pop, record.origin]
        origin_healthy.add_metric(labels, float(record.healthy))
        if record.rtt_seconds is not None:
            origin_rtt.add_metric(labels, record.rtt_seconds)
        if record.response_code:
            origin_code.add_metric(labels, record.response_code)

    yield pop_healthy
    yield origin_healthy
    yield origin_rtt
    yield origin_code
