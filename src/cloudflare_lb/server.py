"""HTTP server exposing Cloudflare load balancing metrics to Prometheus."""

import json
import logging
import os
import pathlib

import prometheus_client
import prometheus_client.core
import pydantic
import starlette.applications
import starlette.requests
import starlette.responses
import starlette.routing
import structlog

from . import collector, restapi
from .collectors import pool_health, pools

CONFIG_ENV_VAR = "CLOUDFLARE_LB_EXPORTER_CONFIG_PATH"
logger = structlog.get_logger(__name__)


class ExporterConfig(pydantic.BaseModel):
    """Configuration for the load balancing exporter."""

    api_base_url: str = pydantic.Field(
        restapi.DEFAULT_BASE_URL,
        description="Base URL for the Cloudflare REST API",
    )
    api_token_file: str = pydantic.Field(
        description="Path to file containing the API token",
    )
    api_timeout: float = pydantic.Field(
        restapi.DEFAULT_TIMEOUT,
        description="Request timeout in seconds",
        gt=0,
    )
    pool_ids: list[str] = pydantic.Field(
        default_factory=list,
        description="Pools to report health for; empty means all pools",
    )
    port: int = pydantic.Field(9093, description="HTTP server port", gt=0, lt=65536)
    metrics_path: str = pydantic.Field(
        "/metrics",
        description="URL path for metrics endpoint",
    )
    poll_limit: float = pydantic.Field(
        60.0,
        description="Minimum seconds between API fetches",
        gt=0,
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str) -> ExporterConfig:
    """Load configuration from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If the file content is invalid.
    """
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with path.open("r") as f:
        data = json.load(f)

    return ExporterConfig(**data)


def create_registry_with_collectors(
    rest_client: restapi.CloudflareRestApiClient,
    poll_limit: float,
    pool_ids: list[str] | None = None,
) -> prometheus_client.core.CollectorRegistry:
    """Create a Prometheus registry with pool and pool health collectors.

    Args:
        rest_client: Shared REST API client for all collectors.
        poll_limit: Minimum seconds between API fetches.
        pool_ids: Pools to report health for; None or empty means all.

    Returns:
        Registry holding both collectors.
    """
    registry = prometheus_client.core.CollectorRegistry()
    source = f"REST API {rest_client.base_url}"

    pools_collector = collector.LoadBalancingCollector(
        fetcher=lambda: pools.fetch(rest_client),
        generator=pools.generate_metrics,
        metric_prefix="pool",
        poll_limit=poll_limit,
        source_description=source,
    )
    registry.register(pools_collector)
    logger.info("Registered collector", collector="pools", metric_prefix="pool")

    health_collector = collector.LoadBalancingCollector(
        fetcher=lambda: pool_health.fetch(rest_client, pool_ids),
        generator=pool_health.generate_metrics,
        metric_prefix="pool_health",
        poll_limit=poll_limit,
        source_description=source,
    )
    registry.register(health_collector)
    logger.info(
        "Registered collector",
        collector="pool_health",
        metric_prefix="pool_health",
        pool_count=len(pool_ids or []),
    )

    return registry


def create_starlette_app(
    metrics_path: str,
    registry: prometheus_client.core.CollectorRegistry,
) -> starlette.applications.Starlette:
    """Create a Starlette application serving the registry's metrics."""

    def metrics_endpoint(
        request: starlette.requests.Request,
    ) -> starlette.responses.Response:
        metrics_output = prometheus_client.generate_latest(registry)
        logger.info(
            "HTTP request",
            client_ip=request.client.host if request.client else "unknown",
            method=request.method,
            path=request.url.path,
        )
        return starlette.responses.PlainTextResponse(
            content=metrics_output,
            media_type=prometheus_client.CONTENT_TYPE_LATEST,
        )

    routes = [
        starlette.routing.Route(metrics_path, metrics_endpoint, methods=["GET"]),
    ]

    return starlette.applications.Starlette(routes=routes)


def create_exporter(config: ExporterConfig) -> starlette.applications.Starlette:
    """Construct the exporter ASGI app from validated config."""
    rest_client = restapi.CloudflareRestApiClient(
        base_url=config.api_base_url,
        token_file=config.api_token_file,
        timeout=config.api_timeout,
    )
    logger.info("Created shared REST client", base_url=config.api_base_url)

    registry = create_registry_with_collectors(
        rest_client=rest_client,
        poll_limit=config.poll_limit,
        pool_ids=config.pool_ids,
    )

    return create_starlette_app(
        metrics_path=config.metrics_path,
        registry=registry,
    )


def create_app(config_path: str | None = None) -> starlette.applications.Starlette:
    """Create the exporter ASGI app using a config path or environment default."""
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR, "/config.json")
    config = load_config(resolved_path)
    configure_logging(config.log_level)
    return create_exporter(config)
