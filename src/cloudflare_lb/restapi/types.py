"""Request and response payload types for the Cloudflare REST API.

Pydantic models mirroring the JSON payloads of the load balancing and
device policy endpoints. Field names are the JSON keys.

Encoding follows the API's field conventions:

- Fields typed ``X | None`` are omitted from the request body while unset.
  A zero value (``latitude=0.0``) is still sent.
- Fields listed in a model's ``omit_empty`` are also omitted when they hold
  a zero value (``""``, ``0``, ``False``, empty list or dict).
- Every other field is always sent, zero values included.
"""

from datetime import datetime
from typing import Any, ClassVar

from pydantic import BaseModel, SerializerFunctionWrapHandler, model_serializer

from .duration import Duration


class ApiModel(BaseModel):
    """Base model implementing the API's field omission rules."""

    omit_empty: ClassVar[frozenset[str]] = frozenset()

    @model_serializer(mode="wrap")
    def serialize_without_unset(
        self,
        handler: SerializerFunctionWrapHandler,
    ) -> dict[str, Any]:
        data = handler(self)
        return {
            key: value
            for key, value in data.items()
            if value is not None and not (key in self.omit_empty and not value)
        }

    def to_payload(self) -> dict[str, Any]:
        """Encode the model as a JSON-compatible request body."""
        return self.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Device policy
# ---------------------------------------------------------------------------


class FallbackDomain(ApiModel):
    """A local domain fallback entry of the device policy."""

    omit_empty = frozenset({"suffix", "description", "dns_server"})

    suffix: str = ""
    description: str = ""
    dns_server: list[str] = []


# ---------------------------------------------------------------------------
# Pools
# ---------------------------------------------------------------------------


class LoadBalancerOrigin(ApiModel):
    """An origin server within a pool."""

    name: str = ""
    address: str = ""
    enabled: bool = False
    weight: float = 0.0
    # Request headers sent to the origin by health checks
    header: dict[str, list[str]] | None = None


class LoadBalancerLoadShedding(ApiModel):
    """Traffic shedding settings of a pool."""

    omit_empty = frozenset(
        {"default_percent", "default_policy", "session_percent", "session_policy"},
    )

    default_percent: float = 0.0
    default_policy: str = ""
    session_percent: float = 0.0
    session_policy: str = ""


class LoadBalancerOriginSteering(ApiModel):
    """How traffic is spread across the origins of a pool."""

    omit_empty = frozenset({"policy"})

    policy: str = ""


class LoadBalancerPool(ApiModel):
    """A named collection of origins with health checking and steering."""

    omit_empty = frozenset(
        {"id", "minimum_origins", "monitor", "notification_email"},
    )

    id: str = ""
    created_on: datetime | None = None
    modified_on: datetime | None = None
    description: str = ""
    name: str = ""
    enabled: bool = False
    minimum_origins: int = 0
    monitor: str = ""
    origins: list[LoadBalancerOrigin] = []
    notification_email: str = ""
    latitude: float | None = None
    longitude: float | None = None
    load_shedding: LoadBalancerLoadShedding | None = None
    origin_steering: LoadBalancerOriginSteering | None = None
    check_regions: list[str] | None = None
    healthy: bool = False


# ---------------------------------------------------------------------------
# Monitors
# ---------------------------------------------------------------------------


class LoadBalancerMonitor(ApiModel):
    """A health check definition that can be attached to pools."""

    omit_empty = frozenset({"id", "port"})

    id: str = ""
    created_on: datetime | None = None
    modified_on: datetime | None = None
    type: str = ""
    description: str = ""
    method: str = ""
    path: str = ""
    header: dict[str, list[str]] | None = None
    timeout: int = 0
    retries: int = 0
    interval: int = 0
    port: int = 0
    expected_body: str = ""
    expected_codes: str = ""
    follow_redirects: bool = False
    allow_insecure: bool = False
    probe_zone: str = ""


# ---------------------------------------------------------------------------
# Load balancers
# ---------------------------------------------------------------------------


class SessionAffinityAttributes(ApiModel):
    """Cookie attributes for session affinity."""

    omit_empty = frozenset({"samesite", "secure", "drain_duration"})

    samesite: str = ""
    secure: str = ""
    drain_duration: int = 0


class LoadBalancerFixedResponseData(ApiModel):
    """A static response returned by a rule instead of routing to a pool."""

    omit_empty = frozenset({"message_body", "status_code", "content_type", "location"})

    message_body: str = ""
    status_code: int = 0
    content_type: str = ""
    location: str = ""


class LoadBalancerRuleOverrides(ApiModel):
    """Load balancer settings replaced when a rule matches."""

    omit_empty = frozenset(
        {
            "session_affinity",
            "ttl",
            "steering_policy",
            "fallback_pool",
            "default_pools",
            "pop_pools",
            "region_pools",
        },
    )

    session_affinity: str = ""
    session_affinity_ttl: int | None = None
    session_affinity_attributes: SessionAffinityAttributes | None = None
    ttl: int = 0
    steering_policy: str = ""
    fallback_pool: str = ""
    default_pools: list[str] = []
    pop_pools: dict[str, list[str]] = {}
    region_pools: dict[str, list[str]] = {}


class LoadBalancerRule(ApiModel):
    """A conditional override evaluated for each request."""

    omit_empty = frozenset({"terminates"})

    overrides: LoadBalancerRuleOverrides = LoadBalancerRuleOverrides()
    name: str = ""
    condition: str = ""
    priority: int = 0
    fixed_response: LoadBalancerFixedResponseData | None = None
    disabled: bool = False
    terminates: bool = False


class LoadBalancer(ApiModel):
    """A DNS-facing load balancer mapping traffic onto pools."""

    omit_empty = frozenset(
        {
            "id",
            "ttl",
            "session_affinity",
            "session_affinity_ttl",
            "rules",
            "steering_policy",
        },
    )

    id: str = ""
    created_on: datetime | None = None
    modified_on: datetime | None = None
    description: str = ""
    name: str = ""
    ttl: int = 0
    fallback_pool: str = ""
    default_pools: list[str] = []
    region_pools: dict[str, list[str]] = {}
    pop_pools: dict[str, list[str]] = {}
    proxied: bool = False
    enabled: bool | None = None
    session_affinity: str = ""
    session_affinity_ttl: int = 0
    session_affinity_attributes: SessionAffinityAttributes | None = None
    rules: list[LoadBalancerRule] = []
    steering_policy: str = ""


# ---------------------------------------------------------------------------
# Pool health
# ---------------------------------------------------------------------------


class LoadBalancerOriginHealth(ApiModel):
    """Health of one origin as seen from one point of presence."""

    omit_empty = frozenset({"healthy", "failure_reason", "response_code"})

    healthy: bool = False
    rtt: Duration | None = None
    failure_reason: str = ""
    response_code: int = 0


class LoadBalancerPoolPopHealth(ApiModel):
    """Health of a pool as seen from one point of presence."""

    omit_empty = frozenset({"healthy", "origins"})

    healthy: bool = False
    # Each entry maps an origin address to its health
    origins: list[dict[str, LoadBalancerOriginHealth]] = []


class LoadBalancerPoolHealth(ApiModel):
    """Health of a pool across all points of presence."""

    omit_empty = frozenset({"pool_id", "pop_health"})

    pool_id: str = ""
    pop_health: dict[str, LoadBalancerPoolPopHealth] = {}
