"""Cloudflare load balancing SDK.

Typed Python bindings for the Cloudflare load balancing REST API (pools,
monitors, load balancers, pool health, device fallback domains) and a
Prometheus exporter for pool health built on top of them.
"""

__version__ = "0.1.0"
