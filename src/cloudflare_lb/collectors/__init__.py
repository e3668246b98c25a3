"""Collectors for load balancing metrics.

Each module provides ``fetch`` and ``generate_metrics`` functions that are
composed with :class:`cloudflare_lb.collector.LoadBalancingCollector`.
"""
