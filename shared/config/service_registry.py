"""
Central Service Registry for the reachability filter.

Ports, bus URL and loop settings in one place.
Services use environment variables for configuration, with sensible defaults.
"""

import os


class ServiceConfig:
    """Configuration for the reachability filter services.

    Port assignments:
        8095 — Reachability filter (health/status)
        6379 — Redis (message bus)
    """

    REACHABILITY_FILTER_PORT = int(os.getenv("REACHABILITY_FILTER_PORT", "8095"))
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")

    # Filter loop
    FILTER_SPIN_RATE_HZ = float(os.getenv("FILTER_SPIN_RATE_HZ", "1.0"))
    FILTER_TYPE = os.getenv("FILTER_TYPE") or None
