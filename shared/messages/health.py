"""Pydantic models for service health messages."""

from typing import Any

from pydantic import BaseModel, Field


class ServiceHealthMessage(BaseModel):
    """Service health snapshot, served on /health."""

    service_name: str = Field(description="Name of the reporting service")
    status: str = Field(description="Status: healthy, waiting, degraded")
    port: int = Field(description="Service port number")
    uptime_s: float = Field(default=0.0, description="Uptime in seconds")
    dependencies: dict[str, str] = Field(
        default_factory=dict,
        description="Dependency statuses: {name: 'healthy'|'unavailable'}"
    )
    metrics: dict[str, Any] = Field(
        default_factory=dict,
        description="Filter metrics (cycles, publishes, decode failures, last counts)"
    )
    timestamp: float = Field(description="Unix timestamp")
