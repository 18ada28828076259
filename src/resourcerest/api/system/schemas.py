"""System-specific response schemas."""

from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Overall service status and per-resource availability."""

    status: Literal["healthy", "degraded"]
    resources: dict[str, str]
