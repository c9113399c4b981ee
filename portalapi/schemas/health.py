"""Pydantic models for health endpoints."""

from typing import Optional

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    """Response model for service health checks."""

    status: str = "healthy"
    database: str = "ok"
    active_period_id: Optional[int] = None
    error: Optional[str] = None
