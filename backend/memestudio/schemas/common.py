"""
MemeStudio Backend - Shared Response Schemas
=============================================

What:  Error and health payloads shared by every router.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Uniform failure shape for all API errors.

    Example:
        {
            "success": false,
            "message": "Template with ID '...' was not found",
            "code": "not_found",
            "request_id": "550e8400"
        }
    """
    success: bool = Field(default=False)
    message: str = Field(description="Human-readable error description")
    code: str = Field(description="Machine-readable error code")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
    error: Optional[Any] = Field(
        default=None,
        description="Diagnostic detail, only present in development",
    )


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    asset_host: str = Field(description="Asset host configuration: configured, unconfigured")
    uptime_seconds: float = Field(description="Seconds since service started")
