"""Common DTOs for API responses and error handling."""
from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error envelope returned by every failing request."""
    error: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Stable machine-readable error code", examples=["INVALID_PARAMS"])
    timestamp: str = Field(..., description="ISO timestamp of the failure")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Health status", examples=["healthy"])


class RootResponse(BaseModel):
    """Root endpoint response model."""
    status: str = Field(..., description="API status", examples=["ok"])
    service: str = Field(..., description="Service name", examples=["imagepipe-backend"])
    version: str = Field(..., description="API version", examples=["0.1.0"])
