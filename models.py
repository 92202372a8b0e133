"""Response models for the HTTP surface."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class StatusResponse(BaseModel):
    """Root liveness check."""

    status: str = Field(default="OK", description="Always 'OK' while the process is serving")


class HealthResponse(BaseModel):
    """Health check with server time."""

    status: str = Field(default="ok", description="Service status")
    timestamp: str = Field(..., description="Current server time (ISO-8601, UTC)")


class ErrorResponse(BaseModel):
    """JSON body of every failed request."""

    error: str = Field(..., description="Human readable error")
    details: Optional[str] = Field(default=None, description="Diagnostic detail, when safe to expose")
    message: Optional[str] = Field(default=None, description="Guidance for the caller")
