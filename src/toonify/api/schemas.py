"""Pydantic request/response schemas for the Toonify API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TransformRequestBody(BaseModel):
    """Body of a transformation request, or a connectivity check."""

    image: str | None = Field(default=None, description="Image as a base64 data URL (data:<type>;base64,...)")
    test: bool = Field(default=False, description="Connectivity check: answer without contacting the upstream")


class TransformResponse(BaseModel):
    """Stable result contract returned by the transformation routes."""

    success: bool
    imageUrl: str | None = None  # noqa: N815
    error: str | None = None
    category: str | None = Field(default=None, description="Error category when success is false")
    message: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    configured: bool = Field(description="Whether a usable upstream credential is configured")
