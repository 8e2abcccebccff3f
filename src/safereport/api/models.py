"""Pydantic models for the HTTP API that are not domain schemas."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str = Field(description="Human-readable error message")
    code: str = Field(description="Stable machine-readable error code")


class EvidenceUploadResponse(BaseModel):
    reference: str = Field(description="Opaque handle to store on the incident")
    url: str = Field(description="Public URL of the stored file")


class HealthResponse(BaseModel):
    status: str = "ok"
