"""Pydantic models used by the submission router."""

from pydantic import BaseModel, Field


class SubmissionAccepted(BaseModel):
    """Body returned for accepted submissions."""

    ok: bool = True


class ErrorResponse(BaseModel):
    """Generic error payload."""

    message: str = Field(..., description="Human-readable reason for the rejection")


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
