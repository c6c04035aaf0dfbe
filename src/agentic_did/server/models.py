"""Pydantic request/response models for the agentic-did HTTP server."""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class ChallengeRequest(BaseModel):
    """Request body for POST /challenge."""

    audience: str = Field(min_length=1, max_length=512)


class ChallengeResponse(BaseModel):
    """Response body for POST /challenge."""

    nonce: str
    audience: str
    expires_at: str
    exp: int


class PresentRequest(BaseModel):
    """Request body for POST /present.

    ``vp`` stays a plain mapping here; its structure is checked by the
    verifier so that problems surface as ``MalformedVP``.
    """

    vp: dict[str, Any]
    nonce: str = Field(min_length=1, max_length=256)


class PresentResponse(BaseModel):
    """Response body for a successful POST /present."""

    role: str
    scopes: list[str] = Field(default_factory=list)
    token: str
    expires_at: str


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = "ok"
    service: str = "agentic-did"
    version: str = "0.1.0"
    issuer: str = ""


class JWKSResponse(BaseModel):
    """Response body for GET /.well-known/jwks.json."""

    keys: list[dict[str, str]] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    kind: Optional[str] = None
    detail: str = ""
    retryable: bool = False


__all__ = [
    "ChallengeRequest",
    "ChallengeResponse",
    "ErrorResponse",
    "HealthResponse",
    "JWKSResponse",
    "PresentRequest",
    "PresentResponse",
]
