"""Pydantic request/response models for the verifier HTTP service."""
from __future__ import annotations

from pydantic import BaseModel, Field


class InstantiateRequest(BaseModel):
    """Request body for POST /instantiate."""

    owners: list[str] = Field(min_length=1)
    origin: str


class InstantiateResponse(BaseModel):
    """Response body for POST /instantiate."""

    address: str
    program: str
    owners: list[str]
    origin: str


class AuthorizeRequest(BaseModel):
    """Request body for POST /authorize: an authorized-transaction envelope."""

    transaction: dict[str, object]
    program: str
    witness: dict[str, object]


class AuthorizeResponse(BaseModel):
    """Response body for POST /authorize.

    Deliberately carries no reject reason.
    """

    approved: bool


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = "ok"
    service: str = "delegated-session"
    version: str
    evaluations: int = 0


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str = ""


__all__ = [
    "AuthorizeRequest",
    "AuthorizeResponse",
    "ErrorResponse",
    "HealthResponse",
    "InstantiateRequest",
    "InstantiateResponse",
]
