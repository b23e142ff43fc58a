"""API schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    error: str
    message: str
    upstream_status: Optional[int] = None
    upstream_type: Optional[str] = None


class CarrierOut(BaseModel):
    name: str
    value: str


class HealthResponse(BaseModel):
    status: str
    upstream: str
