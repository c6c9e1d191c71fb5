"""Shared Pydantic schemas for the storefront relay."""

from pydantic import BaseModel


class InfoResponse(BaseModel):
    status: str = "Server is running"
    timestamp: str
    environment: str
    version: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: str
    uptime: float


class ErrorResponse(BaseModel):
    error: str
