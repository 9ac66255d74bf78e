#!/usr/bin/env python3
"""
Response models for the API endpoints.
"""
from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Liveness response."""
    status: str
    message: str
