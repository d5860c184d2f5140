"""
Health Check Route — GET /health
"""

from __future__ import annotations

from fastapi import APIRouter

router = APIRouter()

SERVICE_NAME = "panthereyes-agent-server"


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"ok": True, "service": SERVICE_NAME}
