"""
Root endpoint with service metadata.
"""

from __future__ import annotations

from fastapi import APIRouter

import core.config as config


router = APIRouter()


@router.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": "AppControl",
        "version": "0.1.0",
        "description": "Application records for a multi-tenant platform control plane",
        "default_stack": config.DEFAULT_STACK,
        "endpoints": {
            "health": "/health",
            "apps": "/v3/apps",
        },
    }
