"""
FileKeep Server - Status Endpoints

This module contains the health check endpoint.
"""

from datetime import datetime, timezone
from fastapi import APIRouter


# Create router instance
router = APIRouter()

SERVICE_NAME = "FileKeep Server"
SERVICE_VERSION = "1.0.0"


# ==================== Health Check Endpoint ====================

@router.get("/health", tags=["Status"])
async def health_check():
    """
    Health check endpoint to verify server is running

    Returns:
        dict: Server status information
    """
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "timestamp_utc": datetime.now(timezone.utc).isoformat()
    }
