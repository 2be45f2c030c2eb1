"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from cardpress.api.dependencies import get_current_settings, get_export_service
from cardpress.config.settings import Settings
from cardpress.core.export.service import ExportService

router = APIRouter(prefix="/api/v1", tags=["Health"])


@router.get("/health")
async def health_check(
    settings: Settings = Depends(get_current_settings),
    export_service: ExportService = Depends(get_export_service),
) -> Dict[str, Any]:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.app_version,
        "environment": settings.environment,
        "rasterizer_ready": bool(getattr(export_service.rasterizer, "is_initialized", False)),
    }
