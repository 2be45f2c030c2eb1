"""
Export Routes
=============

Runs document exports and reports the status of the latest run.
"""

from fastapi import APIRouter, Depends

from cardpress.api.dependencies import get_export_service, get_project_service
from cardpress.config.logging import get_logger
from cardpress.core.export.service import ExportService
from cardpress.core.project.service import ProjectService
from cardpress.models.schemas import ExportRequest, ExportResult, ExportStatusSnapshot

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Export"])


@router.post("/export", response_model=ExportResult)
async def export_document(
    request: ExportRequest,
    projects: ProjectService = Depends(get_project_service),
    exporter: ExportService = Depends(get_export_service),
) -> ExportResult:
    """
    Export a project's cards to images and a PDF.

    Hard failures are turned into an error response by the application's
    exception handlers.
    """
    project = projects.open_project(request.root_path, request.locale)
    logger.info(
        "Export requested", root_path=request.root_path, card_count=len(project.resolved_cards)
    )
    return await exporter.export_to_document(
        project.root_path, project.resolved_cards, project.config
    )


@router.get("/export/status", response_model=ExportStatusSnapshot)
async def export_status(
    exporter: ExportService = Depends(get_export_service),
) -> ExportStatusSnapshot:
    """Status of the latest export run."""
    return exporter.status.snapshot()
