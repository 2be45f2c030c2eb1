"""
API Dependencies
================

Process-wide service instances shared by the route handlers.
"""

from typing import Optional

from cardpress.config.settings import Settings, get_settings
from cardpress.core.export.service import ExportService
from cardpress.core.project.service import ProjectService
from cardpress.core.rendering.document import CardDocumentBuilder

_project_service: Optional[ProjectService] = None
_export_service: Optional[ExportService] = None
_document_builder: Optional[CardDocumentBuilder] = None


def get_current_settings() -> Settings:
    """Dependency to get current settings."""
    return get_settings()


def get_project_service() -> ProjectService:
    global _project_service
    if _project_service is None:
        _project_service = ProjectService()
    return _project_service


def get_export_service() -> ExportService:
    global _export_service
    if _export_service is None:
        _export_service = ExportService()
    return _export_service


def get_document_builder() -> CardDocumentBuilder:
    global _document_builder
    if _document_builder is None:
        _document_builder = CardDocumentBuilder()
    return _document_builder


async def close_services() -> None:
    """Release the export rasterizer and drop the service instances."""
    global _project_service, _export_service, _document_builder
    if _export_service is not None:
        close = getattr(_export_service.rasterizer, "close", None)
        if close is not None:
            await close()
    _project_service = None
    _export_service = None
    _document_builder = None
