"""
Preview Routes
==============

Resolves a project's cards and returns them as standalone card documents.
"""

from fastapi import APIRouter, Depends

from cardpress.api.dependencies import get_document_builder, get_project_service
from cardpress.config.logging import get_logger
from cardpress.core.layout.dimensions import dimensions_to_css_pixels, resolve_card_dimensions
from cardpress.core.project.service import ProjectService
from cardpress.core.rendering.assets import project_base_url
from cardpress.core.rendering.document import CardDocumentBuilder
from cardpress.models.schemas import PreviewCard, PreviewRequest, PreviewResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Preview"])


@router.post("/preview", response_model=PreviewResponse)
async def preview_cards(
    request: PreviewRequest,
    projects: ProjectService = Depends(get_project_service),
    builder: CardDocumentBuilder = Depends(get_document_builder),
) -> PreviewResponse:
    """
    Render every card of a project for preview.

    Args:
        request: Project root and optional locale

    Returns:
        Resolved cards with their wrapped documents and sizes
    """
    project = projects.open_project(request.root_path, request.locale)
    columns = project.config.column_names()
    locale = project.localization.locale if project.localization else None
    base_url = project_base_url(project.root_path)

    cards = []
    for resolved in project.resolved_cards:
        width_px, height_px = dimensions_to_css_pixels(
            resolve_card_dimensions(resolved.card, project.config)
        )
        cards.append(
            PreviewCard(
                index=resolved.index,
                row_index=resolved.row_index,
                card_id=resolved.card.card_id(columns),
                template_path=resolved.template_path,
                html=resolved.html,
                document=builder.build(
                    resolved.html, width_px, height_px, base_url=base_url, locale=locale
                ),
                width_px=width_px,
                height_px=height_px,
            )
        )

    logger.info("Preview rendered", root_path=request.root_path, card_count=len(cards))
    return PreviewResponse(
        locale=locale,
        available_locales=project.localization.available_locales if project.localization else [],
        cards=cards,
    )
