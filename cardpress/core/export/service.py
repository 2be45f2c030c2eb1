"""
Export Service
==============

Drives an export run: rasterizes every resolved card into
``<output>/images/<ordinal>.png``, paginates the images and writes
``<output>/deck.pdf``.

Cards are processed one at a time with a yield to the event loop after each
card. A card that fails to rasterize or to draw is logged and left out; the
run only fails when nothing at all can be exported.
"""

from typing import Callable, List, Optional
from pathlib import Path
import asyncio

from cardpress.config.logging import get_logger
from cardpress.config.settings import get_settings
from cardpress.core.errors import ExportError, NoContentError, OutputDirectoryError
from cardpress.core.export.document_writer import (
    DocumentWriter,
    ReportLabDocumentWriter,
    page_size_points,
)
from cardpress.core.export.status import ExportStatusTracker
from cardpress.core.layout.dimensions import (
    CSS_PIXELS_PER_INCH,
    dimensions_to_css_pixels,
    dimensions_to_points,
    mm_to_points,
    resolve_card_dimensions,
)
from cardpress.core.layout.paginator import Paginator, orient_page
from cardpress.core.rendering.assets import project_base_url
from cardpress.core.rendering.document import CardDocumentBuilder
from cardpress.core.rendering.rasterizer import PlaywrightRasterizer, Rasterizer
from cardpress.core.storage.filesystem import FileSystem, LocalFileSystem, resolve_project_path
from cardpress.models.schemas import (
    ExportResult,
    PagePlacement,
    ProjectConfig,
    RenderedCardImage,
    ResolvedCard,
)

logger = get_logger(__name__)

ProgressCallback = Callable[[float], None]
WriterFactory = Callable[[], DocumentWriter]


class ExportService:
    """Exports resolved cards to card images and a print-ready PDF."""

    def __init__(
        self,
        rasterizer: Optional[Rasterizer] = None,
        files: Optional[FileSystem] = None,
        writer_factory: Optional[WriterFactory] = None,
        document_builder: Optional[CardDocumentBuilder] = None,
        status: Optional[ExportStatusTracker] = None,
    ) -> None:
        self.settings = get_settings()
        self.rasterizer = rasterizer or PlaywrightRasterizer()
        self.files = files or LocalFileSystem()
        self.writer_factory = writer_factory or ReportLabDocumentWriter
        self.document_builder = document_builder or CardDocumentBuilder()
        self.status = status or ExportStatusTracker()
        self.logger = logger.bind(component="export_service")

    def output_directory(self, root_path: str, config: Optional[ProjectConfig]) -> Path:
        configured = config.paths.output_dir if config else None
        directory = (configured or "").strip() or self.settings.output_directory
        return resolve_project_path(root_path, directory)

    async def export_to_document(
        self,
        root_path: str,
        cards: List[ResolvedCard],
        config: Optional[ProjectConfig] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ExportResult:
        """
        Export cards to images and a paginated PDF.

        Args:
            root_path: Project root directory
            cards: Resolved cards in deck order
            config: Project configuration
            on_progress: Called with the completed fraction after each card

        Returns:
            ExportResult describing the written files

        Raises:
            OutputDirectoryError: If the output folders cannot be created
            NoContentError: If no card could be rasterized or placed
            ExportError: If the document cannot be written
        """
        config = config or ProjectConfig()
        output_dir = self.output_directory(root_path, config)
        images_dir = output_dir / self.settings.images_directory
        document_path = output_dir / f"{self.settings.document_basename}.pdf"

        self.status.begin_export()
        self.logger.info("Export started", root_path=root_path, card_count=len(cards))

        step = self.status.start_step("Preparing output folder")
        try:
            self._prepare_directories(output_dir, images_dir)
        except Exception as e:
            self.status.fail_step(step, str(e))
            raise
        self.status.complete_step(step, str(output_dir))

        failed: List[int] = []

        step = self.status.start_step("Rendering card images")
        try:
            rendered = await self._render_images(
                cards, config, project_base_url(root_path), images_dir, failed, step, on_progress
            )
        except Exception as e:
            self.status.fail_step(step, str(e))
            raise
        if not rendered:
            error = NoContentError("Export produced no content: no card could be rasterized")
            self.status.fail_step(step, str(error))
            raise error
        self.status.complete_step(step, f"{len(rendered)} of {len(cards)} card(s) rendered")

        step = self.status.start_step("Composing document")
        try:
            placements = self._compose(rendered, config, document_path, failed)
        except Exception as e:
            self.status.fail_step(step, str(e))
            raise
        page_count = placements[-1].page_index + 1
        self.status.complete_step(step, str(document_path))
        self.status.complete_export()

        self.logger.info(
            "Export completed",
            document_path=str(document_path),
            placed_cards=len(placements),
            failed_cards=len(failed),
            page_count=page_count,
        )
        return ExportResult(
            document_path=document_path,
            image_paths=[image.image_path for image in rendered],
            placed_cards=len(placements),
            failed_cards=sorted(failed),
            page_count=page_count,
        )

    def _prepare_directories(self, output_dir: Path, images_dir: Path) -> None:
        try:
            self.files.ensure_directory(output_dir)
            self.files.ensure_directory(images_dir)
        except OSError as e:
            self.logger.error("Failed to create output folder", path=str(output_dir), error=str(e))
            raise OutputDirectoryError(f"Cannot create output folder {output_dir}: {e}")

    async def _render_images(
        self,
        cards: List[ResolvedCard],
        config: ProjectConfig,
        base_url: str,
        images_dir: Path,
        failed: List[int],
        step: str,
        on_progress: Optional[ProgressCallback],
    ) -> List[RenderedCardImage]:
        rendered: List[RenderedCardImage] = []
        total = len(cards)

        for ordinal, card in enumerate(cards):
            await asyncio.sleep(0)
            image_path = images_dir / f"{card.index}.png"

            try:
                image_bytes = await self._rasterize(card, config, base_url)
                self.files.write_binary(image_path, image_bytes)
                rendered.append(
                    RenderedCardImage(card=card, image_path=image_path, image_bytes=image_bytes)
                )
            except Exception as e:
                failed.append(card.index)
                self.logger.error(
                    "Failed to render card image",
                    card=card.index,
                    row=card.row_index + 1,
                    error=str(e),
                )

            progress = (ordinal + 1) / total
            self.status.set_progress(progress)
            self.status.update_step_detail(step, f"{ordinal + 1} / {total}")
            if on_progress is not None:
                on_progress(progress)

        return rendered

    async def _rasterize(self, card: ResolvedCard, config: ProjectConfig, base_url: str) -> bytes:
        dimensions = resolve_card_dimensions(card.card, config)
        width_px, height_px = dimensions_to_css_pixels(dimensions)
        dpi = config.export.dpi if config.export.dpi and config.export.dpi > 0 else dimensions.dpi
        document = self.document_builder.build(card.html, width_px, height_px, base_url=base_url)
        return await self.rasterizer.render(
            document, width_px, height_px, dpi / CSS_PIXELS_PER_INCH
        )

    def _compose(
        self,
        images: List[RenderedCardImage],
        config: ProjectConfig,
        document_path: Path,
        failed: List[int],
    ) -> List[PagePlacement]:
        pdf = config.export.pdf
        page_size = orient_page(page_size_points(pdf.page_size), pdf.orientation)
        card_size = dimensions_to_points(resolve_card_dimensions(None, config))
        border = mm_to_points(pdf.border.thickness)

        try:
            paginator = Paginator(
                page_size,
                card_size,
                margin=mm_to_points(pdf.margin),
                border_thickness=border,
                fit_to_page=pdf.fit_to_page,
            )
        except ValueError as e:
            raise NoContentError(f"Export produced no content: {e}")

        writer = self.writer_factory()
        placements: List[PagePlacement] = []
        current_page = -1

        for image in images:
            slot = paginator.next_slot()
            try:
                if slot.page_index != current_page:
                    writer.create_page(paginator.page_width, paginator.page_height)
                    current_page = slot.page_index
                writer.draw_image(
                    image.image_bytes, slot.x, slot.y, paginator.card_width, paginator.card_height
                )
                if paginator.border > 0:
                    writer.draw_rectangle_outline(
                        slot.x - paginator.border,
                        slot.y - paginator.border,
                        paginator.footprint_width,
                        paginator.footprint_height,
                        paginator.border,
                        pdf.border.color,
                    )
            except Exception as e:
                failed.append(image.card.index)
                self.logger.error(
                    "Failed to place card image",
                    card=image.card.index,
                    image_path=str(image.image_path),
                    error=str(e),
                )
                continue
            placements.append(paginator.commit())

        if not placements:
            raise NoContentError("Export produced no content: no card image could be placed")

        try:
            self.files.write_binary(document_path, writer.save())
        except OSError as e:
            self.logger.error("Failed to write document", path=str(document_path), error=str(e))
            raise ExportError(f"Cannot write {document_path}: {e}")

        return placements
