"""
Error Taxonomy
==============

Exceptions shared across the rendering pipeline and the export driver.

Per-card errors are caught at the pipeline or export boundary, logged and the
card is skipped. Hard failures abort the operation and reach the caller.
Configuration degradations are log events only and have no exception type.
"""

from typing import Optional


class CardPressError(Exception):
    """Base class for all CardPress errors."""

    error_code = "CARDPRESS_ERROR"


# Recoverable per-card failures
class CardError(CardPressError):
    """A failure scoped to a single card."""

    error_code = "CARD_ERROR"

    def __init__(self, message: str, row_index: Optional[int] = None) -> None:
        super().__init__(message)
        self.row_index = row_index


class TemplateUnavailableError(CardError):
    """A card has neither a usable per-row template nor a project default."""

    error_code = "TEMPLATE_UNAVAILABLE"


class CardRenderError(CardError):
    error_code = "CARD_RENDER_ERROR"


class RasterizationError(CardError):
    """Raised when a card cannot be turned into a bitmap."""

    error_code = "RASTERIZATION_ERROR"


class PlacementError(CardError):
    error_code = "PLACEMENT_ERROR"


# Hard failures
class HardFailure(CardPressError):
    """Aborts the whole operation with a reported reason."""

    error_code = "HARD_FAILURE"


class NoTemplatesError(HardFailure):
    """Cards exist but not a single template could be loaded."""

    error_code = "NO_TEMPLATES"


class ExportError(HardFailure):
    error_code = "EXPORT_ERROR"


class NoContentError(ExportError):
    """Nothing was rasterized or placed, so there is no document to write."""

    error_code = "NO_CONTENT"


class OutputDirectoryError(ExportError):
    error_code = "OUTPUT_DIRECTORY_ERROR"


class ProjectLoadError(HardFailure):
    """The project folder is missing or is not a card deck project."""

    error_code = "PROJECT_LOAD_ERROR"
