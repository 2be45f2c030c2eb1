"""
Document Writer
===============

ReportLab-backed composition of card images into PDF pages.

Callers work in PDF points with a top-left origin, matching the paginator.
The writer converts to ReportLab's bottom-left origin.
"""

from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable
import io

from reportlab.lib import pagesizes
from reportlab.lib.colors import Color, HexColor, black
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from cardpress.config.logging import get_logger
from cardpress.core.errors import PlacementError

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = "a4"
DEFAULT_DASH_PATTERN = (1 * mm, 1 * mm)


@runtime_checkable
class DocumentWriter(Protocol):
    """Page-based document composition capability."""

    def create_page(self, width: float, height: float) -> None: ...

    def draw_image(
        self, image_bytes: bytes, x: float, y: float, width: float, height: float
    ) -> None: ...

    def draw_rectangle_outline(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        thickness: float,
        color: str,
        dash: Optional[Sequence[float]] = None,
    ) -> None: ...

    def save(self) -> bytes: ...


def page_size_points(name: Optional[str]) -> Tuple[float, float]:
    """
    Look up a named paper size in points, portrait orientation.

    Unknown names fall back to A4 with a warning.
    """
    key = (name or DEFAULT_PAGE_SIZE).strip().upper()
    size = getattr(pagesizes, key, None)
    if not isinstance(size, tuple) or len(size) != 2:
        logger.warning("Unknown page size, using A4", page_size=name)
        size = pagesizes.A4
    width, height = size
    return float(min(width, height)), float(max(width, height))


def parse_color(value: Optional[str]) -> Color:
    """Parse a ``#rrggbb`` color, falling back to black."""
    if not value:
        return black
    try:
        return HexColor(value.strip())
    except (ValueError, TypeError):
        logger.warning("Invalid border color, using black", color=value)
        return black


class ReportLabDocumentWriter:
    """
    Collects pages in memory and returns the finished PDF from ``save``.

    ``create_page`` only announces the next page; it is emitted once something
    is drawn on it, so a page whose drawings all fail never reaches the PDF.
    """

    def __init__(self, title: Optional[str] = None, author: Optional[str] = None) -> None:
        self._buffer = io.BytesIO()
        self._canvas = canvas.Canvas(self._buffer, pagesize=pagesizes.A4)
        if title:
            self._canvas.setTitle(title)
        if author:
            self._canvas.setAuthor(author)
        self._page_height = float(pagesizes.A4[1])
        self._pending_size: Optional[Tuple[float, float]] = None
        self._page_count = 0

    @property
    def page_count(self) -> int:
        """Number of pages with content."""
        return self._page_count

    def create_page(self, width: float, height: float) -> None:
        """Start a new page of the given size in points."""
        self._pending_size = (width, height)

    def _require_page(self) -> None:
        if self._pending_size is None and self._page_count == 0:
            raise PlacementError("create_page must be called before drawing")

    def _begin_drawing(self) -> None:
        self._require_page()
        if self._pending_size is None:
            return
        if self._page_count > 0:
            self._canvas.showPage()
        width, height = self._pending_size
        self._canvas.setPageSize((width, height))
        self._page_height = height
        self._pending_size = None
        self._page_count += 1

    def draw_image(self, image_bytes: bytes, x: float, y: float, width: float, height: float) -> None:
        """Draw PNG bytes with the top-left corner at (x, y)."""
        self._require_page()
        image = ImageReader(io.BytesIO(image_bytes))
        # Decode first; an unreadable image must not emit the pending page
        image.getSize()
        self._begin_drawing()
        self._canvas.drawImage(
            image,
            x,
            self._page_height - y - height,
            width=width,
            height=height,
            mask="auto",
        )

    def draw_rectangle_outline(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        thickness: float,
        color: str,
        dash: Optional[Sequence[float]] = DEFAULT_DASH_PATTERN,
    ) -> None:
        """Stroke a rectangle whose top-left corner is at (x, y)."""
        self._begin_drawing()
        c = self._canvas
        c.saveState()
        c.setStrokeColor(parse_color(color))
        c.setLineWidth(thickness)
        if dash:
            c.setDash(list(dash), 0)
        c.rect(x, self._page_height - y - height, width, height, stroke=1, fill=0)
        c.restoreState()

    def save(self) -> bytes:
        """Finish the document and return the PDF bytes."""
        self._canvas.save()
        return self._buffer.getvalue()
