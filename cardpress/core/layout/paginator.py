"""
Paginator
=========

Row-major placement of equally sized cards across fixed-size pages.

All measurements share one unit chosen by the caller (the export driver uses
PDF points). Coordinates are top-left based: ``y`` grows down the page.
"""

from typing import List, Optional, Tuple

from cardpress.config.logging import get_logger
from cardpress.models.schemas import Orientation, PageLayout, PagePlacement

logger = get_logger(__name__)

Size = Tuple[float, float]

# Tolerance for floating point edge comparisons
_EPSILON = 1e-6


def orient_page(page_size: Size, orientation: Orientation) -> Size:
    """Return the page size with the long edge matching the requested orientation."""
    short_edge, long_edge = sorted(page_size)
    if Orientation(orientation) is Orientation.LANDSCAPE:
        return long_edge, short_edge
    return short_edge, long_edge


def fit_scale(card_size: Size, page_size: Size, margin: float, border_thickness: float) -> float:
    """
    Scale factor that fits a single bordered card inside the printable area.

    The border is scaled together with the card. Available space is the page
    minus the margin on each side.

    Returns:
        ``min(1, available_width / footprint_width, available_height / footprint_height)``,
        or 0 when nothing fits at all
    """
    footprint_width = card_size[0] + border_thickness * 2
    footprint_height = card_size[1] + border_thickness * 2
    available_width = max(page_size[0] - margin * 2, 0.0)
    available_height = max(page_size[1] - margin * 2, 0.0)

    if footprint_width <= 0 or footprint_height <= 0:
        return 0.0
    if available_width <= 0 or available_height <= 0:
        return 0.0

    return min(1.0, available_width / footprint_width, available_height / footprint_height)


class Paginator:
    """
    Stateful cursor that hands out card slots in input order.

    ``next_slot()`` computes where the next card would go without moving the
    cursor; ``commit()`` moves past it. A card whose drawing fails is simply
    not committed, so the next card reuses its slot.
    """

    def __init__(
        self,
        page_size: Size,
        card_size: Size,
        margin: float = 0.0,
        border_thickness: float = 0.0,
        fit_to_page: bool = False,
    ) -> None:
        self.page_width, self.page_height = page_size
        self.margin = max(margin, 0.0)
        self.scale = 1.0

        border = max(border_thickness, 0.0)
        card_width, card_height = card_size

        needs_fit = fit_to_page or not self._fits_fresh_page(card_width, card_height, border)
        if needs_fit:
            self.scale = fit_scale(card_size, page_size, self.margin, border)
            if not fit_to_page:
                logger.warning(
                    "Card does not fit the printable area, scaling down",
                    card_width=card_width,
                    card_height=card_height,
                    scale=round(self.scale, 4),
                )
            if self.scale <= 0:
                raise ValueError("Page has no printable area left after margins")

        self.card_width = card_width * self.scale
        self.card_height = card_height * self.scale
        self.border = border * self.scale
        self.footprint_width = self.card_width + self.border * 2
        self.footprint_height = self.card_height + self.border * 2

        self._page_index = 0
        self._slot_x = self.margin
        self._slot_y = self.margin
        self._placed = 0

    @property
    def right_edge(self) -> float:
        return self.page_width - self.margin

    @property
    def bottom_edge(self) -> float:
        return self.page_height - self.margin

    @property
    def placed(self) -> int:
        return self._placed

    def _fits_fresh_page(self, card_width: float, card_height: float, border: float) -> bool:
        return (
            self.margin + card_width + border * 2 <= self.page_width - self.margin + _EPSILON
            and self.margin + card_height + border * 2 <= self.page_height - self.margin + _EPSILON
        )

    def _locate(self) -> Tuple[int, float, float]:
        page_index, slot_x, slot_y = self._page_index, self._slot_x, self._slot_y

        if slot_x + self.footprint_width > self.right_edge + _EPSILON:
            slot_x = self.margin
            slot_y += self.footprint_height + self.margin

        if slot_y + self.footprint_height > self.bottom_edge + _EPSILON:
            page_index += 1
            slot_x = self.margin
            slot_y = self.margin

        return page_index, slot_x, slot_y

    def next_slot(self) -> PagePlacement:
        """Placement of the next card's image, with the cursor left untouched."""
        page_index, slot_x, slot_y = self._locate()
        return PagePlacement(
            page_index=page_index,
            x=slot_x + self.border,
            y=slot_y + self.border,
            card_index=self._placed,
        )

    def commit(self) -> PagePlacement:
        """Place the next card and advance the cursor past it."""
        placement = self.next_slot()
        self._page_index, self._slot_x, self._slot_y = self._locate()
        self._slot_x += self.footprint_width + self.margin
        self._placed += 1
        return placement

    def layout(self, placements: Optional[List[PagePlacement]] = None) -> PageLayout:
        return PageLayout(
            page_width=self.page_width,
            page_height=self.page_height,
            card_width=self.card_width,
            card_height=self.card_height,
            border=self.border,
            scale=self.scale,
            placements=placements or [],
        )


def paginate(
    count: int,
    card_size: Size,
    page_size: Size,
    orientation: Orientation = Orientation.PORTRAIT,
    margin: float = 0.0,
    border_thickness: float = 0.0,
    fit_to_page: bool = False,
) -> PageLayout:
    """
    Place ``count`` cards row by row across as many pages as needed.

    Args:
        count: Number of card images, placed in input order
        card_size: Card width and height
        page_size: Page width and height before orientation is applied
        orientation: Portrait or landscape
        margin: Gap between cards and from the page edges
        border_thickness: Cut-line thickness inflating each card's footprint
        fit_to_page: Scale a card down to fit a single page

    Returns:
        PageLayout with one placement per card
    """
    paginator = Paginator(
        orient_page(page_size, orientation),
        card_size,
        margin=margin,
        border_thickness=border_thickness,
        fit_to_page=fit_to_page,
    )
    placements = [paginator.commit() for _ in range(count)]
    return paginator.layout(placements)
