"""
Card Dimensions
===============

Conversion between physical units, pixels and PDF points, and resolution of
per-card dimensions from size override columns and project defaults.
"""

from typing import Any, Optional, Tuple, Union
import math
import re

from cardpress.config.logging import get_logger
from cardpress.models.schemas import CardDimensions, CardRecord, DimensionUnit, ProjectConfig

logger = get_logger(__name__)

MM_PER_INCH = 25.4
CM_PER_INCH = 2.54
POINTS_PER_INCH = 72.0
CSS_PIXELS_PER_INCH = 96.0

DEFAULT_CARD_WIDTH = 2.5
DEFAULT_CARD_HEIGHT = 3.5
DEFAULT_DPI = 300.0
DEFAULT_UNIT = DimensionUnit.INCH

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

UnitLike = Union[DimensionUnit, str]


def to_pixels(value: float, unit: UnitLike, dpi: float) -> float:
    """
    Convert a measurement to pixels at the given DPI.

    Args:
        value: Measurement in ``unit``
        unit: One of mm, cm, inch or px
        dpi: Dots per inch

    Returns:
        Pixel measurement; ``px`` values are returned unchanged
    """
    unit = DimensionUnit(unit)
    if unit is DimensionUnit.INCH:
        return value * dpi
    if unit is DimensionUnit.MM:
        return (value / MM_PER_INCH) * dpi
    if unit is DimensionUnit.CM:
        return (value / CM_PER_INCH) * dpi
    return value


def to_inches(value: float, unit: UnitLike, dpi: float) -> float:
    """Convert a measurement to inches. Pixel values are interpreted at ``dpi``."""
    unit = DimensionUnit(unit)
    if unit is DimensionUnit.INCH:
        return value
    if unit is DimensionUnit.MM:
        return value / MM_PER_INCH
    if unit is DimensionUnit.CM:
        return value / CM_PER_INCH
    return value / dpi


def to_points(value: float, unit: UnitLike, dpi: float) -> float:
    return to_inches(value, unit, dpi) * POINTS_PER_INCH


def mm_to_points(mm: float) -> float:
    return (mm / MM_PER_INCH) * POINTS_PER_INCH


def parse_dimension(value: Any) -> Optional[float]:
    """
    Parse the leading number of a cell value.

    ``"63"`` and ``"63mm"`` both give 63.0. Blank, non-numeric and non-finite
    input gives None.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _LEADING_NUMBER.match(str(value))
        if not match:
            return None
        number = float(match.group(1))
    return number if math.isfinite(number) else None


def parse_unit(value: Any) -> Optional[DimensionUnit]:
    """Return the recognized unit for a cell value, case-insensitively."""
    if value is None:
        return None
    text = str(value).strip().lower()
    if not text:
        return None
    try:
        return DimensionUnit(text)
    except ValueError:
        return None


def _usable(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def _resolve_size(
    override_text: Optional[str],
    project_default: Optional[float],
    fallback: float,
    field: str,
    row_index: Optional[int],
) -> float:
    if override_text is not None:
        override = parse_dimension(override_text)
        if _usable(override):
            return override  # type: ignore[return-value]
        logger.warning(
            "Ignoring unusable card size override",
            field=field,
            value=override_text,
            row=None if row_index is None else row_index + 1,
        )

    if project_default is not None:
        if _usable(project_default):
            return float(project_default)
        logger.warning("Ignoring unusable project card size", field=field, value=project_default)

    return fallback


def resolve_card_dimensions(
    card: Optional[CardRecord], config: Optional[ProjectConfig]
) -> CardDimensions:
    """
    Resolve the size of a card.

    Per-card override columns win over the project layout, which wins over the
    2.5 x 3.5 inch / 300 dpi fallback. Unusable values (garbage text, NaN,
    infinity, zero or negative sizes) are logged and skipped, so the result is
    always finite and positive.

    Args:
        card: Card record, or None for the project default size
        config: Project configuration, or None for hard defaults

    Returns:
        Resolved card dimensions
    """
    config = config or ProjectConfig()
    columns = config.column_names()
    layout = config.layout
    row_index = card.row_index if card is not None else None

    width_override = card.well_known(columns.width) if card is not None else None
    height_override = card.well_known(columns.height) if card is not None else None
    unit_override = card.well_known(columns.unit) if card is not None else None

    width = _resolve_size(width_override, layout.width, DEFAULT_CARD_WIDTH, "width", row_index)
    height = _resolve_size(
        height_override, layout.height, DEFAULT_CARD_HEIGHT, "height", row_index
    )

    unit = parse_unit(unit_override)
    if unit is None:
        if unit_override is not None:
            logger.warning("Ignoring unknown card unit override", value=unit_override)
        unit = parse_unit(layout.unit)
        if unit is None:
            if layout.unit:
                logger.warning("Ignoring unknown project card unit", value=layout.unit)
            unit = DEFAULT_UNIT

    dpi = float(layout.dpi) if _usable(layout.dpi) else DEFAULT_DPI

    return CardDimensions(width=width, height=height, unit=unit, dpi=dpi)


def dimensions_to_pixels(dimensions: CardDimensions) -> Tuple[float, float]:
    """Bitmap size of a card at its own DPI."""
    return (
        to_pixels(dimensions.width, dimensions.unit, dimensions.dpi),
        to_pixels(dimensions.height, dimensions.unit, dimensions.dpi),
    )


def dimensions_to_css_pixels(dimensions: CardDimensions) -> Tuple[float, float]:
    """Layout size of a card in CSS pixels (96 per inch)."""
    return (
        to_inches(dimensions.width, dimensions.unit, dimensions.dpi) * CSS_PIXELS_PER_INCH,
        to_inches(dimensions.height, dimensions.unit, dimensions.dpi) * CSS_PIXELS_PER_INCH,
    )


def dimensions_to_points(dimensions: CardDimensions) -> Tuple[float, float]:
    return (
        to_points(dimensions.width, dimensions.unit, dimensions.dpi),
        to_points(dimensions.height, dimensions.unit, dimensions.dpi),
    )
