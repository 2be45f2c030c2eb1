"""
Pydantic Models and Schemas
===========================

Core data models for card decks, project configuration, localization bundles,
rendered cards, page layout and export status. API request/response models live
at the bottom of the module.
"""

from typing import Optional, List, Dict, Any, Iterable, Iterator, Mapping, Tuple, Union
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
import math

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Enums
class DimensionUnit(str, Enum):
    """Physical units accepted for card dimensions."""

    MM = "mm"
    CM = "cm"
    INCH = "inch"
    PX = "px"


class Orientation(str, Enum):
    """Page orientation for the composed document."""

    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class ExportStepStatus(str, Enum):
    """Status of a single export step."""

    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ExportState(str, Enum):
    """Terminal and intermediate states of an export run."""

    IDLE = "idle"
    IN_PROGRESS = "in-progress"
    SUCCESS = "success"
    ERROR = "error"


# Card records
class CardRecord(Mapping[str, str]):
    """
    Immutable, ordered row of the card table keyed by column name.

    Well-known columns (identifier, template, size overrides) are read through
    a ColumnNames alias set; every other column stays in the opaque field bag.
    """

    __slots__ = ("_fields", "_row_index")

    def __init__(
        self,
        fields: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
        row_index: int = 0,
    ) -> None:
        items = fields.items() if isinstance(fields, Mapping) else fields
        self._fields: Dict[str, str] = {
            str(key): "" if value is None else str(value) for key, value in items
        }
        self._row_index = row_index

    def __getitem__(self, column: str) -> str:
        return self._fields[column]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __hash__(self) -> int:
        return hash(self.identity)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CardRecord):
            return self.identity == other.identity
        if isinstance(other, Mapping):
            return dict(self._fields) == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"CardRecord(row={self._row_index}, fields={self._fields!r})"

    @property
    def row_index(self) -> int:
        """Zero-based position of the row in the source table."""
        return self._row_index

    @property
    def identity(self) -> Tuple[int, Tuple[Tuple[str, str], ...]]:
        """Hashable identity used for cache keys."""
        return self._row_index, tuple(self._fields.items())

    def well_known(self, column: Optional[str]) -> Optional[str]:
        """Return a trimmed well-known column value, or None when absent or blank."""
        if not column:
            return None
        value = self._fields.get(column)
        if value is None:
            return None
        value = value.strip()
        return value or None

    def card_id(self, columns: "ColumnNames") -> Optional[str]:
        return self.well_known(columns.id)

    def template_path(self, columns: "ColumnNames") -> Optional[str]:
        return self.well_known(columns.template)


class ColumnNames(BaseModel):
    """Configurable aliases for the well-known card columns."""

    model_config = ConfigDict(frozen=True)

    id: str = Field("id", description="Card identifier column")
    template: str = Field("template", description="Per-card template path column")
    width: str = Field("cardWidth", description="Card width override column")
    height: str = Field("cardHeight", description="Card height override column")
    unit: str = Field("cardUnit", description="Card size unit override column")
    image: str = Field("image", description="Card artwork column")


# Project configuration
class _ConfigSection(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _lenient_number(value: Any) -> Any:
    """Turn unparsable numeric settings into None so defaults apply downstream."""
    if value is None or isinstance(value, (int, float)):
        return value
    try:
        return float(str(value).strip())
    except ValueError:
        return None


class ProjectInfo(_ConfigSection):
    id: Optional[str] = None
    name: Optional[str] = None
    version: Optional[Union[int, float, str]] = None


class PathsConfig(_ConfigSection):
    csv: Optional[str] = Field(None, description="Card table path relative to the project root")
    output_dir: Optional[str] = Field(None, alias="outputDir", description="Output folder")


class LayoutConfig(_ConfigSection):
    """Default card dimensions for the project."""

    width: Optional[float] = None
    height: Optional[float] = None
    dpi: Optional[float] = None
    unit: Optional[str] = None
    page_size: Optional[str] = Field(None, alias="pageSize")

    @field_validator("width", "height", "dpi", mode="before")
    @classmethod
    def parse_number(cls, v: Any) -> Any:
        return _lenient_number(v)


class TemplatesConfig(_ConfigSection):
    default: Optional[str] = None
    wrapper: Optional[str] = None


class DefaultsConfig(_ConfigSection):
    template: Optional[str] = None
    image: Optional[str] = None
    wrapper: Optional[str] = None


class LocalizationConfig(_ConfigSection):
    directory: Optional[str] = None
    default_locale: Optional[str] = Field(None, alias="defaultLocale")


class CsvColumnsConfig(_ConfigSection):
    id_column: Optional[str] = Field(None, alias="idColumn")
    template_column: Optional[str] = Field(None, alias="templateColumn")
    image_column: Optional[str] = Field(None, alias="imageColumn")
    width_column: Optional[str] = Field(None, alias="widthColumn")
    height_column: Optional[str] = Field(None, alias="heightColumn")
    size_unit_column: Optional[str] = Field(None, alias="sizeUnitColumn")


def _lenient_length(value: Any, default: float) -> float:
    """Parse a millimeter length; negative or unparsable values use ``default``."""
    number = _lenient_number(value)
    if number is None or isinstance(number, bool) or not math.isfinite(number) or number < 0:
        return default
    return float(number)


class BorderConfig(_ConfigSection):
    thickness: float = Field(0.1, description="Cut-line thickness in millimeters")
    color: str = Field("#000000", description="Cut-line color as hex")

    @field_validator("thickness", mode="before")
    @classmethod
    def parse_thickness(cls, v: Any) -> float:
        return _lenient_length(v, 0.1)

    @field_validator("color", mode="before")
    @classmethod
    def normalize_color(cls, v: Any) -> str:
        if v is None:
            return "#000000"
        # YAML reads an unquoted all-digit hex such as 000000 as an integer
        if isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 999999:
            return f"#{v:06d}"
        return str(v)


class PdfExportConfig(_ConfigSection):
    page_size: str = Field("a4", alias="pageSize")
    orientation: Orientation = Orientation.PORTRAIT
    margin: float = Field(0.0, description="Margin between cards and page edge in millimeters")
    fit_to_page: bool = Field(False, alias="fitToPage")
    border: BorderConfig = Field(default_factory=BorderConfig)

    @field_validator("page_size", mode="before")
    @classmethod
    def parse_page_size(cls, v: Any) -> str:
        return "a4" if v is None else str(v)

    @field_validator("margin", mode="before")
    @classmethod
    def parse_margin(cls, v: Any) -> float:
        return _lenient_length(v, 0.0)

    @field_validator("fit_to_page", mode="before")
    @classmethod
    def parse_fit_to_page(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().lower() in ("true", "yes", "on", "1")
        return bool(v)

    @field_validator("border", mode="before")
    @classmethod
    def parse_border(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, BorderConfig)) else {}

    @field_validator("orientation", mode="before")
    @classmethod
    def normalize_orientation(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().lower() == Orientation.LANDSCAPE.value:
            return Orientation.LANDSCAPE
        return Orientation.PORTRAIT


class ExportConfig(_ConfigSection):
    dpi: Optional[float] = None
    pdf: PdfExportConfig = Field(default_factory=PdfExportConfig)

    @field_validator("dpi", mode="before")
    @classmethod
    def parse_dpi(cls, v: Any) -> Any:
        return _lenient_number(v)

    @field_validator("pdf", mode="before")
    @classmethod
    def parse_pdf(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, PdfExportConfig)) else {}


class ProjectConfig(BaseModel):
    """Parsed card-deck-project.yml. Unknown top-level keys are kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    project: ProjectInfo = Field(default_factory=ProjectInfo)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    templates: TemplatesConfig = Field(default_factory=TemplatesConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    localization: LocalizationConfig = Field(default_factory=LocalizationConfig)
    csv: CsvColumnsConfig = Field(default_factory=CsvColumnsConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)

    def column_names(self) -> ColumnNames:
        """Resolve the well-known column aliases, trimming blanks back to defaults."""
        defaults = ColumnNames()

        def pick(value: Optional[str], fallback: str) -> str:
            return value.strip() if value and value.strip() else fallback

        return ColumnNames(
            id=pick(self.csv.id_column, defaults.id),
            template=pick(self.csv.template_column, defaults.template),
            width=pick(self.csv.width_column, defaults.width),
            height=pick(self.csv.height_column, defaults.height),
            unit=pick(self.csv.size_unit_column, defaults.unit),
            image=pick(self.csv.image_column, defaults.image),
        )

    def default_template_path(self) -> Optional[str]:
        path = self.templates.default or self.defaults.template
        return path.strip() if path and path.strip() else None


# Localization
class LocalizationBundle(BaseModel):
    """Full translated-string set for one locale. Replaced wholesale, never patched."""

    model_config = ConfigDict(frozen=True)

    locale: str = Field(..., description="Locale code of the loaded messages")
    available_locales: List[str] = Field(default_factory=list, description="Discovered locales")
    messages: Dict[str, Any] = Field(default_factory=dict, description="Nested message map")


# Templates and resolved cards
class LoadedTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute template path")
    content: str = Field(..., description="Raw template HTML")


class ProjectTemplates(BaseModel):
    """Default and per-card templates keyed by the path written in the card table."""

    default_template: Optional[LoadedTemplate] = None
    card_templates: Dict[str, LoadedTemplate] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.default_template is None and not self.card_templates


class ResolvedCard(BaseModel):
    """Rendered HTML for one card together with its source metadata."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    index: int = Field(..., ge=0, description="Contiguous ordinal among resolved cards")
    row_index: int = Field(..., ge=0, description="Row position in the source table")
    card: CardRecord
    template_path: str
    html: str


class CardDimensions(BaseModel):
    """Per-card size, always finite and positive. Derived on demand, never stored."""

    model_config = ConfigDict(frozen=True)

    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)
    unit: DimensionUnit = DimensionUnit.INCH
    dpi: float = Field(300.0, gt=0)


class Project(BaseModel):
    """A loaded card deck project with its resolved cards for one locale."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    root_path: str
    config_path: str
    config: ProjectConfig = Field(default_factory=ProjectConfig)
    cards: Optional[List[CardRecord]] = None
    templates: ProjectTemplates = Field(default_factory=ProjectTemplates)
    localization: Optional[LocalizationBundle] = None
    resolved_cards: List[ResolvedCard] = Field(default_factory=list)


# Export
class RenderedCardImage(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    card: ResolvedCard
    image_path: Path
    image_bytes: bytes = Field(..., exclude=True)


class PagePlacement(BaseModel):
    """Top-left position of one card image on one page, in document units."""

    page_index: int = Field(..., ge=0)
    x: float
    y: float
    card_index: int = Field(0, ge=0, description="Position of the card in the paginated input")


class PageLayout(BaseModel):
    """Result of paginating a run of equally sized cards."""

    page_width: float
    page_height: float
    card_width: float
    card_height: float
    border: float = 0.0
    scale: float = 1.0
    placements: List[PagePlacement] = Field(default_factory=list)

    @property
    def page_count(self) -> int:
        if not self.placements:
            return 0
        return self.placements[-1].page_index + 1


class ExportResult(BaseModel):
    document_path: Path
    image_paths: List[Path] = Field(default_factory=list)
    placed_cards: int = 0
    failed_cards: List[int] = Field(default_factory=list, description="Ordinals of skipped cards")
    page_count: int = 0


class ExportStep(BaseModel):
    id: str
    label: str
    status: ExportStepStatus = ExportStepStatus.IN_PROGRESS
    detail: Optional[str] = None


class ExportStatusSnapshot(BaseModel):
    """Status overlay model for the latest export."""

    is_visible: bool = False
    steps: List[ExportStep] = Field(default_factory=list)
    result: ExportState = ExportState.IDLE
    progress: float = Field(0.0, ge=0.0, le=1.0)
    error_message: Optional[str] = None


# API Request/Response Models
class PreviewRequest(BaseModel):
    root_path: str = Field(..., min_length=1, description="Absolute project root")
    locale: Optional[str] = Field(None, description="Locale override")


class PreviewCard(BaseModel):
    index: int
    row_index: int
    card_id: Optional[str] = None
    template_path: str
    html: str
    document: str
    width_px: float
    height_px: float


class PreviewResponse(BaseModel):
    locale: Optional[str] = None
    available_locales: List[str] = Field(default_factory=list)
    cards: List[PreviewCard] = Field(default_factory=list)


class ExportRequest(BaseModel):
    root_path: str = Field(..., min_length=1, description="Absolute project root")
    locale: Optional[str] = Field(None, description="Locale override")


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Error timestamp"
    )
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
