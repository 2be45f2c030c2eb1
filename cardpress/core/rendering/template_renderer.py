"""
Template Renderer
=================

Substitutes card fields, meta values and translated strings into card
template HTML.

Placeholders are ``{{ ... }}`` spans. Each span is classified once, in this
order, and replaced in a single pass so substituted values are never scanned
again:

1. ``t:KEY`` / ``i18n:KEY`` - translated string, falling back to the card field
   named by the key's last segment
2. ``index`` (0-based), ``index1`` and ``row`` (1-based)
3. a column of the card record
4. anything else is wrapped in a visible marker
"""

from typing import Optional, Tuple
import re

from cardpress.config.logging import get_logger
from cardpress.core.errors import TemplateUnavailableError
from cardpress.core.localization.resolver import LocalizationResolver
from cardpress.models.schemas import (
    CardRecord,
    ColumnNames,
    LoadedTemplate,
    LocalizationBundle,
    ProjectTemplates,
)

logger = get_logger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
LOCALIZATION_PREFIXES = ("t:", "i18n:")

MISSING_TRANSLATION_MARKER = (
    '<span class="cardpress-missing-translation" '
    'style="color: red; text-shadow: 0 0 2px white;">{placeholder}</span>'
)
UNKNOWN_PLACEHOLDER_MARKER = (
    '<span class="cardpress-unknown-placeholder" '
    'style="color: red; outline: 1px dashed red;">{placeholder}</span>'
)


def _escape_html(text: str) -> str:
    """Escape HTML special characters."""
    if not text:
        return ""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#x27;")
    )


def _localization_key(token: str) -> Optional[str]:
    for prefix in LOCALIZATION_PREFIXES:
        if token.startswith(prefix):
            return token[len(prefix) :].strip()
    return None


def _fallback_field(key: str) -> Optional[str]:
    last_segment = key.split(".")[-1].strip()
    return last_segment or None


class TemplateRenderer:
    """Renders a card template into final card HTML. Rendering never raises."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="template_renderer")

    def render(
        self,
        template: str,
        card: CardRecord,
        index: int,
        bundle: Optional[LocalizationBundle] = None,
        id_column: str = "id",
    ) -> str:
        """
        Render card HTML.

        Args:
            template: Raw template HTML
            card: Card record providing field values
            index: Zero-based row number used by the meta placeholders
            bundle: Localization bundle for the active locale, if any
            id_column: Column holding the card identifier for ``card.*`` keys

        Returns:
            HTML with every placeholder replaced or marked
        """
        resolver = LocalizationResolver(bundle)
        card_id = card.well_known(id_column)
        meta = {
            "index": str(index),
            "index1": str(index + 1),
            "row": str(index + 1),
        }

        def substitute(match: "re.Match[str]") -> str:
            token = match.group(1).strip()

            key = _localization_key(token)
            if key is not None:
                return self._translate(key, card, card_id, resolver)

            if token in meta:
                return meta[token]

            if token in card:
                return card[token]

            return UNKNOWN_PLACEHOLDER_MARKER.format(placeholder=_escape_html(match.group(0)))

        return PLACEHOLDER_PATTERN.sub(substitute, template or "")

    def _translate(
        self,
        key: str,
        card: CardRecord,
        card_id: Optional[str],
        resolver: LocalizationResolver,
    ) -> str:
        if key:
            localized = resolver.resolve(key, card_id)
            if localized is not None:
                return localized

            field = _fallback_field(key)
            if field is not None and field in card:
                return card[field]

        return MISSING_TRANSLATION_MARKER.format(placeholder=_escape_html(f"{{{{t:{key}}}}}"))


def select_template(
    card: CardRecord, templates: ProjectTemplates, columns: ColumnNames
) -> Tuple[str, LoadedTemplate]:
    """
    Pick the template for one card.

    A loaded per-row template wins; otherwise the project default is used, with
    a warning when the row asked for a template that is not available.

    Args:
        card: Card record
        templates: Templates loaded for the project
        columns: Well-known column aliases

    Returns:
        Template path as written by the project and the loaded template

    Raises:
        TemplateUnavailableError: If neither a per-row nor a default template exists
    """
    row = card.row_index + 1
    requested = card.template_path(columns)

    if requested:
        loaded = templates.card_templates.get(requested)
        if loaded is not None:
            return requested, loaded

        if templates.default_template is None:
            raise TemplateUnavailableError(
                f'Template "{requested}" not found for card at row {row} '
                "and no default template configured",
                row_index=card.row_index,
            )

        logger.warning(
            "Card template missing, falling back to default",
            template=requested,
            row=row,
        )

    if templates.default_template is None:
        raise TemplateUnavailableError(
            f"No template available for card at row {row}", row_index=card.row_index
        )

    return templates.default_template.path, templates.default_template
