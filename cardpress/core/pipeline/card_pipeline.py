"""
Card Resolution Pipeline
========================

Loads project templates and maps every card record to rendered HTML.

Two caches are owned by the pipeline: loaded templates keyed by absolute path
and rendered HTML keyed by template path, card identity and locale. Both live
until the project is reloaded or the locale changes.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from cardpress.config.logging import get_logger
from cardpress.core.errors import CardError, NoTemplatesError
from cardpress.core.rendering.assets import AssetResolver, FileAssetResolver, rewrite_asset_links
from cardpress.core.rendering.template_renderer import TemplateRenderer, select_template
from cardpress.core.storage.filesystem import FileSystem, LocalFileSystem, resolve_project_path
from cardpress.models.schemas import (
    CardRecord,
    ColumnNames,
    LoadedTemplate,
    LocalizationBundle,
    ProjectTemplates,
    ResolvedCard,
)

logger = get_logger(__name__)

CacheKey = Tuple[str, tuple, Optional[str]]


class CardResolutionPipeline:
    """Resolves card records into ready-to-render card HTML."""

    def __init__(
        self,
        files: Optional[FileSystem] = None,
        renderer: Optional[TemplateRenderer] = None,
        asset_resolver: Optional[AssetResolver] = None,
    ) -> None:
        self.files = files or LocalFileSystem()
        self.renderer = renderer or TemplateRenderer()
        self.asset_resolver = asset_resolver or FileAssetResolver()
        self.logger = logger.bind(component="card_pipeline")
        self._template_cache: Dict[str, LoadedTemplate] = {}
        self._resolved_cache: Dict[CacheKey, str] = {}

    def load_templates(
        self,
        root_path: str,
        default_template_path: Optional[str],
        cards: Optional[Iterable[CardRecord]],
        template_column: str = "template",
    ) -> ProjectTemplates:
        """
        Load the default template and every per-card template the cards reference.

        Each unique template file is read once. Unreadable templates are logged
        and left out.

        Args:
            root_path: Project root directory
            default_template_path: Project-relative path of the default template
            cards: Card records, or None when the table is not loaded
            template_column: Column holding per-card template paths

        Returns:
            Loaded templates
        """
        templates = ProjectTemplates()

        if default_template_path and default_template_path.strip():
            templates.default_template = self._load_template(root_path, default_template_path)

        requested: Dict[str, str] = {}
        for card in cards or []:
            relative = card.well_known(template_column)
            if relative:
                absolute = str(resolve_project_path(root_path, relative))
                requested.setdefault(absolute, relative)

        for relative in requested.values():
            loaded = self._load_template(root_path, relative)
            if loaded is not None:
                templates.card_templates[relative] = loaded

        self.logger.info(
            "Templates loaded",
            default_template=templates.default_template.path if templates.default_template else None,
            card_templates=sorted(templates.card_templates),
        )
        return templates

    def _load_template(self, root_path: str, relative_path: str) -> Optional[LoadedTemplate]:
        absolute = str(resolve_project_path(root_path, relative_path))
        cached = self._template_cache.get(absolute)
        if cached is not None:
            return cached

        try:
            content = self.files.read_text(absolute)
        except (OSError, UnicodeDecodeError) as e:
            self.logger.warning("Failed to load template", path=absolute, error=str(e))
            return None

        loaded = LoadedTemplate(path=absolute, content=content)
        self._template_cache[absolute] = loaded
        return loaded

    def resolve_all(
        self,
        cards: Optional[List[CardRecord]],
        templates: ProjectTemplates,
        columns: Optional[ColumnNames] = None,
        bundle: Optional[LocalizationBundle] = None,
        root_path: str = "",
    ) -> List[ResolvedCard]:
        """
        Resolve every card to rendered HTML, in row order.

        Rows without any usable template are logged and skipped; the output
        indices stay contiguous.

        Args:
            cards: Card records in table order
            templates: Loaded project templates
            columns: Well-known column aliases
            bundle: Localization bundle for the active locale
            root_path: Project root used to resolve relative assets

        Returns:
            Resolved cards

        Raises:
            NoTemplatesError: If there are cards but no template was loaded at all
        """
        if not cards:
            return []

        if templates.is_empty:
            self.logger.error("No templates available", card_count=len(cards))
            raise NoTemplatesError(
                f"No templates could be loaded for {len(cards)} card(s); "
                "configure a default template or per-card templates"
            )

        columns = columns or ColumnNames()
        locale = bundle.locale if bundle else None
        resolved: List[ResolvedCard] = []

        for card in cards:
            try:
                template_path, template = select_template(card, templates, columns)
            except CardError as e:
                self.logger.error("Skipping card", row=card.row_index + 1, error=str(e))
                continue

            html = self._render(card, template, template_path, bundle, columns, root_path, locale)
            resolved.append(
                ResolvedCard(
                    index=len(resolved),
                    row_index=card.row_index,
                    card=card,
                    template_path=template_path,
                    html=html,
                )
            )

        self.logger.info(
            "Cards resolved",
            card_count=len(cards),
            resolved_count=len(resolved),
            locale=locale,
        )
        return resolved

    def _render(
        self,
        card: CardRecord,
        template: LoadedTemplate,
        template_path: str,
        bundle: Optional[LocalizationBundle],
        columns: ColumnNames,
        root_path: str,
        locale: Optional[str],
    ) -> str:
        key: CacheKey = (template.path, card.identity, locale)
        cached = self._resolved_cache.get(key)
        if cached is not None:
            return cached

        html = self.renderer.render(
            template.content, card, card.row_index, bundle=bundle, id_column=columns.id
        )
        html = rewrite_asset_links(html, root_path, self.asset_resolver)
        self._resolved_cache[key] = html
        self.logger.debug("Card rendered", row=card.row_index + 1, template=template_path)
        return html

    def invalidate(self, reload_templates: bool = False) -> None:
        """
        Drop cached card HTML.

        Args:
            reload_templates: Also drop loaded templates so they are re-read from disk
        """
        self._resolved_cache.clear()
        if reload_templates:
            self._template_cache.clear()
        self.logger.debug("Pipeline caches invalidated", reload_templates=reload_templates)
