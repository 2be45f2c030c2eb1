"""
Project Service
===============

Builds a loaded project from a folder: configuration, cards, templates, the
localization bundle and the resolved card HTML. Reloading and switching locale
are the only points where the pipeline caches are dropped.
"""

from typing import Optional

from cardpress.config.logging import get_logger
from cardpress.core.localization.loader import LocalizationLoader
from cardpress.core.pipeline.card_pipeline import CardResolutionPipeline
from cardpress.core.project.loader import ProjectLoader
from cardpress.core.storage.filesystem import FileSystem, LocalFileSystem
from cardpress.models.schemas import Project

logger = get_logger(__name__)


class ProjectService:
    """Opens card deck projects and keeps their resolved cards current."""

    def __init__(
        self,
        files: Optional[FileSystem] = None,
        pipeline: Optional[CardResolutionPipeline] = None,
    ) -> None:
        self.files = files or LocalFileSystem()
        self.loader = ProjectLoader(self.files)
        self.localization = LocalizationLoader(self.files)
        self.pipeline = pipeline or CardResolutionPipeline(self.files)
        self.logger = logger.bind(component="project_service")

    def open_project(self, root_path: str, locale: Optional[str] = None) -> Project:
        """
        Open a project folder.

        Args:
            root_path: Project root directory
            locale: Locale override

        Returns:
            The loaded project

        Raises:
            ProjectLoadError: If the folder is not a card deck project
            NoTemplatesError: If cards exist but no template could be loaded
        """
        self.loader.validate_project_folder(root_path)
        self.logger.info("Opening project", root_path=root_path, locale=locale)

        config = self.loader.load_config(root_path)
        cards = self.loader.load_cards(root_path, config)
        columns = config.column_names()
        templates = self.pipeline.load_templates(
            root_path, config.default_template_path(), cards, columns.template
        )
        bundle = self.localization.load(root_path, config, locale)

        project = Project(
            root_path=root_path,
            config_path=str(self.loader.config_path(root_path)),
            config=config,
            cards=cards,
            templates=templates,
            localization=bundle,
        )
        project.resolved_cards = self.pipeline.resolve_all(
            cards, templates, columns, bundle, root_path
        )
        return project

    def reload_project(self, root_path: str, locale: Optional[str] = None) -> Project:
        """Re-read every project file, dropping all cached templates and HTML."""
        self.pipeline.invalidate(reload_templates=True)
        return self.open_project(root_path, locale)

    def change_locale(self, project: Project, locale: str) -> Project:
        """
        Switch a loaded project to another locale and re-render its cards.

        Returns:
            A new project with the new bundle and resolved cards
        """
        bundle = self.localization.load(project.root_path, project.config, locale)
        self.pipeline.invalidate()

        resolved = self.pipeline.resolve_all(
            project.cards,
            project.templates,
            project.config.column_names(),
            bundle,
            project.root_path,
        )
        self.logger.info(
            "Locale changed",
            locale=bundle.locale if bundle else None,
            requested=locale,
            card_count=len(resolved),
        )
        return project.model_copy(update={"localization": bundle, "resolved_cards": resolved})
