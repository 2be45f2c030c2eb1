"""
Project Loader
==============

Reads ``card-deck-project.yml`` and the card table of a project folder.
"""

from typing import Any, Dict, List, Optional
from pathlib import Path
import csv
import io

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from cardpress.config.logging import get_logger
from cardpress.config.settings import get_settings
from cardpress.core.errors import ProjectLoadError
from cardpress.core.storage.filesystem import FileSystem, LocalFileSystem, resolve_project_path
from cardpress.models.schemas import CardRecord, ProjectConfig

logger = get_logger(__name__)


def parse_cards(content: str) -> List[CardRecord]:
    """
    Parse CSV text into card records keyed by the trimmed header names.

    Values are trimmed, rows whose cells are all blank are skipped and the
    remaining rows are numbered from zero.

    Raises:
        csv.Error: If the CSV text is malformed
    """
    reader = csv.reader(io.StringIO(content.lstrip("\ufeff")))
    try:
        header = next(reader)
    except StopIteration:
        return []

    columns = [name.strip() for name in header]
    cards: List[CardRecord] = []
    for row in reader:
        values = [value.strip() for value in row]
        if not any(values):
            continue

        fields: Dict[str, str] = {}
        for position, column in enumerate(columns):
            if column:
                fields[column] = values[position] if position < len(values) else ""
        cards.append(CardRecord(fields, row_index=len(cards)))
    return cards


class ProjectLoader:
    """Loads project configuration and cards from a project folder."""

    def __init__(self, files: Optional[FileSystem] = None) -> None:
        self.files = files or LocalFileSystem()
        self.settings = get_settings()
        self.logger = logger.bind(component="project_loader")

    def config_path(self, root_path: str) -> Path:
        return resolve_project_path(root_path, self.settings.project_config_filename)

    def validate_project_folder(self, root_path: str) -> None:
        """
        Ensure the folder contains a project configuration file.

        Raises:
            ProjectLoadError: If the path is blank or the configuration file is absent
        """
        if not root_path or not root_path.strip():
            raise ProjectLoadError("Cannot open a project without a root path")

        config_name = self.settings.project_config_filename
        if config_name not in self.files.list_directory(root_path):
            self.logger.warning("Not a project folder", root_path=root_path)
            raise ProjectLoadError(
                f"The selected folder is not a valid project. Missing {config_name}."
            )

    def load_config(self, root_path: str) -> ProjectConfig:
        """
        Load the project configuration.

        A configuration file that cannot be read or parsed is logged and the
        defaults are used instead.
        """
        path = self.config_path(root_path)
        try:
            data: Any = yaml.safe_load(self.files.read_text(path))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            self.logger.warning("Failed to load project configuration", path=str(path), error=str(e))
            return ProjectConfig()

        if data is None:
            return ProjectConfig()
        if not isinstance(data, dict):
            self.logger.warning("Project configuration is not a mapping", path=str(path))
            return ProjectConfig()

        try:
            return ProjectConfig.model_validate(data)
        except ValidationError as e:
            self.logger.warning("Invalid project configuration", path=str(path), error=str(e))

        # Keep every section that validates on its own; only broken ones use defaults
        sections: Dict[str, Any] = {}
        for key, value in data.items():
            try:
                ProjectConfig.model_validate({key: value})
            except ValidationError as e:
                self.logger.warning(
                    "Ignoring invalid configuration section", section=str(key), error=str(e)
                )
                continue
            sections[key] = value
        return ProjectConfig.model_validate(sections)

    def cards_path(self, root_path: str, config: Optional[ProjectConfig]) -> Path:
        configured = config.paths.csv if config else None
        return resolve_project_path(
            root_path, (configured or "").strip() or self.settings.cards_filename
        )

    def load_cards(self, root_path: str, config: Optional[ProjectConfig]) -> Optional[List[CardRecord]]:
        """
        Load the card table.

        Returns:
            Card records, or None when the table is missing or malformed
        """
        path = self.cards_path(root_path, config)
        try:
            cards = parse_cards(self.files.read_text(path))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            self.logger.warning("Failed to load cards", path=str(path), error=str(e))
            return None

        self.logger.info("Cards loaded", path=str(path), card_count=len(cards))
        return cards
