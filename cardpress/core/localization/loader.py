"""
Localization Loader
===================

Discovers available locales in the project's localization directory and loads
one YAML bundle at a time.
"""

from typing import Any, List, Optional
from pathlib import Path

import yaml  # type: ignore[import-untyped]

from cardpress.config.logging import get_logger
from cardpress.config.settings import get_settings
from cardpress.core.storage.filesystem import FileSystem, LocalFileSystem, resolve_project_path
from cardpress.models.schemas import LocalizationBundle, ProjectConfig

logger = get_logger(__name__)

LOCALE_SUFFIXES = (".yml", ".yaml")


class LocalizationLoader:
    """Loads localization bundles from ``<root>/<directory>/<locale>.yml``."""

    def __init__(self, files: Optional[FileSystem] = None) -> None:
        self.files = files or LocalFileSystem()
        self.settings = get_settings()
        self.logger = logger.bind(component="localization_loader")

    def localization_directory(self, root_path: str, config: Optional[ProjectConfig]) -> Path:
        directory = config.localization.directory if config else None
        directory = (directory or "").strip() or self.settings.localization_directory
        return resolve_project_path(root_path, directory)

    def available_locales(self, root_path: str, config: Optional[ProjectConfig]) -> List[str]:
        """Sorted locale codes derived from the YAML file names."""
        locales = set()
        for name in self.files.list_directory(self.localization_directory(root_path, config)):
            lowered = name.lower()
            for suffix in LOCALE_SUFFIXES:
                if lowered.endswith(suffix):
                    locale = name[: -len(suffix)].strip()
                    if locale:
                        locales.add(locale)
        return sorted(locales)

    def requested_locale(
        self, config: Optional[ProjectConfig], locale_override: Optional[str] = None
    ) -> str:
        if locale_override and locale_override.strip():
            return locale_override.strip()
        configured = config.localization.default_locale if config else None
        if configured and configured.strip():
            return configured.strip()
        return self.settings.default_locale

    def load(
        self,
        root_path: str,
        config: Optional[ProjectConfig],
        locale_override: Optional[str] = None,
    ) -> Optional[LocalizationBundle]:
        """
        Load the bundle for the requested locale.

        Args:
            root_path: Project root directory
            config: Parsed project configuration
            locale_override: Locale explicitly requested by the user

        Returns:
            A new bundle, or None when the file is missing or invalid
        """
        locale = self.requested_locale(config, locale_override)
        available = self.available_locales(root_path, config)
        directory = self.localization_directory(root_path, config)

        candidates = [directory / f"{locale}{suffix}" for suffix in LOCALE_SUFFIXES]
        last_error: Optional[str] = None
        for path in candidates:
            try:
                content = self.files.read_text(path)
            except UnicodeDecodeError as e:
                self.logger.warning(
                    "Localization file is not valid UTF-8", path=str(path), error=str(e)
                )
                return None
            except OSError as e:
                last_error = str(e)
                continue

            try:
                messages = self._parse(content)
            except (yaml.YAMLError, ValueError) as e:
                self.logger.warning(
                    "Failed to parse localization file", path=str(path), error=str(e)
                )
                return None

            self.logger.info("Loaded localization", locale=locale, path=str(path))
            return LocalizationBundle(
                locale=locale, available_locales=available, messages=messages
            )

        self.logger.warning(
            "Failed to load localization", locale=locale, directory=str(directory), error=last_error
        )
        return None

    def _parse(self, content: str) -> dict:
        data: Any = yaml.safe_load(content)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError("Localization file must contain a mapping at the top level")
        return data
