"""
Asset Links
===========

Rewrites relative ``src=``, ``href=`` and CSS ``url(...)`` references in card
HTML to URLs the rasterizer can load.
"""

from typing import Optional, Protocol, runtime_checkable
from pathlib import Path
import re

from cardpress.config.logging import get_logger
from cardpress.core.storage.filesystem import resolve_project_path

logger = get_logger(__name__)

ASSET_REFERENCE_PATTERN = re.compile(
    r"""(?:(\b(?:src|href))=(["'])([^'"\s>]+)\2)|(?:url\((['"]?)([^)'"]+)\4\))""",
    re.IGNORECASE,
)
_SCHEME_PATTERN = re.compile(r"^[a-z][a-z\d+.-]*:", re.IGNORECASE)
_WINDOWS_DRIVE_PATTERN = re.compile(r"^[a-zA-Z]:[\\/]")


@runtime_checkable
class AssetResolver(Protocol):
    """Maps a project-relative asset path to a loadable URL."""

    def resolve(self, root_path: str, relative_path: str) -> Optional[str]: ...


class FileAssetResolver:
    """Resolves assets to ``file://`` URIs when the file exists under the project root."""

    def resolve(self, root_path: str, relative_path: str) -> Optional[str]:
        path = resolve_project_path(root_path, relative_path).resolve()
        if not path.is_file():
            return None
        return path.as_uri()


def is_external_url(value: str) -> bool:
    normalized = value.strip()
    if not normalized:
        return False
    return normalized.startswith("//") or bool(_SCHEME_PATTERN.match(normalized))


def is_absolute_path(value: str) -> bool:
    normalized = value.strip()
    return (
        normalized.startswith("/")
        or normalized.startswith("\\\\")
        or bool(_WINDOWS_DRIVE_PATTERN.match(normalized))
    )


def local_asset_path(value: str) -> Optional[str]:
    """Return the project-relative path for a reference, or None when it must stay as is."""
    trimmed = value.strip()
    if not trimmed or trimmed.startswith("#"):
        return None
    # Drive letters look like schemes, so absolute paths are checked first
    if is_absolute_path(trimmed) or is_external_url(trimmed):
        return None
    return trimmed[2:] if trimmed.startswith("./") else trimmed


def rewrite_asset_links(html: str, root_path: str, resolver: Optional[AssetResolver]) -> str:
    """
    Rewrite relative asset references in rendered card HTML.

    Args:
        html: Rendered card HTML
        root_path: Project root the references are relative to
        resolver: Asset resolver; None leaves the HTML unchanged

    Returns:
        HTML with every resolvable relative reference replaced
    """
    if resolver is None or not html:
        return html

    def replace(match: "re.Match[str]") -> str:
        attribute, attribute_quote, attribute_value, url_quote, url_value = match.groups()
        value = attribute_value if attribute else url_value
        relative = local_asset_path(value or "")
        if relative is None:
            return match.group(0)

        try:
            resolved = resolver.resolve(root_path, relative)
        except Exception as e:
            logger.warning("Asset resolution failed", asset=relative, error=str(e))
            return match.group(0)

        if not resolved:
            return match.group(0)
        if attribute:
            return f"{attribute}={attribute_quote}{resolved}{attribute_quote}"
        return f"url({url_quote}{resolved}{url_quote})"

    return ASSET_REFERENCE_PATTERN.sub(replace, html)


def project_base_url(root_path: str) -> str:
    """Directory URL of the project root, used as the document base."""
    return Path(root_path).resolve().as_uri().rstrip("/") + "/"
