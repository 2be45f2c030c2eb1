"""
File System
===========

The file system seam consumed by the pipeline and the export driver, plus the
local-disk implementation used at runtime.
"""

from typing import List, Protocol, Union, runtime_checkable
from pathlib import Path

from cardpress.config.logging import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


@runtime_checkable
class FileSystem(Protocol):
    """File access capability."""

    def read_text(self, path: PathLike) -> str: ...

    def read_binary(self, path: PathLike) -> bytes: ...

    def write_binary(self, path: PathLike, data: bytes) -> None: ...

    def ensure_directory(self, path: PathLike) -> None: ...

    def list_directory(self, path: PathLike) -> List[str]: ...


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self.logger = logger.bind(component="local_filesystem")

    def read_text(self, path: PathLike) -> str:
        return Path(path).read_text(encoding=self.encoding)

    def read_binary(self, path: PathLike) -> bytes:
        return Path(path).read_bytes()

    def write_binary(self, path: PathLike, data: bytes) -> None:
        target = Path(path)
        target.write_bytes(data)
        self.logger.debug("File written", path=str(target), size=len(data))

    def ensure_directory(self, path: PathLike) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def list_directory(self, path: PathLike) -> List[str]:
        """Names of the files in a directory; an absent directory lists as empty."""
        directory = Path(path)
        if not directory.is_dir():
            return []
        return sorted(entry.name for entry in directory.iterdir() if entry.is_file())


def resolve_project_path(root_path: PathLike, relative_path: str) -> Path:
    """Join a project-relative path onto the project root."""
    return Path(root_path) / relative_path.strip().lstrip("/\\")
