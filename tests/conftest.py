"""
Test Configuration
==================

Pytest configuration with shared fixtures for unit and integration tests.
"""

import os
import tempfile

# Settings are read on first import of the application modules
os.environ.setdefault("CARDPRESS_ENVIRONMENT", "testing")
os.environ.setdefault("CARDPRESS_STORAGE_PATH", tempfile.mkdtemp(prefix="cardpress_test_"))

from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from cardpress.api import dependencies
from cardpress.api.main import app
from cardpress.core.export.service import ExportService
from cardpress.core.export.status import ExportStatusTracker
from cardpress.core.project.service import ProjectService
from cardpress.models.schemas import ProjectConfig
from tests.utils.data_generators import DEFAULT_CONFIG, ProjectFolderBuilder
from tests.utils.mocks import FakeRasterizer, InMemoryFileSystem, RecordingDocumentWriter


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Complete project folder on disk."""
    return ProjectFolderBuilder(tmp_path / "deck").build()


@pytest.fixture
def project_config() -> ProjectConfig:
    return ProjectConfig.model_validate(DEFAULT_CONFIG)


@pytest.fixture
def memory_fs() -> InMemoryFileSystem:
    return InMemoryFileSystem()


@pytest.fixture
def fake_rasterizer() -> FakeRasterizer:
    return FakeRasterizer()


@pytest.fixture
def recording_writer() -> RecordingDocumentWriter:
    return RecordingDocumentWriter()


@pytest.fixture
def export_service(
    memory_fs: InMemoryFileSystem,
    fake_rasterizer: FakeRasterizer,
    recording_writer: RecordingDocumentWriter,
) -> ExportService:
    """Export service wired to in-memory fakes."""
    return ExportService(
        rasterizer=fake_rasterizer,
        files=memory_fs,
        writer_factory=lambda: recording_writer,
        status=ExportStatusTracker(),
    )


@pytest.fixture
def fastapi_client(fake_rasterizer: FakeRasterizer) -> Generator[TestClient, None, None]:
    """FastAPI test client using the real file system and a fake rasterizer."""
    exporter = ExportService(rasterizer=fake_rasterizer)
    projects = ProjectService()
    app.dependency_overrides[dependencies.get_export_service] = lambda: exporter
    app.dependency_overrides[dependencies.get_project_service] = lambda: projects
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file paths."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        if "api" in str(item.fspath):
            item.add_marker(pytest.mark.api)
