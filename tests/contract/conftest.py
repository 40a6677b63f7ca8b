from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from filefield_sources.api import deps
from filefield_sources.cli.server import create_app
from filefield_sources.config.schema import AppConfig, FieldConfig, StorageSettings
from filefield_sources.models.entities import ManagedFile
from filefield_sources.models.enums import FileStatus
from filefield_sources.utils.file_store import FileStore
from filefield_sources.utils.stream_wrappers import StreamWrappers


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        storage=StorageSettings(base_dir=str(tmp_path)),
        fields={
            "node.article.field_image": FieldConfig.model_validate(
                {
                    "label": "Image",
                    "file_directory": "images",
                    "cardinality": 2,
                    "upload_validators": {"file_extensions": "png jpg txt"},
                    "sources": {
                        "enabled": {"imce": True, "reference": True, "clipboard": True},
                        "source_imce": {"imce_mode": "full"},
                    },
                }
            ),
        },
    )


@pytest.fixture
def client(app_config: AppConfig) -> TestClient:
    app = create_app()
    app.dependency_overrides[deps.get_config] = lambda: app_config
    return TestClient(app)


@pytest.fixture
def seed(tmp_path: Path, app_config: AppConfig) -> Callable[..., ManagedFile]:
    store = FileStore(base_dir=tmp_path)
    wrappers = StreamWrappers(base_dir=tmp_path, settings=app_config.storage)

    def _seed(uri: str, content: bytes = b"data", owner_id: int = 1) -> ManagedFile:
        path = wrappers.realpath(uri)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return store.create(
            ManagedFile(
                uri=uri,
                filename=path.name,
                filesize=len(content),
                status=FileStatus.permanent,
                owner_id=owner_id,
            )
        )

    return _seed
