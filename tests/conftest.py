from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from filefield_sources.config.schema import FieldConfig, StorageSettings
from filefield_sources.core.access import AccessPolicy
from filefield_sources.core.guard import AdmissionGuard
from filefield_sources.core.resolver import FileResolver
from filefield_sources.core.validators import UploadValidator
from filefield_sources.models.entities import ManagedFile
from filefield_sources.models.enums import FileStatus
from filefield_sources.models.form import FieldElement
from filefield_sources.sources.base import SourceServices
from filefield_sources.utils.file_store import FileStore
from filefield_sources.utils.stream_wrappers import StreamWrappers


@pytest.fixture
def files_dir(tmp_path: Path) -> Path:
    return tmp_path / "files"


@pytest.fixture
def storage(files_dir: Path) -> StorageSettings:
    return StorageSettings(base_dir=str(files_dir))


@pytest.fixture
def wrappers(files_dir: Path, storage: StorageSettings) -> StreamWrappers:
    return StreamWrappers(base_dir=files_dir, settings=storage)


@pytest.fixture
def store(files_dir: Path) -> FileStore:
    return FileStore(base_dir=files_dir)


@pytest.fixture
def services(store: FileStore, wrappers: StreamWrappers) -> SourceServices:
    access = AccessPolicy()
    return SourceServices(
        store=store,
        wrappers=wrappers,
        resolver=FileResolver(store, wrappers),
        validator=UploadValidator(),
        guard=AdmissionGuard(access),
        access=access,
    )


@pytest.fixture
def make_element() -> Callable[..., FieldElement]:
    def _make(**field: Any) -> FieldElement:
        data: dict[str, Any] = {
            "label": "Attachment",
            "file_directory": "attachments",
            "cardinality": 0,
            "upload_validators": {"file_extensions": "txt png"},
            "sources": {
                "enabled": {
                    "imce": True,
                    "reference": True,
                    "remote": True,
                    "attach": True,
                    "clipboard": True,
                }
            },
        }
        data.update(field)
        return FieldElement(
            entity_type="node",
            bundle="article",
            field_name="field_files",
            field=FieldConfig.model_validate(data),
        )

    return _make


@pytest.fixture
def add_file(store: FileStore, wrappers: StreamWrappers) -> Callable[..., ManagedFile]:
    def _add(
        uri: str,
        content: bytes = b"hello",
        status: FileStatus = FileStatus.permanent,
        owner_id: int = 1,
    ) -> ManagedFile:
        path = wrappers.realpath(uri)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return store.create(
            ManagedFile(
                uri=uri,
                filename=path.name,
                filesize=len(content),
                status=status,
                owner_id=owner_id,
            )
        )

    return _add
