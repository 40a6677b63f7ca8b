from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from filefield_sources.models.entities import ManagedFile
from filefield_sources.models.enums import FileStatus, MatchMode

logger = logging.getLogger("filefield_sources.file_store")


class FileStore:
    """Managed file records persisted as one JSON manifest per file."""

    _lock = threading.RLock()

    def __init__(self, base_dir: Path) -> None:
        self._base_dir = base_dir
        self._manifests_dir = base_dir / "manifests"
        self._manifests_dir.mkdir(parents=True, exist_ok=True)

    def load(self, fid: int) -> ManagedFile | None:
        manifest_path = self._manifest_path(fid)
        if not manifest_path.exists():
            return None
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
        return ManagedFile.model_validate(data)

    def find_by_uri(self, uri: str) -> ManagedFile | None:
        for file in self.list_all():
            if file.uri == uri:
                return file
        return None

    def list_all(self) -> list[ManagedFile]:
        files: list[ManagedFile] = []
        for path in self._manifests_dir.glob("file__*.json"):
            data = json.loads(path.read_text(encoding="utf-8"))
            files.append(ManagedFile.model_validate(data))
        files.sort(key=lambda f: f.id or 0)
        return files

    def list_by_prefix(self, directory_uri: str, recursive: bool = False) -> list[ManagedFile]:
        prefix = directory_uri if directory_uri.endswith("/") else directory_uri + "/"
        out: list[ManagedFile] = []
        for file in self.list_all():
            if not file.uri.startswith(prefix):
                continue
            rest = file.uri[len(prefix):]
            if not rest:
                continue
            if not recursive and "/" in rest:
                continue
            out.append(file)
        return out

    def search(
        self,
        text: str,
        mode: MatchMode,
        limit: int = 10,
        predicate: Callable[[ManagedFile], bool] | None = None,
    ) -> list[ManagedFile]:
        needle = text.lower()
        out: list[ManagedFile] = []
        for file in self.list_all():
            if predicate is not None and not predicate(file):
                continue
            name = file.filename.lower()
            matched = name.startswith(needle) if mode == MatchMode.starts_with else needle in name
            if matched:
                out.append(file)
            if len(out) >= limit:
                break
        return out

    def create(self, file: ManagedFile) -> ManagedFile:
        with self._lock:
            if self.find_by_uri(file.uri) is not None:
                raise FileExistsError(f"A managed file already exists for {file.uri}")
            ids = [f.id or 0 for f in self.list_all()]
            record = file.model_copy(update={"id": max(ids, default=0) + 1})
            self._write_manifest(record)
        logger.info("Created managed file %s for %s", record.id, record.uri)
        return record

    def set_status(self, fid: int, status: FileStatus) -> ManagedFile:
        with self._lock:
            file = self._require(fid)
            if file.status != status:
                file.status = status
                file.timestamp = datetime.utcnow()
                self._write_manifest(file)
                logger.info("Managed file %s is now %s", fid, status.value)
        return file

    def add_usage(self, fid: int, field_key: str) -> ManagedFile:
        with self._lock:
            file = self._require(fid)
            if field_key not in file.usage:
                file.usage.append(field_key)
                self._write_manifest(file)
        return file

    def delete(self, fid: int) -> None:
        with self._lock:
            self._manifest_path(fid).unlink(missing_ok=True)
        logger.info("Deleted managed file record %s", fid)

    def _require(self, fid: int) -> ManagedFile:
        file = self.load(fid)
        if file is None:
            raise KeyError(f"managed file {fid} not found")
        return file

    def _manifest_path(self, fid: int) -> Path:
        return self._manifests_dir / f"file__{fid}.json"

    def _write_manifest(self, file: ManagedFile) -> None:
        if file.id is None:
            raise ValueError("Cannot persist a managed file without an id")
        path = self._manifest_path(file.id)
        path.write_text(
            json.dumps(file.model_dump(mode="json"), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
