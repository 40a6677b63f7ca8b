from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from functools import partial

from pydantic import BaseModel, Field

from filefield_sources.models.entities import ManagedFile
from filefield_sources.models.enums import BrowseMode, FileStatus
from filefield_sources.utils.file_store import FileStore
from filefield_sources.utils.images import image_dimensions
from filefield_sources.utils.stream_wrappers import StreamWrappers, split_uri

logger = logging.getLogger("filefield_sources.browser")

BROWSER_PERMISSIONS = ("browse", "upload", "delete", "rename")


class BrowserFile(BaseModel):
    name: str
    uri: str
    url: str
    size: int
    width: int = 0
    height: int = 0
    date: datetime


class ScanResult(BaseModel):
    directory: str
    files: dict[str, BrowserFile] = Field(default_factory=dict)
    subdirectories: list[str] = Field(default_factory=list)
    total_size: int = 0
    permissions: dict[str, bool] = Field(default_factory=dict)


ScanStrategy = Callable[[str], ScanResult]


def list_directory(dirname: str, scan: ScanStrategy) -> ScanResult:
    """Browser listing call; the scan strategy decides what is visible."""
    dirname = dirname.strip("/") or "."
    if any(part == ".." for part in dirname.split("/")):
        raise ValueError(f"Invalid directory: {dirname}")
    return scan(dirname)


def scan_full(
    dirname: str,
    *,
    store: FileStore,
    wrappers: StreamWrappers,
    scheme: str,
) -> ScanResult:
    """Disk listing of one directory, reduced to files known to the store."""
    dir_uri = f"{scheme}://" if dirname == "." else f"{scheme}://{dirname}"
    db_files = {split_uri(f.uri)[1].rsplit("/", 1)[-1]: f for f in store.list_by_prefix(dir_uri)}
    result = ScanResult(
        directory=dirname,
        permissions={name: True for name in BROWSER_PERMISSIONS},
    )
    directory = wrappers.realpath(dir_uri)
    if not directory.is_dir():
        return result
    for entry in sorted(directory.iterdir()):
        if entry.name.startswith("."):
            continue
        if entry.is_dir():
            result.subdirectories.append(entry.name)
            continue
        file = db_files.get(entry.name)
        if file is None:
            continue
        item = _browser_file(file, wrappers)
        result.files[item.name] = item
        result.total_size += item.size
    return result


def scan_restricted(
    dirname: str,
    *,
    store: FileStore,
    wrappers: StreamWrappers,
    field_key: str,
    field_uri: str,
) -> ScanResult:
    """Only the field's own directory, only files committed by the field."""
    _scheme, target = split_uri(field_uri)
    result = ScanResult(
        directory=target or ".",
        permissions={name: name == "browse" for name in BROWSER_PERMISSIONS},
    )
    for file in store.list_by_prefix(field_uri):
        if file.status != FileStatus.permanent or field_key not in file.usage:
            continue
        item = _browser_file(file, wrappers)
        result.files[item.name] = item
        result.total_size += item.size
    return result


def make_scan(
    mode: BrowseMode,
    *,
    store: FileStore,
    wrappers: StreamWrappers,
    scheme: str,
    field_key: str,
    field_uri: str,
) -> ScanStrategy:
    if mode == BrowseMode.full:
        return partial(scan_full, store=store, wrappers=wrappers, scheme=scheme)
    return partial(
        scan_restricted,
        store=store,
        wrappers=wrappers,
        field_key=field_key,
        field_uri=field_uri,
    )


def _browser_file(file: ManagedFile, wrappers: StreamWrappers) -> BrowserFile:
    width = height = 0
    path = wrappers.realpath(file.uri)
    if path.is_file():
        dimensions = image_dimensions(path)
        if dimensions:
            width, height = dimensions
    return BrowserFile(
        name=file.uri.rsplit("/", 1)[-1],
        uri=file.uri,
        url=wrappers.external_path(file.uri),
        size=file.filesize,
        width=width,
        height=height,
        date=file.timestamp,
    )
