from __future__ import annotations

from collections.abc import Iterable

from filefield_sources.config.schema import FieldConfig
from filefield_sources.sources.attach import AttachSource
from filefield_sources.sources.base import FileSource
from filefield_sources.sources.clipboard import ClipboardSource
from filefield_sources.sources.imce import ImceSource
from filefield_sources.sources.reference import ReferenceSource
from filefield_sources.sources.remote import RemoteSource

SOURCES: dict[str, FileSource] = {
    source.id: source
    for source in (
        ImceSource(),
        ReferenceSource(),
        RemoteSource(),
        AttachSource(),
        ClipboardSource(),
    )
}


def sort_sources(sources: Iterable[FileSource]) -> list[FileSource]:
    return sorted(sources, key=lambda s: (s.weight, s.id))


def all_sources() -> list[FileSource]:
    return sort_sources(SOURCES.values())


def get_source(source_id: str) -> FileSource | None:
    return SOURCES.get(source_id)


def enabled_sources(field: FieldConfig) -> list[FileSource]:
    return sort_sources(s for s in SOURCES.values() if field.sources.is_enabled(s.id))
