from __future__ import annotations

import logging
from collections.abc import Sequence

from filefield_sources.core.guard import capacity_message
from filefield_sources.models.entities import Actor, ManagedFile
from filefield_sources.models.enums import ErrorKind, FileStatus
from filefield_sources.models.errors import NotFoundError
from filefield_sources.models.form import FieldElement, FormState, WidgetInput, WidgetResult
from filefield_sources.sources.base import FileSource, SourceServices
from filefield_sources.sources.registry import enabled_sources, sort_sources

logger = logging.getLogger("filefield_sources.coordinator")


def dedupe_fids(fids: Sequence[int]) -> list[int]:
    seen: set[int] = set()
    out: list[int] = []
    for fid in fids:
        if fid not in seen:
            seen.add(fid)
            out.append(fid)
    return out


class FieldMergeCoordinator:
    """Runs every enabled source once, in order, against one field's input.

    Sources share the same `WidgetInput`; each one sees the list as left by
    the previous source. An error in one source never stops the next.
    """

    def __init__(self, services: SourceServices, sources: Sequence[FileSource] | None = None) -> None:
        self._services = services
        self._sources = sort_sources(sources) if sources is not None else None

    def sources_for(self, element: FieldElement) -> list[FileSource]:
        if self._sources is not None:
            return self._sources
        return enabled_sources(element.field)

    def process(self, element: FieldElement, widget_input: WidgetInput, actor: Actor) -> WidgetResult:
        state = FormState(actor=actor)
        widget_input.fids = dedupe_fids(widget_input.fids)
        sources = self.sources_for(element)
        for k, source in enumerate(sources):
            logger.debug("Processing source %d/%d (%s) for %s", k + 1, len(sources), source.id, element.key)
            if source.has_input(widget_input) and element.is_full(widget_input.fids):
                state.set_error(
                    source.id,
                    ErrorKind.capacity_exceeded,
                    capacity_message(element.label, element.cardinality),
                )
                source.clear(widget_input)
                continue
            source.apply(element, widget_input, state, self._services)
        return WidgetResult(
            fids=list(widget_input.fids),
            sources=widget_input.sources,
            errors=state.errors,
        )

    def commit(self, element: FieldElement, fids: Sequence[int]) -> list[ManagedFile]:
        """Make the field's files permanent once its host entity is saved."""
        fids = dedupe_fids(fids)
        if not fids:
            return []
        if element.cardinality > 0 and len(fids) > element.cardinality:
            raise ValueError(capacity_message(element.label, element.cardinality))
        store = self._services.store
        files: list[ManagedFile] = []
        for fid in fids:
            if store.load(fid) is None:
                raise NotFoundError(f"Managed file {fid} does not exist.")
        for fid in fids:
            store.set_status(fid, FileStatus.permanent)
            files.append(store.add_usage(fid, element.key))
        logger.info("Committed %d file(s) to %s", len(files), element.key)
        return files
