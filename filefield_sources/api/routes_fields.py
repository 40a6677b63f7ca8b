from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from filefield_sources.api.deps import (
    get_actor,
    get_coordinator,
    get_field_element,
    get_services,
)
from filefield_sources.core.coordinator import FieldMergeCoordinator
from filefield_sources.models.entities import Actor, ManagedFile
from filefield_sources.models.form import FieldElement, WidgetInput, WidgetResult
from filefield_sources.sources.base import SourceServices, WidgetFragment
from filefield_sources.sources.registry import all_sources, enabled_sources

router = APIRouter(prefix="/api")


class SourceInfo(BaseModel):
    id: str
    name: str
    label: str
    description: str
    weight: float
    settings_schema: dict[str, Any]


class CommitBody(BaseModel):
    fids: list[int]


@router.get("/sources", response_model=list[SourceInfo])
async def list_sources() -> list[SourceInfo]:
    """List the available file sources in processing order."""

    return [
        SourceInfo(
            id=source.id,
            name=source.name,
            label=source.label,
            description=source.description,
            weight=source.weight,
            settings_schema=source.settings_schema(),
        )
        for source in all_sources()
    ]


@router.get(
    "/fields/{entity_type}/{bundle}/{field_name}/widget",
    response_model=list[WidgetFragment],
)
def get_widget(
    fids: list[int] = Query(default=[]),
    element: FieldElement = Depends(get_field_element),
    services: SourceServices = Depends(get_services),
) -> list[WidgetFragment]:
    """Render the fragments of every enabled source.

    Args:
        fids: Files currently attached to the field.

    Returns:
        Widget fragments ordered by weight.
    """

    return [source.render(element, fids, services) for source in enabled_sources(element.field)]


@router.post(
    "/fields/{entity_type}/{bundle}/{field_name}/value",
    response_model=WidgetResult,
)
def submit_value(
    body: WidgetInput,
    element: FieldElement = Depends(get_field_element),
    actor: Actor = Depends(get_actor),
    coordinator: FieldMergeCoordinator = Depends(get_coordinator),
) -> WidgetResult:
    """Run the enabled sources against a submitted widget value.

    Args:
        body: Current file ids and raw source input.

    Returns:
        The merged file ids, the cleared source input and any field errors.
    """

    return coordinator.process(element, body, actor)


@router.post(
    "/fields/{entity_type}/{bundle}/{field_name}/commit",
    response_model=list[ManagedFile],
)
def commit_field(
    body: CommitBody,
    element: FieldElement = Depends(get_field_element),
    coordinator: FieldMergeCoordinator = Depends(get_coordinator),
) -> list[ManagedFile]:
    """Mark the field's files permanent after the host entity was saved.

    Args:
        body: File ids stored in the field.

    Returns:
        The committed files.
    """

    return coordinator.commit(element, body.fids)
