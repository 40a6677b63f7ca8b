from __future__ import annotations

import html
import re

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from filefield_sources.api.deps import get_actor, get_field_element, get_services, require_source
from filefield_sources.config.schema import ReferenceSettings
from filefield_sources.models.entities import Actor, ManagedFile
from filefield_sources.models.form import FieldElement
from filefield_sources.sources.base import SourceServices

router = APIRouter()

MAX_MATCHES = 10
_TAG_RE = re.compile(r"<[^>]*>")
_SPACE_RE = re.compile(r"\s\s+")


class AutocompleteMatch(BaseModel):
    value: str
    label: str


def _clean_key(label: str, fid: int) -> str:
    key = f"{label} [fid:{fid}]"
    key = html.unescape(_TAG_RE.sub("", key)).strip().replace("\n", "")
    return _SPACE_RE.sub(" ", key)


@router.get(
    "/file/reference/{entity_type}/{bundle}/{field_name}",
    response_model=list[AutocompleteMatch],
)
def autocomplete(
    q: str | None = Query(default=None),
    element: FieldElement = Depends(get_field_element),
    actor: Actor = Depends(get_actor),
    services: SourceServices = Depends(get_services),
) -> list[AutocompleteMatch]:
    """Return files whose name matches the typed text.

    Args:
        q: Typed text.

    Returns:
        Up to ten `{value, label}` matches; `value` carries the `[fid:N]` marker.
    """

    require_source(element, "reference")
    if q is None:
        return []
    settings: ReferenceSettings = element.field.sources.source_reference

    def _usable(file: ManagedFile) -> bool:
        return services.access.can_download(actor, file)

    files = services.store.search(q, settings.autocomplete, limit=MAX_MATCHES, predicate=_usable)
    return [
        AutocompleteMatch(value=_clean_key(file.filename, file.id or 0), label=file.filename)
        for file in files
    ]
