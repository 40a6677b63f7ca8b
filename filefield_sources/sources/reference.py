from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from filefield_sources.config.schema import ReferenceSettings
from filefield_sources.core.resolver import ResolvedFile, extract_reference_id
from filefield_sources.models.entities import Actor
from filefield_sources.models.form import FieldElement, WidgetInput
from filefield_sources.sources.base import FileSource, SourceServices, WidgetFragment

HINT_TEXT = "example.png [fid:123]"


class ReferenceSource(FileSource):
    """Reuse an existing file picked through the autocomplete endpoint."""

    id = "reference"
    name = "Autocomplete reference textfield"
    label = "Reference existing"
    description = "Reuse an existing file by entering its file name."
    weight = 1
    input_fields = ("autocomplete",)
    settings_model = ReferenceSettings

    def has_input(self, widget_input: WidgetInput) -> bool:
        text = str(self.extract_raw_input(widget_input)["autocomplete"]).strip()
        return text != HINT_TEXT and extract_reference_id(text) is not None

    def resolve(
        self,
        element: FieldElement,
        raw: dict[str, Any],
        actor: Actor,
        services: SourceServices,
    ) -> ResolvedFile | None:
        text = str(raw["autocomplete"]).strip()
        if text == HINT_TEXT:
            return None
        fid = extract_reference_id(text)
        if fid is None:
            return None
        return services.resolver.resolve_reference(fid)

    def render(
        self,
        element: FieldElement,
        fids: list[int],
        services: SourceServices,
    ) -> WidgetFragment:
        fragment = super().render(element, fids, services)
        fragment.type = "autocomplete"
        fragment.attributes = {
            "autocomplete_url": f"/file/reference/{element.entity_type}/{element.bundle}/{element.field_name}",
            "placeholder": HINT_TEXT,
            "button": "Select",
        }
        return fragment

    def routes(self) -> APIRouter | None:
        from filefield_sources.api.routes_reference import router

        return router
