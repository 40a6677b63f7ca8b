from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from filefield_sources.config.schema import ImceSettings
from filefield_sources.core.resolver import ResolvedFile
from filefield_sources.models.entities import Actor
from filefield_sources.models.form import FieldElement
from filefield_sources.sources.base import FileSource, SourceServices, WidgetFragment


class ImceSource(FileSource):
    """Select a file already in managed storage from the file browser."""

    id = "imce"
    name = "IMCE file browser"
    label = "File browser"
    description = "Select a file to use from a file browser."
    weight = -1
    input_fields = ("file_path",)
    settings_model = ImceSettings

    def resolve(
        self,
        element: FieldElement,
        raw: dict[str, Any],
        actor: Actor,
        services: SourceServices,
    ) -> ResolvedFile | None:
        return services.resolver.resolve_browse_path(
            str(raw["file_path"]).strip(), element.field.uri_scheme
        )

    def render(
        self,
        element: FieldElement,
        fids: list[int],
        services: SourceServices,
    ) -> WidgetFragment:
        fragment = super().render(element, fids, services)
        fragment.type = "browser"
        fragment.attributes = {
            "browse_url": f"/file/browse/{element.entity_type}/{element.bundle}/{element.field_name}",
            "empty_text": "No file selected",
            "button": "Select",
        }
        return fragment

    def routes(self) -> APIRouter | None:
        from filefield_sources.api.routes_browse import router

        return router
