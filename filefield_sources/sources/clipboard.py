from __future__ import annotations

from typing import Any

from filefield_sources.config.schema import ClipboardSettings
from filefield_sources.core.resolver import ResolvedFile
from filefield_sources.models.entities import Actor
from filefield_sources.models.form import FieldElement
from filefield_sources.sources.base import FileSource, SourceServices, WidgetFragment


class ClipboardSource(FileSource):
    """Save pasted data as a new file."""

    id = "clipboard"
    name = "Paste from clipboard"
    label = "Clipboard"
    description = "Allow users to paste a file directly from the clipboard."
    weight = 3
    input_fields = ("contents", "filename")
    settings_model = ClipboardSettings

    def resolve(
        self,
        element: FieldElement,
        raw: dict[str, Any],
        actor: Actor,
        services: SourceServices,
    ) -> ResolvedFile | None:
        return services.resolver.stage_bytes(
            str(raw["contents"]),
            str(raw["filename"] or ""),
            self.upload_location(element, actor, services),
            actor,
        )

    def render(
        self,
        element: FieldElement,
        fids: list[int],
        services: SourceServices,
    ) -> WidgetFragment:
        fragment = super().render(element, fids, services)
        fragment.type = "clipboard"
        fragment.attributes = {"filename_placeholder": "image.png", "button": "Upload"}
        return fragment
