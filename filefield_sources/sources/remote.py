from __future__ import annotations

from typing import Any, cast

from filefield_sources.config.schema import RemoteSettings
from filefield_sources.core.resolver import ResolvedFile
from filefield_sources.models.entities import Actor
from filefield_sources.models.form import FieldElement
from filefield_sources.sources.base import FileSource, SourceServices, WidgetFragment


class RemoteSource(FileSource):
    """Download a file from an http(s) URL into the field's directory."""

    id = "remote"
    name = "Remote URL textfield"
    label = "Remote URL"
    description = "Download a file from a remote server."
    weight = 2
    input_fields = ("url",)
    settings_model = RemoteSettings

    def resolve(
        self,
        element: FieldElement,
        raw: dict[str, Any],
        actor: Actor,
        services: SourceServices,
    ) -> ResolvedFile | None:
        settings = cast(RemoteSettings, self.settings(element))
        return services.resolver.fetch_remote(
            str(raw["url"]).strip(),
            self.upload_location(element, actor, services),
            actor,
            settings,
            max_filesize=element.upload_validators.max_filesize,
        )

    def render(
        self,
        element: FieldElement,
        fids: list[int],
        services: SourceServices,
    ) -> WidgetFragment:
        fragment = super().render(element, fids, services)
        fragment.type = "url"
        fragment.attributes = {"placeholder": "http://example.com/file.txt", "button": "Transfer"}
        return fragment
