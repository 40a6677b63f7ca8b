from __future__ import annotations

from pathlib import Path
from typing import Any, cast

from filefield_sources.config.schema import AttachSettings
from filefield_sources.core.resolver import ResolvedFile
from filefield_sources.models.entities import Actor
from filefield_sources.models.errors import NotFoundError
from filefield_sources.models.form import FieldElement
from filefield_sources.sources.base import FileSource, SourceServices, WidgetFragment

EMPTY_MESSAGE = "There currently are no files to attach."


class AttachSource(FileSource):
    """Attach a file that was placed in a server-side directory.

    `attach_mode` decides whether the origin is moved into the field's
    directory or left in place after copying.
    """

    id = "attach"
    name = "File attach from server directory"
    label = "File attach"
    description = "Select a file from a directory on the server."
    weight = 3
    input_fields = ("filename",)
    settings_model = AttachSettings

    def attach_directory(self, element: FieldElement, services: SourceServices) -> Path:
        settings = self._attach_settings(element)
        if settings.absolute:
            return Path(settings.path).expanduser()
        scheme = services.wrappers.default_scheme
        return services.wrappers.realpath(f"{scheme}://{settings.path.strip('/')}")

    def options(self, element: FieldElement, services: SourceServices) -> dict[str, str]:
        directory = self.attach_directory(element, services)
        if not directory.is_dir():
            return {}
        out: dict[str, str] = {}
        for path in sorted(directory.rglob("*")):
            relative = path.relative_to(directory)
            if any(part.startswith(".") for part in relative.parts) or not path.is_file():
                continue
            out[relative.as_posix()] = relative.as_posix()
        return out

    def resolve(
        self,
        element: FieldElement,
        raw: dict[str, Any],
        actor: Actor,
        services: SourceServices,
    ) -> ResolvedFile | None:
        directory = self.attach_directory(element, services).resolve()
        selection = str(raw["filename"]).strip()
        origin: Path | None = None
        if "\x00" not in selection:
            try:
                origin = (directory / selection).resolve()
            except (OSError, ValueError):
                pass
        if origin is None or directory not in origin.parents:
            raise NotFoundError("The selected file is not available for attaching.")
        return services.resolver.resolve_local(
            origin,
            self.upload_location(element, actor, services),
            actor,
            self._attach_settings(element).attach_mode,
        )

    def render(
        self,
        element: FieldElement,
        fids: list[int],
        services: SourceServices,
    ) -> WidgetFragment:
        fragment = super().render(element, fids, services)
        fragment.type = "select"
        fragment.options = self.options(element, services)
        fragment.attributes = {"button": "Attach"}
        if not fragment.options:
            fragment.attributes["empty_text"] = EMPTY_MESSAGE
        return fragment

    def _attach_settings(self, element: FieldElement) -> AttachSettings:
        return cast(AttachSettings, self.settings(element))
