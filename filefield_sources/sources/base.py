from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

from fastapi import APIRouter
from pydantic import BaseModel, Field

from filefield_sources.config.schema import ValidationRuleSet
from filefield_sources.core.access import AccessPolicy
from filefield_sources.core.guard import AdmissionGuard
from filefield_sources.core.resolver import FileResolver, ResolvedFile
from filefield_sources.core.validators import UploadValidator, describe
from filefield_sources.models.entities import Actor
from filefield_sources.models.enums import Admission, ErrorKind
from filefield_sources.models.errors import FileSourceError
from filefield_sources.models.form import FieldElement, FormState, WidgetInput
from filefield_sources.utils.file_store import FileStore
from filefield_sources.utils.stream_wrappers import StreamWrappers
from filefield_sources.utils.tokens import build_token_data

logger = logging.getLogger("filefield_sources.sources")

UNEXPECTED_FAILURE_MESSAGE = "The file could not be processed."


@dataclass(frozen=True)
class SourceServices:
    store: FileStore
    wrappers: StreamWrappers
    resolver: FileResolver
    validator: UploadValidator
    guard: AdmissionGuard
    access: AccessPolicy


class WidgetFragment(BaseModel):
    source: str
    label: str
    weight: float
    type: str
    name: str
    description: str = ""
    access: bool = True
    options: dict[str, str] = Field(default_factory=dict)
    attributes: dict[str, Any] = Field(default_factory=dict)


class FileSource(ABC):
    """One way of populating a file field.

    Subclasses only know how to turn their raw input into a candidate file;
    validation, admission and clearing of the raw input happen here.
    """

    id: ClassVar[str]
    name: ClassVar[str]
    label: ClassVar[str]
    description: ClassVar[str]
    weight: ClassVar[float] = 0
    input_fields: ClassVar[tuple[str, ...]]
    settings_model: ClassVar[type[BaseModel]]

    @property
    def input_key(self) -> str:
        return f"filefield_{self.id}"

    def extract_raw_input(self, widget_input: WidgetInput) -> dict[str, Any]:
        raw = widget_input.sources.get(self.input_key) or {}
        return {k: raw.get(k, "") for k in self.input_fields}

    def has_input(self, widget_input: WidgetInput) -> bool:
        raw = self.extract_raw_input(widget_input)
        value = raw.get(self.input_fields[0])
        return isinstance(value, str) and value.strip() != ""

    def clear(self, widget_input: WidgetInput) -> None:
        widget_input.sources[self.input_key] = {k: "" for k in self.input_fields}

    def apply(
        self,
        element: FieldElement,
        widget_input: WidgetInput,
        state: FormState,
        services: SourceServices,
    ) -> None:
        raw = self.extract_raw_input(widget_input)
        try:
            if not self.has_input(widget_input):
                return
            self._acquire(element, raw, widget_input, state, services)
        except FileSourceError as e:
            logger.warning("Source %s rejected input for %s: %s", self.id, element.key, e.message)
            state.set_error(self.id, e.kind, e.message, e.details)
        except Exception:
            logger.exception("Source %s failed on input for %s", self.id, element.key)
            state.set_error(self.id, ErrorKind.io_failure, UNEXPECTED_FAILURE_MESSAGE)
        finally:
            self.clear(widget_input)

    def _acquire(
        self,
        element: FieldElement,
        raw: dict[str, Any],
        widget_input: WidgetInput,
        state: FormState,
        services: SourceServices,
    ) -> None:
        candidate = self.resolve(element, raw, state.actor, services)
        if candidate is None:
            logger.debug("Source %s received no selection for %s", self.id, element.key)
            return
        if candidate.is_new:
            candidate = self._commit_new(element, candidate, widget_input, state, services)
            # A reused record may already be in the list.
            admitted = services.guard.admit(
                candidate.file, widget_input.fids, state.actor, check_access=False
            ) == Admission.admitted
        else:
            admitted = services.guard.enforce(
                candidate.file,
                widget_input.fids,
                state.actor,
                cardinality=element.cardinality,
                label=element.label,
            )
            if admitted:
                services.validator.check(candidate, self.validation_rules(element))
        if admitted and candidate.file.id is not None:
            widget_input.fids.append(candidate.file.id)
            logger.info("Source %s attached file %s to %s", self.id, candidate.file.id, element.key)

    def _commit_new(
        self,
        element: FieldElement,
        candidate: ResolvedFile,
        widget_input: WidgetInput,
        state: FormState,
        services: SourceServices,
    ) -> ResolvedFile:
        try:
            services.validator.check(candidate, self.validation_rules(element))
            services.guard.enforce(
                candidate.file,
                widget_input.fids,
                state.actor,
                cardinality=element.cardinality,
                label=element.label,
                check_access=False,
            )
            return services.resolver.commit(
                candidate, self.upload_location(element, state.actor, services)
            )
        except Exception:
            services.resolver.abandon(candidate)
            raise

    @abstractmethod
    def resolve(
        self,
        element: FieldElement,
        raw: dict[str, Any],
        actor: Actor,
        services: SourceServices,
    ) -> ResolvedFile | None:
        """Turn raw input into a candidate; None means nothing was selected."""

    def validation_rules(self, element: FieldElement) -> ValidationRuleSet:
        return element.upload_validators

    def upload_location(self, element: FieldElement, actor: Actor, services: SourceServices) -> str:
        data = build_token_data(
            entity_type=element.entity_type,
            bundle=element.bundle,
            field_name=element.field_name,
        )
        data["user:id"] = str(actor.id)
        return services.wrappers.upload_location(element.field, data)

    def settings(self, element: FieldElement) -> BaseModel:
        return getattr(element.field.sources, f"source_{self.id}")

    def settings_schema(self) -> dict[str, Any]:
        return self.settings_model.model_json_schema()

    def render(
        self,
        element: FieldElement,
        fids: list[int],
        services: SourceServices,
    ) -> WidgetFragment:
        return WidgetFragment(
            source=self.id,
            label=self.label,
            weight=self.weight,
            type="textfield",
            name=f"{element.field_name}[{self.input_key}][{self.input_fields[0]}]",
            description=describe(element.upload_validators),
            access=not element.is_full(fids),
        )

    def routes(self) -> APIRouter | None:
        return None
