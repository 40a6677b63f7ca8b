from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from filefield_sources.config.schema import FieldConfig, ValidationRuleSet
from filefield_sources.models.entities import Actor
from filefield_sources.models.enums import ErrorKind


class FieldError(BaseModel):
    source: str
    kind: ErrorKind
    message: str
    details: list[str] = Field(default_factory=list)


class WidgetInput(BaseModel):
    fids: list[int] = Field(default_factory=list)
    sources: dict[str, dict[str, Any]] = Field(default_factory=dict)


class WidgetResult(BaseModel):
    fids: list[int]
    sources: dict[str, dict[str, Any]]
    errors: list[FieldError] = Field(default_factory=list)


@dataclass
class FieldElement:
    entity_type: str
    bundle: str
    field_name: str
    field: FieldConfig

    @property
    def key(self) -> str:
        return f"{self.entity_type}.{self.bundle}.{self.field_name}"

    @property
    def label(self) -> str:
        return self.field.label or self.field_name

    @property
    def cardinality(self) -> int:
        return self.field.cardinality

    @property
    def upload_validators(self) -> ValidationRuleSet:
        return self.field.upload_validators

    def is_full(self, fids: list[int]) -> bool:
        return self.cardinality > 0 and len(fids) >= self.cardinality


@dataclass
class FormState:
    actor: Actor
    errors: list[FieldError] = field(default_factory=list)

    def set_error(
        self,
        source: str,
        kind: ErrorKind,
        message: str,
        details: list[str] | None = None,
    ) -> None:
        self.errors.append(
            FieldError(source=source, kind=kind, message=message, details=list(details or []))
        )

    def has_errors(self) -> bool:
        return bool(self.errors)
