from __future__ import annotations

from pydantic import BaseModel, Field

from filefield_sources.models.enums import AttachMode, BrowseMode, MatchMode


class StorageSettings(BaseModel):
    base_dir: str | None = None
    base_path: str = "/"
    public_path: str = "sites/default/files"
    default_scheme: str = "public"
    schemes: dict[str, str] = Field(default_factory=dict)


class ValidationRuleSet(BaseModel):
    max_filesize: int | None = None
    file_extensions: str | None = "txt"
    min_resolution: str | None = None
    max_resolution: str | None = None
    max_filename_length: int = 240


class ImceSettings(BaseModel):
    imce_mode: BrowseMode = BrowseMode.restricted


class ReferenceSettings(BaseModel):
    autocomplete: MatchMode = MatchMode.starts_with


class AttachSettings(BaseModel):
    path: str = "file_attach"
    absolute: bool = False
    attach_mode: AttachMode = AttachMode.move


class RemoteSettings(BaseModel):
    timeout: float = 30.0
    max_redirects: int = 5


class ClipboardSettings(BaseModel):
    pass


class FieldSourcesConfig(BaseModel):
    enabled: dict[str, bool] = Field(default_factory=dict)
    source_imce: ImceSettings = Field(default_factory=ImceSettings)
    source_reference: ReferenceSettings = Field(default_factory=ReferenceSettings)
    source_attach: AttachSettings = Field(default_factory=AttachSettings)
    source_remote: RemoteSettings = Field(default_factory=RemoteSettings)
    source_clipboard: ClipboardSettings = Field(default_factory=ClipboardSettings)

    def is_enabled(self, source_id: str) -> bool:
        return bool(self.enabled.get(source_id))


class FieldConfig(BaseModel):
    label: str = ""
    uri_scheme: str = "public"
    file_directory: str = ""
    cardinality: int = 1
    upload_validators: ValidationRuleSet = Field(default_factory=ValidationRuleSet)
    sources: FieldSourcesConfig = Field(default_factory=FieldSourcesConfig)


class LoggingSettings(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    storage: StorageSettings = Field(default_factory=StorageSettings)
    fields: dict[str, FieldConfig] = Field(default_factory=dict)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
