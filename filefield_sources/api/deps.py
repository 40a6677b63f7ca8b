from __future__ import annotations

from fastapi import Depends, Header, HTTPException

from filefield_sources.config.loader import FieldConfigStore, load_config
from filefield_sources.config.schema import AppConfig
from filefield_sources.core.access import AccessPolicy
from filefield_sources.core.coordinator import FieldMergeCoordinator
from filefield_sources.core.guard import AdmissionGuard
from filefield_sources.core.resolver import FileResolver
from filefield_sources.core.validators import UploadValidator
from filefield_sources.models.entities import Actor
from filefield_sources.models.form import FieldElement
from filefield_sources.sources.base import SourceServices
from filefield_sources.utils.file_store import FileStore
from filefield_sources.utils.storage_paths import get_storage_dir
from filefield_sources.utils.stream_wrappers import StreamWrappers

_access = AccessPolicy()
_validator = UploadValidator()


def get_config() -> AppConfig:
    return load_config()


def get_field_config_store(config: AppConfig = Depends(get_config)) -> FieldConfigStore:
    return FieldConfigStore(config)


def get_stream_wrappers(config: AppConfig = Depends(get_config)) -> StreamWrappers:
    return StreamWrappers(base_dir=get_storage_dir(config.storage), settings=config.storage)


def get_file_store(config: AppConfig = Depends(get_config)) -> FileStore:
    return FileStore(base_dir=get_storage_dir(config.storage))


def get_access_policy() -> AccessPolicy:
    return _access


def get_services(
    store: FileStore = Depends(get_file_store),
    wrappers: StreamWrappers = Depends(get_stream_wrappers),
    access: AccessPolicy = Depends(get_access_policy),
) -> SourceServices:
    return SourceServices(
        store=store,
        wrappers=wrappers,
        resolver=FileResolver(store, wrappers),
        validator=_validator,
        guard=AdmissionGuard(access),
        access=access,
    )


def get_coordinator(services: SourceServices = Depends(get_services)) -> FieldMergeCoordinator:
    return FieldMergeCoordinator(services)


def get_actor(
    x_actor_id: int = Header(default=0),
    x_actor_permissions: str = Header(default=""),
) -> Actor:
    permissions = {p.strip() for p in x_actor_permissions.split(",") if p.strip()}
    return Actor(id=x_actor_id, permissions=permissions)


def get_field_element(
    entity_type: str,
    bundle: str,
    field_name: str,
    fields: FieldConfigStore = Depends(get_field_config_store),
) -> FieldElement:
    field = fields.get_field_settings(entity_type, bundle, field_name)
    if field is None:
        raise HTTPException(status_code=404, detail="field not found")
    return FieldElement(entity_type=entity_type, bundle=bundle, field_name=field_name, field=field)


def require_source(element: FieldElement, source_id: str) -> None:
    if not element.field.sources.is_enabled(source_id):
        raise HTTPException(status_code=404, detail=f"source {source_id} is not enabled for this field")
