from __future__ import annotations

from pathlib import Path

from filefield_sources.config.schema import StorageSettings


def get_datas_dir() -> Path:
    return Path(__file__).resolve().parents[2] / "datas"


def get_storage_dir(settings: StorageSettings) -> Path:
    if settings.base_dir:
        return Path(settings.base_dir).expanduser()
    return get_datas_dir()
