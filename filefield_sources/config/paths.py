from __future__ import annotations

import os
from pathlib import Path

CONFIG_ENV_VAR = "FILEFIELD_SOURCES_CONFIG"


def get_repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def get_project_config_path() -> Path:
    override = os.getenv(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return get_repo_root() / "config.yaml"


def get_global_config_path() -> Path:
    return Path.home() / ".filefield-sources" / "config.yaml"
