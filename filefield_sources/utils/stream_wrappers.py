from __future__ import annotations

import re
from pathlib import Path
from urllib.parse import quote, unquote

from filefield_sources.config.schema import FieldConfig, StorageSettings
from filefield_sources.utils.tokens import expand_tokens


class StreamWrappers:
    """Maps `scheme://target` URIs onto directories below the storage root."""

    def __init__(self, base_dir: Path, settings: StorageSettings) -> None:
        self._base_dir = base_dir
        self._settings = settings

    @property
    def default_scheme(self) -> str:
        return self._settings.default_scheme

    def directory(self, scheme: str) -> Path:
        override = self._settings.schemes.get(scheme)
        if override:
            return Path(override).expanduser()
        if scheme == "temporary":
            return self._base_dir / "tmp"
        return self._base_dir / scheme

    def realpath(self, uri: str) -> Path:
        scheme, target = split_uri(uri)
        root = self.directory(scheme).resolve()
        path = (root / target).resolve() if target else root
        if path != root and root not in path.parents:
            raise ValueError(f"URI escapes its scheme directory: {uri}")
        return path

    def uri_for(self, path: Path, scheme: str) -> str | None:
        root = self.directory(scheme).resolve()
        resolved = path.resolve()
        if resolved == root:
            return f"{scheme}://"
        if root not in resolved.parents:
            return None
        return f"{scheme}://{resolved.relative_to(root).as_posix()}"

    def public_prefix(self, scheme: str) -> str:
        base_path = self._settings.base_path
        if not base_path.endswith("/"):
            base_path += "/"
        directory_path = "system/files" if scheme == "private" else self._settings.public_path.strip("/")
        return f"{base_path}{directory_path}/"

    def external_path(self, uri: str) -> str:
        scheme, target = split_uri(uri)
        return self.public_prefix(scheme) + quote(target)

    def public_path_to_uri(self, path: str, scheme: str) -> str:
        prefix = re.escape(self.public_prefix(scheme))
        rewritten = re.sub(f"^{prefix}", f"{scheme}://", path, count=1)
        return unquote(rewritten)

    def upload_location(self, field: FieldConfig, data: dict[str, str] | None = None) -> str:
        destination = field.file_directory.strip("/")
        destination = expand_tokens(destination, data or {})
        return f"{field.uri_scheme}://{destination}"


def split_uri(uri: str) -> tuple[str, str]:
    if "://" not in uri:
        raise ValueError(f"Not a stream wrapper URI: {uri}")
    scheme, target = uri.split("://", 1)
    return scheme, target.strip("/")


def join_uri(directory_uri: str, name: str) -> str:
    if directory_uri.endswith("://"):
        return directory_uri + name
    return directory_uri.rstrip("/") + "/" + name
