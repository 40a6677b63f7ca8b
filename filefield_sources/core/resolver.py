from __future__ import annotations

import base64
import binascii
import filecmp
import logging
import mimetypes
import re
import shutil
import uuid
from collections.abc import Iterator
from dataclasses import dataclass, replace
from datetime import datetime
from email.message import Message
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

import httpx

from filefield_sources.config.schema import RemoteSettings
from filefield_sources.models.entities import Actor, ManagedFile
from filefield_sources.models.enums import AttachMode, FileStatus
from filefield_sources.models.errors import (
    FileSourceError,
    InvalidInputError,
    IOFailureError,
    NotFoundError,
    UploadValidationError,
)
from filefield_sources.utils.file_store import FileStore
from filefield_sources.utils.sizes import size_message
from filefield_sources.utils.stream_wrappers import StreamWrappers, join_uri

logger = logging.getLogger("filefield_sources.resolver")

REFERENCE_ID_RE = re.compile(r"\[f?id:(\d+)\]")
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.S)
_MAX_RENAME_ATTEMPTS = 1000


@dataclass(frozen=True)
class ResolvedFile:
    """A candidate file plus where its bytes currently live.

    `is_new` marks bytes that are not yet part of managed storage; only those
    are subject to the size rule and still have to be committed. `staged`
    bytes were written to the temporary area by the resolver itself.
    """

    file: ManagedFile
    is_new: bool
    path: Path
    transfer: AttachMode = AttachMode.move
    staged: bool = False


def extract_reference_id(text: str) -> int | None:
    matches = REFERENCE_ID_RE.findall(text)
    if not matches:
        return None
    return int(matches[-1])


def sanitize_filename(name: str) -> str:
    cleaned = PurePosixPath(name.replace("\\", "/")).name.strip()
    cleaned = re.sub(r"[\x00-\x1f]", "", cleaned)
    return cleaned


class FileResolver:
    def __init__(
        self,
        store: FileStore,
        wrappers: StreamWrappers,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._store = store
        self._wrappers = wrappers
        self._http_transport = http_transport

    def resolve_browse_path(self, file_path: str, scheme: str) -> ResolvedFile:
        uri = self._wrappers.public_path_to_uri(file_path, scheme)
        file = self._store.find_by_uri(uri)
        if file is None:
            raise NotFoundError(
                "The selected file could not be used because the file does not exist in the database."
            )
        return ResolvedFile(file=file, is_new=False, path=self._wrappers.realpath(file.uri))

    def resolve_reference(self, fid: int) -> ResolvedFile:
        file = self._store.load(fid)
        if file is None:
            raise NotFoundError(
                "The referenced file could not be used because the file does not exist in the database."
            )
        return ResolvedFile(file=file, is_new=False, path=self._wrappers.realpath(file.uri))

    def resolve_local(
        self,
        origin: Path,
        directory_uri: str,
        actor: Actor,
        mode: AttachMode,
    ) -> ResolvedFile:
        filename = sanitize_filename(origin.name)
        if not origin.is_file():
            # Already moved by an earlier submission of the same input.
            existing = self._store.find_by_uri(join_uri(directory_uri, filename))
            if (
                existing is not None
                and mode == AttachMode.move
                and existing.owner_id == actor.id
            ):
                return ResolvedFile(
                    file=existing, is_new=False, path=self._wrappers.realpath(existing.uri)
                )
            raise IOFailureError(f"The selected file {filename} could not be found.")
        try:
            size = origin.stat().st_size
        except OSError as e:
            raise IOFailureError(f"The selected file {filename} could not be read.") from e
        file = self._candidate(filename, size, directory_uri, actor)
        return ResolvedFile(file=file, is_new=True, path=origin, transfer=mode)

    def fetch_remote(
        self,
        url: str,
        directory_uri: str,
        actor: Actor,
        settings: RemoteSettings,
        max_filesize: int | None = None,
    ) -> ResolvedFile:
        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise InvalidInputError("Invalid remote file URL.") from e
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidInputError("Invalid remote file URL.")
        staging = self._staging_path()
        filename = ""
        mime_type: str | None = None
        size = 0
        try:
            with httpx.Client(
                timeout=settings.timeout,
                follow_redirects=True,
                max_redirects=settings.max_redirects,
                transport=self._http_transport,
            ) as client:
                with client.stream("GET", url) as response:
                    response.raise_for_status()
                    length = response.headers.get("content-length")
                    if max_filesize and length and length.isdigit() and int(length) > max_filesize:
                        raise UploadValidationError(
                            "The remote file could not be transferred.",
                            [size_message(int(length), max_filesize)],
                        )
                    filename = _filename_from_response(response, parsed.path)
                    content_type = response.headers.get("content-type")
                    if content_type:
                        mime_type = content_type.split(";", 1)[0].strip() or None
                    with open(staging, "wb") as f:
                        for chunk in response.iter_bytes():
                            size += len(chunk)
                            if max_filesize and size > max_filesize:
                                raise UploadValidationError(
                                    "The remote file could not be transferred.",
                                    [size_message(size, max_filesize)],
                                )
                            f.write(chunk)
        except FileSourceError:
            staging.unlink(missing_ok=True)
            raise
        except (httpx.InvalidURL, ValueError) as e:
            staging.unlink(missing_ok=True)
            raise InvalidInputError("Invalid remote file URL.") from e
        except (httpx.HTTPError, OSError) as e:
            staging.unlink(missing_ok=True)
            logger.warning("Remote fetch of %s failed: %s", url, e)
            raise IOFailureError(f"The remote file could not be transferred: {e}") from e
        file = self._candidate(filename, size, directory_uri, actor, mime_type)
        return ResolvedFile(file=file, is_new=True, path=staging, staged=True)

    def stage_bytes(
        self,
        contents: str,
        filename: str,
        directory_uri: str,
        actor: Actor,
    ) -> ResolvedFile:
        match = _DATA_URL_RE.match(contents.strip())
        mime_type = None
        payload = contents.strip()
        if match:
            mime_type = match.group("mime")
            payload = match.group("data")
            if not match.group("b64"):
                data = unquote(payload).encode("utf-8")
                return self._write_staged(data, filename, mime_type, directory_uri, actor)
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidInputError("The pasted data could not be decoded.") from e
        return self._write_staged(data, filename, mime_type, directory_uri, actor)

    def commit(self, resolved: ResolvedFile, directory_uri: str) -> ResolvedFile:
        """Place new bytes into managed storage and create their record.

        Reuses a record of the same owner holding byte-identical content under
        the same name. On failure nothing is left behind at the destination.
        """
        if not resolved.is_new:
            return resolved
        filename = resolved.file.filename
        try:
            self._wrappers.realpath(directory_uri).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailureError(f"The destination directory {directory_uri} is not writable.") from e

        for uri in self._candidate_uris(directory_uri, filename):
            dest = self._wrappers.realpath(uri)
            existing = self._store.find_by_uri(uri)
            if existing is not None:
                if (
                    existing.owner_id == resolved.file.owner_id
                    and dest.is_file()
                    and filecmp.cmp(resolved.path, dest, shallow=False)
                ):
                    self._release(resolved)
                    logger.info("Reusing managed file %s for identical %s", existing.id, filename)
                    return ResolvedFile(file=existing, is_new=False, path=dest)
                continue
            if dest.exists():
                continue
            try:
                shutil.copy2(resolved.path, dest)
            except OSError as e:
                dest.unlink(missing_ok=True)
                raise IOFailureError(f"The file {filename} could not be copied.") from e
            try:
                record = self._store.create(
                    resolved.file.model_copy(
                        update={"uri": uri, "filesize": dest.stat().st_size, "timestamp": datetime.utcnow()}
                    )
                )
            except FileExistsError:
                dest.unlink(missing_ok=True)
                continue
            except Exception:
                dest.unlink(missing_ok=True)
                raise
            self._release(resolved)
            return replace(resolved, file=record, path=dest, staged=False)
        raise IOFailureError(f"No free file name for {filename} in {directory_uri}.")

    def abandon(self, resolved: ResolvedFile) -> None:
        """Remove staged bytes of a candidate that will not be committed."""
        if resolved.is_new and resolved.staged:
            resolved.path.unlink(missing_ok=True)

    def _release(self, resolved: ResolvedFile) -> None:
        if resolved.transfer == AttachMode.move:
            try:
                resolved.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Could not remove %s after transfer: %s", resolved.path, e)

    def _write_staged(
        self,
        data: bytes,
        filename: str,
        mime_type: str | None,
        directory_uri: str,
        actor: Actor,
    ) -> ResolvedFile:
        if not data:
            raise InvalidInputError("The pasted data is empty.")
        name = sanitize_filename(filename) or "clipboard"
        if not PurePosixPath(name).suffix and mime_type:
            name += mimetypes.guess_extension(mime_type) or ""
        staging = self._staging_path()
        try:
            staging.write_bytes(data)
        except OSError as e:
            staging.unlink(missing_ok=True)
            raise IOFailureError("The pasted data could not be saved.") from e
        file = self._candidate(name, len(data), directory_uri, actor, mime_type)
        return ResolvedFile(file=file, is_new=True, path=staging, staged=True)

    def _candidate(
        self,
        filename: str,
        size: int,
        directory_uri: str,
        actor: Actor,
        mime_type: str | None = None,
    ) -> ManagedFile:
        guessed, _ = mimetypes.guess_type(filename)
        return ManagedFile(
            uri=join_uri(directory_uri, filename),
            filename=filename,
            filesize=size,
            mime_type=mime_type or guessed or "application/octet-stream",
            status=FileStatus.temporary,
            owner_id=actor.id,
        )

    def _staging_path(self) -> Path:
        staging_dir = self._wrappers.directory("temporary") / "staging"
        staging_dir.mkdir(parents=True, exist_ok=True)
        return staging_dir / uuid.uuid4().hex

    def _candidate_uris(self, directory_uri: str, filename: str) -> Iterator[str]:
        yield join_uri(directory_uri, filename)
        path = PurePosixPath(filename)
        suffix = "".join(path.suffixes[-1:])
        stem = filename[: len(filename) - len(suffix)] if suffix else filename
        for i in range(_MAX_RENAME_ATTEMPTS):
            yield join_uri(directory_uri, f"{stem}_{i}{suffix}")


def _filename_from_response(response: httpx.Response, url_path: str) -> str:
    disposition = response.headers.get("content-disposition")
    if disposition:
        msg = Message()
        msg["content-disposition"] = disposition
        name = msg.get_filename()
        if name:
            cleaned = sanitize_filename(name)
            if cleaned:
                return cleaned
    name = sanitize_filename(unquote(url_path))
    return name or "index.html"
