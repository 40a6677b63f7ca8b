from __future__ import annotations

import base64
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

import httpx
import pytest
from _pytest.monkeypatch import MonkeyPatch

from filefield_sources.core.guard import ACCESS_DENIED_MESSAGE
from filefield_sources.core.resolver import FileResolver
from filefield_sources.models.entities import Actor, ManagedFile
from filefield_sources.models.enums import ErrorKind, FileStatus
from filefield_sources.models.form import FieldElement, FormState, WidgetInput
from filefield_sources.sources.attach import EMPTY_MESSAGE, AttachSource
from filefield_sources.sources.base import UNEXPECTED_FAILURE_MESSAGE, FileSource, SourceServices
from filefield_sources.sources.clipboard import ClipboardSource
from filefield_sources.sources.imce import ImceSource
from filefield_sources.sources.reference import HINT_TEXT, ReferenceSource
from filefield_sources.sources.remote import RemoteSource
from filefield_sources.utils.stream_wrappers import StreamWrappers

ACTOR = Actor(id=1)


def _apply(
    source: FileSource,
    element: FieldElement,
    services: SourceServices,
    raw: dict[str, str],
    fids: list[int] | None = None,
) -> tuple[WidgetInput, FormState]:
    widget_input = WidgetInput(fids=list(fids or []), sources={source.input_key: raw})
    state = FormState(actor=ACTOR)
    source.apply(element, widget_input, state, services)
    return widget_input, state


def _write_attach(wrappers: StreamWrappers, name: str, content: bytes) -> Path:
    directory = wrappers.realpath("public://file_attach")
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(content)
    return path


@pytest.mark.parametrize(
    "raw",
    [
        {"file_path": "/sites/default/files/attachments/a.txt"},
        {"file_path": "/sites/default/files/missing.txt"},
        {"file_path": ""},
    ],
)
def test_imce_always_clears_its_input(
    raw: dict[str, str],
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    add_file: Callable[..., ManagedFile],
) -> None:
    add_file("public://attachments/a.txt")
    widget_input, _state = _apply(ImceSource(), make_element(), services, raw)
    assert widget_input.sources["filefield_imce"] == {"file_path": ""}


def test_imce_attaches_existing_file_and_reports_missing(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    add_file: Callable[..., ManagedFile],
) -> None:
    file = add_file("public://attachments/a.txt")
    element = make_element()

    widget_input, state = _apply(
        ImceSource(), element, services, {"file_path": "/sites/default/files/attachments/a.txt"}
    )
    assert widget_input.fids == [file.id]
    assert state.errors == []

    widget_input, state = _apply(
        ImceSource(), element, services, {"file_path": "/sites/default/files/nope.txt"}
    )
    assert widget_input.fids == []
    assert [e.kind for e in state.errors] == [ErrorKind.not_found]
    assert state.errors[0].source == "imce"


def test_reference_no_marker_and_hint_text_are_noops(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
) -> None:
    for text in ("just typing", HINT_TEXT, "   "):
        widget_input, state = _apply(ReferenceSource(), make_element(), services, {"autocomplete": text})
        assert widget_input.fids == []
        assert state.errors == []
        assert widget_input.sources["filefield_reference"] == {"autocomplete": ""}


def test_reference_existing_file_is_exempt_from_size_limit(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    add_file: Callable[..., ManagedFile],
) -> None:
    file = add_file("public://old.txt", content=b"x" * 5000, owner_id=7)
    element = make_element(upload_validators={"max_filesize": 100, "file_extensions": "txt"})

    widget_input, state = _apply(
        ReferenceSource(), element, services, {"autocomplete": f"old.txt [fid:{file.id}]"}
    )
    assert state.errors == []
    assert widget_input.fids == [file.id]


def test_reference_access_denied_and_already_present(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    add_file: Callable[..., ManagedFile],
) -> None:
    private = add_file("private://secret.txt", owner_id=7)
    shared = add_file("public://shared.txt", owner_id=7)
    element = make_element()

    widget_input, state = _apply(
        ReferenceSource(), element, services, {"autocomplete": f"secret.txt [fid:{private.id}]"}
    )
    assert widget_input.fids == []
    assert [e.kind for e in state.errors] == [ErrorKind.access_denied]

    widget_input, state = _apply(
        ReferenceSource(),
        element,
        services,
        {"autocomplete": f"shared.txt [fid:{shared.id}]"},
        fids=[shared.id or 0],
    )
    assert widget_input.fids == [shared.id]
    assert state.errors == []


def test_reference_missing_file(make_element: Callable[..., FieldElement], services: SourceServices) -> None:
    widget_input, state = _apply(
        ReferenceSource(), make_element(), services, {"autocomplete": "gone.txt [fid:404]"}
    )
    assert widget_input.fids == []
    assert state.errors[0].kind == ErrorKind.not_found
    assert widget_input.sources["filefield_reference"]["autocomplete"] == ""


def test_attach_move_end_to_end(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    wrappers: StreamWrappers,
) -> None:
    origin = _write_attach(wrappers, "ten.txt", b"0123456789")
    element = make_element(
        cardinality=1,
        file_directory="",
        upload_validators={"max_filesize": 1024 * 1024, "file_extensions": "txt"},
    )
    source = AttachSource()
    assert source.options(element, services) == {"ten.txt": "ten.txt"}

    widget_input, state = _apply(source, element, services, {"filename": "ten.txt"})

    assert state.errors == []
    assert len(widget_input.fids) == 1
    assert widget_input.sources["filefield_attach"] == {"filename": ""}
    assert not origin.exists()
    assert wrappers.realpath("public://ten.txt").read_bytes() == b"0123456789"
    record = services.store.load(widget_input.fids[0])
    assert record is not None
    assert record.status == FileStatus.temporary
    assert record.owner_id == ACTOR.id

    fragment = source.render(element, widget_input.fids, services)
    assert fragment.access is False
    assert fragment.attributes["empty_text"] == EMPTY_MESSAGE


def test_attach_copy_keeps_origin(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    wrappers: StreamWrappers,
) -> None:
    origin = _write_attach(wrappers, "keep.txt", b"data")
    element = make_element(sources={"enabled": {"attach": True}, "source_attach": {"attach_mode": "copy"}})

    widget_input, state = _apply(AttachSource(), element, services, {"filename": "keep.txt"})
    assert state.errors == []
    assert origin.exists()
    assert wrappers.realpath("public://attachments/keep.txt").exists()

    # Resubmitting the same selection reuses the record instead of creating another.
    widget_input2, state2 = _apply(
        AttachSource(), element, services, {"filename": "keep.txt"}, fids=widget_input.fids
    )
    assert state2.errors == []
    assert widget_input2.fids == widget_input.fids
    assert len(services.store.list_all()) == 1


def test_attach_from_absolute_directory(
    tmp_path: Path,
    make_element: Callable[..., FieldElement],
    services: SourceServices,
) -> None:
    directory = tmp_path / "dropbox"
    directory.mkdir()
    (directory / "a.txt").write_text("a", encoding="utf-8")
    (directory / ".hidden").write_text("h", encoding="utf-8")
    element = make_element(
        sources={"enabled": {"attach": True}, "source_attach": {"path": str(directory), "absolute": True}}
    )
    assert AttachSource().options(element, services) == {"a.txt": "a.txt"}


def test_attach_rejects_paths_outside_directory(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    wrappers: StreamWrappers,
) -> None:
    _write_attach(wrappers, "ok.txt", b"ok")
    widget_input, state = _apply(AttachSource(), make_element(), services, {"filename": "../../secret.txt"})
    assert widget_input.fids == []
    assert state.errors[0].kind == ErrorKind.not_found


def test_attach_validation_failure_leaves_origin_untouched(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    wrappers: StreamWrappers,
) -> None:
    origin = _write_attach(wrappers, "tool.exe", b"MZ")
    widget_input, state = _apply(AttachSource(), make_element(), services, {"filename": "tool.exe"})
    assert widget_input.fids == []
    assert state.errors[0].kind == ErrorKind.validation
    assert state.errors[0].details == ["Only files with the following extensions are allowed: txt png."]
    assert origin.exists()
    assert services.store.list_all() == []


def test_clipboard_saves_pasted_data(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
) -> None:
    raw = {"filename": "pasted.txt", "contents": base64.b64encode(b"hello").decode()}
    widget_input, state = _apply(ClipboardSource(), make_element(), services, raw)
    assert state.errors == []
    assert len(widget_input.fids) == 1
    assert widget_input.sources["filefield_clipboard"] == {"contents": "", "filename": ""}
    record = services.store.load(widget_input.fids[0])
    assert record is not None
    assert record.uri == "public://attachments/pasted.txt"


def test_clipboard_bad_payload(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
) -> None:
    raw = {"filename": "x.txt", "contents": "%%%"}
    widget_input, state = _apply(ClipboardSource(), make_element(), services, raw)
    assert widget_input.fids == []
    assert state.errors[0].kind == ErrorKind.invalid_input
    assert widget_input.sources["filefield_clipboard"] == {"contents": "", "filename": ""}


def test_remote_invalid_url_is_cleared(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
) -> None:
    widget_input, state = _apply(RemoteSource(), make_element(), services, {"url": "file:///etc/passwd"})
    assert widget_input.fids == []
    assert state.errors[0].kind == ErrorKind.invalid_input
    assert widget_input.sources["filefield_remote"] == {"url": ""}


def test_settings_schema_and_render(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
) -> None:
    schema = ReferenceSource().settings_schema()
    assert "autocomplete" in schema["properties"]

    element = make_element(upload_validators={"file_extensions": "txt", "max_filesize": 1024})
    fragment = ReferenceSource().render(element, [], services)
    assert fragment.type == "autocomplete"
    assert fragment.name == "field_files[filefield_reference][autocomplete]"
    assert fragment.description == "Files must be less than 1 KB. Allowed file types: txt."
    assert fragment.attributes["autocomplete_url"] == "/file/reference/node/article/field_files"


def test_inaccessible_reference_reports_only_access_denied(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    add_file: Callable[..., ManagedFile],
) -> None:
    secret = add_file("private://secret/payroll-2026.pdf", content=b"x" * 5000, owner_id=7)
    element = make_element(upload_validators={"max_filesize": 100, "file_extensions": "txt"})

    widget_input, state = _apply(
        ReferenceSource(), element, services, {"autocomplete": f"payroll [fid:{secret.id}]"}
    )

    assert widget_input.fids == []
    assert [e.kind for e in state.errors] == [ErrorKind.access_denied]
    assert state.errors[0].message == ACCESS_DENIED_MESSAGE
    assert state.errors[0].details == []


def test_rejected_downloads_and_pastes_leave_no_staged_bytes(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    wrappers: StreamWrappers,
) -> None:
    transport = httpx.MockTransport(lambda r: httpx.Response(200, content=b"MZ"))
    remote_services = replace(
        services, resolver=FileResolver(services.store, wrappers, http_transport=transport)
    )
    element = make_element()

    _remote_input, remote_state = _apply(
        RemoteSource(), element, remote_services, {"url": "http://example.com/evil.exe"}
    )
    _clip_input, clip_state = _apply(
        ClipboardSource(),
        element,
        services,
        {"contents": base64.b64encode(b"MZ").decode(), "filename": "bad.exe"},
    )

    assert [e.kind for e in remote_state.errors] == [ErrorKind.validation]
    assert [e.kind for e in clip_state.errors] == [ErrorKind.validation]
    assert list((wrappers.directory("temporary") / "staging").iterdir()) == []
    assert services.store.list_all() == []


def test_direct_apply_on_full_field_keeps_the_origin(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    wrappers: StreamWrappers,
    add_file: Callable[..., ManagedFile],
) -> None:
    attached = add_file("public://attachments/first.txt")
    origin = _write_attach(wrappers, "second.txt", b"second")

    widget_input, state = _apply(
        AttachSource(),
        make_element(cardinality=1),
        services,
        {"filename": "second.txt"},
        fids=[attached.id or 0],
    )

    assert widget_input.fids == [attached.id]
    assert [e.kind for e in state.errors] == [ErrorKind.capacity_exceeded]
    assert origin.read_bytes() == b"second"
    assert [f.id for f in services.store.list_all()] == [attached.id]


def test_attach_filename_with_nul_byte_is_rejected(
    make_element: Callable[..., FieldElement],
    services: SourceServices,
    wrappers: StreamWrappers,
) -> None:
    _write_attach(wrappers, "ok.txt", b"ok")
    widget_input, state = _apply(AttachSource(), make_element(), services, {"filename": "ok\x00.txt"})
    assert widget_input.fids == []
    assert [e.kind for e in state.errors] == [ErrorKind.not_found]


def test_unexpected_failure_becomes_a_field_error(
    monkeypatch: MonkeyPatch,
    make_element: Callable[..., FieldElement],
    services: SourceServices,
) -> None:
    def _boom(*args: object, **kwargs: object) -> None:
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(services.resolver, "stage_bytes", _boom)
    raw = {"filename": "x.txt", "contents": base64.b64encode(b"x").decode()}

    widget_input, state = _apply(ClipboardSource(), make_element(), services, raw)

    assert widget_input.fids == []
    assert [e.kind for e in state.errors] == [ErrorKind.io_failure]
    assert state.errors[0].message == UNEXPECTED_FAILURE_MESSAGE
    assert widget_input.sources["filefield_clipboard"] == {"contents": "", "filename": ""}
