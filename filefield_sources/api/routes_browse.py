from __future__ import annotations

import html

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse

from filefield_sources.api.deps import get_actor, get_field_element, get_services, require_source
from filefield_sources.core.browser import ScanResult, ScanStrategy, list_directory, make_scan
from filefield_sources.models.entities import Actor
from filefield_sources.models.form import FieldElement
from filefield_sources.sources.base import SourceServices
from filefield_sources.utils.sizes import format_size
from filefield_sources.utils.tokens import build_token_data

router = APIRouter()


def _scan_for(element: FieldElement, actor: Actor, services: SourceServices) -> ScanStrategy:
    require_source(element, "imce")
    if not services.access.can_browse(actor):
        raise HTTPException(status_code=403, detail="access denied")
    data = build_token_data(
        entity_type=element.entity_type,
        bundle=element.bundle,
        field_name=element.field_name,
    )
    return make_scan(
        element.field.sources.source_imce.imce_mode,
        store=services.store,
        wrappers=services.wrappers,
        scheme=element.field.uri_scheme,
        field_key=element.key,
        field_uri=services.wrappers.upload_location(element.field, data),
    )


@router.get("/file/browse/{entity_type}/{bundle}/{field_name}/scan", response_model=ScanResult)
def scan(
    dir: str = Query(default="."),
    element: FieldElement = Depends(get_field_element),
    actor: Actor = Depends(get_actor),
    services: SourceServices = Depends(get_services),
) -> ScanResult:
    """List one browser directory.

    Args:
        dir: Directory relative to the field's scheme root.

    Returns:
        Files, subdirectories, total size and browser permissions.
    """

    return list_directory(dir, _scan_for(element, actor, services))


@router.get("/file/browse/{entity_type}/{bundle}/{field_name}", response_class=HTMLResponse)
def browse_page(
    dir: str = Query(default="."),
    element: FieldElement = Depends(get_field_element),
    actor: Actor = Depends(get_actor),
    services: SourceServices = Depends(get_services),
) -> HTMLResponse:
    """Render the file picker page for a field."""

    result = list_directory(dir, _scan_for(element, actor, services))
    return HTMLResponse(_render_page(element, result))


def _render_page(element: FieldElement, result: ScanResult) -> str:
    base = f"/file/browse/{element.entity_type}/{element.bundle}/{element.field_name}"
    rows: list[str] = []
    for name in result.subdirectories:
        target = name if result.directory == "." else f"{result.directory}/{name}"
        rows.append(
            f'<li class="dir"><a href="{html.escape(base)}?dir={html.escape(target)}">'
            f"{html.escape(name)}/</a></li>"
        )
    for name, file in sorted(result.files.items()):
        size = format_size(file.size)
        dims = f", {file.width}x{file.height}" if file.width and file.height else ""
        rows.append(
            f'<li class="file"><a href="#" data-path="{html.escape(file.url)}" '
            f'onclick="window.opener && window.opener.postMessage({{filePath: this.dataset.path}}, \'*\'); '
            f'window.close(); return false;">{html.escape(name)}</a> ({size}{dims})</li>'
        )
    if not rows:
        rows.append("<li>No files in this directory.</li>")
    title = html.escape(element.label)
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{title}</title></head><body>"
        f"<h1>{title}</h1><p>Directory: {html.escape(result.directory)} "
        f"({format_size(result.total_size)})</p>"
        f"<ul>{''.join(rows)}</ul></body></html>"
    )
