from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.requests import Request

from filefield_sources.models.enums import ErrorKind
from filefield_sources.models.errors import FileSourceError

logger = logging.getLogger("filefield_sources.api")

_STATUS_BY_KIND = {
    ErrorKind.not_found: 404,
    ErrorKind.access_denied: 403,
    ErrorKind.capacity_exceeded: 409,
    ErrorKind.io_failure: 502,
}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(FileSourceError)
    async def _file_source_error_handler(_request: Request, exc: FileSourceError) -> JSONResponse:
        status_code = _STATUS_BY_KIND.get(exc.kind, 400)
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.message, "kind": exc.kind.value, "details": exc.details},
        )

    @app.exception_handler(ValueError)
    async def _value_error_handler(_request: Request, exc: ValueError) -> JSONResponse:
        logger.debug("Rejected request: %s", exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})
