from __future__ import annotations

import logging

from fastapi import FastAPI

from filefield_sources.api.error_handlers import install_error_handlers
from filefield_sources.api.routes_fields import router as fields_router
from filefield_sources.config.loader import load_config
from filefield_sources.sources.registry import all_sources


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    configure_logging(load_config().logging.level)
    app = FastAPI(
        title="FileField Sources",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    install_error_handlers(app)
    app.include_router(fields_router)
    for source in all_sources():
        router = source.routes()
        if router is not None:
            app.include_router(router)
    return app


app = create_app()
