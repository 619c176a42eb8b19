"""
FastAPI entrypoint for the Document Generation service.

Startup order (fail fast):
    1. Load and validate configuration.
    2. Preload every template source. Any failure aborts startup.
    3. Launch the shared PDF engine.

Shutdown always closes the PDF engine, including when startup failed
after the engine was launched.
"""

import logging
import sys
from contextlib import asynccontextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from docgen.app.api.documents import document_error_handler
from docgen.app.api.documents import router as documents_router
from docgen.app.config import Settings, get_settings
from docgen.app.errors import DocumentError
from docgen.app.registry.registry import TEMPLATE_CATALOG, TemplateCatalog
from docgen.app.services.documents import DocumentService
from docgen.app.services.pdf_engine import PdfEngine
from docgen.app.services.template_cache import (
    FileSystemTemplateLoader,
    TemplateCache,
    TemplateSourceLoader,
)

logger = logging.getLogger("docgen.main")


def get_app_version() -> str:
    try:
        return version("docgen")
    except PackageNotFoundError:
        return "0.1.0"


def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stream handler on the root logger.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )
    root.addHandler(handler)
    root.setLevel(level)


def create_app(
    settings: Optional[Settings] = None,
    *,
    catalog: TemplateCatalog = TEMPLATE_CATALOG,
    template_loader: Optional[TemplateSourceLoader] = None,
    pdf_engine: Optional[PdfEngine] = None,
) -> FastAPI:
    """
    Application factory.

    Collaborators may be injected for tests; by default they are built
    from configuration.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "docgen_startup_begin",
            extra={"service": "docgen", "version": get_app_version()},
        )

        loader = template_loader or FileSystemTemplateLoader(settings.template_dir)
        template_cache = TemplateCache(
            catalog,
            loader,
            enabled=settings.template_cache_enabled,
        )
        engine = pdf_engine or PdfEngine(
            timeout_ms=settings.pdf_timeout_ms,
            chromium_sandbox=settings.pdf_chromium_sandbox,
        )

        try:
            await template_cache.preload_all()
        except DocumentError:
            logger.critical("template_preload_aborted_startup")
            raise

        app.state.settings = settings
        app.state.template_cache = template_cache
        app.state.pdf_engine = engine

        try:
            await engine.initialize()
            app.state.document_service = DocumentService(template_cache, engine)
            logger.info("docgen_startup_complete")
            yield
        finally:
            logger.info("docgen_shutdown_begin")
            await engine.shutdown()

    app = FastAPI(
        title="docgen",
        description="Versioned legal document generation (HTML / PDF)",
        version=get_app_version(),
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials="*" not in settings.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DocumentError, document_error_handler)
    app.include_router(documents_router)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
