import pytest

from docgen.app.config import DEFAULT_TEMPLATE_DIR
from docgen.app.registry.registry import TEMPLATE_CATALOG
from docgen.app.services.pdf_engine import PdfEngine
from docgen.app.services.template_cache import FileSystemTemplateLoader, TemplateCache
from docgen.tests.helpers import FakeDriverFactory


@pytest.fixture
def anyio_backend():
    # The PDF engine is built on asyncio primitives.
    return "asyncio"


@pytest.fixture
def template_loader():
    return FileSystemTemplateLoader(DEFAULT_TEMPLATE_DIR)


@pytest.fixture
async def template_cache(template_loader):
    cache = TemplateCache(TEMPLATE_CATALOG, template_loader)
    await cache.preload_all()
    return cache


@pytest.fixture
def driver_factory():
    return FakeDriverFactory()


@pytest.fixture
async def pdf_engine(driver_factory):
    engine = PdfEngine(timeout_ms=1_000, driver_factory=driver_factory)
    await engine.initialize()
    yield engine
    await engine.shutdown()
