"""
End-to-end PDF conversion on a real headless Chromium.

Skipped when Playwright's Chromium build is not installed
(``playwright install chromium``). The sandbox is disabled because CI
containers usually run as root.
"""

import asyncio
import io

import pikepdf
import pytest

from docgen.app.services.pdf_engine import PdfEngine

pytestmark = pytest.mark.anyio

A4_POINTS = (595.0, 842.0)


@pytest.fixture
async def chromium_engine():
    engine = PdfEngine(timeout_ms=30_000, chromium_sandbox=False)
    try:
        await engine.initialize()
    except Exception as exc:
        pytest.skip(f"Chromium is not available: {exc}")
    yield engine
    await engine.shutdown()


async def test_converts_markup_to_a4_pdf(chromium_engine):
    pdf_bytes = await chromium_engine.convert(
        "<html><body><h1>Service Agreement</h1></body></html>"
    )

    assert pdf_bytes.startswith(b"%PDF-")
    with pikepdf.open(io.BytesIO(pdf_bytes)) as pdf:
        assert len(pdf.pages) == 1
        llx, lly, urx, ury = (float(v) for v in pdf.pages[0].mediabox)
        assert (round(urx - llx), round(ury - lly)) == A4_POINTS


async def test_css_page_size_does_not_override_a4(chromium_engine):
    pdf_bytes = await chromium_engine.convert(
        "<html><head><style>@page { size: 300mm 100mm; }</style></head>"
        "<body>letter</body></html>"
    )

    with pikepdf.open(io.BytesIO(pdf_bytes)) as pdf:
        llx, lly, urx, ury = (float(v) for v in pdf.pages[0].mediabox)
        assert (round(urx - llx), round(ury - lly)) == A4_POINTS


async def test_concurrent_conversions_each_produce_a_document(chromium_engine):
    markup = [
        f"<html><body><p>payload-{i}</p>"
        f"<script>window.marker = 'payload-{i}';</script></body></html>"
        for i in range(3)
    ]

    outputs = await asyncio.gather(*(chromium_engine.convert(m) for m in markup))

    for pdf_bytes in outputs:
        assert pdf_bytes.startswith(b"%PDF-")
        with pikepdf.open(io.BytesIO(pdf_bytes)) as pdf:
            assert len(pdf.pages) == 1
