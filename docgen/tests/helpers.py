"""
Shared test doubles and sample payloads.

FakeDriverFactory stands in for ``playwright.async_api.async_playwright``.
It mimics the small surface PdfEngine uses (start / chromium.launch /
new_context / new_page / set_content / pdf / close / stop) and records
every call so tests can assert on lifecycle and isolation.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


HANG_MARKER = "<!--hang-->"
CRASH_MARKER = "<!--crash-->"


# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------

_SERVICE_AGREEMENT_DATA: Dict[str, Any] = {
    "client": {
        "name": "Acme Corp",
        "address": {
            "street": "123 Main St",
            "city": "Metropolis",
            "state": "NY",
            "postalCode": "10001",
            "country": "US",
        },
    },
    "provider": {"name": "Provider Ltd", "entityType": "LLC"},
    "services": {"description": "Software development services"},
    "effectiveDate": "2025-01-01",
    "billing": {
        "rate": 100,
        "currency": "USD",
        "unit": "hour",
        "paymentTerms": 30,
    },
    "legal": {
        "governingLaw": "Delaware",
        "disputeResolution": "Binding arbitration",
    },
}

_NDA_DATA: Dict[str, Any] = {
    "partyA": {"name": "Alpha Inc", "address": {"city": "Gotham", "country": "US"}},
    "partyB": {"name": "Beta LLC", "address": {"city": "Star City", "country": "US"}},
    "purpose": "discussing potential partnership",
    "effectiveDate": "2025-01-01",
    "term": {"years": 3, "survivalYears": 2},
    "legal": {"governingLaw": "California", "venue": "San Francisco County"},
}


def service_agreement_data() -> Dict[str, Any]:
    return copy.deepcopy(_SERVICE_AGREEMENT_DATA)


def nda_data() -> Dict[str, Any]:
    return copy.deepcopy(_NDA_DATA)


# ---------------------------------------------------------------------------
# Fake Playwright driver
# ---------------------------------------------------------------------------


class FakePage:
    def __init__(self, context: "FakeContext") -> None:
        self._context = context
        self.content: Optional[str] = None

    async def set_content(self, html: str, wait_until: str = "load", timeout: float = 0) -> None:
        browser = self._context.browser
        browser.set_content_calls.append({"wait_until": wait_until, "timeout": timeout})
        if HANG_MARKER in html:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        if CRASH_MARKER in html:
            raise PlaywrightError("Target page, context or browser has been closed")
        if browser.gate is not None:
            await browser.gate.wait()
        # Yield so concurrent conversions interleave.
        await asyncio.sleep(0)
        self.content = html

    async def pdf(self, **options: Any) -> bytes:
        browser = self._context.browser
        browser.pdf_calls.append(options)
        if browser.export_gate is not None:
            await browser.export_gate.wait()
        await asyncio.sleep(0)
        return b"%PDF-1.4\n" + (self.content or "").encode("utf-8") + b"\n%%EOF\n"


class FakeContext:
    def __init__(self, browser: "FakeBrowser") -> None:
        self.browser = browser
        self.pages: List[FakePage] = []
        self.closed = False

    async def new_page(self) -> FakePage:
        page = FakePage(self)
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self) -> None:
        self.contexts: List[FakeContext] = []
        self.closed = False
        self.gate: Optional[asyncio.Event] = None
        self.export_gate: Optional[asyncio.Event] = None
        self.set_content_calls: List[Dict[str, Any]] = []
        self.pdf_calls: List[Dict[str, Any]] = []

    async def new_context(self) -> FakeContext:
        if self.closed:
            raise PlaywrightError("Browser has been closed")
        context = FakeContext(self)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True


class FakeChromium:
    def __init__(self, driver: "FakeDriver") -> None:
        self._driver = driver
        self.launch_calls: List[Dict[str, Any]] = []

    async def launch(self, **kwargs: Any) -> FakeBrowser:
        self.launch_calls.append(kwargs)
        if self._driver.factory.launch_gate is not None:
            await self._driver.factory.launch_gate.wait()
        if self._driver.factory.fail_launch:
            raise PlaywrightError("Executable doesn't exist")
        browser = FakeBrowser()
        self._driver.factory.browsers.append(browser)
        return browser


class FakeDriver:
    def __init__(self, factory: "FakeDriverFactory") -> None:
        self.factory = factory
        self.chromium = FakeChromium(self)
        self.stopped = False

    async def stop(self) -> None:
        self.stopped = True


class _FakeContextManager:
    def __init__(self, factory: "FakeDriverFactory") -> None:
        self._factory = factory

    async def start(self) -> FakeDriver:
        driver = FakeDriver(self._factory)
        self._factory.drivers.append(driver)
        return driver


class FakeDriverFactory:
    def __init__(self, *, fail_launch: bool = False) -> None:
        self.fail_launch = fail_launch
        self.launch_gate: Optional[asyncio.Event] = None
        self.drivers: List[FakeDriver] = []
        self.browsers: List[FakeBrowser] = []

    def __call__(self) -> _FakeContextManager:
        return _FakeContextManager(self)

    @property
    def browser(self) -> FakeBrowser:
        return self.browsers[-1]


# ---------------------------------------------------------------------------
# Template source loaders
# ---------------------------------------------------------------------------


class DictTemplateLoader:
    """
    In-memory loader keyed by source_ref; counts loads per reference.
    """

    def __init__(self, sources: Dict[str, str], *, failing: tuple = ()) -> None:
        self.sources = dict(sources)
        self.failing = set(failing)
        self.load_counts: Dict[str, int] = {}

    async def load(self, source_ref: str) -> str:
        self.load_counts[source_ref] = self.load_counts.get(source_ref, 0) + 1
        await asyncio.sleep(0)
        if source_ref in self.failing:
            raise FileNotFoundError(source_ref)
        return self.sources[source_ref]
