"""
HTML to PDF conversion on a shared headless Chromium.

One browser process is launched at startup and shared by every request;
each conversion runs in its own disposable browser context, so concurrent
calls never share cookies, storage, scripts or page state.

Lifecycle (single direction, no re-entry):

    UNINITIALIZED --initialize()--> READY --shutdown()--> CLOSED

- convert() is only accepted in READY; otherwise EngineNotReadyError.
- initialize() and shutdown() are serialized by one lock. shutdown()
  stops accepting new conversions immediately, then waits (bounded by
  shutdown_timeout_ms) for in-flight conversions to drain before the
  browser is closed.
- Each conversion bounds both the settle wait and the export by its
  timeout. A timeout or browser error fails that call only
  (PdfConversionError); the shared browser is untouched.

Page configuration is fixed for legal documents: A4, background graphics
printed, 20mm margins on every side, no header/footer, and the explicit
page size wins over any CSS @page size.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from docgen.app.errors import EngineNotReadyError, PdfConversionError

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT_MS = 30_000

PDF_OPTIONS = {
    "format": "A4",
    "print_background": True,
    "margin": {
        "top": "20mm",
        "right": "20mm",
        "bottom": "20mm",
        "left": "20mm",
    },
    "display_header_footer": False,
    "prefer_css_page_size": False,
}

CHROMIUM_ARGS = [
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


class PdfEngine:
    """
    Owner of the shared browser process.

    ``driver_factory`` returns an object with an async ``start()`` that
    yields a Playwright driver (``async_playwright`` by default). It is
    the seam used to substitute the browser in tests.
    """

    def __init__(
        self,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        chromium_sandbox: bool = True,
        shutdown_timeout_ms: Optional[int] = None,
        driver_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self._timeout_ms = timeout_ms
        self._chromium_sandbox = chromium_sandbox
        # Loading and exporting are bounded separately.
        self._shutdown_timeout_ms = shutdown_timeout_ms or 2 * timeout_ms
        self._driver_factory = driver_factory

        self._state = EngineState.UNINITIALIZED
        self._driver: Optional[Any] = None
        self._browser: Optional[Any] = None

        self._lifecycle_lock = asyncio.Lock()
        self._in_flight = 0
        self._drained = asyncio.Event()
        self._drained.set()

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        async with self._lifecycle_lock:
            if self._state is EngineState.READY:
                return
            if self._state is EngineState.CLOSED:
                raise EngineNotReadyError("PDF engine has been shut down")

            logger.info("pdf_engine_starting", extra={"sandbox": self._chromium_sandbox})

            driver = await self._driver_factory().start()
            try:
                browser = await driver.chromium.launch(
                    headless=True,
                    chromium_sandbox=self._chromium_sandbox,
                    args=CHROMIUM_ARGS,
                )
            except BaseException:
                logger.exception("pdf_engine_launch_failed")
                await driver.stop()
                raise

            self._driver = driver
            self._browser = browser
            self._state = EngineState.READY

            logger.info("pdf_engine_ready")

    async def shutdown(self) -> None:
        async with self._lifecycle_lock:
            if self._state is not EngineState.READY:
                if self._state is EngineState.UNINITIALIZED:
                    logger.debug("pdf_engine_shutdown_skipped")
                return

            # Reject new conversions before waiting for the running ones.
            self._state = EngineState.CLOSED
            try:
                await asyncio.wait_for(
                    self._drained.wait(), timeout=self._shutdown_timeout_ms / 1000
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "pdf_engine_drain_timeout",
                    extra={"in_flight": self._in_flight},
                )

            browser, driver = self._browser, self._driver
            self._browser = None
            self._driver = None

            try:
                await browser.close()
            except Exception:
                logger.warning("pdf_browser_close_failed", exc_info=True)

            try:
                await driver.stop()
            except Exception:
                logger.warning("pdf_driver_stop_failed", exc_info=True)

            logger.info("pdf_engine_closed")

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def _acquire(self) -> Any:
        if self._state is not EngineState.READY:
            raise EngineNotReadyError(
                f"PDF engine is not ready (state={self._state.value})"
            )
        self._in_flight += 1
        self._drained.clear()
        return self._browser

    def _release(self) -> None:
        self._in_flight -= 1
        if self._in_flight == 0:
            self._drained.set()

    async def convert(self, markup: str) -> bytes:
        browser = self._acquire()
        try:
            context = await browser.new_context()
            try:
                page = await context.new_page()
                await page.set_content(
                    markup,
                    wait_until="networkidle",
                    timeout=self._timeout_ms,
                )
                pdf_bytes = await asyncio.wait_for(
                    page.pdf(**PDF_OPTIONS), timeout=self._timeout_ms / 1000
                )
            finally:
                await context.close()
        except (PlaywrightTimeoutError, asyncio.TimeoutError) as exc:
            logger.error(
                "pdf_conversion_timeout",
                extra={"timeout_ms": self._timeout_ms},
            )
            raise PdfConversionError(
                f"Conversion did not finish within {self._timeout_ms} ms"
            ) from exc
        except PlaywrightError as exc:
            logger.error("pdf_conversion_failed", exc_info=True)
            raise PdfConversionError(f"PDF conversion failed: {exc}") from exc
        finally:
            self._release()

        logger.debug("pdf_conversion_complete", extra={"bytes": len(pdf_bytes)})
        return pdf_bytes
