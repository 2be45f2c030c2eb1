"""
Rasterizer
==========

Playwright-based PNG rendering of card documents.

One browser, one context and one page are kept for the whole export and the
page is reset to ``about:blank`` between cards. The context is recreated only
when the device scale factor changes.

Each card document is written to a scratch file and opened through its
``file://`` URL. Chromium only lets ``file://`` origins load the ``file://``
images, fonts and stylesheets that card templates reference.
"""

from typing import Any, Optional, Protocol, runtime_checkable
from pathlib import Path
import io
import math
import shutil
import tempfile

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright
from PIL import Image  # type: ignore

from cardpress.config.logging import get_logger
from cardpress.config.settings import get_settings
from cardpress.core.errors import RasterizationError

logger = get_logger(__name__)

BLANK_PAGE = "about:blank"


@runtime_checkable
class Rasterizer(Protocol):
    """HTML-to-bitmap capability."""

    async def render(self, html: str, width_px: float, height_px: float, dpi_scale: float) -> bytes:
        """Render a card document of ``width_px`` x ``height_px`` CSS pixels to PNG bytes."""
        ...


class PlaywrightRasterizer:
    """Chromium-backed rasterizer."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.logger: Any = logger.bind(component="rasterizer")
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._scale: Optional[float] = None
        self._document_dir: Optional[Path] = None
        self._document_counter = 0

    @property
    def is_initialized(self) -> bool:
        return self._browser is not None

    async def initialize(self) -> None:
        """Start Playwright and launch the browser."""
        if self.is_initialized:
            return
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.settings.playwright_headless,
                args=[
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-dev-shm-usage",
                    "--allow-file-access-from-files",
                ],
            )
            self.logger.info("Rasterizer initialized")
        except Exception as e:
            self.logger.error("Failed to initialize rasterizer", error=str(e))
            await self.close()
            raise RasterizationError(f"Browser initialization failed: {e}")

    async def close(self) -> None:
        """Close the page, context and browser."""
        if self._context:
            await self._context.close()
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()
        if self._document_dir is not None:
            shutil.rmtree(self._document_dir, ignore_errors=True)

        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
        self._scale = None
        self._document_dir = None
        self.logger.info("Rasterizer closed")

    async def __aenter__(self) -> "PlaywrightRasterizer":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def render(self, html: str, width_px: float, height_px: float, dpi_scale: float) -> bytes:
        """
        Render a card document to PNG.

        Args:
            html: Complete card document
            width_px: Card width in CSS pixels
            height_px: Card height in CSS pixels
            dpi_scale: Device scale factor (target dpi / 96)

        Returns:
            PNG bytes

        Raises:
            RasterizationError: If the browser fails to produce an image
        """
        if width_px <= 0 or height_px <= 0 or dpi_scale <= 0:
            raise RasterizationError(
                f"Invalid raster size {width_px}x{height_px} at scale {dpi_scale}"
            )

        await self.initialize()
        viewport = {"width": math.ceil(width_px), "height": math.ceil(height_px)}
        document_path: Optional[Path] = None

        try:
            page = await self._get_page(dpi_scale)
            await page.set_viewport_size(viewport)  # type: ignore[arg-type]
            document_path = self._write_document(html)
            await page.goto(document_path.as_uri(), wait_until="load")

            if self.settings.raster_wait_for_network_idle:
                await page.wait_for_load_state("networkidle")
            await page.evaluate("document.fonts ? document.fonts.ready.then(() => true) : true")

            screenshot_bytes = await page.screenshot(
                type="png",
                clip={"x": 0, "y": 0, "width": width_px, "height": height_px},
                omit_background=True,
            )
        except RasterizationError:
            raise
        except Exception as e:
            self.logger.error("Card rasterization failed", error=str(e))
            raise RasterizationError(f"Card rasterization failed: {e}")
        finally:
            await self._reset_page()
            if document_path is not None:
                document_path.unlink(missing_ok=True)

        if self.settings.optimize_png:
            screenshot_bytes = self._optimize_png(screenshot_bytes)

        self.logger.debug(
            "Card rasterized",
            width=viewport["width"],
            height=viewport["height"],
            scale=dpi_scale,
            file_size=len(screenshot_bytes),
        )
        return screenshot_bytes

    async def _get_page(self, dpi_scale: float) -> Page:
        if self._page is not None and self._scale == dpi_scale:
            return self._page

        if self._browser is None:
            raise RasterizationError("Browser not initialized")

        if self._context is not None:
            await self._context.close()

        self._context = await self._browser.new_context(device_scale_factor=dpi_scale)
        self._page = await self._context.new_page()
        self._page.set_default_timeout(self.settings.playwright_timeout)
        self._scale = dpi_scale
        self.logger.debug("Raster page created", scale=dpi_scale)
        return self._page

    def _write_document(self, html: str) -> Path:
        if self._document_dir is None:
            self._document_dir = Path(tempfile.mkdtemp(prefix="cardpress-raster-"))
        self._document_counter += 1
        path = self._document_dir / f"card-{self._document_counter}.html"
        path.write_text(html, encoding="utf-8")
        return path

    async def _reset_page(self) -> None:
        if self._page is None:
            return
        try:
            await self._page.goto(BLANK_PAGE)
        except Exception as e:
            # A page that cannot be reset is dropped and recreated for the next card
            self.logger.warning("Failed to reset raster page", error=str(e))
            self._page = None
            self._scale = None

    def _optimize_png(self, png_bytes: bytes) -> bytes:
        """
        Re-encode PNG bytes with maximum compression.

        Args:
            png_bytes: Original PNG bytes

        Returns:
            Optimized PNG bytes, or the original bytes when Pillow cannot read them
        """
        try:
            image = Image.open(io.BytesIO(png_bytes))
            output = io.BytesIO()
            image.save(output, format="PNG", optimize=True, compress_level=9)
            optimized_bytes = output.getvalue()

            reduction = (
                (1 - len(optimized_bytes) / len(png_bytes)) * 100 if len(png_bytes) > 0 else 0
            )
            self.logger.debug(
                "PNG optimization completed",
                original_size=len(png_bytes),
                optimized_size=len(optimized_bytes),
                reduction_percent=round(reduction, 2),
            )
            return optimized_bytes

        except Exception as e:
            self.logger.warning("PNG optimization failed, using original", error=str(e))
            return png_bytes
