"""
Unit Tests for Rasterizer
=========================

Browser lifecycle, page reuse across cards and error mapping for the
Playwright rasterizer.
"""

from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch
from urllib.parse import unquote, urlparse

import pytest

from cardpress.core.errors import RasterizationError
from cardpress.core.rendering.rasterizer import BLANK_PAGE, PlaywrightRasterizer
from tests.utils.data_generators import png_bytes


@pytest.fixture
def mock_settings():
    settings = Mock()
    settings.playwright_headless = True
    settings.playwright_timeout = 30000
    settings.raster_wait_for_network_idle = False
    settings.optimize_png = True
    return settings


@pytest.fixture
def rasterizer(mock_settings):
    with patch("cardpress.core.rendering.rasterizer.get_settings", return_value=mock_settings):
        return PlaywrightRasterizer()


def local_path(url):
    return Path(unquote(urlparse(url).path))


def document_urls(page):
    return [call.args[0] for call in page.goto.call_args_list if call.args[0] != BLANK_PAGE]


@pytest.fixture
def browser_stack():
    """Playwright, browser, context and page mocks wired together."""
    page = AsyncMock()
    page.set_default_timeout = Mock()
    page.screenshot.return_value = png_bytes(8, 8)

    context = AsyncMock()
    context.new_page.return_value = page

    browser = AsyncMock()
    browser.new_context.return_value = context

    playwright = AsyncMock()
    playwright.chromium.launch.return_value = browser

    with patch("cardpress.core.rendering.rasterizer.async_playwright") as mock_async_playwright:
        mock_async_playwright.return_value.start = AsyncMock(return_value=playwright)
        yield {
            "async_playwright": mock_async_playwright,
            "playwright": playwright,
            "browser": browser,
            "context": context,
            "page": page,
        }


class TestRasterizerLifecycle:
    """Test browser startup and shutdown."""

    @pytest.mark.asyncio
    async def test_initialize_launches_browser(self, rasterizer, browser_stack):
        await rasterizer.initialize()

        assert rasterizer.is_initialized
        args = browser_stack["playwright"].chromium.launch.call_args.kwargs["args"]
        assert "--allow-file-access-from-files" in args

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, rasterizer, browser_stack):
        await rasterizer.initialize()
        await rasterizer.initialize()

        assert browser_stack["playwright"].chromium.launch.call_count == 1

    @pytest.mark.asyncio
    async def test_initialize_failure(self, rasterizer):
        with patch("cardpress.core.rendering.rasterizer.async_playwright") as mock_async_playwright:
            mock_async_playwright.return_value.start.side_effect = Exception("Playwright failed")

            with pytest.raises(RasterizationError, match="Browser initialization failed"):
                await rasterizer.initialize()

        assert not rasterizer.is_initialized

    @pytest.mark.asyncio
    async def test_close(self, rasterizer, browser_stack):
        async with rasterizer:
            await rasterizer.render("<html></html>", 100, 140, 1.0)
            document_dir = local_path(document_urls(browser_stack["page"])[0]).parent

        assert not document_dir.exists()
        browser_stack["context"].close.assert_called_once()
        browser_stack["browser"].close.assert_called_once()
        browser_stack["playwright"].stop.assert_called_once()
        assert not rasterizer.is_initialized


class TestRender:
    """Test rendering of card documents."""

    @pytest.mark.asyncio
    async def test_render_returns_png(self, rasterizer, browser_stack):
        result = await rasterizer.render("<html>card</html>", 240.5, 336, 3.125)

        page = browser_stack["page"]
        assert result.startswith(b"\x89PNG")
        page.set_viewport_size.assert_called_once_with({"width": 241, "height": 336})
        page.set_content.assert_not_called()
        clip = page.screenshot.call_args.kwargs["clip"]
        assert clip == {"x": 0, "y": 0, "width": 240.5, "height": 336}
        assert page.screenshot.call_args.kwargs["omit_background"] is True
        browser_stack["browser"].new_context.assert_called_once_with(device_scale_factor=3.125)

    @pytest.mark.asyncio
    async def test_document_is_loaded_from_file_url(self, rasterizer, browser_stack):
        page = browser_stack["page"]
        loaded = []

        async def goto(url, **kwargs):
            if url != BLANK_PAGE:
                path = local_path(url)
                loaded.append((url, path, path.read_text(encoding="utf-8"), kwargs))

        page.goto.side_effect = goto

        await rasterizer.render('<img src="file:///deck/art.png">', 100, 100, 1.0)

        [(url, path, html, kwargs)] = loaded
        assert url.startswith("file://")
        assert path.suffix == ".html"
        assert html == '<img src="file:///deck/art.png">'
        assert kwargs == {"wait_until": "load"}
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_each_card_gets_its_own_document(self, rasterizer, browser_stack):
        await rasterizer.render("<p>1</p>", 100, 100, 1.0)
        await rasterizer.render("<p>2</p>", 100, 100, 1.0)

        urls = document_urls(browser_stack["page"])
        assert len(urls) == 2
        assert urls[0] != urls[1]

    @pytest.mark.asyncio
    async def test_page_is_reset_after_each_card(self, rasterizer, browser_stack):
        await rasterizer.render("<p>1</p>", 100, 100, 1.0)
        await rasterizer.render("<p>2</p>", 100, 100, 1.0)

        page = browser_stack["page"]
        urls = [call.args[0] for call in page.goto.call_args_list]
        assert urls.count(BLANK_PAGE) == 2
        page.goto.assert_called_with(BLANK_PAGE)

    @pytest.mark.asyncio
    async def test_page_is_reused_for_same_scale(self, rasterizer, browser_stack):
        for _ in range(3):
            await rasterizer.render("<p></p>", 100, 100, 2.0)

        assert browser_stack["browser"].new_context.call_count == 1
        assert browser_stack["context"].new_page.call_count == 1

    @pytest.mark.asyncio
    async def test_new_context_when_scale_changes(self, rasterizer, browser_stack):
        await rasterizer.render("<p></p>", 100, 100, 1.0)
        await rasterizer.render("<p></p>", 100, 100, 2.0)

        assert browser_stack["browser"].new_context.call_count == 2
        browser_stack["context"].close.assert_called_once()

    @pytest.mark.asyncio
    async def test_waits_for_network_idle_when_enabled(self, rasterizer, browser_stack, mock_settings):
        mock_settings.raster_wait_for_network_idle = True

        await rasterizer.render("<p></p>", 100, 100, 1.0)

        browser_stack["page"].wait_for_load_state.assert_called_once_with("networkidle")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", [(0, 100, 1.0), (100, -1, 1.0), (100, 100, 0)])
    async def test_invalid_size(self, rasterizer, browser_stack, size):
        with pytest.raises(RasterizationError, match="Invalid raster size"):
            await rasterizer.render("<p></p>", *size)

        browser_stack["async_playwright"].assert_not_called()

    @pytest.mark.asyncio
    async def test_page_error_is_mapped_and_page_reset(self, rasterizer, browser_stack):
        page = browser_stack["page"]

        async def goto(url, **kwargs):
            if url != BLANK_PAGE:
                raise Exception("Navigation timeout")

        page.goto.side_effect = goto

        with pytest.raises(RasterizationError, match="Navigation timeout"):
            await rasterizer.render("<p></p>", 100, 100, 1.0)

        page.goto.assert_called_with(BLANK_PAGE)
        assert not local_path(document_urls(page)[0]).exists()

    @pytest.mark.asyncio
    async def test_failed_reset_recreates_page(self, rasterizer, browser_stack):
        async def goto(url, **kwargs):
            if url == BLANK_PAGE:
                raise Exception("Target closed")

        browser_stack["page"].goto.side_effect = goto

        await rasterizer.render("<p></p>", 100, 100, 1.0)
        await rasterizer.render("<p></p>", 100, 100, 1.0)

        assert browser_stack["browser"].new_context.call_count == 2


class TestOptimizePng:
    def test_optimize_png(self, rasterizer):
        optimized = rasterizer._optimize_png(png_bytes(32, 32))

        assert optimized.startswith(b"\x89PNG")

    def test_invalid_png_returns_original(self, rasterizer):
        assert rasterizer._optimize_png(b"not a png") == b"not a png"
