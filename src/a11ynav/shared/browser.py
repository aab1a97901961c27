"""Playwright browser manager — one shared Chromium, one isolated context per page."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from types import TracebackType
from typing import AsyncIterator, Iterable
from urllib.parse import urldefrag, urljoin, urlsplit

from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from a11ynav.errors import NavigationError, NavigationErrorKind

logger = logging.getLogger(__name__)

DEFAULT_LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

_CERTIFICATE_MARKERS = ("err_cert", "ssl", "certificate")
_TIMEOUT_MARKERS = ("timed_out", "timeout")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def classify_navigation_error(message: str) -> NavigationErrorKind:
    """Map a browser error message onto a navigation error kind.

    DNS and connection failures (``net::ERR_NAME_NOT_RESOLVED``,
    ``ERR_CONNECTION_REFUSED`` ...) and anything unrecognized are
    reported as unreachable.
    """
    msg = message.lower()
    if any(marker in msg for marker in _CERTIFICATE_MARKERS):
        return NavigationErrorKind.CERTIFICATE
    if any(marker in msg for marker in _TIMEOUT_MARKERS):
        return NavigationErrorKind.TIMEOUT
    return NavigationErrorKind.UNREACHABLE


class BrowserManager:
    """Manages a shared Playwright Chromium instance.

    Launch options are passed in explicitly so nothing about the browser
    is process-wide state.

    Usage::

        async with BrowserManager() as bm:
            async with bm.page() as page:
                await bm.navigate(page, "https://example.com")
                title = await page.title()
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        launch_args: list[str] | None = None,
        viewport: tuple[int, int] = (1280, 720),
    ) -> None:
        self._headless = headless
        self._launch_args = DEFAULT_LAUNCH_ARGS if launch_args is None else launch_args
        self._viewport = {"width": viewport[0], "height": viewport[1]}
        self._pw: Playwright | None = None
        self._browser: Browser | None = None

    async def __aenter__(self) -> "BrowserManager":
        self._pw = await async_playwright().start()
        self._browser = await self._pw.chromium.launch(
            headless=self._headless, args=self._launch_args,
        )
        logger.info("Browser launched")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._browser:
            await self._browser.close()
        if self._pw:
            await self._pw.stop()
        logger.info("Browser closed")

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Yield a page in its own browsing context; the context is always closed."""
        assert self._browser is not None, "BrowserManager not entered"
        context = await self._browser.new_context(viewport=self._viewport)
        try:
            yield await context.new_page()
        finally:
            await context.close()

    async def navigate(
        self,
        page: Page,
        url: str,
        *,
        timeout_ms: int = 30_000,
        settle_ms: int = 2_000,
    ) -> None:
        """Load ``url`` until the network is idle, then wait a fixed settle delay.

        Raises ``NavigationError`` classified as timeout, unreachable or
        certificate.
        """
        try:
            await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationError(url, NavigationErrorKind.TIMEOUT, str(exc)) from exc
        except PlaywrightError as exc:
            raise NavigationError(url, classify_navigation_error(str(exc)), str(exc)) from exc
        if settle_ms:
            await page.wait_for_timeout(settle_ms)

    async def discover_links(
        self,
        url: str,
        *,
        limit: int,
        timeout_ms: int = 30_000,
    ) -> list[str]:
        """Return up to ``limit`` distinct same-origin links found on ``url``.

        Links keep document order, lose their fragment and never include
        the page itself.
        """
        if limit <= 0:
            return []
        async with self.page() as page:
            await self.navigate(page, url, timeout_ms=timeout_ms, settle_ms=0)
            hrefs = await page.evaluate("""() => {
                const origin = window.location.origin;
                const results = [];
                for (const a of document.querySelectorAll('a[href]')) {
                    let target;
                    try { target = new URL(a.href); } catch (e) { continue; }
                    if (target.origin !== origin) continue;
                    results.push(target.href);
                }
                return results;
            }""")
            page_url = page.url or url
        return same_origin_links(page_url, hrefs, limit=limit)


def _origin(parts) -> tuple[str, str, int | None]:
    scheme = parts.scheme.lower()
    port = parts.port or _DEFAULT_PORTS.get(scheme)
    return scheme, (parts.hostname or "").lower(), port


def same_origin_links(page_url: str, hrefs: Iterable[str], *, limit: int) -> list[str]:
    """Filter ``hrefs`` down to distinct http(s) links on the origin of ``page_url``.

    Relative hrefs resolve against ``page_url``. Scheme, host and port must
    all match; a shared string prefix is not enough.
    """
    base = urlsplit(page_url)
    origin = _origin(base)
    seen = {urldefrag(page_url).url}
    links: list[str] = []
    for href in hrefs:
        if len(links) >= limit:
            break
        if not href:
            continue
        try:
            clean = urldefrag(urljoin(page_url, href.strip())).url
            parts = urlsplit(clean)
            target = _origin(parts)
        except ValueError:
            continue
        if parts.scheme.lower() not in _DEFAULT_PORTS or target != origin:
            continue
        if clean in seen:
            continue
        seen.add(clean)
        links.append(clean)
    return links
