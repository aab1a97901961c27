"""Framework detector — fingerprints React, Vue and Angular on a rendered page."""

from __future__ import annotations

import logging
from typing import Any

from a11ynav.shared.browser import BrowserManager

logger = logging.getLogger(__name__)

FRAMEWORKS = ("react", "vue", "angular")
VANILLA = "vanilla"

PROBE_SCRIPT = """() => {
    const all = [...document.querySelectorAll('*')].slice(0, 3000);
    const hasAttrPrefix = (prefix) => all.some(el =>
        [...el.attributes].some(a => a.name.startsWith(prefix)));
    const hasKeyPrefix = (prefix) => all.some(el =>
        Object.keys(el).some(k => k.startsWith(prefix)));
    return {
        react: !!(window.React
            || document.querySelector('[data-reactroot], [data-reactid]')
            || hasKeyPrefix('__reactFiber')
            || hasKeyPrefix('__reactContainer')
            || all.some(el => (el.getAttribute('class') || '').includes('react'))),
        vue: !!(window.Vue
            || document.querySelector('[data-v-app]')
            || all.some(el => el.__vue_app__ || el.__vue__)
            || hasAttrPrefix('data-v-')),
        angular: !!(window.angular
            || window.ng
            || document.querySelector('[ng-version], [ng-app], [ng-controller]')
            || hasAttrPrefix('_ngcontent')
            || hasAttrPrefix('ng-')),
    };
}"""


def framework_from_markers(markers: dict[str, Any]) -> str:
    """Apply precedence React > Vue > Angular, falling back to vanilla."""
    for name in FRAMEWORKS:
        if markers.get(name):
            return name
    return VANILLA


async def probe_page(page: Any) -> str:
    """Detect the framework on an already-loaded page."""
    markers = await page.evaluate(PROBE_SCRIPT)
    return framework_from_markers(markers if isinstance(markers, dict) else {})


class FrameworkDetector:
    """Loads a page once and reports its framework. Never raises."""

    def __init__(
        self,
        browser: BrowserManager,
        *,
        timeout_ms: int = 30_000,
        settle_ms: int = 2_000,
    ) -> None:
        self._browser = browser
        self._timeout_ms = timeout_ms
        self._settle_ms = settle_ms

    async def detect(self, url: str) -> str:
        try:
            async with self._browser.page() as page:
                await self._browser.navigate(
                    page, url, timeout_ms=self._timeout_ms, settle_ms=self._settle_ms,
                )
                return await probe_page(page)
        except Exception as exc:
            logger.warning("Framework detection failed for %s, using vanilla: %s", url, exc)
            return VANILLA
