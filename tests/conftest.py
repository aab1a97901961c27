"""Shared test fixtures."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from a11ynav.scanner.framework import PROBE_SCRIPT
from a11ynav.scanner.page_scan import METADATA_SCRIPT
from a11ynav.scanner.performance import TIMINGS_SCRIPT
from a11ynav.scanner.snapshot import SNAPSHOT_SCRIPT
from a11ynav.schemas.violation import Violation, ViolationNode
from a11ynav.shared.reasoning_client import ReasoningClient


def make_violation(
    id: str = "axe-image-alt",
    description: str = "Images must have alternate text",
    impact: str = "critical",
    wcag_reference: str = "WCAG 1.1.1",
    html: str = '<img src="logo.png">',
    target: str = "img",
    tags: list[str] | None = None,
    **kwargs: Any,
) -> Violation:
    """Build a Violation with one node; keyword overrides for everything."""
    return Violation(
        id=id,
        description=description,
        impact=impact,
        wcag_reference=wcag_reference,
        tags=tags if tags is not None else ["source:axe", "wcag2a"],
        nodes=[ViolationNode(html=html, target=target)] if html or target else [],
        **kwargs,
    )


@pytest.fixture
def violation_factory() -> Callable[..., Violation]:
    return make_violation


class FakePage:
    """Stands in for a Playwright page: answers ``evaluate`` by script."""

    def __init__(
        self,
        *,
        metadata: dict | None = None,
        markers: dict | None = None,
        snapshot: dict | Exception | None = None,
        timings: dict | Exception | None = None,
    ) -> None:
        self.responses: dict[str, Any] = {
            METADATA_SCRIPT: metadata or {"title": "Home", "user_agent": "FakeChrome/1.0"},
            PROBE_SCRIPT: markers or {"react": False, "vue": False, "angular": False},
            SNAPSHOT_SCRIPT: snapshot if snapshot is not None else {},
            TIMINGS_SCRIPT: timings if timings is not None else {"dom_content_loaded_ms": 120.0},
        }
        self.evaluated: list[str] = []
        self.coverage = MagicMock()
        self.coverage.start_css_coverage = AsyncMock()
        self.coverage.start_js_coverage = AsyncMock()
        self.coverage.stop_css_coverage = AsyncMock(return_value=[])
        self.coverage.stop_js_coverage = AsyncMock(return_value=[])

    async def evaluate(self, script: str, *args: Any) -> Any:
        self.evaluated.append(script)
        response = self.responses.get(script)
        if isinstance(response, Exception):
            raise response
        return response


class FakeBrowser:
    """Stands in for BrowserManager without launching Chromium."""

    def __init__(self, page: FakePage | None = None, links: list[str] | None = None) -> None:
        self.fake_page = page or FakePage()
        self.navigate = AsyncMock()
        self.discover_links = AsyncMock(return_value=links or [])
        self.pages_opened = 0
        self.pages_closed = 0

    @asynccontextmanager
    async def page(self):
        self.pages_opened += 1
        try:
            yield self.fake_page
        finally:
            self.pages_closed += 1


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def fake_browser(fake_page: FakePage) -> FakeBrowser:
    return FakeBrowser(fake_page)


@pytest.fixture
def mock_reasoning_client() -> ReasoningClient:
    """Return a ReasoningClient with a mocked OpenAI SDK underneath."""
    client = ReasoningClient.__new__(ReasoningClient)
    client._client = AsyncMock()
    client.model = "test-model"
    return client


@pytest.fixture
def tmp_config(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    cfg = tmp_path / "scan-config.yml"
    cfg.write_text(
        """\
target_url: "https://example.com"
output_directory: "{out}"
""".format(out=str(tmp_path / "output"))
    )
    return cfg
