"""Configuration schema — scan options, runtime settings and scan-config.yml."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from a11ynav.schemas.scoring import SiteContext

Framework = Literal["auto", "react", "vue", "angular", "vanilla"]

DEFAULT_AXE_SCRIPT_URL = "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.10.2/axe.min.js"
DEFAULT_AXE_TAGS = ["wcag2a", "wcag2aa", "wcag21aa", "wcag22aa"]


class ScanOptions(BaseModel):
    """Per-call scan options."""

    max_pages: int = Field(default=1, ge=1)
    crawl_depth: int = Field(default=1, ge=1)  # only seed-page link discovery is performed
    include_performance: bool = True
    custom_rules: bool = True
    framework: Framework = "auto"

    @field_validator("framework", mode="before")
    @classmethod
    def lowercase_framework(cls, v: object) -> object:
        return v.lower() if isinstance(v, str) else v


class ScanSettings(BaseModel):
    """Runtime tuning for the browser, crawl pool and reasoning calls."""

    navigation_timeout_ms: int = Field(default=30_000, gt=0)
    settle_delay_ms: int = Field(default=2_000, ge=0)
    page_timeout_s: float = Field(default=90.0, gt=0)
    concurrency: int = Field(default=4, ge=1, le=8)
    viewport_width: int = 1280
    viewport_height: int = 720
    axe_script_url: str = DEFAULT_AXE_SCRIPT_URL
    axe_tags: list[str] = DEFAULT_AXE_TAGS
    reasoning_timeout_s: float = Field(default=60.0, gt=0)
    fix_batch_size: int = Field(default=3, ge=1)


class AuditConfig(BaseModel):
    """Top-level configuration loaded from scan-config.yml."""

    target_url: str
    options: ScanOptions = ScanOptions()
    site_context: SiteContext = SiteContext()
    settings: ScanSettings = ScanSettings()
    generate_fixes: bool = True
    output_directory: str = "./output"

    @model_validator(mode="after")
    def check_has_target(self) -> "AuditConfig":
        if not self.target_url.strip():
            raise ValueError("'target_url' must not be empty")
        return self
