"""YAML config loader — reads scan-config.yml into AuditConfig."""

from pathlib import Path

import yaml

from a11ynav.schemas.config import AuditConfig


def load_config(path: str | Path) -> AuditConfig:
    """Load and validate a scan config file.

    Raises ``FileNotFoundError`` if the path doesn't exist and
    ``pydantic.ValidationError`` if the YAML content is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    raw = yaml.safe_load(path.read_text())
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    # Empty YAML sections load as None; the models expect mappings.
    for key in ("options", "site_context", "settings"):
        if key in raw and raw[key] is None:
            raw[key] = {}

    # Lists with only commented-out items load as None; normalize to empty list.
    context = raw.get("site_context")
    if isinstance(context, dict):
        for key in ("regions", "target_audience"):
            if key in context:
                if context[key] is None:
                    context[key] = []
                elif isinstance(context[key], list):
                    context[key] = [item for item in context[key] if item]

    return AuditConfig(**raw)
