"""Load and save llm-grid configuration (camelCase JSON on disk)."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from loguru import logger

from llm_grid.config.schema import Config

_CONFIG_DIR = Path.home() / ".llm-grid"


def get_config_path() -> Path:
    """Return the default config file path."""
    return _CONFIG_DIR / "config.json"


def load_config(path: Path | None = None) -> Config:
    """Load config from disk; fall back to defaults when missing or unreadable."""
    target = path or get_config_path()
    if not target.exists():
        return Config()
    try:
        data = json.loads(target.read_text(encoding="utf-8"))
        return Config(**convert_keys(data, camel_to_snake))
    except Exception as exc:
        logger.warning(f"[config] Failed to load {target}: {exc}; using defaults")
        return Config()


def save_config(config: Config, path: Path | None = None) -> None:
    """Write config to disk using camelCase keys."""
    target = path or get_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    data = convert_keys(config.model_dump(), snake_to_camel)
    target.write_text(json.dumps(data, indent=2), encoding="utf-8")


def camel_to_snake(name: str) -> str:
    """``settleDelayS`` -> ``settle_delay_s``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def snake_to_camel(name: str) -> str:
    """``settle_delay_s`` -> ``settleDelayS``."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def convert_keys(data: Any, convert) -> Any:
    """Recursively rename dict keys."""
    if isinstance(data, dict):
        return {convert(k): convert_keys(v, convert) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item, convert) for item in data]
    return data
