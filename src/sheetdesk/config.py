"""Editor configuration loaded from ``sheetdesk.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from sheetdesk.grid import MIN_COLS, MIN_ROWS

CONFIG_FILENAME = "sheetdesk.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "min_rows": MIN_ROWS,
    "min_cols": MIN_COLS,
    "assistant_delay_secs": 1.5,
    "max_upload_bytes": 50 * 1024 * 1024,  # 50 MB
    "activate_imported_sheet": False,
    "logging_enabled": True,
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}

_INT_KEYS = ("min_rows", "min_cols", "max_upload_bytes", "logging_tail_bytes")
_BOOL_KEYS = ("activate_imported_sheet", "logging_enabled", "logging_fsync")

DEFAULT_CONFIG_YAML = """\
# sheetdesk configuration
min_rows: 50
min_cols: 26
assistant_delay_secs: 1.5
# Switch to the first imported sheet after an upload
activate_imported_sheet: false
"""


def _validate(config: dict[str, Any]) -> dict[str, Any]:
    for key in _INT_KEYS:
        val = config.get(key)
        if isinstance(val, bool) or not isinstance(val, int) or val < 0:
            raise ValueError(f"Config key {key!r} must be a non-negative integer, got {val!r}")
    for key in _BOOL_KEYS:
        if not isinstance(config.get(key), bool):
            raise ValueError(f"Config key {key!r} must be true or false, got {config.get(key)!r}")
    delay = config.get("assistant_delay_secs")
    if isinstance(delay, bool) or not isinstance(delay, (int, float)) or delay < 0:
        raise ValueError(
            f"Config key 'assistant_delay_secs' must be a non-negative number, got {delay!r}"
        )
    return config


def load_config(directory: Path | None = None) -> dict[str, Any]:
    """Load configuration from ``sheetdesk.yaml``, with defaults.

    Args:
        directory: Directory holding ``sheetdesk.yaml``.  ``None`` returns
            the defaults.

    Returns:
        Merged configuration dict.  Unknown keys are kept as-is.
    """
    config = dict(DEFAULT_CONFIG)
    if directory is not None:
        config_path = Path(directory) / CONFIG_FILENAME
        if config_path.exists():
            user_config = yaml.safe_load(config_path.read_text()) or {}
            if not isinstance(user_config, dict):
                raise ValueError(f"{config_path} must contain a mapping")
            config.update(user_config)
    return _validate(config)


def write_default_config(directory: Path) -> Path:
    """Write a commented default ``sheetdesk.yaml`` if none exists."""
    directory.mkdir(parents=True, exist_ok=True)
    config_path = directory / CONFIG_FILENAME
    if not config_path.exists():
        config_path.write_text(DEFAULT_CONFIG_YAML)
    return config_path
