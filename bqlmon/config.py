"""Configuration loading for bqlmon.

Loads settings from a TOML config file with sensible defaults.
Search order: explicit --config path → ~/.config/bqlmon/config.toml → defaults only.
Command-line flags are applied on top by the dashboard entry point.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "interface": "eth0",
    "poll_freq": 10,
    "sysfs_root": "/sys/class/net",
    "keys": {
        "exit": "F1",
        "left": "LEFT",
        "right": "RIGHT",
    },
    "colors": {
        "low": "green",
        "mid": "yellow",
        "high": "red",
        "overflow": "magenta",
    },
}

_DEFAULT_PATH = Path.home() / ".config" / "bqlmon" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge overlay into a copy of base."""
    result = dict(base)
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)  # type: ignore[arg-type]
        else:
            result[key] = value
    return result


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/bqlmon/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            print(f"bqlmon: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"bqlmon: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _deep_merge(DEFAULT_CONFIG, user_config)

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _deep_merge(DEFAULT_CONFIG, user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"bqlmon: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return dict(DEFAULT_CONFIG)


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# bqlmon configuration",
        "# Place this file at ~/.config/bqlmon/config.toml",
        "",
        f'interface = "{DEFAULT_CONFIG["interface"]}"',
        f"poll_freq = {DEFAULT_CONFIG['poll_freq']}",
        f'sysfs_root = "{DEFAULT_CONFIG["sysfs_root"]}"',
        "",
    ]

    for table in ("keys", "colors"):
        lines.append(f"[{table}]")
        for key, value in DEFAULT_CONFIG[table].items():
            lines.append(f'{key} = "{value}"')
        lines.append("")

    return "\n".join(lines) + "\n"
