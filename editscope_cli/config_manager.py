"""Configuration manager for EditScope using TOML files."""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict

import toml

logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("EDITSCOPE_HOME", str(Path.home() / ".editscope"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"


# Default limits for each section
DEFAULT_LIMITS: Dict[str, Dict[str, Any]] = {
    "memory": {
        "max_messages": 20,
        "retained_messages": 15,
        "char_limit": 2000,
        "recent_interactions": 5,
        "user_excerpt_chars": 80,
        "rollup_limit": 5,
        "max_patterns": 3,
        "recent_major_changes": 2,
        "max_major_changes": 10,
        "max_edit_history": 50,
    },
    "context": {
        "context_file_char_limit": 2000,
        "project_root_prefix": "/home/user/app/",
    },
    "search": {
        "code_extensions": [".jsx", ".tsx", ".js", ".ts"],
        "context_lines": 2,
        "max_results_for_ai": 10,
    },
}


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", CONFIG_FILE, exc)
        return {}


def load_limits() -> Dict[str, Dict[str, Any]]:
    """Load limits with file overrides merged over the defaults.

    Unknown keys in the file are ignored so a stale config can never
    introduce settings the engine does not understand.

    Returns:
        Mapping of section name to settings dict.
    """
    limits = copy.deepcopy(DEFAULT_LIMITS)
    full = load_full_config()

    for section, defaults in limits.items():
        overrides = full.get(section, {})
        if not isinstance(overrides, dict):
            logger.warning("Config section [%s] is not a table, ignoring", section)
            continue
        for key, value in overrides.items():
            if key in defaults:
                defaults[key] = value
            else:
                logger.debug("Unknown config key %s.%s ignored", section, key)

    return limits


def _save_full_config(config: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(CONFIG_FILE, "w") as f:
            toml.dump(config, f)
        return True
    except OSError as exc:
        logger.warning("Could not write config %s: %s", CONFIG_FILE, exc)
        return False


def save_section(section: str, values: Dict[str, Any]) -> bool:
    """Save one config section, preserving the others.

    Args:
        section: Section name (``memory``, ``context`` or ``search``)
        values: Settings to store

    Returns:
        True if saved successfully, False otherwise
    """
    if section not in DEFAULT_LIMITS:
        raise ValueError(f"Unknown config section: {section}")

    config = load_full_config()
    config[section] = dict(values)
    return _save_full_config(config)


def clear_section(section: str) -> bool:
    """Remove a section from config, resetting it to defaults."""
    config = load_full_config()
    config.pop(section, None)
    return _save_full_config(config)
