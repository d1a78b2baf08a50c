"""
Configuration loader — reads localpkgs.yml into Settings.

Reads YAML, validates against the Settings schema, and resolves the
project root to the directory holding the config file. Without a
config file the defaults apply, rooted at the current directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from localpkgs.core.errors import ConfigError
from localpkgs.core.models.settings import Settings

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "localpkgs.yml"


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Nearest localpkgs.yml in ``start_dir`` (default: cwd) or any parent."""
    start = (start_dir or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None


def load_settings(path: Path | None = None, *, search: bool = True) -> Settings:
    """Load and validate configuration.

    Args:
        path: Explicit path to localpkgs.yml. If None and ``search`` is
            set, searches upward from the current directory.
        search: Whether to search for a config file when none is given.

    Returns:
        Validated Settings with an absolute ``root``.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    if path is None and search:
        path = find_config_file()

    if path is None:
        logger.debug("No %s found — using defaults rooted at %s", CONFIG_FILE, Path.cwd())
        return Settings(root=Path.cwd().resolve())

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    base = path.parent.resolve()
    root = Path(data.get("root", ".")).expanduser()
    data["root"] = root if root.is_absolute() else (base / root).resolve()

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded settings from %s (root=%s)", path, settings.root)
    return settings
