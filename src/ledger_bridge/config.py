"""Configuration management for ledger-bridge."""

import json
import os
from pathlib import Path
from typing import Any

# Default config filenames
CONFIG_FILENAME = "config.json"
LOCAL_CONFIG_FILENAME = "ledger-bridge.json"

# Writer options per format, used for keys the config does not set
DEFAULT_WRITER_OPTIONS: dict[str, dict[str, Any]] = {
    "csv": {"delimiter": ",", "decimal_separator": ","},
    "mt940": {"sender_bic": "BANKXXXXXXX", "statement_reference": "STATEMENT"},
    "camt053": {"message_id": None},
}


def get_config_dir() -> Path:
    """Get the config directory path (XDG compliant)."""
    xdg_config_home = os.getenv("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return Path(xdg_config_home) / "ledger-bridge"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_config_dir() / CONFIG_FILENAME


def find_config_file() -> Path | None:
    """Find the config file in standard locations.

    Searches for config in the following order:
    1. ledger-bridge.json in current directory
    2. XDG config: ~/.config/ledger-bridge/config.json
    """
    config_paths = [
        Path(LOCAL_CONFIG_FILENAME),
        get_config_path(),
    ]

    for path in config_paths:
        if path.exists():
            return path

    return None


def load_json_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not a JSON object or a writer section is malformed
    """
    with open(config_path, encoding="utf-8") as f:
        config = json.load(f)
    if not isinstance(config, dict):
        raise ValueError(f"Config file {config_path} must contain a JSON object")
    for name in DEFAULT_WRITER_OPTIONS:
        section = config.get(name)
        if section is not None:
            _check_section(name, section)
    return config


def _check_section(name: str, section: Any) -> None:
    """Validate one writer section: an object whose known keys hold strings."""
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a JSON object")
    for key in DEFAULT_WRITER_OPTIONS.get(name, {}):
        value = section.get(key)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"Config option '{name}.{key}' must be a string")


def load_config(config_path: Path | None = None) -> dict[str, Any] | None:
    """Load configuration from config file.

    Args:
        config_path: Explicit path to a config file

    Returns:
        Loaded config dict or None if not found
    """
    if config_path:
        return load_json_config(config_path)

    config_file = find_config_file()
    if config_file:
        return load_json_config(config_file)

    return None


def get_log_level(config: dict[str, Any] | None = None) -> str | None:
    """Get the configured log level name, if any."""
    if not config:
        return None
    level = config.get("log_level")
    return str(level) if level else None


def get_writer_options(config: dict[str, Any] | None, format_name: str) -> dict[str, Any]:
    """Get writer keyword options for a format.

    Args:
        config: Loaded JSON config
        format_name: Canonical format name (csv, mt940, camt053)

    Returns:
        Options with defaults filled in; unknown keys are dropped

    Raises:
        ValueError: If the format's section is not an object of strings
    """
    defaults = DEFAULT_WRITER_OPTIONS.get(format_name, {})
    options = dict(defaults)

    if config:
        section = config.get(format_name)
        if section is None:
            return options
        _check_section(format_name, section)
        for key in defaults:
            if section.get(key) is not None:
                options[key] = section[key]

    return options


def create_default_config() -> dict[str, Any]:
    """Create a default configuration."""
    config: dict[str, Any] = {"log_level": "WARNING"}
    for name, options in DEFAULT_WRITER_OPTIONS.items():
        config[name] = dict(options)
    return config
