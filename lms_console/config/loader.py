"""Settings loading: environment defaults with an optional JSON file on top."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..errors.internal import ParsingError
from .model import ConsoleSettings

CONF_FILE_ENV = "LMS_CONSOLE_CONF_FILE"


def load_raw(config_file: str | Path) -> dict[str, Any]:
    """Read a JSON settings file.

    Returns:
        The parsed object, or an empty dict when the file does not exist.

    Raises:
        ParsingError: The file is not a JSON object.
    """
    path = Path(config_file).expanduser()
    if not path.exists():
        logging.debug(f"📁 No settings file at {path}")
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParsingError(f"Settings file {path} is not valid JSON") from e
    if not isinstance(data, dict):
        raise ParsingError(f"Settings file {path} must contain a JSON object")
    return data


def load_settings(config_file: str | Path | None = None) -> ConsoleSettings:
    """Build settings from env defaults merged with the settings file.

    Args:
        config_file: Explicit settings file; falls back to ``LMS_CONSOLE_CONF_FILE``.

    Raises:
        ParsingError: Unreadable file or invalid values.
    """
    file_name = config_file or os.environ.get(CONF_FILE_ENV)
    merged = ConsoleSettings.from_env().to_dict()
    if file_name:
        merged.update(load_raw(file_name))
    try:
        settings = ConsoleSettings.from_dict(merged)
    except ValidationError as e:
        raise ParsingError(f"Invalid settings: {e.error_count()} error(s)") from e
    logging.debug(f"⚙️ Settings loaded base_url={settings.base_url}")
    return settings
