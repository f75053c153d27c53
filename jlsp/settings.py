"""
User settings, read from the nearest `.jenkinslsp.json` and overridden by the
editor's initializationOptions.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import MAP_KEY_SCAN_WINDOW, VARS_SEARCH_DEPTH
from .exceptions import ErrorCode, GroovyLspError

logger = logging.getLogger(__name__)

SETTINGS_FILE_NAME = ".jenkinslsp.json"


class ServerSettings(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    map_key_scan_window: int = Field(default=MAP_KEY_SCAN_WINDOW, ge=1, alias="mapKeyScanWindow")
    vars_directory_name: str = Field(default="vars", min_length=1, alias="varsDirectoryName")
    vars_search_depth: int = Field(default=VARS_SEARCH_DEPTH, ge=0, alias="varsSearchDepth")
    enable_arity_diagnostics: bool = Field(default=True, alias="enableArityDiagnostics")
    enable_missing_return_diagnostics: bool = Field(default=True, alias="enableMissingReturnDiagnostics")
    log_level: str = Field(default="INFO", alias="logLevel")

    def merged(self, overrides: Optional[Dict[str, Any]]) -> "ServerSettings":
        """A copy with `overrides` applied; invalid overrides are logged and ignored."""
        if not overrides:
            return self
        aliases = {info.alias: name for name, info in ServerSettings.model_fields.items() if info.alias}
        data = self.model_dump()
        data.update({aliases.get(key, key): value for key, value in overrides.items()})
        try:
            return ServerSettings.model_validate(data)
        except ValidationError as e:
            logger.warning("ignoring invalid initialization options: %s", e)
            return self


def find_settings_file(start: Optional[os.PathLike]) -> Optional[Path]:
    """The first settings file in `start` or one of its ancestors."""
    if start is None:
        return None
    current = Path(start).resolve()
    if current.is_file():
        current = current.parent
    for directory in [current, *current.parents]:
        candidate = directory / SETTINGS_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def read_settings_file(path: Path) -> ServerSettings:
    """Raises GroovyLspError when the file cannot be read or validated."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("top-level value must be an object")
        return ServerSettings.model_validate(data)
    except (OSError, ValueError, ValidationError) as e:
        raise GroovyLspError(ErrorCode.INVALID_SETTINGS_FILE, path=str(path), details=str(e).splitlines()[0]) from e


def load_settings(
    document_path: Optional[os.PathLike] = None,
    cwd: Optional[os.PathLike] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ServerSettings:
    """
    Searches upward from the document's directory, then from the working
    directory. A missing or broken file means defaults.
    """
    settings_file = None
    if document_path is not None:
        settings_file = find_settings_file(Path(document_path).parent)
    if settings_file is None:
        settings_file = find_settings_file(cwd if cwd is not None else Path.cwd())

    settings = ServerSettings()
    if settings_file is not None:
        try:
            settings = read_settings_file(settings_file)
            logger.debug("loaded settings from %s", settings_file)
        except GroovyLspError as e:
            logger.warning("%s; using defaults", e)
    return settings.merged(overrides)
