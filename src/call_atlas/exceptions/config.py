"""Configuration exceptions: tracer options and settings files."""

from pathlib import Path
from typing import Any, Optional, Union

from .base import CallAtlasError


class ConfigurationError(CallAtlasError):
    """Base class for configuration-related errors."""

    pass


class InvalidPathError(ConfigurationError):
    """Raised when a path option (e.g. ``target_files``) is unusable.

    Raised at construction time, before anything is traced or served.
    """

    def __init__(self, path: Union[str, Path], reason: str, option: Optional[str] = None):
        where = f" for {option}" if option else ""
        details = {"path": str(path), "reason": reason}
        if option:
            details["option"] = option
        super().__init__(f"Invalid path{where}: {path}", details=details)
        self.path = path
        self.reason = reason
        self.option = option


class InvalidConfigError(ConfigurationError):
    """Raised when a setting fails validation, wherever it came from."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason
