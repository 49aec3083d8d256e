"""Configuration loading and management for call-atlas.

Configuration sources are merged in priority order:
    1. Defaults (defined in AtlasConfig)
    2. Global config (~/.call-atlas.toml)
    3. Project config (./call-atlas.toml)
    4. Explicit config file
    5. Environment variables (CALL_ATLAS_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(port=9000, verbose=True)
    >>> config.port
    9000
    >>> config.verbosity
    'verbose'
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

ENV_PREFIX = "CALL_ATLAS_"
CONFIG_FILENAME = "call-atlas.toml"


@dataclass(frozen=True)
class AtlasConfig:
    """Configuration for serving and rendering definitions.

    Attributes:
        Storage:
            definition_dir: Directory scanned for definition JSON files
            module_store_path: JSON file mapping source names to module paths

        Server:
            host: Interface the HTTP API binds to
            port: Port the HTTP API listens on
            per_page: Default page size of the definition listing
            open_browser: Open the viewer once the server is up

        Rendering defaults:
            compound: Collapse edges between module clusters
            concentrate: Ask Graphviz to merge parallel edges
            only_module: Render module clusters only (implies compound)

        Output control:
            verbosity: Logging verbosity level
    """

    # Storage
    definition_dir: Optional[str] = None
    module_store_path: str = ".call-atlas-modules.json"

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    per_page: int = 100
    open_browser: bool = True

    # Rendering defaults
    compound: bool = False
    concentrate: bool = False
    only_module: bool = False

    # Output control
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not 0 < self.port < 65536:
            raise InvalidConfigError("port", self.port, "must be between 1 and 65535")
        if self.per_page < 1:
            raise InvalidConfigError("per_page", self.per_page, "must be at least 1")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError(
                "verbosity", self.verbosity, "must be one of quiet, normal, verbose"
            )
        if not self.module_store_path:
            raise InvalidConfigError("module_store_path", self.module_store_path, "must not be empty")

    @property
    def verbose(self) -> bool:
        return self.verbosity == "verbose"

    @property
    def quiet(self) -> bool:
        return self.verbosity == "quiet"


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> AtlasConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``None``
            values are ignored so unset CLI options keep lower-priority values.

    Returns:
        Validated AtlasConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
        InvalidConfigError: If a merged value fails validation
    """
    merged: dict[str, Any] = {}

    global_config = Path.home() / f".{CONFIG_FILENAME}"
    if global_config.exists():
        merged.update(_load_toml_file(global_config))

    project_config = Path.cwd() / CONFIG_FILENAME
    if project_config.exists():
        merged.update(_load_toml_file(project_config))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_load_toml_file(config_file))

    merged.update(_load_env_vars())

    # Convert verbosity boolean flags to string
    if overrides.pop("verbose", False):
        overrides["verbosity"] = "verbose"
    if overrides.pop("quiet", False):
        overrides["verbosity"] = "quiet"

    merged.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return AtlasConfig(**merged)
    except TypeError as e:
        # Unknown field in config
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from CALL_ATLAS_* environment variables.

    Every AtlasConfig field maps to ``CALL_ATLAS_<FIELD_NAME>``, e.g.
    ``CALL_ATLAS_PORT=9000`` or ``CALL_ATLAS_COMPOUND=true``.
    """
    type_hints = get_type_hints(AtlasConfig)

    result: dict[str, Any] = {}

    for field_name in AtlasConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(field_name, env_value, f"{env_key}: {e}")
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    # String (including Literal types like Verbosity)
    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file, accepting either top-level keys or a [call-atlas] table."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}")

    section = data.get("call-atlas")
    if isinstance(section, dict):
        return dict(section)
    return data
