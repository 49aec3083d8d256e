"""Exception hierarchy for call-atlas."""

from .base import CallAtlasError
from .config import (
    ConfigurationError,
    InvalidConfigError,
    InvalidPathError,
)
from .render import (
    DefinitionLoadError,
    PersistenceError,
    RenderError,
    UnknownMetadataTypeError,
)
from .store import (
    DefinitionNotFoundError,
    DuplicateDefinitionError,
    StoreError,
)

__all__ = [
    "CallAtlasError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
    "StoreError",
    "DefinitionNotFoundError",
    "DuplicateDefinitionError",
    "RenderError",
    "UnknownMetadataTypeError",
    "PersistenceError",
    "DefinitionLoadError",
]
