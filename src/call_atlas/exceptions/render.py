"""Rendering and persistence exceptions."""

from pathlib import Path
from typing import Union

from .base import CallAtlasError


class RenderError(CallAtlasError):
    """Base class for graph rendering errors."""

    pass


class UnknownMetadataTypeError(RenderError):
    """Raised when a metadata record carries a type the renderer cannot serialize."""

    def __init__(self, metadata_type: str):
        super().__init__(
            f"Unknown metadata type: {metadata_type}", details={"type": str(metadata_type)}
        )
        self.metadata_type = metadata_type


class PersistenceError(CallAtlasError):
    """Base class for reading and writing definition files."""

    pass


class DefinitionLoadError(PersistenceError):
    """Raised when a definition file cannot be read or decoded."""

    def __init__(self, filepath: Union[str, Path], reason: str):
        super().__init__(
            f"Cannot load definition: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason
