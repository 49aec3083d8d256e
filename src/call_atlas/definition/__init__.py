"""Definition graph model and the bit-indexed definition store."""

from .models import (
    CLASS_CONTEXT,
    INSTANCE_CONTEXT,
    Definition,
    Dependency,
    MethodId,
    Source,
    combine_definitions,
)
from .store import DefinitionStore

__all__ = [
    "CLASS_CONTEXT",
    "INSTANCE_CONTEXT",
    "Definition",
    "DefinitionStore",
    "Dependency",
    "MethodId",
    "Source",
    "combine_definitions",
]
