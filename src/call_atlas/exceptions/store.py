"""Definition store exceptions: lookups and registration."""

from .base import CallAtlasError


class StoreError(CallAtlasError):
    """Base class for definition store errors."""

    pass


class DefinitionNotFoundError(StoreError, KeyError):
    """Raised when a bit id, bitmask or definition is not registered."""

    def __init__(self, key: object, reason: str = "not registered"):
        super().__init__(f"Definition not found: {key}", details={"key": str(key), "reason": reason})
        self.key = key
        self.reason = reason


class DuplicateDefinitionError(StoreError, ValueError):
    """Raised when the same definition object is registered twice."""

    def __init__(self, title: str, bit_id: int | None = None):
        details = {"title": title}
        if bit_id is not None:
            details["bit_id"] = str(bit_id)
        super().__init__("Definition already set", details=details)
        self.title = title
        self.bit_id = bit_id
