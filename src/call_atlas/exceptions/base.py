"""Base exception for call-atlas."""

from typing import Any, Dict, Optional


class CallAtlasError(Exception):
    """Base exception for all call-atlas errors.

    ``details`` carries the structured context (paths, keys, reasons) that the
    CLI prints and the HTTP API returns next to the message.
    """

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """JSON error body: ``{"error": message, "details": {...}}``."""
        return {"error": self.message, "details": dict(self.details)}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message
