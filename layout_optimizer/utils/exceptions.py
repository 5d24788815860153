"""
Error types raised by the optimizer.

Only configuration problems are errors. A layout that cannot hold every piece
is returned as an infeasible Layout, not raised.
"""

import json
from typing import Any, Dict, Optional
from datetime import datetime


class ConfigurationError(ValueError):
    """
    Invalid input detected before any optimization work begins.

    Attributes:
        message: Human readable description
        details: Offending values (piece, field name, ...)
        timestamp: When the error was raised
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, default=str)


class LayoutValidationError(RuntimeError):
    """A produced layout broke a geometric or conservation invariant."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("Layout failed validation: " + "; ".join(self.errors))
