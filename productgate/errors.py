"""
Exception taxonomy for the product gate.

Only configuration and structural problems are raised; field-level problems
are accumulated as Violation records so one pass yields a complete report.
"""

from typing import List, Optional


class GateError(Exception):
    """Base class for product gate errors."""
    pass


class ConfigError(GateError):
    """Unknown category or malformed contract/rule table (deployment mistake)."""
    pass


class StructuralError(GateError):
    """Raised when a raw input fails the record envelope schema."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class SnapshotError(GateError):
    """Raised when a golden snapshot cannot be read or written."""
    pass
