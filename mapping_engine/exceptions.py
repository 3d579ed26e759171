"""
Exceptions raised by the mapping engine.

Only user-input problems raise: a CSV without the required columns, a CSV
without usable rows, an export with nothing to write, an unreadable catalog.
Degenerate edits (unknown tables, empty selections) are silent no-ops.
"""


class MappingEngineError(Exception):
    """Base exception for all mapping engine errors."""
    pass


class CsvImportError(MappingEngineError, ValueError):
    """Raised when CSV text cannot be turned into mappings."""
    pass


class NothingToExportError(MappingEngineError, ValueError):
    """Raised when a mapping list has no non-audit rows to export."""

    def __init__(self, message: str = "No mappings to export"):
        super().__init__(message)


class CatalogError(MappingEngineError):
    """Raised when the transformation catalog file is missing or malformed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid transformation catalog '{path}': {reason}")
