"""
Exception hierarchy for the OVAL definition model.

Only I/O and document-shape problems raise. Attempts to mutate a locked
model and variable datatype mismatches are logged and skipped instead.
"""


class OvalModelError(Exception):
    """Base exception for all model operations."""


class ModelImportError(OvalModelError):
    """Raised when a source document cannot be read or parsed."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot import '{source}': {reason}")


class ModelExportError(OvalModelError):
    """Raised when a model cannot be written to its destination."""

    def __init__(self, destination: str, reason: str):
        self.destination = destination
        self.reason = reason
        super().__init__(f"Cannot export to '{destination}': {reason}")
