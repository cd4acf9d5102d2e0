from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    VALIDATION_INVALID_FILE_TYPE = "VALIDATION_INVALID_FILE_TYPE"
    VALIDATION_FILE_TOO_LARGE = "VALIDATION_FILE_TOO_LARGE"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    STORAGE_NOT_CONFIGURED = "STORAGE_NOT_CONFIGURED"
    STORAGE_OPERATION_FAILED = "STORAGE_OPERATION_FAILED"
    METADATA_OPERATION_FAILED = "METADATA_OPERATION_FAILED"


class DocumentError(Exception):
    """A failure of a document operation, tagged with a stable kind."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value}, {self.message!r})"


class StorageError(DocumentError):
    """Raised by object store implementations."""
