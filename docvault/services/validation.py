"""Upload acceptance rules. Pure functions, no I/O."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .errors import ErrorKind

ALLOWED_FILE_TYPES: dict[str, frozenset[str]] = {
    "pdf": frozenset({"application/pdf"}),
    "docx": frozenset({"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}),
    "xlsx": frozenset({"application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"}),
    "png": frozenset({"image/png"}),
    "jpg": frozenset({"image/jpeg", "image/jpg"}),
    "jpeg": frozenset({"image/jpeg", "image/jpg"}),
    "csv": frozenset({"text/csv", "application/csv"}),
}

MAX_FILE_SIZE = 10 * 1024 * 1024


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[ErrorKind] = None
    message: Optional[str] = None


def allowed_extensions() -> list[str]:
    return list(ALLOWED_FILE_TYPES)


def extract_extension(name: Any) -> Optional[str]:
    """Return the lower-cased text after the final dot, or None."""
    if not name or not isinstance(name, str):
        return None
    _, dot, extension = name.rpartition(".")
    if not dot or not extension:
        return None
    return extension.lower()


def validate_file_type(name: Any, mime_type: Any) -> bool:
    """Extension and declared MIME type are checked as a pair."""
    if not mime_type or not isinstance(mime_type, str):
        return False
    extension = extract_extension(name)
    if extension is None:
        return False
    accepted = ALLOWED_FILE_TYPES.get(extension)
    if accepted is None:
        return False
    return mime_type.lower() in accepted


def validate_file_size(size: Any) -> bool:
    if isinstance(size, bool) or not isinstance(size, (int, float)):
        return False
    return 0 <= size <= MAX_FILE_SIZE


def invalid_type_message() -> str:
    return f"File type not supported. Allowed types: {', '.join(allowed_extensions()).upper()}"


def too_large_message() -> str:
    return f"File size exceeds maximum limit of {MAX_FILE_SIZE // (1024 * 1024)}MB ({MAX_FILE_SIZE} bytes)"


def validate_file(name: Any, mime_type: Any, size: Any) -> ValidationResult:
    if not validate_file_type(name, mime_type):
        return ValidationResult(False, ErrorKind.VALIDATION_INVALID_FILE_TYPE, invalid_type_message())
    if not validate_file_size(size):
        return ValidationResult(False, ErrorKind.VALIDATION_FILE_TOO_LARGE, too_large_message())
    return ValidationResult(True)
