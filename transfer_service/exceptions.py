"""
Archives Transfer Service — Custom Exception Hierarchy
========================================================

What:  Application-specific exceptions for the upload and reference-data flows.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching HTTP status.
Who:   Raised by services; caught by global handlers.
When:  During request processing. No exception is retried by the service.

Exception Hierarchy:
    TransferServiceError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── ConflictError            → 409 Conflict (destination already exists)
    ├── IncompleteUploadError    → 422 Unprocessable Entity (final size mismatch)
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class TransferServiceError(Exception):
    """
    Base exception for all transfer service errors.

    Attributes:
        message:  User-facing error description (returned in the API response)
        context:  Additional debug info (logged, and returned as details for 4xx)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(TransferServiceError):
    """
    Raised when client input fails validation.

    When:    Missing identifier, missing file part, a filename that confines
             to nothing, or chunk metadata that is not a non-negative integer.
    HTTP:    400 Bad Request

    No storage is touched before this is raised.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(TransferServiceError):
    """
    Raised when a create-exclusive open finds the destination already present.

    When:    A single-shot upload, or chunk 0 of a chunked upload, targets a
             filename that already exists in the submission area.
    HTTP:    409 Conflict

    The existing file is left untouched.
    """

    def __init__(
        self,
        filename: str,
        identifier: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"filename": filename, "identifier": identifier})
        super().__init__(message=f"File {filename} already exists", context=ctx)
        self.filename = filename
        self.identifier = identifier


class IncompleteUploadError(TransferServiceError):
    """
    Raised after the last chunk is appended when the assembled size does not
    match the total size announced by the client.

    HTTP:    422 Unprocessable Entity
    """

    def __init__(
        self,
        filename: str,
        expected_size: int,
        actual_size: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update(
            {
                "filename": filename,
                "expected_size": expected_size,
                "actual_size": actual_size,
            }
        )
        super().__init__(
            message=(
                f"Upload of {filename} finished with {actual_size} bytes "
                f"but {expected_size} were expected"
            ),
            context=ctx,
        )
        self.expected_size = expected_size
        self.actual_size = actual_size


class FileStorageError(TransferServiceError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, directory not writable, I/O error.
    HTTP:    500 Internal Server Error

    The message carries the OS error text so the uploader can report it.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(TransferServiceError):
    """
    Raised when a reference-data query fails.

    When:    Store unreachable, table missing, driver error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
