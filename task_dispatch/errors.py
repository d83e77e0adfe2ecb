from __future__ import annotations

"""Error kinds of the upload pipeline.

Each kind carries the HTTP-equivalent status and the client-facing message /
error list of the upload response contract. `detail` keeps the internal cause
for logs and the JSON Lines error log; it is never shown to the client.
"""

__all__ = [
    "UploadError",
    "NoFileProvidedError",
    "UnsupportedMediaTypeError",
    "FileTooLargeError",
    "ParseError",
    "SchemaValidationError",
    "NoActiveWorkersError",
    "PersistenceError",
]


class UploadError(Exception):
    """Base class: terminal outcome of one submit."""

    status_code = 400
    error_type = "UPLOAD_ERROR"
    default_message = "Upload failed"
    default_errors: tuple[str, ...] = ()

    def __init__(
        self,
        errors: list[str] | None = None,
        *,
        message: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = list(errors) if errors is not None else list(self.default_errors)
        self.detail = detail
        super().__init__(detail or self.message)


class NoFileProvidedError(UploadError):
    error_type = "NO_FILE_PROVIDED"
    default_message = "No file uploaded"
    default_errors = ("Please select a CSV or Excel file to upload",)


class UnsupportedMediaTypeError(UploadError):
    error_type = "UNSUPPORTED_MEDIA_TYPE"
    default_message = "Invalid file type"
    default_errors = ("Invalid file type. Only CSV and Excel files are allowed.",)


class FileTooLargeError(UploadError):
    error_type = "FILE_TOO_LARGE"
    default_message = "File too large"


class ParseError(UploadError):
    """Malformed or unreadable document; no partial row sequence is returned."""
    error_type = "PARSE_FAILURE"
    default_message = "Failed to parse file"
    default_errors = ("File format is invalid or corrupted",)


class SchemaValidationError(UploadError):
    """Carries the full accumulated list of validation problems."""
    error_type = "SCHEMA_VALIDATION_FAILURE"
    default_message = "CSV validation failed"


class NoActiveWorkersError(UploadError):
    error_type = "NO_ACTIVE_WORKERS"
    default_message = "No active agents available"
    default_errors = ("Please create at least one active agent before uploading tasks",)


class PersistenceError(UploadError):
    """A create-task call failed mid-batch.

    Tasks created before the failure stay in the store (no rollback);
    `created_count` tells the caller how far the batch got.
    """
    status_code = 500
    error_type = "PERSISTENCE_FAILURE"
    default_message = "Server error during file processing"

    def __init__(self, original_row: int, created_count: int, cause: Exception) -> None:
        self.original_row = original_row
        self.created_count = created_count
        self.cause = cause
        super().__init__(
            [
                f"Row {original_row}: failed to create task ({cause})",
                f"{created_count} task(s) were created before the failure and were not rolled back",
            ],
            detail=str(cause),
        )
