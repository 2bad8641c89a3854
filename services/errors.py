"""
Domain exceptions for the Excel data intake services.

Services raise these; the API layer maps them onto HTTP responses and the
CLI prints them.
"""


class ExcelDataError(Exception):
    """Base class for all service errors."""


class ValidationError(ExcelDataError):
    """Bad or missing input: fields, file size, file type, file content."""


class UploadRejectedError(ValidationError):
    """An upload failed the ingestion validator."""

    def __init__(self, reason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


class EmptyWorkbookError(ValidationError):
    """Workbook contains no sheets."""


class EmptyDataError(ValidationError):
    """First sheet (or pasted text) contains no data rows."""


class UnreadableFileError(ValidationError):
    """File bytes could not be decoded as the declared spreadsheet kind."""


class NotFoundError(ExcelDataError):
    """Unknown entry id or missing backup file."""


class BackupError(ExcelDataError):
    """Base class for backup write/read failures."""


class BackupIOError(BackupError):
    """Snapshot could not be written or read from disk."""


class BackupParseError(BackupError):
    """Snapshot file is not a valid backup document."""
