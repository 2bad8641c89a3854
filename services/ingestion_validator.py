"""
Ingestion Validator - Upload checks before any decoding happens.

Checks run in a fixed order (size, type, required fields) and the first
failure is the only one reported.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from backend.models.schema import INTEGER_MAX, INTEGER_MIN
from services.errors import UploadRejectedError

logger = logging.getLogger(__name__)

MONTH_NAMES = (
    'january', 'february', 'march', 'april', 'may', 'june',
    'july', 'august', 'september', 'october', 'november', 'december'
)

DEFAULT_MAX_SIZE_BYTES = 50 * 1024 * 1024
DEFAULT_ALLOWED_EXTENSIONS = ('.xlsx', '.xls', '.csv')
DEFAULT_ALLOWED_CONTENT_TYPES = (
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'application/vnd.ms-excel',
    'text/csv',
    'application/octet-stream',
)


class RejectionReason(str, Enum):
    """Why an upload was refused."""
    SIZE = 'size'
    TYPE = 'type'
    FIELDS = 'fields'


@dataclass(frozen=True)
class UploadMetadata:
    """What is known about an upload before its bytes are parsed."""
    filename: Optional[str]
    content_type: Optional[str]
    size: int
    month: Optional[str] = None
    year: Optional[str] = None


@dataclass(frozen=True)
class Rejection:
    reason: RejectionReason
    message: str


def normalize_month(month) -> Optional[str]:
    """Return the canonical lowercase month name, or None if it is not one."""
    if month is None:
        return None
    value = str(month).strip().lower()
    return value if value in MONTH_NAMES else None


def parse_year(year) -> Optional[int]:
    """Return the year as an int, or None if it does not parse or overflows the column."""
    if year is None or isinstance(year, bool):
        return None
    if isinstance(year, int):
        value = year
    else:
        try:
            value = int(str(year).strip())
        except ValueError:
            return None
    if not INTEGER_MIN <= value <= INTEGER_MAX:
        return None
    return value


class IngestionValidator:
    """
    Pure upload validator.

    The extension and content-type checks are alternatives: either one
    passing is enough, since browsers report spreadsheet MIME types
    inconsistently.
    """

    def __init__(
        self,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
        allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS,
        allowed_content_types: Iterable[str] = DEFAULT_ALLOWED_CONTENT_TYPES
    ):
        self.max_size_bytes = max_size_bytes
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}
        self.allowed_content_types = {ct.lower() for ct in allowed_content_types}

    def check(self, meta: UploadMetadata) -> Optional[Rejection]:
        """
        Check an upload.

        Returns:
            None if the upload is acceptable, otherwise the first Rejection
            in size -> type -> fields order.
        """
        if meta.size > self.max_size_bytes:
            return Rejection(
                RejectionReason.SIZE,
                f"File size ({meta.size / 1024 / 1024:.1f} MB) exceeds maximum allowed "
                f"({self.max_size_bytes / 1024 / 1024:.0f} MB)"
            )

        if not self._type_allowed(meta.filename, meta.content_type):
            return Rejection(
                RejectionReason.TYPE,
                "Only Excel (.xlsx, .xls) and CSV files are allowed"
            )

        if not meta.month or not str(meta.month).strip() or meta.year is None or not str(meta.year).strip():
            return Rejection(RejectionReason.FIELDS, "Month and year are required.")

        if normalize_month(meta.month) is None:
            return Rejection(RejectionReason.FIELDS, f"Invalid month: '{meta.month}'")

        if parse_year(meta.year) is None:
            return Rejection(RejectionReason.FIELDS, f"Invalid year: '{meta.year}'")

        return None

    def validate(self, meta: UploadMetadata) -> None:
        """
        Validate an upload.

        Raises:
            UploadRejectedError: With the rejection reason and message
        """
        rejection = self.check(meta)
        if rejection is not None:
            logger.warning(f"Upload rejected ({rejection.reason.value}): {meta.filename} - {rejection.message}")
            raise UploadRejectedError(rejection.reason, rejection.message)

    def _type_allowed(self, filename: Optional[str], content_type: Optional[str]) -> bool:
        ext = Path(filename or '').suffix.lower()
        if ext in self.allowed_extensions:
            return True

        mime = (content_type or '').split(';')[0].strip().lower()
        return mime in self.allowed_content_types
