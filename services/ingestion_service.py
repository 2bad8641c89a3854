"""
Ingestion Service - Framework-agnostic intake and export workflow.

Used by both the API and the CLI:
    - submit_rows(): pasted data already split into rows by the client
    - ingest_text(): raw pasted text (tab-delimited)
    - ingest_file(): uploaded .xlsx / .xls / .csv bytes
    - export_entry(): stored rows back out as an .xlsx download
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple

from backend.models.schema import INTEGER_MAX, ExcelData
from services.entry_store import EntryStore
from services.errors import EmptyDataError, ValidationError
from services.ingestion_validator import (
    IngestionValidator, UploadMetadata, normalize_month, parse_year
)
from services.tabular_codec import SourceKind, TabularCodec

logger = logging.getLogger(__name__)

DEFAULT_PASTED_FILENAME = 'pasted_data.xlsx'
DEFAULT_DOWNLOAD_FILENAME = 'data.xlsx'


class IngestionService:
    """
    Orchestrates validation, decoding and storage of submissions.

    Stored ``data`` always uses the keyed-row shape: grids sent by the
    pasted-data form are keyed by their header line before they are saved.
    """

    def __init__(
        self,
        store: EntryStore,
        validator: Optional[IngestionValidator] = None,
        codec: Optional[TabularCodec] = None,
        pasted_filename: str = DEFAULT_PASTED_FILENAME,
        download_filename: str = DEFAULT_DOWNLOAD_FILENAME
    ):
        self.store = store
        self.validator = validator or IngestionValidator()
        self.codec = codec or TabularCodec()
        self.pasted_filename = pasted_filename
        self.download_filename = download_filename

    def _month_and_year(self, month: Any, year: Any) -> Tuple[str, int]:
        if month is None or not str(month).strip() or year is None or not str(year).strip():
            raise ValidationError("Month and year are required.")

        month_name = normalize_month(month)
        if month_name is None:
            raise ValidationError(f"Invalid month: '{month}'")

        year_value = parse_year(year)
        if year_value is None:
            raise ValidationError(f"Invalid year: '{year}'")

        return month_name, year_value

    def normalize_rows(self, data: Any) -> List[dict]:
        """
        Bring submitted data into keyed-row form.

        Accepts a grid (list of lists, header first) or keyed rows (list of
        objects). Mixed shapes are rejected.
        """
        if not isinstance(data, list):
            raise ValidationError("Data must be a list of rows")

        if all(isinstance(row, (list, tuple)) for row in data):
            return self.codec.rows_from_grid(data)
        if all(isinstance(row, dict) for row in data):
            return [dict(row) for row in data]

        raise ValidationError("Rows must be all lists or all objects")

    def submit_rows(
        self,
        month: Any,
        year: Any,
        data: Any,
        record_count: Optional[int] = None,
        file_name: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> ExcelData:
        """
        Store rows submitted directly (the pasted-data path).

        record_count is trusted as sent; when omitted it is the number of
        data rows.

        Raises:
            ValidationError: Missing/invalid month or year, malformed rows
                or a record count outside the column range
            EmptyDataError: No data rows after the header
        """
        month_name, year_value = self._month_and_year(month, year)
        rows = self.normalize_rows(data)

        if not rows:
            raise EmptyDataError("No data rows provided.")

        if record_count is None:
            record_count = len(rows)
        elif isinstance(record_count, bool) or not 0 <= record_count <= INTEGER_MAX:
            raise ValidationError(f"Invalid record count: {record_count}")
        elif record_count != len(rows):
            logger.warning(f"Submitted record count {record_count} differs from "
                           f"{len(rows)} data rows; storing as submitted")

        return self.store.create(
            month=month_name,
            year=year_value,
            data=rows,
            record_count=record_count,
            file_name=file_name or self.pasted_filename,
            user_id=user_id
        )

    def ingest_text(
        self,
        text: str,
        month: Any,
        year: Any,
        file_name: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> ExcelData:
        """Split pasted tab-delimited text and store it like the web form does."""
        grid = self.codec.decode(text.encode('utf-8'), SourceKind.TEXT)
        return self.submit_rows(
            month=month,
            year=year,
            data=grid,
            record_count=max(len(grid) - 1, 0),
            file_name=file_name,
            user_id=user_id
        )

    def ingest_file(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        month: Any,
        year: Any,
        user_id: Optional[str] = None
    ) -> ExcelData:
        """
        Validate, decode and store an uploaded file.

        Raises:
            UploadRejectedError: Size, type or required-field check failed
            EmptyWorkbookError / EmptyDataError: Nothing to store
            UnreadableFileError: Bytes could not be parsed
        """
        self.validator.validate(UploadMetadata(
            filename=filename,
            content_type=content_type,
            size=len(content),
            month=month,
            year=None if year is None else str(year)
        ))

        kind = self.codec.source_kind_for(filename, content)
        logger.info(f"Processing file: {filename}, size: {len(content)} bytes, "
                    f"type: {content_type}, decoder: {kind.value}")

        rows = self.codec.decode(content, kind)

        entry = self.store.create(
            month=normalize_month(month),
            year=parse_year(year),
            data=rows,
            record_count=len(rows),
            file_name=filename,
            user_id=user_id
        )
        logger.info(f"Successfully processed file with {len(rows)} records")
        return entry

    def download_name(self, entry: ExcelData) -> str:
        """Attachment filename: stored name with an .xlsx suffix, or the default."""
        if not entry.file_name:
            return self.download_filename
        name = Path(entry.file_name).name
        if not name or name.startswith('.'):
            return self.download_filename
        return str(Path(name).with_suffix('.xlsx'))

    def export_entry(self, entry_id: str) -> Tuple[str, bytes]:
        """
        Encode a stored entry as an .xlsx workbook.

        Returns:
            (download filename, workbook bytes)

        Raises:
            NotFoundError: Unknown entry id
        """
        entry = self.store.get(entry_id)
        return self.download_name(entry), self.codec.encode(entry.data)
