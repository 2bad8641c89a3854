"""
Tabular Codec - Spreadsheet bytes <-> row data.

Decodes uploaded workbooks (.xlsx via openpyxl, legacy .xls via xlrd),
CSV files and pasted tab-delimited text into rows, and encodes stored rows
back into a single-sheet .xlsx workbook for download.

Two row shapes exist:
    - keyed rows: list of {header: value} dicts (workbook and CSV decode)
    - grid: list of lists of raw cell strings (pasted text decode)

rows_from_grid() converts a grid into keyed rows using its first line as
the header.
"""

import csv
import io
import json
import logging
import zipfile
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import openpyxl
import xlrd
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import InvalidFileException
from xlrd.compdoc import CompDocError

from services.errors import EmptyDataError, EmptyWorkbookError, UnreadableFileError

logger = logging.getLogger(__name__)

DEFAULT_SHEET_TITLE = 'Data'
EMPTY_HEADER = '__EMPTY'

XLSX_SIGNATURE = b'PK\x03\x04'
XLS_SIGNATURE = b'\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1'
XLSX_MIME_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

Row = Dict[str, Any]


class SourceKind(str, Enum):
    """Declared kind of the bytes handed to decode()."""
    WORKBOOK = 'workbook'
    LEGACY_WORKBOOK = 'legacy_workbook'
    CSV = 'csv'
    TEXT = 'text'


EXTENSION_KINDS = {
    '.xlsx': SourceKind.WORKBOOK,
    '.xlsm': SourceKind.WORKBOOK,
    '.xls': SourceKind.LEGACY_WORKBOOK,
    '.csv': SourceKind.CSV,
}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == '')


def _json_value(value: Any) -> Any:
    """Coerce a decoded cell value into something JSON can store."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class TabularCodec:
    """
    Framework-agnostic spreadsheet codec.

    Only the first sheet of a workbook is read. No formulas or styles are
    preserved in either direction.
    """

    def __init__(self, sheet_title: str = DEFAULT_SHEET_TITLE, csv_delimiter: str = ','):
        self.sheet_title = sheet_title
        self.csv_delimiter = csv_delimiter

    # ------------------------------------------------------------------
    # Kind detection
    # ------------------------------------------------------------------

    def source_kind_for(self, filename: Optional[str], content: bytes = b'') -> SourceKind:
        """
        Pick the decoder for an uploaded file.

        Uses the extension when it is known, otherwise sniffs the file
        signature (zip -> xlsx, OLE2 -> xls) and falls back to CSV.
        """
        ext = Path(filename or '').suffix.lower()
        if ext in EXTENSION_KINDS:
            return EXTENSION_KINDS[ext]

        if content.startswith(XLSX_SIGNATURE):
            return SourceKind.WORKBOOK
        if content.startswith(XLS_SIGNATURE):
            return SourceKind.LEGACY_WORKBOOK
        return SourceKind.CSV

    # ------------------------------------------------------------------
    # Decode
    # ------------------------------------------------------------------

    def decode(self, content: bytes, kind: SourceKind) -> List[Any]:
        """
        Decode raw bytes into rows.

        Args:
            content: Raw file bytes (or UTF-8 text bytes for TEXT)
            kind: Declared source kind

        Returns:
            Keyed rows for WORKBOOK, LEGACY_WORKBOOK and CSV; a grid of raw
            cell strings for TEXT.

        Raises:
            EmptyWorkbookError: Workbook has no sheets
            EmptyDataError: First sheet has no data rows
            UnreadableFileError: Bytes are not a readable file of that kind
        """
        kind = SourceKind(kind)

        if kind == SourceKind.TEXT:
            return self.split_pasted_text(self._decode_text(content))

        if kind == SourceKind.WORKBOOK:
            grid = self._read_xlsx_grid(content)
        elif kind == SourceKind.LEGACY_WORKBOOK:
            grid = self._read_xls_grid(content)
        else:
            grid = self._read_csv_grid(content)

        rows = self.rows_from_grid(grid)
        if not rows:
            raise EmptyDataError("No data found in the file.")

        logger.debug(f"Decoded {len(rows)} rows ({kind.value})")
        return rows

    def split_pasted_text(self, text: str) -> List[List[str]]:
        """Split pasted spreadsheet text into a grid: newline rows, tab cells."""
        lines = text.replace('\r\n', '\n').replace('\r', '\n').split('\n')
        return [line.split('\t') for line in lines if line.strip()]

    def rows_from_grid(self, grid: Sequence[Sequence[Any]]) -> List[Row]:
        """
        Key a grid by its first row.

        Blank rows are skipped and blank cells are left out of the row
        mapping. Blank headers become ``__EMPTY``, ``__EMPTY_1``...; repeated
        headers get ``_1``, ``_2`` suffixes, skipping any name already used
        by another column.
        """
        if not grid:
            return []

        width = max(len(row) for row in grid)
        headers = self._header_names(list(grid[0]) + [None] * (width - len(grid[0])))

        rows = []
        for raw in grid[1:]:
            if all(_is_blank(value) for value in raw):
                continue
            row = {}
            for header, value in zip(headers, raw):
                if _is_blank(value):
                    continue
                row[header] = _json_value(value)
            rows.append(row)
        return rows

    def _header_names(self, header_row: Sequence[Any]) -> List[str]:
        # counts[name] is the next suffix to try for name; any key is taken
        counts: Dict[str, int] = {}
        names = []
        for value in header_row:
            base = EMPTY_HEADER if _is_blank(value) else str(_json_value(value))
            name = base
            counter = counts.get(base, 0)
            if counter:
                while name in counts:
                    name = f"{base}_{counter}"
                    counter += 1
                counts[base] = counter
            counts[name] = 1
            names.append(name)
        return names

    def _decode_text(self, content: bytes) -> str:
        if isinstance(content, str):
            return content
        try:
            return content.decode('utf-8-sig')
        except UnicodeDecodeError:
            logger.debug("Content is not UTF-8, falling back to latin-1")
            return content.decode('latin-1')

    def _read_xlsx_grid(self, content: bytes) -> List[List[Any]]:
        try:
            workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
            raise UnreadableFileError(f"Could not read Excel workbook: {e}") from e

        try:
            if not workbook.worksheets:
                raise EmptyWorkbookError("No sheets found in the Excel file.")

            sheet = workbook.worksheets[0]
            logger.debug(f"Reading first sheet '{sheet.title}' of {len(workbook.worksheets)}")
            return [list(row) for row in sheet.iter_rows(values_only=True)]
        finally:
            workbook.close()

    def _read_xls_grid(self, content: bytes) -> List[List[Any]]:
        try:
            book = xlrd.open_workbook(file_contents=content)
        except (xlrd.XLRDError, CompDocError, ValueError, OSError) as e:
            raise UnreadableFileError(f"Could not read Excel workbook: {e}") from e

        if book.nsheets == 0:
            raise EmptyWorkbookError("No sheets found in the Excel file.")

        sheet = book.sheet_by_index(0)
        grid = []
        for row_idx in range(sheet.nrows):
            row = []
            for cell in sheet.row(row_idx):
                if cell.ctype == xlrd.XL_CELL_DATE:
                    row.append(xlrd.xldate_as_datetime(cell.value, book.datemode))
                elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
                    row.append(bool(cell.value))
                elif cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
                    row.append(None)
                else:
                    row.append(cell.value)
            grid.append(row)
        return grid

    def _read_csv_grid(self, content: bytes) -> List[List[str]]:
        text = self._decode_text(content)
        try:
            return [row for row in csv.reader(io.StringIO(text), delimiter=self.csv_delimiter)]
        except csv.Error as e:
            raise UnreadableFileError(f"Could not read CSV file: {e}") from e

    # ------------------------------------------------------------------
    # Encode
    # ------------------------------------------------------------------

    def encode(self, rows: Sequence[Any]) -> bytes:
        """
        Encode rows as a single-sheet .xlsx workbook.

        Keyed rows produce a header row (keys of the first row, then any new
        keys from later rows in order of appearance) followed by one line per
        row; missing values are left empty. Grid rows are written as-is.
        """
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.title = self.sheet_title

        if rows and isinstance(rows[0], (list, tuple)):
            for raw in rows:
                self._append(sheet, list(raw))
        elif rows:
            headers = self.collect_headers(rows)
            self._append(sheet, headers)
            for row in rows:
                self._append(sheet, [row.get(header) for header in headers])

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    def collect_headers(self, rows: Sequence[Row]) -> List[str]:
        headers: List[str] = []
        seen = set()
        for row in rows:
            for key in row:
                if key not in seen:
                    seen.add(key)
                    headers.append(key)
        return headers

    def _append(self, sheet, values: List[Any]):
        sheet.append([self._cell_value(value) for value in values])
        # Stored values are data, never formulas
        for cell in sheet[sheet.max_row]:
            if cell.data_type == 'f':
                cell.data_type = 's'

    def _cell_value(self, value: Any) -> Any:
        if value is None or isinstance(value, (bool, int, float)):
            return value
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        return ILLEGAL_CHARACTERS_RE.sub('', str(value))
