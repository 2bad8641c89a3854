"""
Excel data router - submissions, admin review and downloads.

Submissions (pasted rows and file uploads) are open to anyone who can
reach the service. Listing, stats, viewing, deleting and downloading
stored entries are admin endpoints.
"""

import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from api.dependencies import get_entry_store, get_ingestion_service, require_admin
from api.schemas.common import SuccessResponse
from api.schemas.excel_data_schema import (
    ExcelDataCreateRequest, ExcelDataResponse, ExcelDataStatsResponse
)
from services.entry_store import EntryStore
from services.ingestion_service import IngestionService
from services.tabular_codec import XLSX_MIME_TYPE

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/excel-data', tags=['excel-data'])


def _content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 UTF-8 name."""
    ascii_name = filename.encode('ascii', 'replace').decode('ascii').replace('?', '_').replace('"', '')
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@router.post('', response_model=ExcelDataResponse, status_code=status.HTTP_201_CREATED,
             response_model_by_alias=True)
def submit_excel_data(
    request: ExcelDataCreateRequest,
    ingestion: IngestionService = Depends(get_ingestion_service)
):
    """
    Store rows submitted directly by the client (pasted data).

    **Request Body:**
    - `month`, `year`: declared reporting period
    - `data`: grid with a header line, or a list of objects
    - `recordCount`: number of data rows (optional)
    - `fileName`: display name (optional, defaults to pasted_data.xlsx)

    **Example:**
    ```bash
    curl -X POST http://localhost:8000/api/excel-data \\
         -H "Content-Type: application/json" \\
         -d '{"month": "march", "year": 2025, "data": [["A","B"],["1","2"]], "recordCount": 1}'
    ```
    """
    entry = ingestion.submit_rows(
        month=request.month,
        year=request.year,
        data=request.data,
        record_count=request.record_count,
        file_name=request.file_name,
        user_id=request.user_id
    )
    logger.info(f"Stored pasted data {entry.id} ({entry.record_count} records)")
    return ExcelDataResponse.model_validate(entry)


@router.post('/upload', response_model=ExcelDataResponse, status_code=status.HTTP_201_CREATED,
             response_model_by_alias=True)
async def upload_excel_file(
    file: Optional[UploadFile] = File(None, description="Spreadsheet to store (.xlsx, .xls or .csv)"),
    month: Optional[str] = Form(None, description="Month name, e.g. 'march'"),
    year: Optional[str] = Form(None, description="Year, e.g. '2025'"),
    user_id: Optional[str] = Form(None, alias="userId", description="Submitting user, if known"),
    ingestion: IngestionService = Depends(get_ingestion_service)
):
    """
    Upload a spreadsheet file.

    The upload is checked in order: size, file type, then month/year.
    The first sheet is read and stored as one entry.

    **Errors:**
    - 413: file exceeds the server size limit
    - 400: wrong file type, missing/invalid month or year, empty or unreadable file
    """
    if file is None or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded. Please select a valid Excel or CSV file."
        )

    content = await file.read()

    entry = await run_in_threadpool(
        ingestion.ingest_file,
        file.filename,
        file.content_type,
        content,
        month,
        year,
        user_id
    )
    return ExcelDataResponse.model_validate(entry)


@router.get('', response_model=List[ExcelDataResponse], response_model_by_alias=True)
def list_excel_data(
    store: EntryStore = Depends(get_entry_store),
    admin: str = Depends(require_admin)
):
    """
    List all stored entries, newest first.

    **Example:**
    ```bash
    curl -H "X-API-Key: $KEY" http://localhost:8000/api/excel-data
    ```
    """
    entries = store.list()
    logger.debug(f"{admin} listed {len(entries)} entries")
    return [ExcelDataResponse.model_validate(entry) for entry in entries]


@router.get('/stats', response_model=ExcelDataStatsResponse, response_model_by_alias=True)
def get_excel_data_stats(
    store: EntryStore = Depends(get_entry_store),
    admin: str = Depends(require_admin)
):
    """
    Dashboard counters.

    **Returns:**
    - `totalFiles`: stored entries
    - `totalRecords`: sum of record counts
    - `thisMonth`: entries created in the current calendar month
    """
    stats = store.stats()
    return ExcelDataStatsResponse(
        total_files=stats.total_files,
        total_records=stats.total_records,
        this_month=stats.this_month
    )


@router.get('/{entry_id}', response_model=ExcelDataResponse, response_model_by_alias=True)
def get_excel_data(
    entry_id: str,
    store: EntryStore = Depends(get_entry_store),
    admin: str = Depends(require_admin)
):
    """Get one stored entry, including its rows."""
    return ExcelDataResponse.model_validate(store.get(entry_id))


@router.delete('/{entry_id}', response_model=SuccessResponse)
def delete_excel_data(
    entry_id: str,
    store: EntryStore = Depends(get_entry_store),
    admin: str = Depends(require_admin)
):
    """
    Delete a stored entry.

    **Warning:** This is irreversible unless the entry is in a backup.
    """
    store.delete(entry_id)
    logger.info(f"{admin} deleted entry {entry_id}")
    return SuccessResponse(message="Data deleted successfully", data={'id': entry_id})


@router.get('/{entry_id}/download', response_class=Response)
def download_excel_data(
    entry_id: str,
    ingestion: IngestionService = Depends(get_ingestion_service),
    admin: str = Depends(require_admin)
):
    """
    Download a stored entry as an .xlsx workbook.

    **Example:**
    ```bash
    curl -OJ -H "X-API-Key: $KEY" http://localhost:8000/api/excel-data/<id>/download
    ```
    """
    filename, content = ingestion.export_entry(entry_id)
    return Response(
        content=content,
        media_type=XLSX_MIME_TYPE,
        headers={'Content-Disposition': _content_disposition(filename)}
    )
