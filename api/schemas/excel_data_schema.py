"""
Excel data Pydantic schemas.

Field names are snake_case in Python and camelCase on the wire, which is
what the upload form and admin dashboard send and read.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from backend.models.schema import INTEGER_MAX


class ExcelDataCreateRequest(BaseModel):
    """Direct submission of rows (pasted data)."""

    month: Optional[str] = Field(None, description="Month name, e.g. 'march'")
    year: Optional[int] = Field(None, description="Year, e.g. 2025")
    file_name: Optional[str] = Field(None, alias="fileName", max_length=255,
                                     description="Display name; defaults to pasted_data.xlsx")
    data: List[Any] = Field(..., description="Rows: a grid with a header line, or a list of objects")
    record_count: Optional[int] = Field(None, alias="recordCount", ge=0, le=INTEGER_MAX,
                                        description="Number of data rows (header excluded)")
    user_id: Optional[str] = Field(None, alias="userId", description="Submitting user, if known")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "month": "march",
                "year": 2025,
                "fileName": "pasted_data.xlsx",
                "data": [["Region", "Total"], ["North", "120"], ["South", "95"]],
                "recordCount": 2
            }
        }


class ExcelDataResponse(BaseModel):
    """A stored entry."""

    id: str = Field(..., description="Entry ID")
    user_id: Optional[str] = Field(None, alias="userId")
    month: str = Field(..., description="Declared month")
    year: int = Field(..., description="Declared year")
    file_name: Optional[str] = Field(None, alias="fileName")
    data: List[Any] = Field(..., description="Stored rows")
    record_count: int = Field(..., alias="recordCount")
    status: str = Field(..., description="Entry status")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    class Config:
        from_attributes = True
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "5b0c1c1e-8d8f-4f57-9d3c-0d8a1c0b7e11",
                "userId": None,
                "month": "march",
                "year": 2025,
                "fileName": "sales.xlsx",
                "data": [{"Region": "North", "Total": 120}],
                "recordCount": 1,
                "status": "active",
                "createdAt": "2025-03-04T10:15:00",
                "updatedAt": "2025-03-04T10:15:00"
            }
        }


class ExcelDataStatsResponse(BaseModel):
    """Dashboard counters."""

    total_files: int = Field(..., alias="totalFiles", description="Number of stored entries")
    total_records: int = Field(..., alias="totalRecords", description="Sum of record counts")
    this_month: int = Field(..., alias="thisMonth", description="Entries created this calendar month")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "totalFiles": 12,
                "totalRecords": 3480,
                "thisMonth": 3
            }
        }


class UploadLimitsResponse(BaseModel):
    """Limits the upload form checks before sending a file."""

    max_file_size_mb: int = Field(..., alias="maxFileSizeMb", description="Advisory client-side limit")
    server_max_file_size_mb: int = Field(..., alias="serverMaxFileSizeMb", description="Hard server limit")
    allowed_extensions: List[str] = Field(..., alias="allowedExtensions")
    allowed_content_types: List[str] = Field(..., alias="allowedContentTypes")

    class Config:
        populate_by_name = True
