"""
Backup snapshot document models.

A snapshot is a JSON file holding every entry plus summary metadata. Keys
are camelCase so files written by earlier versions of the service restore
unchanged.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from backend.models.schema import INTEGER_MAX, INTEGER_MIN


class SnapshotEntry(BaseModel):
    """One entry as written into a snapshot."""

    id: Optional[str] = Field(None, description="Entry id at backup time")
    user_id: Optional[str] = Field(None, alias="userId")
    month: str = Field(..., description="Declared month")
    year: int = Field(..., ge=INTEGER_MIN, le=INTEGER_MAX, description="Declared year")
    file_name: Optional[str] = Field(None, alias="fileName")
    data: List[Any] = Field(..., description="Stored rows")
    record_count: int = Field(..., alias="recordCount", ge=0, le=INTEGER_MAX)
    status: Optional[str] = Field("active", description="Entry status")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True

    @classmethod
    def from_orm_entry(cls, entry):
        """Build from an ExcelData row."""
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            month=entry.month,
            year=entry.year,
            file_name=entry.file_name,
            data=entry.data,
            record_count=entry.record_count,
            status=entry.status,
            created_at=entry.created_at,
            updated_at=entry.updated_at
        )


class SnapshotMetadata(BaseModel):
    """Summary counters stored alongside the entries."""

    version: str = Field(..., description="Backup format version")
    total_users: int = Field(0, alias="totalUsers")
    total_files: int = Field(..., alias="totalFiles")
    total_records: int = Field(..., alias="totalRecords")

    class Config:
        populate_by_name = True


class BackupSnapshot(BaseModel):
    """Full backup document."""

    timestamp: str = Field(..., description="ISO-8601 creation time")
    users: List[Dict[str, Any]] = Field(default_factory=list, description="Always empty, users live in the auth provider")
    excel_data: List[SnapshotEntry] = Field(..., alias="excelData")
    metadata: SnapshotMetadata

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "timestamp": "2025-03-01T02:00:00.000000Z",
                "users": [],
                "excelData": [
                    {
                        "id": "5b0c1c1e-8d8f-4f57-9d3c-0d8a1c0b7e11",
                        "userId": None,
                        "month": "march",
                        "year": 2025,
                        "fileName": "sales.xlsx",
                        "data": [{"Region": "North", "Total": 120}],
                        "recordCount": 1,
                        "status": "active",
                        "createdAt": "2025-03-01T01:59:12.301000",
                        "updatedAt": "2025-03-01T01:59:12.301000"
                    }
                ],
                "metadata": {
                    "version": "1.0.0",
                    "totalUsers": 0,
                    "totalFiles": 1,
                    "totalRecords": 1
                }
            }
        }
