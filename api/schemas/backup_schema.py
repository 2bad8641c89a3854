"""
Backup-related Pydantic schemas.
"""

from typing import List
from pydantic import BaseModel, Field


class BackupCreateResponse(BaseModel):
    """Response when a backup is written."""

    message: str = Field(..., description="Success message")
    filepath: str = Field(..., description="Snapshot file name (no directory)")

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Backup created successfully",
                "filepath": "backup-2025-03-01T02-00-00-000000Z.json"
            }
        }


class BackupListResponse(BaseModel):
    """Available snapshots, most recent first."""

    backups: List[str] = Field(..., description="Snapshot file names")


class BackupRestoreRequest(BaseModel):
    """Snapshot to restore."""

    filename: str = Field(..., min_length=1, description="Snapshot file name from /api/backup/list")

    class Config:
        json_schema_extra = {
            "example": {
                "filename": "backup-2025-03-01T02-00-00-000000Z.json"
            }
        }


class BackupRestoreResponse(BaseModel):
    """Result of a restore."""

    message: str = Field(..., description="Success message")
    restored: int = Field(..., description="Entries re-created from the snapshot")
