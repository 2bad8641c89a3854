"""
Backup router - create, list and restore database snapshots.

All endpoints require admin access.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import get_backup_manager, require_admin
from api.schemas.backup_schema import (
    BackupCreateResponse, BackupListResponse, BackupRestoreRequest, BackupRestoreResponse
)
from services.backup_service import BackupManager

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix='/backup', tags=['backup'])


@router.post('/create', response_model=BackupCreateResponse)
def create_backup(
    manager: BackupManager = Depends(get_backup_manager),
    admin: str = Depends(require_admin)
):
    """
    Write a snapshot of every stored entry.

    **Example:**
    ```bash
    curl -X POST -H "X-API-Key: $KEY" http://localhost:8000/api/backup/create
    ```
    """
    path = manager.create_backup()
    logger.info(f"{admin} created backup {Path(path).name}")
    return BackupCreateResponse(message="Backup created successfully", filepath=Path(path).name)


@router.get('/list', response_model=BackupListResponse)
def list_backups(
    manager: BackupManager = Depends(get_backup_manager),
    admin: str = Depends(require_admin)
):
    """List snapshot files, most recent first."""
    return BackupListResponse(backups=manager.list_backups())


@router.post('/restore', response_model=BackupRestoreResponse)
def restore_backup(
    request: BackupRestoreRequest,
    manager: BackupManager = Depends(get_backup_manager),
    admin: str = Depends(require_admin)
):
    """
    Restore a snapshot from the backup directory.

    Restore is additive: entries get new ids and existing data is kept.

    **Request Body:**
    - `filename`: a name returned by /api/backup/list
    """
    name = Path(request.filename).name
    if not name or name != request.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Backup filename must not contain a path"
        )

    restored = manager.restore_from_backup(manager.backup_path(name))
    logger.info(f"{admin} restored {restored} entries from {name}")
    return BackupRestoreResponse(message="Backup restored successfully", restored=restored)
