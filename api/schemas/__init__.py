"""
Pydantic schemas for request/response validation.

This package contains all Pydantic models used for API request validation
and response serialization.
"""

from api.schemas.common import ErrorResponse, SuccessResponse, HealthCheckResponse
from api.schemas.excel_data_schema import (
    ExcelDataCreateRequest, ExcelDataResponse, ExcelDataStatsResponse, UploadLimitsResponse
)
from api.schemas.backup_schema import (
    BackupCreateResponse, BackupListResponse, BackupRestoreRequest, BackupRestoreResponse
)

__all__ = [
    # Common
    'ErrorResponse',
    'SuccessResponse',
    'HealthCheckResponse',

    # Excel data
    'ExcelDataCreateRequest',
    'ExcelDataResponse',
    'ExcelDataStatsResponse',
    'UploadLimitsResponse',

    # Backup
    'BackupCreateResponse',
    'BackupListResponse',
    'BackupRestoreRequest',
    'BackupRestoreResponse',
]
