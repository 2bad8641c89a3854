"""
Backup Service - JSON snapshots of the entry table.

Snapshots are written as backup-<timestamp>.json in the backup directory.
Writes go to a hidden temp file first and are renamed into place, so a
failed write never leaves a partial backup-*.json behind.
"""

import os
import re
import logging
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Union

from pydantic import ValidationError as PydanticValidationError

from backend.models.backup import BackupSnapshot, SnapshotEntry, SnapshotMetadata
from services.entry_store import EntryStore, utcnow
from services.errors import BackupIOError, BackupParseError, NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_DIR = 'backups'
BACKUP_PREFIX = 'backup-'
BACKUP_SUFFIX = '.json'
BACKUP_FORMAT_VERSION = '1.0.0'


class BackupManager:
    """
    Create, list and restore snapshot files.

    Args:
        store: Entry store to read from and restore into
        backup_dir: Directory for snapshot files (created on first write)
        version: Format version written into snapshot metadata
        clock: Callable returning naive UTC now; used for timestamps
    """

    def __init__(
        self,
        store: EntryStore,
        backup_dir: Union[str, Path] = DEFAULT_BACKUP_DIR,
        version: str = BACKUP_FORMAT_VERSION,
        clock: Callable[[], datetime] = utcnow
    ):
        self.store = store
        self.backup_dir = Path(backup_dir)
        self.version = version
        self.clock = clock

    def _ensure_directory_exists(self):
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupIOError(f"Cannot create backup directory {self.backup_dir}: {e}") from e

    def backup_filename(self, timestamp: str) -> str:
        """File name for a snapshot taken at an ISO timestamp."""
        return f"{BACKUP_PREFIX}{re.sub(r'[:.]', '-', timestamp)}{BACKUP_SUFFIX}"

    def backup_path(self, filename: str) -> Path:
        """Path of a snapshot inside the backup directory (directory parts dropped)."""
        return self.backup_dir / Path(filename).name

    def create_backup(self) -> str:
        """
        Snapshot every entry to a new file.

        Returns:
            Path to the written snapshot

        Raises:
            BackupIOError: If the directory or file cannot be written
        """
        timestamp = self.clock().isoformat(timespec='microseconds') + 'Z'

        entries = self.store.list()
        stats = self.store.stats()

        snapshot = BackupSnapshot(
            timestamp=timestamp,
            users=[],
            excel_data=[SnapshotEntry.from_orm_entry(entry) for entry in entries],
            metadata=SnapshotMetadata(
                version=self.version,
                total_users=0,
                total_files=stats.total_files,
                total_records=stats.total_records
            )
        )
        payload = snapshot.model_dump_json(by_alias=True, indent=2)

        self._ensure_directory_exists()
        final_path = self.backup_dir / self.backup_filename(timestamp)

        temp_path = None
        try:
            fd, temp_path = tempfile.mkstemp(
                prefix=f".{BACKUP_PREFIX}",
                suffix='.tmp',
                dir=self.backup_dir
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as tmp:
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(temp_path, final_path)
        except OSError as e:
            if temp_path and os.path.exists(temp_path):
                os.unlink(temp_path)
            logger.error(f"Error creating backup {final_path}: {e}")
            raise BackupIOError(f"Could not write backup {final_path.name}: {e}") from e

        logger.info(f"Database backup created: {final_path.name} "
                    f"({stats.total_files} entries, {stats.total_records} records)")
        return str(final_path)

    def restore_from_backup(self, path: Union[str, Path]) -> int:
        """
        Re-create every entry in a snapshot.

        Restore is additive: each entry gets a fresh id, so restoring the
        same snapshot twice duplicates its entries. All entries are inserted
        in one transaction, so a failed restore stores nothing. A bare
        filename is looked up in the backup directory.

        Returns:
            Number of entries restored

        Raises:
            NotFoundError: Snapshot file does not exist
            BackupParseError: File is not a valid snapshot
            BackupIOError: File exists but cannot be read
        """
        snapshot_path = Path(path)
        if not snapshot_path.is_absolute() and snapshot_path.parent == Path('.'):
            snapshot_path = self.backup_dir / snapshot_path

        if not snapshot_path.is_file():
            raise NotFoundError(f"Backup file not found: {snapshot_path}")

        try:
            raw = snapshot_path.read_text(encoding='utf-8')
        except UnicodeDecodeError as e:
            raise BackupParseError(f"Backup file is not UTF-8 JSON: {snapshot_path.name}") from e
        except OSError as e:
            raise BackupIOError(f"Could not read backup {snapshot_path.name}: {e}") from e

        try:
            snapshot = BackupSnapshot.model_validate_json(raw)
        except PydanticValidationError as e:
            raise BackupParseError(f"Invalid backup file {snapshot_path.name}: {e}") from e

        logger.info(f"Restoring backup from {snapshot.timestamp}")
        logger.info(f"Restoring {len(snapshot.excel_data)} Excel data entries")

        self.store.create_many(
            {
                'month': entry.month,
                'year': entry.year,
                'data': entry.data,
                'record_count': entry.record_count,
                'file_name': entry.file_name,
                'user_id': entry.user_id,
            }
            for entry in snapshot.excel_data
        )

        logger.info("Database restoration completed successfully")
        return len(snapshot.excel_data)

    def list_backups(self) -> List[str]:
        """Snapshot file names, most recent first."""
        if not self.backup_dir.exists():
            return []

        try:
            names = [
                p.name for p in self.backup_dir.iterdir()
                if p.is_file() and p.name.startswith(BACKUP_PREFIX) and p.name.endswith(BACKUP_SUFFIX)
            ]
        except OSError as e:
            raise BackupIOError(f"Could not list backups in {self.backup_dir}: {e}") from e

        return sorted(names, reverse=True)
