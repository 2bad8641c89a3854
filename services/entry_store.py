"""
Entry Store - Persistence for submitted spreadsheet data.

Each operation runs in its own SQLAlchemy session and commits (or reads)
in one unit of work. Entries handed back to callers are detached with all
columns loaded, so they can be used after the session is gone.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.models.schema import EntryStatus, ExcelData
from services.errors import NotFoundError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC now, matching the TIMESTAMP columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class EntryStats:
    """Dashboard counters."""
    total_files: int
    total_records: int
    this_month: int

    def to_dict(self) -> dict:
        return {
            'totalFiles': self.total_files,
            'totalRecords': self.total_records,
            'thisMonth': self.this_month
        }


class EntryStore:
    """
    CRUD and aggregate queries over the excel_data table.

    Args:
        session_factory: Callable returning a new SQLAlchemy Session
        clock: Callable returning the current naive UTC datetime; used for
               created_at/updated_at and for the "this month" counter
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Callable[[], datetime] = utcnow
    ):
        self.session_factory = session_factory
        self.clock = clock

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _new_entry(
        self,
        now: datetime,
        month: str,
        year: int,
        data: List[Any],
        record_count: int,
        file_name: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> ExcelData:
        return ExcelData(
            id=str(uuid.uuid4()),
            user_id=user_id,
            month=month,
            year=year,
            file_name=file_name,
            data=data,
            record_count=record_count,
            status=EntryStatus.ACTIVE.value,
            created_at=now,
            updated_at=now
        )

    def create(
        self,
        month: str,
        year: int,
        data: List[Any],
        record_count: int,
        file_name: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> ExcelData:
        """
        Insert a new entry.

        No cross-field checks are made: record_count is stored as given.

        Returns:
            The stored entry with id and timestamps assigned
        """
        entry = self._new_entry(self.clock(), month, year, data, record_count, file_name, user_id)

        with self._session() as session:
            session.add(entry)
            session.commit()
            session.refresh(entry)
            session.expunge(entry)

        logger.info(f"Created entry {entry.id} ({month} {year}, {record_count} records)")
        return entry

    def create_many(self, items: Iterable[Dict[str, Any]]) -> List[ExcelData]:
        """
        Insert several entries in one transaction.

        Each item holds the keyword arguments of create(). Either every
        entry is stored or, if any insert fails, none is.

        Returns:
            The stored entries, in input order
        """
        now = self.clock()
        entries = [self._new_entry(now, **item) for item in items]

        with self._session() as session:
            session.add_all(entries)
            session.commit()
            for entry in entries:
                session.refresh(entry)
            session.expunge_all()

        logger.info(f"Created {len(entries)} entries in one transaction")
        return entries

    def get(self, entry_id: str) -> ExcelData:
        """
        Fetch one entry.

        Raises:
            NotFoundError: If no entry has this id
        """
        with self._session() as session:
            entry = session.get(ExcelData, entry_id)
            if entry is None:
                raise NotFoundError(f"Entry {entry_id} not found")
            session.expunge(entry)
            return entry

    def list(self) -> List[ExcelData]:
        """All entries, most recently created first (ties broken by id)."""
        with self._session() as session:
            entries = session.query(ExcelData)\
                .order_by(ExcelData.created_at.desc(), ExcelData.id.desc())\
                .all()
            session.expunge_all()
            return entries

    def delete(self, entry_id: str) -> None:
        """
        Permanently delete an entry.

        Raises:
            NotFoundError: If no entry has this id
        """
        with self._session() as session:
            deleted = session.query(ExcelData).filter_by(id=entry_id)\
                .delete(synchronize_session=False)
            session.commit()

        if not deleted:
            raise NotFoundError(f"Entry {entry_id} not found")

        logger.info(f"Deleted entry {entry_id}")

    def stats(self) -> EntryStats:
        """
        Aggregate counters.

        total_records sums the stored record_count values. this_month counts
        entries whose created_at falls in the current calendar month by the
        store clock, independent of each entry's declared month/year.
        """
        now = self.clock()
        month_start = datetime(now.year, now.month, 1)
        if now.month == 12:
            next_month_start = datetime(now.year + 1, 1, 1)
        else:
            next_month_start = datetime(now.year, now.month + 1, 1)

        with self._session() as session:
            total_files, total_records = session.query(
                func.count(ExcelData.id),
                func.coalesce(func.sum(ExcelData.record_count), 0)
            ).one()

            this_month = session.query(func.count(ExcelData.id)).filter(
                ExcelData.created_at >= month_start,
                ExcelData.created_at < next_month_start
            ).scalar()

        return EntryStats(
            total_files=total_files or 0,
            total_records=int(total_records or 0),
            this_month=this_month or 0
        )
