"""
SQLAlchemy models for the Excel data intake system.

This module defines the database schema using SQLAlchemy ORM,
matching the schema defined in Alembic migrations.
"""

from enum import Enum
from sqlalchemy import (
    Column, Integer, String, JSON, TIMESTAMP, CheckConstraint, Index, text
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Range of the INTEGER columns (signed 32-bit on PostgreSQL)
INTEGER_MIN = -2147483648
INTEGER_MAX = 2147483647

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), 'postgresql')


class EntryStatus(str, Enum):
    """Lifecycle status of a stored entry."""
    ACTIVE = 'active'
    ARCHIVED = 'archived'


class ExcelData(Base):
    """Represents one submitted sheet of tabular data plus its metadata."""

    __tablename__ = 'excel_data'
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'archived')",
            name='excel_data_status_check'
        ),
        Index('idx_excel_data_created_at', 'created_at'),
        Index('idx_excel_data_user_id', 'user_id'),
        {'comment': 'Submitted spreadsheet data stored as JSON rows'}
    )

    id = Column(
        String(36),
        primary_key=True,
        nullable=False,
        comment='UUID assigned at creation'
    )
    user_id = Column(
        String(255),
        nullable=True,
        comment='Submitting user (not enforced)'
    )
    month = Column(
        String(20),
        nullable=False,
        comment='Declared month, lowercase month name'
    )
    year = Column(
        Integer,
        nullable=False,
        comment='Declared year'
    )
    file_name = Column(
        String(255),
        nullable=True,
        comment='Original filename or placeholder for pasted data'
    )
    data = Column(
        JSONType,
        nullable=False,
        comment='Rows as a list of column -> value mappings'
    )
    record_count = Column(
        Integer,
        nullable=False,
        comment='Data row count as supplied by the caller'
    )
    status = Column(
        String(20),
        server_default=EntryStatus.ACTIVE.value,
        nullable=False,
        comment='Entry status'
    )
    created_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False,
        comment='Insert timestamp'
    )
    updated_at = Column(
        TIMESTAMP,
        server_default=text('CURRENT_TIMESTAMP'),
        nullable=False,
        comment='Last modification timestamp'
    )

    def __repr__(self):
        return (f"<ExcelData(id='{self.id}', month='{self.month}', year={self.year}, "
                f"records={self.record_count})>")

    def to_dict(self) -> dict:
        """Convert entry to the camelCase document used by backups."""
        return {
            'id': self.id,
            'userId': self.user_id,
            'month': self.month,
            'year': self.year,
            'fileName': self.file_name,
            'data': self.data,
            'recordCount': self.record_count,
            'status': self.status,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None
        }
