"""
Service layer for the Excel data intake system.

This package contains framework-agnostic business logic (validation,
spreadsheet codec, persistence, backups) used by the API, the CLI and the
Celery tasks.
"""

__version__ = "1.0.0"
