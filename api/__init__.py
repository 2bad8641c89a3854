"""
FastAPI application for the Excel data intake service.

This package contains the REST API for spreadsheet submissions, admin
review of stored data and database backups.
"""

__version__ = "1.0.0"
