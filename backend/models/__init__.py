"""Models package for the Excel data intake system."""
from backend.models.schema import Base, ExcelData, EntryStatus

__all__ = ['Base', 'ExcelData', 'EntryStatus']
