"""
Data Transformation Module
"""
from .cleaners import CleaningStats, RecordCleaner, clean_records

__all__ = [
    "CleaningStats",
    "RecordCleaner",
    "clean_records",
]
