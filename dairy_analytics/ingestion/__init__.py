"""
Data Ingestion Module
"""
from .batch_loader import (
    FileFormat,
    LoadResult,
    LoadStatus,
    MalformedRecordError,
    RecordLoader,
    create_record_loader,
)

__all__ = [
    "FileFormat",
    "LoadResult",
    "LoadStatus",
    "MalformedRecordError",
    "RecordLoader",
    "create_record_loader",
]
