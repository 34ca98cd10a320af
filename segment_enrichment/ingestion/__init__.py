"""
Data Ingestion Module
"""
from .batch_loader import (
    BatchFileConfig,
    ReviewSource,
    SourceError,
    load_csv_records,
    load_review_records,
    stream_csv_records,
)

__all__ = [
    "BatchFileConfig",
    "ReviewSource",
    "SourceError",
    "load_csv_records",
    "load_review_records",
    "stream_csv_records",
]
