"""
Batch Data Loader

CSV ingestion for the three pipeline inputs.
Supports:
- Streaming large ledgers in fixed-size batches (bounded memory)
- Eager loading of the bounded review exports
- Required-column validation
- Structural failure reporting per source
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

import polars as pl
import structlog

from segment_enrichment.config import get_settings
from segment_enrichment.transformation.cleaners import ProductCategory, category_from_source_name

logger = structlog.get_logger(__name__)

REVIEW_COLUMNS = ("Review",)


class SourceError(RuntimeError):
    """A required input source is absent or cannot be parsed at all"""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


@dataclass
class BatchFileConfig:
    """Configuration for reading one CSV source"""
    file_path: Union[str, Path]
    source_name: str
    required_columns: Sequence[str] = field(default_factory=tuple)
    separator: str = ","
    encoding: str = "utf8-lossy"
    batch_size: Optional[int] = None
    null_values: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.file_path = Path(self.file_path)
        if self.batch_size is None:
            self.batch_size = get_settings().pipeline.batch_size


@dataclass
class ReviewSource:
    """A review export and the product category its reviews belong to"""
    file_path: Union[str, Path]
    category: Optional[ProductCategory] = None

    def __post_init__(self) -> None:
        self.file_path = Path(self.file_path)
        if self.category is None:
            # None lets each review's product handle decide
            inferred = category_from_source_name(self.file_path.name)
            self.category = None if inferred == ProductCategory.OTHER else inferred


def _check_columns(config: BatchFileConfig, columns: Sequence[str]) -> None:
    missing = [c for c in config.required_columns if c not in columns]
    if missing:
        raise SourceError(config.source_name, f"missing required columns {missing} in {config.file_path}")


def _check_exists(config: BatchFileConfig) -> None:
    if not config.file_path.is_file():
        raise SourceError(config.source_name, f"file not found: {config.file_path}")


def _scan(config: BatchFileConfig) -> pl.LazyFrame:
    """
    Lazy all-string scan of a CSV source.

    Invalid bytes decode to U+FFFD under "utf8-lossy"; rows with more
    fields than the header are cut to the header width.
    """
    _check_exists(config)
    try:
        lf = pl.scan_csv(
            config.file_path,
            separator=config.separator,
            encoding=config.encoding,
            infer_schema=False,
            null_values=config.null_values or None,
            truncate_ragged_lines=True,
        )
        columns = lf.collect_schema().names()
    except pl.exceptions.NoDataError as e:
        raise SourceError(config.source_name, f"empty file {config.file_path}") from e
    except (pl.exceptions.PolarsError, OSError) as e:
        raise SourceError(config.source_name, f"cannot open {config.file_path}: {e}") from e

    _check_columns(config, columns)
    return lf


def stream_csv_records(config: BatchFileConfig) -> Iterator[Dict[str, Any]]:
    """
    Yield the rows of a CSV file as dicts, one batch in memory at a time.

    Every column is read as a string; typing is the consumer's concern so a
    bad value only costs its own row.

    Raises:
        SourceError: If the file is missing, empty, unparseable, or lacks a
            required column
    """
    lf = _scan(config)
    logger.info(
        "Streaming source",
        source=config.source_name,
        file=str(config.file_path),
        batch_size=config.batch_size,
    )

    rows = 0
    try:
        batches = iter(lf.collect_batches(chunk_size=config.batch_size))
    except (pl.exceptions.PolarsError, OSError) as e:
        raise SourceError(config.source_name, f"cannot open {config.file_path}: {e}") from e

    while True:
        try:
            batch = next(batches)
        except StopIteration:
            break
        except (pl.exceptions.PolarsError, OSError) as e:
            raise SourceError(
                config.source_name,
                f"unparseable file {config.file_path} after {rows} rows: {e}",
            ) from e
        rows += batch.height
        yield from batch.iter_rows(named=True)

    if rows == 0:
        raise SourceError(config.source_name, f"no rows in {config.file_path}")
    logger.debug("Source exhausted", source=config.source_name, rows=rows)


def load_csv_records(config: BatchFileConfig) -> List[Dict[str, Any]]:
    """
    Read a whole CSV into memory as a list of row dicts.

    Raises:
        SourceError: If the file is missing, empty, unparseable, or lacks a
            required column
    """
    lf = _scan(config)
    try:
        df = lf.collect()
    except (pl.exceptions.PolarsError, OSError) as e:
        raise SourceError(config.source_name, f"unparseable file {config.file_path}: {e}") from e

    logger.info("Loaded source", source=config.source_name, file=str(config.file_path), rows=df.height)
    return df.to_dicts()


def load_review_records(source: ReviewSource, encoding: str = "utf8-lossy") -> List[Dict[str, Any]]:
    """Load one review export fully into memory"""
    return load_csv_records(
        BatchFileConfig(
            file_path=source.file_path,
            source_name=f"reviews:{source.file_path.name}",
            required_columns=REVIEW_COLUMNS,
            encoding=encoding,
        )
    )
