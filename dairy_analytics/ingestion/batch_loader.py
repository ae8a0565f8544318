"""
Record Loader

Batch ingestion of dairy transaction records from CSV, JSON, JSON Lines and
Parquet files, in-memory DataFrames, or plain row mappings.
Supports:
- Header normalization to record field names
- Typing of required and numeric fields
- Collect-and-skip or abort-all handling of malformed rows
- Audit metadata (row counts, timings, file hash)
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
import hashlib

import pandas as pd
import polars as pl
import structlog

from dairy_analytics.config import get_settings
from dairy_analytics.models import (
    COLUMN_ALIASES,
    DATE_FIELDS,
    FIELDS,
    NUMERIC_FIELDS,
    REQUIRED_FIELDS,
    RawFlag,
)

logger = structlog.get_logger(__name__)
settings = get_settings()

RecordSource = Union[str, Path, pl.DataFrame, pd.DataFrame, Iterable[Mapping[str, Any]]]


class FileFormat(str, Enum):
    """Supported file formats"""
    CSV = "csv"
    JSON = "json"
    JSONL = "jsonl"
    PARQUET = "parquet"


class LoadStatus(str, Enum):
    """Record load status"""
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


_SUFFIX_FORMATS: Dict[str, FileFormat] = {
    ".csv": FileFormat.CSV,
    ".json": FileFormat.JSON,
    ".jsonl": FileFormat.JSONL,
    ".ndjson": FileFormat.JSONL,
    ".parquet": FileFormat.PARQUET,
}


class MalformedRecordError(ValueError):
    """A required record field is missing or cannot be typed"""

    def __init__(
        self,
        field_name: str,
        value: Any,
        reason: str,
        row_number: Optional[int] = None,
    ):
        self.field_name = field_name
        self.value = value
        self.reason = reason
        self.row_number = row_number
        location = f"row {row_number}: " if row_number is not None else ""
        super().__init__(f"{location}{field_name} {reason} (value={value!r})")


@dataclass
class LoadResult:
    """Result of a record load operation"""
    source: str
    status: LoadStatus
    records: pl.DataFrame
    rows_read: int = 0
    errors: List[MalformedRecordError] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    file_hash: Optional[str] = None

    @property
    def rows_loaded(self) -> int:
        return self.records.height

    @property
    def rows_failed(self) -> int:
        return self.rows_read - self.rows_loaded

    @property
    def load_duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()


class RecordLoader:
    """
    Loads raw dairy records into a typed record frame.

    Every cell is read as text first so that raw values (flag tokens,
    malformed quantities) survive until the audit. Only ``record_id`` and
    ``date`` are required; a row failing either raises
    ``MalformedRecordError`` in strict mode and is skipped otherwise.

    Example:
        loader = RecordLoader()
        result = loader.load("data/raw/dairy_records.csv")
        records = result.records
    """

    def __init__(
        self,
        strict: Optional[bool] = None,
        null_values: Optional[List[str]] = None,
        date_formats: Optional[List[str]] = None,
    ):
        loader_settings = settings.loader
        self.strict = loader_settings.strict if strict is None else strict
        self.null_values = null_values if null_values is not None else loader_settings.null_values
        self.date_formats = date_formats or loader_settings.date_formats

    def _compute_file_hash(self, file_path: Path) -> str:
        """Compute MD5 hash of file for audit"""
        hash_md5 = hashlib.md5()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(4096), b""):
                hash_md5.update(chunk)
        return hash_md5.hexdigest()

    def _detect_format(self, file_path: Path) -> FileFormat:
        file_format = _SUFFIX_FORMATS.get(file_path.suffix.lower())
        if file_format is None:
            raise ValueError(f"Unsupported file format: {file_path.suffix}")
        return file_format

    def _read_file(self, file_path: Path) -> pl.DataFrame:
        """Read file based on format"""
        file_format = self._detect_format(file_path)
        if file_format == FileFormat.CSV:
            # infer_schema_length=0 reads every column as text
            return pl.read_csv(
                file_path,
                infer_schema_length=0,
                null_values=self.null_values,
            )
        if file_format == FileFormat.JSON:
            return pl.read_json(file_path)
        if file_format == FileFormat.JSONL:
            return pl.read_ndjson(file_path)
        return pl.read_parquet(file_path)

    @staticmethod
    def _cell_text(value: Any) -> Optional[str]:
        if value is None or isinstance(value, bool):
            return RawFlag.of(value).as_text()
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        return str(value)

    def _frame_from_rows(self, rows: Iterable[Mapping[str, Any]]) -> pl.DataFrame:
        """Build an all-text frame from row mappings"""
        rows = list(rows)
        columns: List[str] = []
        for row in rows:
            for key in row:
                if key not in columns:
                    columns.append(key)

        data = {
            column: [self._cell_text(row.get(column)) for row in rows]
            for column in columns
        }
        return pl.DataFrame(data, schema={column: pl.Utf8 for column in columns})

    @staticmethod
    def _stringify(df: pl.DataFrame) -> pl.DataFrame:
        """Cast every column to text, keeping calendar dates in ISO form"""
        exprs = []
        for name, dtype in df.schema.items():
            column = pl.col(name)
            if dtype == pl.Datetime:
                column = column.dt.date()
            exprs.append(column.cast(pl.Utf8).alias(name))
        return df.select(exprs)

    def _read_source(self, source: RecordSource) -> pl.DataFrame:
        if isinstance(source, pl.DataFrame):
            return self._stringify(source)
        if isinstance(source, pd.DataFrame):
            return self._stringify(pl.from_pandas(source))
        if isinstance(source, (str, Path)):
            return self._stringify(self._read_file(Path(source)))
        if isinstance(source, Iterable):
            return self._frame_from_rows(source)
        raise ValueError(f"Unsupported record source: {type(source).__name__}")

    def _normalize_columns(self, df: pl.DataFrame) -> pl.DataFrame:
        """Map source headers to field names and add missing fields as nulls"""
        if df.width == 0:
            return pl.DataFrame(schema={name: pl.Utf8 for name in FIELDS})

        renames = {}
        for name in df.columns:
            key = name.strip().lower().replace(" ", "_")
            renames[name] = COLUMN_ALIASES.get(key, key)
        df = df.rename(renames)

        missing = [name for name in FIELDS if name not in df.columns]
        if missing:
            df = df.with_columns([pl.lit(None, dtype=pl.Utf8).alias(name) for name in missing])

        extras = [name for name in df.columns if name not in FIELDS]
        df = df.select(FIELDS + extras)

        if self.null_values:
            df = df.with_columns([
                pl.when(pl.col(name).is_in(self.null_values))
                .then(None)
                .otherwise(pl.col(name))
                .alias(name)
                for name in df.columns
            ])
        return df

    def _date_expr(self, column: str) -> pl.Expr:
        text = pl.col(column).str.strip_chars()
        return pl.coalesce([
            text.str.strptime(pl.Date, fmt, strict=False)
            for fmt in self.date_formats
        ])

    @staticmethod
    def _id_expr(column: str) -> pl.Expr:
        """Integer ids; whole-number float text such as 12.0 is accepted"""
        text = pl.col(column).str.strip_chars()
        as_float = text.cast(pl.Float64, strict=False)
        return pl.coalesce([
            text.cast(pl.Int64, strict=False),
            pl.when(as_float == as_float.floor()).then(as_float).cast(pl.Int64, strict=False),
        ])

    def _check_required(
        self, df: pl.DataFrame
    ) -> Tuple[pl.DataFrame, List[MalformedRecordError]]:
        """Type required fields; return (valid rows, errors)"""
        checked = df.with_row_index("_row").with_columns([
            self._id_expr("record_id").alias("_typed_record_id"),
            self._date_expr("date").alias("_typed_date"),
        ])

        errors: List[MalformedRecordError] = []
        for name in REQUIRED_FIELDS:
            bad = checked.filter(pl.col(f"_typed_{name}").is_null()).select("_row", name)
            for row_number, raw in bad.iter_rows():
                reason = "is missing" if raw is None else "cannot be parsed"
                errors.append(MalformedRecordError(name, raw, reason, row_number=row_number))
        errors.sort(key=lambda e: e.row_number)

        valid = (
            checked
            .filter(pl.col("_typed_record_id").is_not_null() & pl.col("_typed_date").is_not_null())
            .with_columns([
                pl.col("_typed_record_id").alias("record_id"),
                pl.col("_typed_date").alias("date"),
            ])
            .drop(["_row", "_typed_record_id", "_typed_date"])
        )
        return valid, errors

    def _type_optional(self, df: pl.DataFrame) -> pl.DataFrame:
        """Type optional date and numeric fields; untypeable values become null"""
        exprs = [
            self._date_expr(name).alias(name)
            for name in DATE_FIELDS if name not in REQUIRED_FIELDS
        ]
        exprs.extend(
            pl.col(name).str.strip_chars().cast(pl.Float64, strict=False).alias(name)
            for name in NUMERIC_FIELDS
        )
        return df.with_columns(exprs)

    def load(self, source: RecordSource) -> LoadResult:
        """
        Load records from a source.

        Args:
            source: File path, polars/pandas DataFrame, or iterable of row mappings

        Returns:
            LoadResult holding the typed record frame and any malformed-row errors

        Raises:
            MalformedRecordError: In strict mode, for the first malformed row
            FileNotFoundError: When a file source does not exist
        """
        started_at = datetime.now(timezone.utc)
        file_hash = None
        source_name = str(source) if isinstance(source, (str, Path)) else type(source).__name__

        logger.info("Starting record load", source=source_name, strict=self.strict)

        if isinstance(source, (str, Path)):
            file_path = Path(source)
            if not file_path.exists():
                raise FileNotFoundError(f"File not found: {file_path}")
            file_hash = self._compute_file_hash(file_path)

        raw = self._normalize_columns(self._read_source(source))
        rows_read = raw.height

        records, errors = self._check_required(raw)
        if errors:
            if self.strict:
                logger.error("Malformed record, aborting load", error=str(errors[0]))
                raise errors[0]
            logger.warning(
                "Malformed records skipped",
                count=len(errors),
                first_error=str(errors[0]),
            )

        records = self._type_optional(records)

        if records.height == rows_read:
            status = LoadStatus.COMPLETED
        elif records.height > 0:
            status = LoadStatus.PARTIAL
        else:
            status = LoadStatus.FAILED

        result = LoadResult(
            source=source_name,
            status=status,
            records=records,
            rows_read=rows_read,
            errors=errors,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            file_hash=file_hash,
        )

        logger.info(
            "Record load completed",
            status=status.value,
            rows_read=rows_read,
            rows_loaded=result.rows_loaded,
            rows_failed=result.rows_failed,
            duration_seconds=result.load_duration_seconds,
        )
        return result


def create_record_loader() -> RecordLoader:
    """Create a RecordLoader configured from settings"""
    return RecordLoader(
        strict=settings.loader.strict,
        null_values=settings.loader.null_values,
        date_formats=settings.loader.date_formats,
    )
