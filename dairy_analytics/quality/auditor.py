"""
Record Audit Module

Read-only data quality audit of a dairy record frame.

Reports:
- Null counts over the full record field set
- Quantities that are not plain decimal numbers
- Distinct raw values of the boolean flag fields
- Composite keys shared by more than one record

The audit never raises on data content and never gates later stages.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

import polars as pl
import structlog

from dairy_analytics.config import get_settings
from dairy_analytics.models import FIELDS, FLAG_FIELDS, QUANTITY_PATTERN

logger = structlog.get_logger(__name__)
settings = get_settings()

_CANONICAL_FLAG_VALUES = {True, False, None}


@dataclass
class AuditFinding:
    """Single audit check result"""
    name: str
    passed: bool
    message: str
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class AuditReport:
    """Complete audit result"""
    total_rows: int
    null_counts: Dict[str, int]
    quantity_violations: pl.DataFrame
    flag_values: Dict[str, Set[Any]]
    duplicate_keys: pl.DataFrame
    findings: List[AuditFinding] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def has_issues(self) -> bool:
        """Whether any audit check found a problem"""
        return any(not finding.passed for finding in self.findings)

    def summary(self) -> Dict[str, Any]:
        """Plain-data summary for reporting"""
        return {
            "total_rows": self.total_rows,
            "null_counts": {k: v for k, v in self.null_counts.items() if v},
            "quantity_violations": self.quantity_violations.height,
            "flag_values": {
                name: sorted(values, key=lambda v: (v is None, str(v)))
                for name, values in self.flag_values.items()
            },
            "duplicate_keys": self.duplicate_keys.height,
            "issues": [f.name for f in self.findings if not f.passed],
        }


class RecordAuditor:
    """
    Audits a record frame without modifying it.

    Example:
        auditor = RecordAuditor()
        report = auditor.audit(records)
        report.null_counts["brand"]
    """

    def __init__(
        self,
        key_fields: Optional[List[str]] = None,
        flag_fields: Optional[List[str]] = None,
    ):
        self.key_fields = key_fields or settings.cleaning.dedup_key
        self.flag_fields = flag_fields or FLAG_FIELDS

    def null_counts(self, df: pl.DataFrame) -> Dict[str, int]:
        """Null count per record field; absent fields count every row"""
        return {
            name: df[name].null_count() if name in df.columns else df.height
            for name in FIELDS
        }

    def quantity_violations(self, df: pl.DataFrame) -> pl.DataFrame:
        """Records whose quantity is present but not a plain decimal number"""
        if "quantity" not in df.columns:
            return df.head(0)
        return df.filter(
            pl.col("quantity").is_not_null()
            & ~pl.col("quantity").cast(pl.Utf8).str.contains(QUANTITY_PATTERN)
        )

    def flag_values(self, df: pl.DataFrame) -> Dict[str, Set[Any]]:
        """Distinct raw values per flag field"""
        values: Dict[str, Set[Any]] = {}
        for name in self.flag_fields:
            if name in df.columns:
                values[name] = set(df[name].unique().to_list())
            else:
                values[name] = {None} if df.height else set()
        return values

    def duplicate_keys(self, df: pl.DataFrame) -> pl.DataFrame:
        """Composite keys that occur more than once, with their counts"""
        missing = [name for name in self.key_fields if name not in df.columns]
        if missing:
            logger.warning("Duplicate key audit skipped", missing_columns=missing)
            return pl.DataFrame(schema={"count": pl.UInt32})

        return (
            df.group_by(self.key_fields)
            .agg(pl.len().alias("count"))
            .filter(pl.col("count") > 1)
            .sort(self.key_fields, nulls_last=True)
        )

    def audit(self, df: pl.DataFrame) -> AuditReport:
        """
        Run every audit check on a record frame.

        Args:
            df: Record frame, usually straight from the loader

        Returns:
            AuditReport with null counts, domain violations and duplicates
        """
        started_at = datetime.now(timezone.utc)
        total = df.height

        logger.info(f"Running record audit on {total} rows")

        null_counts = self.null_counts(df)
        quantity_violations = self.quantity_violations(df)
        flag_values = self.flag_values(df)
        duplicate_keys = self.duplicate_keys(df)

        null_fields = {k: v for k, v in null_counts.items() if v}
        findings = [
            AuditFinding(
                name="null_values",
                passed=not null_fields,
                message=f"{len(null_fields)} fields contain null values" if null_fields else "No null values",
                failed_rows=max(null_fields.values(), default=0),
                total_rows=total,
            ),
            AuditFinding(
                name="quantity_numeric",
                passed=quantity_violations.height == 0,
                message=(
                    f"{quantity_violations.height} quantities are not numeric"
                    if quantity_violations.height else "All quantities are numeric"
                ),
                failed_rows=quantity_violations.height,
                total_rows=total,
            ),
        ]

        for name, values in flag_values.items():
            raw = values - _CANONICAL_FLAG_VALUES
            findings.append(AuditFinding(
                name=f"canonical_{name}",
                passed=not raw,
                message=(
                    f"Flag '{name}' holds non-canonical values {sorted(map(str, raw))}"
                    if raw else f"Flag '{name}' is canonical"
                ),
                total_rows=total,
            ))

        duplicate_rows = int(duplicate_keys["count"].sum()) if duplicate_keys.height else 0
        findings.append(AuditFinding(
            name="unique_composite_key",
            passed=duplicate_keys.height == 0,
            message=(
                f"{duplicate_keys.height} keys shared by {duplicate_rows} records"
                if duplicate_keys.height else "Composite keys are unique"
            ),
            failed_rows=duplicate_rows,
            total_rows=total,
        ))

        for finding in findings:
            if not finding.passed:
                logger.warning(
                    f"Audit finding: {finding.name}",
                    message=finding.message,
                    failed_rows=finding.failed_rows,
                )

        report = AuditReport(
            total_rows=total,
            null_counts=null_counts,
            quantity_violations=quantity_violations,
            flag_values=flag_values,
            duplicate_keys=duplicate_keys,
            findings=findings,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )

        logger.info(
            "Record audit complete",
            issues=sum(1 for f in findings if not f.passed),
            checks=len(findings),
        )
        return report


def audit_records(df: pl.DataFrame) -> AuditReport:
    """Convenience function to audit a record frame"""
    return RecordAuditor().audit(df)
