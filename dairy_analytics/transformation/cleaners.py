"""
Record Cleaning Module

Cleaning transformations for dairy record frames.
Handles:
- Deduplication by composite natural key (smallest record id wins)
- Normalization of boolean-like flag fields
- Caller-registered extra rules
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import polars as pl
import structlog

from dairy_analytics.config import get_settings
from dairy_analytics.models import FLAG_FIELDS

logger = structlog.get_logger(__name__)
settings = get_settings()

CleaningRule = Callable[[pl.DataFrame], pl.DataFrame]


@dataclass
class CleaningStats:
    """Statistics from cleaning operations"""
    total_rows: int
    rows_after_cleaning: int
    duplicates_removed: int
    flags_set_true: Dict[str, int] = field(default_factory=dict)
    rules_applied: List[str] = field(default_factory=list)


class RecordCleaner:
    """
    Record cleaner applying deduplication and flag normalization.

    Both built-in steps are idempotent, so cleaning an already cleaned
    frame returns it unchanged.

    Example:
        cleaner = RecordCleaner()
        records = cleaner.clean(records)
    """

    def __init__(
        self,
        key_fields: Optional[List[str]] = None,
        flag_fields: Optional[List[str]] = None,
        truthy_token: Optional[str] = None,
    ):
        self.key_fields = key_fields or settings.cleaning.dedup_key
        self.flag_fields = flag_fields or FLAG_FIELDS
        self.truthy_token = truthy_token if truthy_token is not None else settings.cleaning.truthy_token
        self._cleaning_rules: Dict[str, CleaningRule] = {}
        self._register_default_rules()

    def _register_default_rules(self) -> None:
        """Register default cleaning rules"""
        self._cleaning_rules = {
            "deduplicate": self.deduplicate,
            "normalize_flags": self.normalize_flags,
        }

    def register_rule(self, name: str, func: CleaningRule) -> None:
        """Register a custom cleaning rule, applied after the existing ones"""
        self._cleaning_rules[name] = func

    @property
    def rule_names(self) -> List[str]:
        return list(self._cleaning_rules)

    def deduplicate(
        self,
        df: pl.DataFrame,
        key_fields: Optional[List[str]] = None,
    ) -> pl.DataFrame:
        """
        Keep one record per composite key: the one with the smallest record_id.

        Surviving rows keep their original relative order. Null key
        components group together.
        """
        keys = key_fields or self.key_fields
        deduplicated = (
            df.filter(pl.col("record_id") == pl.col("record_id").min().over(keys))
            .unique(subset=keys, keep="first", maintain_order=True)
        )

        removed = df.height - deduplicated.height
        if removed:
            logger.info("Removed duplicate records", removed=removed, key=keys)
        return deduplicated

    def normalize_flags(
        self,
        df: pl.DataFrame,
        fields: Optional[List[str]] = None,
    ) -> pl.DataFrame:
        """
        Map raw flag values to booleans.

        Only a value equal to the truthy token (case-sensitive) becomes True;
        anything else, including null, "No" and boolean-looking text, becomes
        False. Columns that already have the Boolean dtype are left alone.
        """
        exprs = []
        for name in fields or self.flag_fields:
            if name not in df.columns:
                exprs.append(pl.lit(False).alias(name))
            elif df.schema[name] == pl.Boolean:
                continue
            else:
                exprs.append(
                    (pl.col(name).cast(pl.Utf8) == self.truthy_token)
                    .fill_null(False)
                    .alias(name)
                )

        if not exprs:
            return df
        return df.with_columns(exprs)

    def clean_with_stats(self, df: pl.DataFrame) -> Tuple[pl.DataFrame, CleaningStats]:
        """Apply every registered rule in order and report what changed"""
        total_rows = df.height
        duplicates_removed = 0

        for name, rule in self._cleaning_rules.items():
            before = df.height
            df = rule(df)
            if name == "deduplicate":
                duplicates_removed = before - df.height

        stats = CleaningStats(
            total_rows=total_rows,
            rows_after_cleaning=df.height,
            duplicates_removed=duplicates_removed,
            flags_set_true={
                name: int(df[name].sum())
                for name in self.flag_fields
                if name in df.columns and df.schema[name] == pl.Boolean
            },
            rules_applied=self.rule_names,
        )

        logger.info(
            "Record cleaning complete",
            total_rows=total_rows,
            rows_after_cleaning=stats.rows_after_cleaning,
            duplicates_removed=duplicates_removed,
        )
        return df, stats

    def clean(self, df: pl.DataFrame) -> pl.DataFrame:
        """Deduplicate and normalize a record frame"""
        cleaned, _ = self.clean_with_stats(df)
        return cleaned


def clean_records(df: pl.DataFrame) -> pl.DataFrame:
    """
    Convenience function to clean a record frame.

    Args:
        df: Loaded record frame

    Returns:
        Cleaned record frame
    """
    return RecordCleaner().clean(df)
