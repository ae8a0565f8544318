"""
Dairy Record Data Model

Column layout of a dairy transaction record and the tagged variant used
for raw flag values before normalization.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import polars as pl


# =============================================================================
# RECORD FIELDS
# =============================================================================

FIELDS: List[str] = [
    "record_id",
    "date",
    "product_id",
    "product_name",
    "brand",
    "quantity",
    "unit",
    "price_per_unit",
    "total_cost",
    "vendor_id",
    "vendor_name",
    "procurement_type",
    "payment_mode",
    "location",
    "latitude",
    "longitude",
    "season",
    "shift",
    "fat_content",
    "snf_content",
    "protein_content",
    "added_sugar",
    "is_organic",
    "delivery_mode",
    "return_flag",
    "expiry_date",
]

REQUIRED_FIELDS: List[str] = ["record_id", "date"]
DATE_FIELDS: List[str] = ["date", "expiry_date"]
FLAG_FIELDS: List[str] = ["added_sugar", "is_organic", "return_flag"]

# quantity stays raw text until aggregation so audits can see bad entries
NUMERIC_FIELDS: List[str] = [
    "price_per_unit",
    "total_cost",
    "latitude",
    "longitude",
    "fat_content",
    "snf_content",
    "protein_content",
]

DEDUP_KEY: List[str] = ["product_id", "date", "vendor_id"]

# Source headers that do not match a field name once lowercased
COLUMN_ALIASES: Dict[str, str] = {
    "quantity_liters_kg": "quantity",
}

QUANTITY_PATTERN = r"^[+-]?[0-9]+(\.[0-9]+)?$"


def record_schema() -> Dict[str, pl.DataType]:
    """Polars dtypes of a loaded (not yet cleaned) record frame"""
    schema: Dict[str, pl.DataType] = {}
    for name in FIELDS:
        if name == "record_id":
            schema[name] = pl.Int64
        elif name in DATE_FIELDS:
            schema[name] = pl.Date
        elif name in NUMERIC_FIELDS:
            schema[name] = pl.Float64
        else:
            schema[name] = pl.Utf8
    return schema


# =============================================================================
# RAW FLAG VALUES
# =============================================================================

class FlagKind(str, Enum):
    """How a flag value was represented at the source"""
    CANONICAL = "canonical"  # a real boolean
    RAW_STRING = "raw_string"  # free text such as "Yes" / "No"
    MISSING = "missing"


@dataclass(frozen=True)
class RawFlag:
    """
    Tri-state flag value as it arrives from the source.

    Example:
        RawFlag.of("Yes").normalize("Yes")  # True
        RawFlag.of(True).normalize("Yes")   # False
    """
    kind: FlagKind
    value: Any = None

    @classmethod
    def of(cls, value: Any) -> "RawFlag":
        """Classify a raw cell value"""
        if value is None:
            return cls(FlagKind.MISSING)
        if isinstance(value, bool):
            return cls(FlagKind.CANONICAL, value)
        return cls(FlagKind.RAW_STRING, str(value))

    def as_text(self) -> Optional[str]:
        """Text form stored in the loaded record frame"""
        if self.kind == FlagKind.MISSING:
            return None
        if self.kind == FlagKind.CANONICAL:
            return "true" if self.value else "false"
        return self.value

    def normalize(self, truthy_token: str = "Yes") -> bool:
        """True only for a raw string equal to the truthy token"""
        return self.kind == FlagKind.RAW_STRING and self.value == truthy_token


def normalize_flag(value: Any, truthy_token: str = "Yes") -> bool:
    """Normalize a single raw flag value"""
    return RawFlag.of(value).normalize(truthy_token)
