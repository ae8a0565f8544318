"""
KPI Aggregation Primitives

Parameterized aggregations over a cleaned dairy record frame:
- Grouped sums and counts
- Top/bottom N groups
- Return rates
- Dense revenue ranking
- Trailing moving averages per partition

Every function is pure and returns a new DataFrame. Empty input yields an
empty frame with the expected columns. Rounding is decimal round-half-up.
"""

from decimal import Context, Decimal, ROUND_HALF_EVEN, ROUND_HALF_UP
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Union
import math

import polars as pl
import structlog

logger = structlog.get_logger(__name__)

GroupKey = Union[str, Sequence[str]]

# float noise sits below this many decimals for KPI-sized values; the wide
# context holds every finite float at that scale
_SNAP_PLACES = 9
_WIDE_CONTEXT = Context(prec=400)


class SortDirection(str, Enum):
    """Ordering of summed groups"""
    DESCENDING = "desc"
    ASCENDING = "asc"


_DAILY_AGGREGATES: Dict[str, Callable[[pl.Expr], pl.Expr]] = {
    "sum": lambda e: e.sum(),
    "mean": lambda e: e.mean(),
    "min": lambda e: e.min(),
    "max": lambda e: e.max(),
    "count": lambda e: e.count(),
}


def round_half_up(value: Optional[float], places: int = 2) -> Optional[float]:
    """
    Round like SQL ROUND(): halves go away from zero.

    Computed floats carry binary noise, e.g. ``(12.34 + 12.35) / 2`` is
    ``12.344999...``. The value is first snapped to ``_SNAP_PLACES``
    decimals so such results round as their decimal counterpart (12.35).
    Digits beyond ``_SNAP_PLACES`` do not influence the result.
    """
    if value is None or not math.isfinite(value):
        return value
    exact = Decimal(repr(value))
    if places < _SNAP_PLACES:
        exact = exact.quantize(
            Decimal(1).scaleb(-_SNAP_PLACES), rounding=ROUND_HALF_EVEN, context=_WIDE_CONTEXT
        )
    quantum = Decimal(1).scaleb(-places)
    return float(exact.quantize(quantum, rounding=ROUND_HALF_UP, context=_WIDE_CONTEXT))


def _keys(group_key: GroupKey) -> List[str]:
    if isinstance(group_key, str):
        return [group_key]
    return list(group_key)


def _numeric(column: str) -> pl.Expr:
    return pl.col(column).cast(pl.Float64, strict=False)


def _rounded(column: str, places: int) -> pl.Expr:
    return (
        pl.col(column)
        .map_elements(lambda v: round_half_up(v, places), return_dtype=pl.Float64)
        .alias(column)
    )


def _empty(records: pl.DataFrame, keys: List[str], columns: Dict[str, pl.DataType]) -> pl.DataFrame:
    schema = {key: records.schema.get(key, pl.Utf8) for key in keys}
    schema.update(columns)
    return pl.DataFrame(schema=schema)


def _sort_desc(df: pl.DataFrame, value_column: str, keys: List[str]) -> pl.DataFrame:
    """Sort by value descending, ties by key ascending"""
    return df.sort(
        [value_column] + keys,
        descending=[True] + [False] * len(keys),
        nulls_last=True,
    )


def group_sum(
    records: pl.DataFrame,
    group_key: GroupKey,
    value_field: str,
    decimals: Optional[int] = None,
    include_count: bool = False,
) -> pl.DataFrame:
    """
    Sum a value field per group.

    Args:
        records: Cleaned record frame
        group_key: Column or columns to group by
        value_field: Numeric column to sum; non-numeric values are ignored
        decimals: Round sums to this many places when given
        include_count: Add an ``order_count`` column with rows per group

    Returns:
        Key columns plus the summed value, largest first, ties by key
    """
    keys = _keys(group_key)
    if records.is_empty():
        columns: Dict[str, pl.DataType] = {value_field: pl.Float64}
        if include_count:
            columns["order_count"] = pl.Int64
        return _empty(records, keys, columns)

    aggs = [_numeric(value_field).sum().alias(value_field)]
    if include_count:
        aggs.append(pl.len().cast(pl.Int64).alias("order_count"))

    result = records.group_by(keys).agg(aggs)
    if decimals is not None:
        result = result.with_columns(_rounded(value_field, decimals))
    return _sort_desc(result, value_field, keys)


def top_n(
    records: pl.DataFrame,
    group_key: GroupKey,
    value_field: str,
    n: int,
    direction: Union[SortDirection, str] = SortDirection.DESCENDING,
    decimals: Optional[int] = None,
) -> pl.DataFrame:
    """Top (or bottom) ``n`` groups by summed value"""
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")

    direction = SortDirection(direction)
    keys = _keys(group_key)
    summed = group_sum(records, keys, value_field, decimals=decimals)
    if direction == SortDirection.ASCENDING:
        summed = summed.sort([value_field] + keys, nulls_last=True)
    return summed.head(n)


def return_rate(
    records: pl.DataFrame,
    group_key: GroupKey,
    flag_field: str = "return_flag",
    value_field: Optional[str] = None,
    decimals: int = 2,
) -> pl.DataFrame:
    """
    Share of returned records per group.

    ``rate = 100 * returned / total``, rounded; 0 when a group has no rows.
    When ``value_field`` is given its per-group sum is included as well.

    Raises:
        ValueError: If the flag column is missing or not yet normalized
    """
    keys = _keys(group_key)
    if records.is_empty():
        columns: Dict[str, pl.DataType] = {}
        if value_field:
            columns[value_field] = pl.Float64
        columns.update({"total": pl.Int64, "returned": pl.Int64, "rate": pl.Float64})
        return _empty(records, keys, columns)

    if flag_field not in records.columns:
        raise ValueError(f"Column '{flag_field}' not found")
    if records.schema[flag_field] != pl.Boolean:
        raise ValueError(
            f"Column '{flag_field}' must hold normalized booleans, got {records.schema[flag_field]}"
        )

    aggs = []
    if value_field:
        aggs.append(_numeric(value_field).sum().alias(value_field))
    aggs.extend([
        pl.len().cast(pl.Int64).alias("total"),
        pl.col(flag_field).fill_null(False).cast(pl.Int64).sum().alias("returned"),
    ])

    result = (
        records.group_by(keys)
        .agg(aggs)
        .with_columns(
            pl.when(pl.col("total") == 0)
            .then(pl.lit(0.0))
            .otherwise(pl.col("returned") * 100.0 / pl.col("total"))
            .alias("rate")
        )
        .with_columns(_rounded("rate", decimals))
    )
    if value_field:
        result = result.with_columns(_rounded(value_field, decimals))
    return _sort_desc(result, "rate", keys)


def rank(
    records: pl.DataFrame,
    group_key: GroupKey,
    value_field: str,
    decimals: int = 2,
) -> pl.DataFrame:
    """
    Dense-rank groups by summed value, highest first.

    Groups with equal (rounded) sums share a rank; the next distinct sum
    gets the next consecutive rank.
    """
    keys = _keys(group_key)
    if records.is_empty():
        return _empty(records, keys, {value_field: pl.Float64, "rank": pl.Int64})

    summed = group_sum(records, keys, value_field, decimals=decimals)
    return summed.with_columns(
        pl.col(value_field).rank(method="dense", descending=True).cast(pl.Int64).alias("rank")
    )


def moving_average(
    records: pl.DataFrame,
    partition_key: GroupKey,
    order_key: str,
    value_field: str,
    window_size: int,
    agg: str = "sum",
    decimals: int = 2,
) -> pl.DataFrame:
    """
    Trailing moving average of a per-period aggregate.

    Rows are first aggregated per (partition, order) with ``agg``; the
    average then covers the current row and up to ``window_size - 1``
    preceding rows of the same partition. Partitions shorter than the
    window start with a ragged (smaller) window.

    Args:
        records: Cleaned record frame
        partition_key: Column or columns defining independent series
        order_key: Column ordering rows within a series, e.g. ``date``
        value_field: Numeric column to aggregate
        window_size: Rows in the trailing window, current row included
        agg: Per-period aggregate: sum, mean, min, max or count
        decimals: Places for the rounded average

    Returns:
        Partition and order columns, the period value and ``moving_average``
    """
    if window_size < 1:
        raise ValueError(f"window_size must be at least 1, got {window_size}")
    if agg not in _DAILY_AGGREGATES:
        raise ValueError(f"Unsupported aggregate '{agg}', expected one of {sorted(_DAILY_AGGREGATES)}")

    partitions = _keys(partition_key)
    keys = partitions + [order_key]
    if records.is_empty():
        return _empty(records, keys, {value_field: pl.Float64, "moving_average": pl.Float64})

    periods = (
        records.group_by(keys)
        .agg(_DAILY_AGGREGATES[agg](_numeric(value_field)).cast(pl.Float64).alias(value_field))
        .sort(keys, nulls_last=True)
    )

    running_total = pl.col(value_field).fill_null(0.0).cum_sum()
    running_count = pl.col(value_field).is_not_null().cast(pl.Int64).cum_sum()
    window_total = (running_total - running_total.shift(window_size).fill_null(0.0)).over(partitions)
    window_count = (running_count - running_count.shift(window_size).fill_null(0)).over(partitions)

    return (
        periods.with_columns(
            pl.when(window_count > 0)
            .then(window_total / window_count)
            .otherwise(None)
            .alias("moving_average")
        )
        .with_columns(_rounded("moving_average", decimals))
    )


def product_metrics(records: pl.DataFrame, decimals: int = 2) -> pl.DataFrame:
    """
    ProductMetrics view: quantity, revenue and order count per product.

    Ordered by revenue descending, ties by product name.
    """
    if records.is_empty():
        return _empty(records, ["product_name"], {
            "total_quantity": pl.Float64,
            "total_revenue": pl.Float64,
            "order_count": pl.Int64,
        })

    metrics = (
        records.group_by("product_name")
        .agg([
            _numeric("quantity").sum().alias("total_quantity"),
            _numeric("total_cost").sum().alias("total_revenue"),
            pl.len().cast(pl.Int64).alias("order_count"),
        ])
        .with_columns([
            _rounded("total_quantity", decimals),
            _rounded("total_revenue", decimals),
        ])
    )
    return _sort_desc(metrics, "total_revenue", ["product_name"])
