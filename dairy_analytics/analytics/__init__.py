"""
KPI Analytics Module
"""
from .aggregations import (
    SortDirection,
    group_sum,
    moving_average,
    product_metrics,
    rank,
    return_rate,
    round_half_up,
    top_n,
)
from .views import ViewRegistry

__all__ = [
    "SortDirection",
    "group_sum",
    "moving_average",
    "product_metrics",
    "rank",
    "return_rate",
    "round_half_up",
    "top_n",
    "ViewRegistry",
]
