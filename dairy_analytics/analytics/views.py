"""
Named KPI Views

Registry of the reporting views computed from a cleaned record frame.
Views hold no state: each call recomputes from the records passed in.
"""

from typing import Callable, Dict, List, Optional

import polars as pl
import structlog

from dairy_analytics.config import get_settings
from .aggregations import (
    group_sum,
    moving_average,
    product_metrics,
    rank,
    return_rate,
)

logger = structlog.get_logger(__name__)
settings = get_settings()

ViewFunction = Callable[[pl.DataFrame], pl.DataFrame]


class ViewRegistry:
    """
    Named, recomputable KPI views.

    Example:
        views = ViewRegistry()
        metrics = views.compute("product_metrics", records)
        everything = views.compute_all(records)
    """

    def __init__(
        self,
        window_size: Optional[int] = None,
        top_n: Optional[int] = None,
        decimals: Optional[int] = None,
    ):
        analytics = settings.analytics
        self.window_size = window_size if window_size is not None else analytics.moving_average_window
        self.top_n = top_n if top_n is not None else analytics.top_n
        self.decimals = decimals if decimals is not None else analytics.decimals
        self._views: Dict[str, ViewFunction] = {}
        self._register_default_views()

    def _register_default_views(self) -> None:
        d = self.decimals
        self._views = {
            "product_metrics": lambda r: product_metrics(r, decimals=d),
            "quantity_by_product": lambda r: group_sum(r, "product_name", "quantity", decimals=d),
            "revenue_by_product": lambda r: group_sum(r, "product_name", "total_cost", decimals=d),
            "revenue_by_location": lambda r: group_sum(r, "location", "total_cost", decimals=d),
            "revenue_by_season": lambda r: group_sum(r, "season", "total_cost", decimals=d),
            "vendor_performance": lambda r: group_sum(
                r, "vendor_name", "total_cost", decimals=d, include_count=True
            ),
            "return_rate_by_product": lambda r: return_rate(r, "product_name", decimals=d),
            "product_revenue_returns": lambda r: return_rate(
                r, "product_name", value_field="total_cost", decimals=d
            ),
            "top_products_by_revenue": lambda r: rank(
                r, "product_name", "total_cost", decimals=d
            ).head(self.top_n),
            "vendor_revenue_rank": lambda r: rank(r, "vendor_name", "total_cost", decimals=d),
            "daily_revenue_moving_average": lambda r: moving_average(
                r, "product_name", "date", "total_cost", self.window_size, decimals=d
            ),
            "product_season_revenue": self._product_season_revenue,
        }

    def _product_season_revenue(self, records: pl.DataFrame) -> pl.DataFrame:
        """Revenue per product and season, grouped by product then best season"""
        return group_sum(
            records, ["product_name", "season"], "total_cost", decimals=self.decimals
        ).sort(
            ["product_name", "total_cost", "season"],
            descending=[False, True, False],
            nulls_last=True,
        )

    def register(self, name: str, func: ViewFunction) -> None:
        """Register or replace a named view"""
        self._views[name] = func

    @property
    def names(self) -> List[str]:
        return list(self._views)

    def compute(self, name: str, records: pl.DataFrame) -> pl.DataFrame:
        """
        Compute a single view.

        Raises:
            KeyError: If no view is registered under ``name``
        """
        if name not in self._views:
            raise KeyError(f"Unknown view: {name}")
        return self._views[name](records)

    def compute_all(self, records: pl.DataFrame) -> Dict[str, pl.DataFrame]:
        """Compute every registered view"""
        results = {name: self.compute(name, records) for name in self._views}
        logger.info(
            f"Computed {len(results)} views",
            rows=records.height,
            views=list(results),
        )
        return results
