"""
Dairy Analysis Runner
Loads a raw dairy CSV, audits and cleans it, and writes every KPI view
to the curated zone.
"""

import sys
from pathlib import Path

import polars as pl

from dairy_analytics import DairyPipeline
from dairy_analytics.config import get_settings
from dairy_analytics.config.logging import configure_logging

DEFAULT_SOURCE = Path(get_settings().data_lake.raw_path) / "dairy_records.csv"


def main(source: Path = DEFAULT_SOURCE) -> None:
    configure_logging()

    result = DairyPipeline().run(source, write_output=True)

    print("=" * 60)
    print("🥛 Dairy Analysis Complete")
    print("=" * 60)
    print(f"\nRows loaded: {result.load.rows_loaded:,} (failed: {result.load.rows_failed:,})")
    print(f"Duplicates removed: {result.cleaning.duplicates_removed:,}")
    print(f"Audit issues: {result.audit.summary()['issues']}")
    print(f"Views written to: {result.output_path}\n")

    with pl.Config(tbl_rows=10):
        for name, view in result.views.items():
            print(f"📄 {name} ({view.height:,} rows)")
            print(view.head(10))
            print()


if __name__ == "__main__":
    main(Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_SOURCE)
