"""
Dairy Dataset Generator
Writes a raw, deliberately dirty dairy records CSV for local runs.
"""

import sys
from pathlib import Path

from dairy_analytics.config import get_settings
from dairy_analytics.data import DairyRecordGenerator

OUTPUT_DIR = Path(get_settings().data_lake.raw_path)


def main(n: int = 10000) -> Path:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    print(f"📊 Generating {n:,} dairy records...")

    generator = DairyRecordGenerator(seed=42)
    df = generator.generate(n=n, duplicate_rate=0.05, dirty_rate=0.02)

    output_file = OUTPUT_DIR / "dairy_records.csv"
    df.write_csv(output_file)

    size = output_file.stat().st_size / 1024 / 1024
    print(f"   ✅ {output_file.name}: {len(df):,} rows ({size:.2f} MB)")
    return output_file


if __name__ == "__main__":
    main(int(sys.argv[1]) if len(sys.argv) > 1 else 10000)
