"""
Dairy Analytics Pipeline

Runs the batch stages in order over one record set:
load -> audit -> clean -> aggregate, optionally writing the views to the
curated zone.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import polars as pl
import structlog

from dairy_analytics.analytics import ViewRegistry
from dairy_analytics.config import get_settings
from dairy_analytics.ingestion import LoadResult, RecordLoader, create_record_loader
from dairy_analytics.ingestion.batch_loader import RecordSource
from dairy_analytics.quality import AuditReport, RecordAuditor
from dairy_analytics.transformation import CleaningStats, RecordCleaner

logger = structlog.get_logger(__name__)
settings = get_settings()


@dataclass
class PipelineResult:
    """Result of a pipeline run"""
    load: LoadResult
    audit: AuditReport
    cleaning: CleaningStats
    records: pl.DataFrame
    views: Dict[str, pl.DataFrame] = field(default_factory=dict)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    output_path: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()


class DairyPipeline:
    """
    Batch pipeline orchestrator.

    Each stage takes the record frame explicitly; nothing is kept between
    runs, so running twice over the same source gives the same views.

    Example:
        pipeline = DairyPipeline()
        result = pipeline.run("data/raw/dairy_records.csv")
        result.views["product_metrics"]
    """

    def __init__(
        self,
        loader: Optional[RecordLoader] = None,
        auditor: Optional[RecordAuditor] = None,
        cleaner: Optional[RecordCleaner] = None,
        views: Optional[ViewRegistry] = None,
        output_path: Optional[str] = None,
    ):
        self.loader = loader or create_record_loader()
        self.auditor = auditor or RecordAuditor()
        self.cleaner = cleaner or RecordCleaner()
        self.views = views or ViewRegistry()
        self.output_path = Path(output_path or settings.data_lake.curated_path)

    def _write_output(self, views: Dict[str, pl.DataFrame]) -> str:
        """Write every view as Parquet into a timestamped curated directory"""
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        run_dir = self.output_path / f"dairy_views_{timestamp}"
        run_dir.mkdir(parents=True, exist_ok=True)

        for name, df in views.items():
            df.write_parquet(run_dir / f"{name}.parquet")

        logger.info(f"Written {len(views)} views to {run_dir}")
        return str(run_dir)

    def run(self, source: RecordSource, write_output: bool = False) -> PipelineResult:
        """
        Run the full pipeline.

        Pipeline:
        1. Load raw records
        2. Audit the loaded records (report only)
        3. Deduplicate and normalize flags
        4. Compute every registered view
        5. Optionally write views to the curated zone

        Args:
            source: Anything RecordLoader.load accepts
            write_output: Write views as Parquet files

        Returns:
            PipelineResult with every stage's output
        """
        started_at = datetime.now(timezone.utc)
        logger.info("Starting dairy pipeline", write_output=write_output)

        load_result = self.loader.load(source)
        audit_report = self.auditor.audit(load_result.records)
        records, cleaning_stats = self.cleaner.clean_with_stats(load_result.records)
        views = self.views.compute_all(records)

        output_path = self._write_output(views) if write_output else None

        result = PipelineResult(
            load=load_result,
            audit=audit_report,
            cleaning=cleaning_stats,
            records=records,
            views=views,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            output_path=output_path,
        )

        logger.info(
            "Dairy pipeline complete",
            rows_loaded=load_result.rows_loaded,
            rows_failed=load_result.rows_failed,
            duplicates_removed=cleaning_stats.duplicates_removed,
            audit_issues=len(audit_report.summary()["issues"]),
            duration_seconds=result.duration_seconds,
        )
        return result


def run_pipeline(source: RecordSource, write_output: bool = False) -> PipelineResult:
    """Convenience function to run the pipeline with default components"""
    return DairyPipeline().run(source, write_output=write_output)
