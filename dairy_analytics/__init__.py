"""
Dairy Supply-Chain Analytics

Cleaning and KPI aggregation pipeline for dairy procurement and sales records.
"""
from .pipeline import DairyPipeline, PipelineResult, run_pipeline

__version__ = "1.0.0"

__all__ = [
    "DairyPipeline",
    "PipelineResult",
    "run_pipeline",
]
