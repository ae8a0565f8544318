"""
Data Generation Module
"""
from .generators import DairyRecordGenerator

__all__ = [
    "DairyRecordGenerator",
]
