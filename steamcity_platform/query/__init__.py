"""
Query module for filtering, searching, summarizing and exporting collections.
"""

from .engine import QueryEngine, ExperimentFilters, DeviceFilters, MeasurementFilters
from .export import DataExporter, ExportFormat, ExportOptions
from .filters import Page, QueryResult

__all__ = [
    "QueryEngine", "ExperimentFilters", "DeviceFilters", "MeasurementFilters",
    "DataExporter", "ExportFormat", "ExportOptions", "Page", "QueryResult",
]
