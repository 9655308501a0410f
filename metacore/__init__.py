"""Ad performance ingestion, filtering, aggregation and ranking engine."""

from .aggregation import AggregationEngine
from .application import DashboardView, build_dashboard, clear_session, ingest_file, restore_session
from .domain import AdRecord, Filters, IngestionReport
from .filters import apply_filters, filter_options
from .ingestion import IngestionError, load_ads_file, normalize_frame, normalize_rows, read_ads_file
from .ranking import RankingEngine

__all__ = [
    "AdRecord",
    "AggregationEngine",
    "DashboardView",
    "Filters",
    "IngestionError",
    "IngestionReport",
    "RankingEngine",
    "apply_filters",
    "build_dashboard",
    "clear_session",
    "filter_options",
    "ingest_file",
    "load_ads_file",
    "normalize_frame",
    "normalize_rows",
    "read_ads_file",
    "restore_session",
]
