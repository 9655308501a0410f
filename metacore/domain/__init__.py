"""Domain layer package."""

from .classification import UNCLASSIFIED_PRODUCT, detect_product, sanitize_url
from .models import (
    AdRecord,
    AggregatedCreative,
    FilterOptions,
    Filters,
    IngestionReport,
    LeaderboardEntry,
    TimeBucket,
    frame_to_records,
    records_to_frame,
)

__all__ = [
    "AdRecord",
    "AggregatedCreative",
    "FilterOptions",
    "Filters",
    "IngestionReport",
    "LeaderboardEntry",
    "TimeBucket",
    "UNCLASSIFIED_PRODUCT",
    "detect_product",
    "frame_to_records",
    "records_to_frame",
    "sanitize_url",
]
