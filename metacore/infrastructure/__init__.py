"""Infrastructure layer package."""

from .report_exporter import save_output_workbook, save_summary_json
from .snapshot_repository import SNAPSHOT_KEY, clear_snapshot, load_snapshot, save_snapshot

__all__ = [
    "SNAPSHOT_KEY",
    "clear_snapshot",
    "load_snapshot",
    "save_output_workbook",
    "save_snapshot",
    "save_summary_json",
]
