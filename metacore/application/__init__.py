"""Application layer package."""

from .dashboard_service import DashboardView, build_dashboard
from .session_service import clear_session, ingest_file, restore_session

__all__ = ["DashboardView", "build_dashboard", "clear_session", "ingest_file", "restore_session"]
