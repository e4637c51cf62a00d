"""Qt adapters."""

from .dashboard_view import QtDashboardView

__all__ = ["QtDashboardView"]
