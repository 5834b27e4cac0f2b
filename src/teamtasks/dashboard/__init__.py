"""Dashboard state machine and text rendering."""

from teamtasks.dashboard.render import render_dashboard
from teamtasks.dashboard.state import Dashboard, Notification

__all__ = ["Dashboard", "Notification", "render_dashboard"]
