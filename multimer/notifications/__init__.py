"""Notifications package."""

from .alarms import AlarmCenter

__all__ = ["AlarmCenter"]
