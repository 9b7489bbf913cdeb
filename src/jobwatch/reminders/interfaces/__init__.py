"""Reminder HTTP routes."""

from jobwatch.reminders.interfaces.controllers import router

__all__ = ["router"]
