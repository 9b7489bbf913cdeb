"""Notification HTTP routes."""

from jobwatch.notifications.interfaces.controllers import router

__all__ = ["router"]
