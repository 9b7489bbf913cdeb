"""
SLA Interfaces Layer
=====================

HTTP routes for jobs and the engine.
"""

from jobwatch.sla.interfaces.controllers import engine_router, router

__all__ = ["engine_router", "router"]
