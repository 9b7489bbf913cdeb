"""
SLA Infrastructure Layer
=========================

Database models, repositories and external integrations (config file
watcher, Slack relay).
"""

from jobwatch.sla.infrastructure.external import (
    CircuitBreaker,
    SLAConfigManager,
    SlackNotifier,
)
from jobwatch.sla.infrastructure.models import JobModel
from jobwatch.sla.infrastructure.repositories import (
    SQLAlchemyJobRepository,
    StaticConfigProvider,
)

__all__ = [
    "CircuitBreaker",
    "JobModel",
    "SLAConfigManager",
    "SlackNotifier",
    "SQLAlchemyJobRepository",
    "StaticConfigProvider",
]
