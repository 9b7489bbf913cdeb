"""
SLA Application Layer
======================

Application layer for SLA monitoring module.

Contains:
- Services: Orchestrate business logic and coordinate with repositories
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from jobwatch.sla.application.dto import (
    DashboardQueryDTO,
    DashboardResponse,
    DashboardSummary,
    JobCreateDTO,
    JobResponse,
    MilestoneCorrectionDTO,
    MilestoneWriteDTO,
    PolicyDTO,
    SLAStatusResponse,
    to_legacy_label,
)
from jobwatch.sla.application.services import (
    EscalationOutcome,
    EscalationService,
    IJobRepository,
    ISLAConfigProvider,
    JobService,
)

__all__ = [
    # DTOs
    "DashboardQueryDTO",
    "DashboardResponse",
    "DashboardSummary",
    "JobCreateDTO",
    "JobResponse",
    "MilestoneCorrectionDTO",
    "MilestoneWriteDTO",
    "PolicyDTO",
    "SLAStatusResponse",
    "to_legacy_label",
    # Services
    "EscalationOutcome",
    "EscalationService",
    "JobService",
    # Repository Interfaces
    "IJobRepository",
    "ISLAConfigProvider",
]
