"""
SLA Domain Layer
================

Domain layer for SLA monitoring module.

Contains:
- Entities: Core business objects with identity (Job, JobMilestones)
- Value Objects: Immutable objects defined by attributes (SlaPolicy, SLAStatus, SLAConfig)
- Domain Services: Stateless business logic (SLACalculator, BreachEmitter)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from jobwatch.sla.domain.entities import Job, JobMilestones
from jobwatch.sla.domain.value_objects import (
    SLACalculator,
    SLAConfig,
    SLAStatus,
    SlaPolicy,
    SlaTargets,
    evaluate,
)
from jobwatch.sla.domain.emitter import BreachEmitter, Emission, JobRef

__all__ = [
    # Entities
    "Job",
    "JobMilestones",
    # Value Objects & Services
    "SLACalculator",
    "SLAConfig",
    "SLAStatus",
    "SlaPolicy",
    "SlaTargets",
    "evaluate",
    "BreachEmitter",
    "Emission",
    "JobRef",
]
