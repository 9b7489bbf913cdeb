"""
Breach Emitter
==============

Turns status transitions and milestone writes into notification and
timeline records. Returns what to emit; the caller persists it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from jobwatch.config import (
    Milestone, NotificationType, RelatedType, TimelineEntryType
)
from jobwatch.notifications.domain import Notification, TimelineEntry
from jobwatch.sla.domain.value_objects import SLACalculator, SLAStatus

_MILESTONE_LABELS = {
    Milestone.LOGGED: "Job logged",
    Milestone.ACCEPTED: "Job accepted by engineer",
    Milestone.ON_SITE: "Engineer arrived on site",
    Milestone.COMPLETED: "Job completed",
}


@dataclass(frozen=True)
class JobRef:
    """What the emitter needs to know about a job."""
    job_id: str
    job_number: str
    completed: bool = False


@dataclass
class Emission:
    """Records produced by one transition."""
    notifications: List[Notification] = field(default_factory=list)
    timeline: List[TimelineEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.notifications and not self.timeline

    def extend(self, other: "Emission") -> None:
        self.notifications.extend(other.notifications)
        self.timeline.extend(other.timeline)


class BreachEmitter:
    """
    Compares previous and new status of a job.

    - on_track -> breached: one notification plus one timeline entry
    - breached -> breached at the same stage: nothing
    - breached -> on_track: a timeline entry only
    """

    def on_tick(
        self,
        previous: SLAStatus,
        current: SLAStatus,
        job: JobRef,
        at: datetime
    ) -> Emission:
        emission = Emission()

        if SLACalculator.is_new_breach(previous, current):
            stage = current.stage.value
            emission.notifications.append(Notification.create(
                type=NotificationType.SLA_BREACH,
                title="SLA Breach",
                message=f"Job {job.job_number}: {current.reason}",
                timestamp=at,
                related_id=job.job_id,
                related_type=RelatedType.JOB,
            ))
            emission.timeline.append(TimelineEntry.create(
                job_id=job.job_id,
                type=TimelineEntryType.SLA_BREACHED,
                description=f"SLA breached at {stage}: {current.reason}",
                timestamp=at,
                details={"stage": stage, "reason": current.reason},
            ))
        elif previous.is_breached and not current.is_breached:
            stage = previous.stage.value if previous.stage else "unknown"
            if job.completed:
                description = f"SLA breach at {stage} closed: job completed"
            else:
                description = f"SLA breach at {stage} cleared after milestone update"
            emission.timeline.append(TimelineEntry.create(
                job_id=job.job_id,
                type=TimelineEntryType.SLA_CLEARED,
                description=description,
                timestamp=at,
                details={"stage": stage},
            ))

        return emission

    def milestone_entry(
        self,
        job: JobRef,
        milestone: Milestone,
        timestamp: datetime,
        at: datetime,
        previous_timestamp: Optional[datetime] = None
    ) -> TimelineEntry:
        """
        Informational entry for a milestone write, recorded regardless of
        whether the milestone was on time.
        """
        details = {"milestone": milestone.value, "timestamp": timestamp.isoformat()}
        if previous_timestamp is not None:
            details["previous_timestamp"] = previous_timestamp.isoformat()
            return TimelineEntry.create(
                job_id=job.job_id,
                type=TimelineEntryType.MILESTONE_CORRECTED,
                description=f"{_MILESTONE_LABELS[milestone]}: time corrected to {timestamp.isoformat()}",
                timestamp=at,
                details=details,
            )
        return TimelineEntry.create(
            job_id=job.job_id,
            type=TimelineEntryType.MILESTONE_RECORDED,
            description=f"{_MILESTONE_LABELS[milestone]} at {timestamp.isoformat()}",
            timestamp=at,
            details=details,
        )
