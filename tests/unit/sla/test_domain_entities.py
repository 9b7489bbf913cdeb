from datetime import datetime, timedelta

import pytest

from jobwatch.config import LifecycleStage, Milestone, Priority, SLAState
from jobwatch.core import (
    InvalidPolicyException,
    MilestoneOrderException,
    PolicyLockedException,
    ValidationException,
)
from jobwatch.sla.domain import Job, JobMilestones, SLAStatus, SlaPolicy


def _job(t0: datetime, **milestones) -> Job:
    return Job(
        id="job-1",
        job_number="JOB-1",
        customer="Acme",
        site="Depot",
        priority=Priority.HIGH,
        milestones=JobMilestones(logged=t0, **milestones),
        policy=SlaPolicy(accept_within=20, on_site_within=60, complete_within=120),
    )


class TestMilestoneOrdering:
    def test_valid_sequence_passes(self, t0: datetime) -> None:
        milestones = JobMilestones(
            logged=t0,
            accepted=t0 + timedelta(minutes=1),
            on_site=t0 + timedelta(minutes=1),
            completed=t0 + timedelta(minutes=9),
        )

        assert milestones.validate() is milestones

    def test_skipped_predecessor_is_rejected(self, t0: datetime) -> None:
        with pytest.raises(MilestoneOrderException) as exc:
            JobMilestones(logged=t0, on_site=t0 + timedelta(minutes=5)).validate()

        assert exc.value.milestone == "on_site"
        assert isinstance(exc.value, ValidationException)

    def test_timestamp_before_predecessor_is_rejected(self, t0: datetime) -> None:
        with pytest.raises(MilestoneOrderException):
            JobMilestones(logged=t0, accepted=t0 - timedelta(seconds=1)).validate()


class TestJobMilestoneWrites:
    def test_record_sets_milestone(self, t0: datetime) -> None:
        job = _job(t0)

        job.record_milestone(Milestone.ACCEPTED, t0 + timedelta(minutes=3))

        assert job.milestones.accepted == t0 + timedelta(minutes=3)

    def test_record_twice_is_rejected(self, t0: datetime) -> None:
        job = _job(t0, accepted=t0)

        with pytest.raises(MilestoneOrderException):
            job.record_milestone(Milestone.ACCEPTED, t0 + timedelta(minutes=3))

    def test_logged_cannot_be_recorded(self, t0: datetime) -> None:
        with pytest.raises(MilestoneOrderException):
            _job(t0).record_milestone(Milestone.LOGGED, t0)

    def test_rejected_write_leaves_job_untouched(self, t0: datetime) -> None:
        job = _job(t0)

        with pytest.raises(MilestoneOrderException):
            job.record_milestone(Milestone.COMPLETED, t0 + timedelta(minutes=3))

        assert job.milestones == JobMilestones(logged=t0)

    def test_correct_requires_existing_milestone(self, t0: datetime) -> None:
        with pytest.raises(MilestoneOrderException):
            _job(t0).correct_milestone(Milestone.ACCEPTED, t0)

    def test_correct_cannot_move_before_predecessor(self, t0: datetime) -> None:
        job = _job(t0, accepted=t0 + timedelta(minutes=5), on_site=t0 + timedelta(minutes=30))

        with pytest.raises(MilestoneOrderException):
            job.correct_milestone(Milestone.ON_SITE, t0 + timedelta(minutes=4))


class TestPolicy:
    @pytest.mark.parametrize("field", ["accept_within", "on_site_within", "complete_within"])
    def test_negative_budget_rejected(self, field: str) -> None:
        values = {"accept_within": 1, "on_site_within": 1, "complete_within": 1, field: -1}

        with pytest.raises(InvalidPolicyException) as exc:
            SlaPolicy(**values).validate()

        assert exc.value.field_name == field

    def test_zero_budget_allowed(self) -> None:
        SlaPolicy(accept_within=0, on_site_within=0, complete_within=0).validate()

    def test_policy_locked_after_completion(self, t0: datetime) -> None:
        job = _job(t0, accepted=t0, on_site=t0, completed=t0)

        with pytest.raises(PolicyLockedException):
            job.update_policy(SlaPolicy(accept_within=5, on_site_within=5, complete_within=5))

    def test_policy_editable_before_completion(self, t0: datetime) -> None:
        job = _job(t0)
        policy = SlaPolicy(accept_within=5, on_site_within=5, complete_within=5)

        job.update_policy(policy)

        assert job.policy == policy


class TestAuditFlag:
    def test_first_breach_is_kept(self, t0: datetime) -> None:
        job = _job(t0)

        job.apply_status(SLAStatus.breached(LifecycleStage.ACCEPTANCE, "late"))
        job.apply_status(SLAStatus.breached(LifecycleStage.COMPLETION, "late again"))
        job.apply_status(SLAStatus.on_track())

        assert job.last_state == SLAState.ON_TRACK
        assert job.was_breached
        assert job.first_breached_stage == LifecycleStage.ACCEPTANCE
