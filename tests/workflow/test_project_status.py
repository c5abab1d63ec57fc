"""Tests for derived project status and phase progress."""

from dataclasses import dataclass
from datetime import date, datetime, timezone

from isms.config.settings import PhaseCompletionPolicy
from isms.models.common import PhaseKey, ProjectStatus
from isms.workflow.project_status import (
    CORE_PHASES,
    completion_percentage,
    derive_status,
    phase_progress,
    project_stats,
)
from isms.workflow.phase_guard import requires_confirmation

DONE = datetime(2026, 5, 1, tzinfo=timezone.utc)
TODAY = date(2026, 6, 1)


@dataclass
class FakeProject:
    status: str = "In Progress"
    start_date: date | None = None
    end_date: date | None = None
    boundaries_completed_at: datetime | None = None
    stakeholders_completed_at: datetime | None = None
    soa_completed_at: datetime | None = None
    evidence_gaps_completed_at: datetime | None = None
    questionnaire_completed_at: datetime | None = None
    objectives_completed_at: datetime | None = None


def _all_core_done(**overrides) -> FakeProject:
    project = FakeProject(**overrides)
    for phase in CORE_PHASES:
        setattr(project, phase.column, DONE)
    return project


class TestDeriveStatus:
    def test_in_progress_by_default(self) -> None:
        assert derive_status(FakeProject(), today=TODAY) == ProjectStatus.IN_PROGRESS

    def test_all_core_phases_complete(self) -> None:
        assert derive_status(_all_core_done(), today=TODAY) == ProjectStatus.COMPLETED

    def test_one_missing_phase_keeps_in_progress(self) -> None:
        project = _all_core_done()
        project.soa_completed_at = None
        assert derive_status(project, today=TODAY) == ProjectStatus.IN_PROGRESS

    def test_past_end_date_completes(self) -> None:
        project = FakeProject(end_date=date(2026, 5, 31))
        assert derive_status(project, today=TODAY) == ProjectStatus.COMPLETED

    def test_end_date_today_is_not_past(self) -> None:
        project = FakeProject(end_date=TODAY)
        assert derive_status(project, today=TODAY) == ProjectStatus.IN_PROGRESS

    def test_on_hold_wins(self) -> None:
        project = _all_core_done(status="On Hold", end_date=date(2020, 1, 1))
        assert derive_status(project, today=TODAY) == ProjectStatus.ON_HOLD

    def test_objectives_policy_requires_objectives(self) -> None:
        project = _all_core_done()
        policy = PhaseCompletionPolicy.WITH_OBJECTIVES
        assert derive_status(project, policy, TODAY) == ProjectStatus.IN_PROGRESS
        project.objectives_completed_at = DONE
        assert derive_status(project, policy, TODAY) == ProjectStatus.COMPLETED


class TestCompletionPercentage:
    def test_no_dates(self) -> None:
        assert completion_percentage(FakeProject(), TODAY) == 0

    def test_before_start(self) -> None:
        project = FakeProject(start_date=date(2026, 7, 1), end_date=date(2026, 12, 31))
        assert completion_percentage(project, TODAY) == 0

    def test_elapsed_share_of_span(self) -> None:
        project = FakeProject(start_date=date(2026, 5, 1), end_date=date(2026, 6, 30))
        assert completion_percentage(project, TODAY) == 52

    def test_start_date_only(self) -> None:
        assert completion_percentage(FakeProject(start_date=date(2026, 1, 1)), TODAY) == 50
        assert completion_percentage(FakeProject(start_date=date(2026, 9, 1)), TODAY) == 0

    def test_past_end_date(self) -> None:
        project = FakeProject(start_date=date(2026, 1, 1), end_date=date(2026, 3, 31))
        assert completion_percentage(project, TODAY) == 100

    def test_end_date_only(self) -> None:
        assert completion_percentage(FakeProject(end_date=date(2026, 12, 31)), TODAY) == 0

    def test_single_day_project(self) -> None:
        project = FakeProject(start_date=TODAY, end_date=TODAY)
        assert completion_percentage(project, TODAY) == 100


class TestPhaseProgress:
    def test_core_policy_lists_four_phases(self) -> None:
        progress = phase_progress(FakeProject(boundaries_completed_at=DONE))
        assert [p.phase for p in progress] == list(CORE_PHASES)
        assert progress[0].is_complete is True
        assert progress[1].is_complete is False

    def test_objectives_policy_adds_objectives(self) -> None:
        progress = phase_progress(FakeProject(), PhaseCompletionPolicy.WITH_OBJECTIVES)
        assert progress[-1].phase == PhaseKey.OBJECTIVES


class TestProjectStats:
    def test_counts_by_derived_status(self) -> None:
        stats = project_stats(
            [FakeProject(), _all_core_done(), FakeProject(status="On Hold")],
            today=TODAY,
        )
        assert (stats.total, stats.in_progress, stats.completed, stats.on_hold) == (3, 1, 1, 1)


def test_requires_confirmation_only_when_complete() -> None:
    project = FakeProject(soa_completed_at=DONE)
    assert requires_confirmation(project, PhaseKey.SOA) is True
    assert requires_confirmation(project, PhaseKey.BOUNDARIES) is False
