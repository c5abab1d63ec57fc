"""Derived project status and phase progress.

The stored ``status`` is the user's manual choice; the status shown to the
user is derived from it, the phase timestamps and the end date.

Precedence:
1. manual "On Hold"
2. every required phase complete -> "Completed"
3. ``end_date`` in the past -> "Completed"
4. otherwise "In Progress"

Which phases are required is a policy (``PhaseCompletionPolicy``): the
objectives phase is either left out (``core``) or included
(``with_objectives``).

The completion percentage shown on the project card is schedule-based: the
share of the start-to-end span that has elapsed, 50 when only a start date
is set, 0 before the start and 100 after the end.
"""

from collections.abc import Iterable
from datetime import date

from isms.config.settings import PhaseCompletionPolicy
from isms.models.common import PHASE_LABELS, PhaseKey, ProjectStatus
from isms.models.project import PhaseProgress, ProjectStats
from isms.workflow.phase_guard import HasPhaseTimestamps

CORE_PHASES: tuple[PhaseKey, ...] = (
    PhaseKey.BOUNDARIES,
    PhaseKey.STAKEHOLDERS,
    PhaseKey.SOA,
    PhaseKey.EVIDENCE_GAPS,
)

REQUIRED_PHASES: dict[PhaseCompletionPolicy, tuple[PhaseKey, ...]] = {
    PhaseCompletionPolicy.CORE: CORE_PHASES,
    PhaseCompletionPolicy.WITH_OBJECTIVES: CORE_PHASES + (PhaseKey.OBJECTIVES,),
}


def required_phases(policy: PhaseCompletionPolicy) -> tuple[PhaseKey, ...]:
    return REQUIRED_PHASES[policy]


def all_required_complete(project: HasPhaseTimestamps,
                          policy: PhaseCompletionPolicy = PhaseCompletionPolicy.CORE) -> bool:
    return all(getattr(project, phase.column) is not None for phase in required_phases(policy))


def derive_status(
    project: HasPhaseTimestamps,
    policy: PhaseCompletionPolicy = PhaseCompletionPolicy.CORE,
    today: date | None = None,
) -> ProjectStatus:
    """Display status for ``project`` (must also expose ``status`` and ``end_date``)."""
    if getattr(project, "status", None) == ProjectStatus.ON_HOLD:
        return ProjectStatus.ON_HOLD
    if all_required_complete(project, policy):
        return ProjectStatus.COMPLETED
    end_date = getattr(project, "end_date", None)
    if end_date is not None and end_date < (today or date.today()):
        return ProjectStatus.COMPLETED
    return ProjectStatus.IN_PROGRESS


def completion_percentage(project, today: date | None = None) -> int:
    """Schedule progress of ``project`` (exposing ``start_date`` / ``end_date``)."""
    today = today or date.today()
    start = getattr(project, "start_date", None)
    end = getattr(project, "end_date", None)
    if start is None or start > today:
        return 0
    if end is None:
        return 50
    if end < today:
        return 100
    total = (end - start).days
    if total <= 0:
        return 100
    elapsed = (today - start).days
    return int(elapsed * 100 / total + 0.5)


def phase_progress(project: HasPhaseTimestamps,
                   policy: PhaseCompletionPolicy = PhaseCompletionPolicy.CORE) -> list[PhaseProgress]:
    return [
        PhaseProgress(
            phase=phase,
            label=PHASE_LABELS[phase],
            completed_at=getattr(project, phase.column),
        )
        for phase in required_phases(policy)
    ]


def project_stats(
    projects: Iterable[HasPhaseTimestamps],
    policy: PhaseCompletionPolicy = PhaseCompletionPolicy.CORE,
    today: date | None = None,
) -> ProjectStats:
    stats = ProjectStats()
    for project in projects:
        stats.total += 1
        status = derive_status(project, policy, today)
        if status == ProjectStatus.ON_HOLD:
            stats.on_hold += 1
        elif status == ProjectStatus.COMPLETED:
            stats.completed += 1
        else:
            stats.in_progress += 1
    return stats
