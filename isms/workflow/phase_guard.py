"""Phase-Completion Guard.

Each project carries one completion timestamp per workflow phase. Marking a
phase complete is a user assertion; there is no precondition on the
entities inside it. Any later create/update/delete on an entity belonging
to a completed phase must be confirmed by the caller and then clears
("unmarks") the timestamp.

The rule is enforced once, by the ``unmarks_phase`` decorator around the
mutation entry points of the phase-scoped services:

1. read the touched phases' timestamps before the mutation
2. refuse with ``PhaseResetRequired`` if any is set and not confirmed
3. run the mutation
4. unmark only the phases that were complete in step 1

Step 4 is best-effort: it runs in its own SAVEPOINT and a failure there is
logged while the primary mutation is kept.
"""

import functools
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Protocol, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import ProjectRow
from isms.models.common import PhaseKey, utc_now
from isms.repositories.projects import ProjectRepository
from isms.workflow.errors import NotFoundOrForbidden, PhaseResetRequired

logger = logging.getLogger(__name__)

T = TypeVar("T")

PhaseResolver = Callable[..., Iterable[PhaseKey]]


class HasPhaseTimestamps(Protocol):
    boundaries_completed_at: Any
    stakeholders_completed_at: Any
    soa_completed_at: Any
    evidence_gaps_completed_at: Any
    questionnaire_completed_at: Any
    objectives_completed_at: Any


def requires_confirmation(project: HasPhaseTimestamps, phase: PhaseKey) -> bool:
    """True iff ``phase`` is currently marked complete on ``project``."""
    return getattr(project, phase.column) is not None


class PhaseGuard:
    """Reads and writes phase completion timestamps for one unit of work."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._projects = ProjectRepository(session)

    async def completed_phases(self, project_id: UUID,
                               phases: Iterable[PhaseKey]) -> list[PhaseKey]:
        """Subset of ``phases`` currently complete, in the order given."""
        wanted = list(dict.fromkeys(phases))
        if not wanted:
            return []
        stamps = await self._projects.get_phase_timestamps(project_id, wanted)
        return [phase for phase in wanted if stamps.get(phase) is not None]

    async def mark_phase_complete(self, project_id: UUID, phase: PhaseKey) -> ProjectRow:
        row = await self._projects.set_phase_timestamp(project_id, phase, utc_now())
        if row is None:
            raise NotFoundOrForbidden("Project not found or you do not have permission to update it")
        return row

    async def unmark_phase_complete(self, project_id: UUID, phase: PhaseKey) -> None:
        row = await self._projects.set_phase_timestamp(project_id, phase, None)
        if row is None:
            raise NotFoundOrForbidden("Project not found or you do not have permission to update it")

    async def unmark_after_mutation(self, project_id: UUID,
                                    phases: Iterable[PhaseKey]) -> list[PhaseKey]:
        """Clear each phase in its own SAVEPOINT; return the ones cleared.

        Failures are logged and swallowed so the already-applied mutation
        survives.
        """
        cleared: list[PhaseKey] = []
        for phase in phases:
            try:
                async with self._session.begin_nested():
                    await self.unmark_phase_complete(project_id, phase)
            except Exception:
                logger.exception(
                    "Failed to reset %s completion for project %s", phase.value, project_id,
                )
                continue
            logger.info("Reset %s completion for project %s", phase.value, project_id)
            cleared.append(phase)
        return cleared


def unmarks_phase(
    *phases: PhaseKey,
    resolve: PhaseResolver | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorate a service mutation belonging to one or more phases.

    The wrapped coroutine must be a method of an object exposing
    ``self._guard`` (a ``PhaseGuard``) and must take ``project_id`` as its
    first argument. Callers pass ``confirm_reset=True`` to acknowledge that
    completed phases will be reset.

    ``resolve`` computes the touched phases from the remaining call
    arguments, for mutations whose phase depends on the payload. It is
    combined with any static ``phases``.

    Usage::

        class StakeholderService:
            @unmarks_phase(PhaseKey.STAKEHOLDERS)
            async def delete(self, project_id, stakeholder_id): ...

        await service.delete(project_id, sid, confirm_reset=True)
    """

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(self: Any, project_id: UUID, *args: Any,
                          confirm_reset: bool = False, **kwargs: Any) -> T:
            touched = list(phases)
            if resolve is not None:
                touched.extend(resolve(*args, **kwargs))

            guard: PhaseGuard = self._guard
            completed = await guard.completed_phases(project_id, touched)
            if completed and not confirm_reset:
                raise PhaseResetRequired(project_id, completed)

            result = await fn(self, project_id, *args, **kwargs)

            if completed:
                await guard.unmark_after_mutation(project_id, completed)
            return result

        return wrapper

    return decorator
