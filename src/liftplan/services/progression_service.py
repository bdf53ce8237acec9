"""Batch progression application with idempotency and failure tracking."""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable

import aiosqlite

from ..db.engine import get_db_path
from ..db.repositories import (
    FailureCounterRepository,
    LiftMaxRepository,
    ProgressionLogRepository,
    ProgressionRepository,
)
from ..engine.failures import is_volume_gated, record_outcome, set_failed, stage_volume_failed
from ..engine.progressions import ProgressionInput, apply_progression
from ..errors import LiftplanError
from ..models.program import Program, ProgressionLink
from ..models.progression import (
    AggregateResult,
    DeloadOnFailureProgression,
    Progression,
    ProgressionLogEntry,
    StageProgression,
    TriggerEvent,
    TriggerResult,
    TriggerType,
)
from ..models.state import LoggedSet, WorkoutSession

logger = logging.getLogger(__name__)

IDEMPOTENT_SKIP_REASON = "already applied (idempotent skip)"


@dataclass
class _Target:
    link: ProgressionLink
    lift_id: str
    progression: Progression | None


class ProgressionService:
    """Applies linked progressions for trigger events.

    All methods take the caller's open transaction. Each (progression,
    lift) pair runs inside its own savepoint, so an error on one lift
    rolls back only that lift's writes and the rest of the batch still
    applies.
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()
        self.progressions = ProgressionRepository(self.db_path)
        self.maxes = LiftMaxRepository(self.db_path)
        self.counters = FailureCounterRepository(self.db_path)
        self.logs = ProgressionLogRepository(self.db_path)

    async def apply_event(
        self,
        db: aiosqlite.Connection,
        user_id: str,
        program: Program,
        event: TriggerEvent,
        lift_ids: Iterable[str] | None = None,
        progression_id: str | None = None,
    ) -> AggregateResult:
        """Apply every linked progression listening for an event.

        Args:
            db: Open transaction
            user_id: Whose maxes to progress
            program: The enrolled program, source of the links
            event: What fired
            lift_ids: Restrict to these lifts (default: every program lift)
            progression_id: Restrict to one progression
        """
        targets = await self._targets(db, program, event, lift_ids, progression_id)
        aggregate = AggregateResult()
        for target in targets:
            aggregate.results.append(await self._apply_one(db, user_id, event, target))

        if aggregate.results:
            logger.info(
                "%s for %s: %s applied, %s skipped, %s errors",
                event.trigger_type.value,
                user_id,
                aggregate.total_applied,
                aggregate.total_skipped,
                aggregate.total_errors,
            )
        return aggregate

    async def record_set_outcomes(
        self,
        db: aiosqlite.Connection,
        user_id: str,
        program: Program,
        session_id: str,
        sets: list[LoggedSet],
    ) -> AggregateResult:
        """Update per-set failure counters and fire ON_FAILURE progressions.

        A set short of its target reps counts as a failure for every
        per-set failure progression linked to its lift. A successful set
        resets those counters. Stage progressions are judged on session
        volume instead, see :meth:`record_stage_outcomes`.
        """
        progressions = await self._linked_progressions(db, program)
        aggregate = AggregateResult()

        for logged in sets:
            for link in program.links_for(logged.lift_id):
                progression = progressions.get(link.progression_id)
                if (
                    progression is None
                    or progression.trigger_type != TriggerType.ON_FAILURE
                    or is_volume_gated(progression)
                ):
                    continue

                failed = set_failed(logged)
                await self._record(db, user_id, logged.lift_id, progression.id, failed)
                if not failed:
                    continue

                event = TriggerEvent(
                    trigger_type=TriggerType.ON_FAILURE,
                    context_key=f"{session_id}/{logged.set_number}/{logged.prescription_id}",
                    lifts_performed=(logged.lift_id,),
                )
                target = _Target(link=link, lift_id=logged.lift_id, progression=progression)
                aggregate.results.append(await self._apply_one(db, user_id, event, target))

        return aggregate

    async def record_stage_outcomes(
        self,
        db: aiosqlite.Connection,
        user_id: str,
        program: Program,
        session: WorkoutSession,
    ) -> AggregateResult:
        """Judge stage progressions on the session's total reps per lift."""
        progressions = await self._linked_progressions(db, program)
        aggregate = AggregateResult()

        for lift_id in session.lifts_performed():
            total = session.total_reps(lift_id)
            for link in program.links_for(lift_id):
                progression = progressions.get(link.progression_id)
                if progression is None or not isinstance(progression.rule, StageProgression):
                    continue
                if progression.trigger_type != TriggerType.ON_FAILURE:
                    continue

                counter = await self.counters.get_or_new(user_id, lift_id, progression.id, db=db)
                failed = stage_volume_failed(
                    progression.rule, counter.current_stage_index, total
                )
                await self._record(db, user_id, lift_id, progression.id, failed)
                if not failed:
                    continue

                event = TriggerEvent(
                    trigger_type=TriggerType.ON_FAILURE,
                    context_key=f"{session.id}/stage",
                    lifts_performed=(lift_id,),
                    total_reps={lift_id: total},
                )
                target = _Target(link=link, lift_id=lift_id, progression=progression)
                aggregate.results.append(await self._apply_one(db, user_id, event, target))

        return aggregate

    async def _record(
        self,
        db: aiosqlite.Connection,
        user_id: str,
        lift_id: str,
        progression_id: str,
        failed: bool,
    ) -> None:
        counter = await self.counters.get_or_new(user_id, lift_id, progression_id, db=db)
        await self.counters.save(record_outcome(counter, failed), db=db)

    async def _linked_progressions(
        self, db: aiosqlite.Connection, program: Program
    ) -> dict[str, Progression]:
        ids = {link.progression_id for link in program.progression_links if link.enabled}
        return await self.progressions.get_many(ids, db=db)

    async def _targets(
        self,
        db: aiosqlite.Connection,
        program: Program,
        event: TriggerEvent,
        lift_ids: Iterable[str] | None,
        progression_id: str | None,
    ) -> list[_Target]:
        lifts = list(lift_ids) if lift_ids is not None else program.lift_ids()
        progressions = await self._linked_progressions(db, program)

        targets = []
        for lift_id in lifts:
            for link in program.links_for(lift_id):
                if progression_id is not None and link.progression_id != progression_id:
                    continue
                progression = progressions.get(link.progression_id)
                # Only progressions listening for this trigger take part
                if progression is not None and progression.trigger_type != event.trigger_type:
                    continue
                targets.append(_Target(link=link, lift_id=lift_id, progression=progression))

        # Stable: lifts keep program order within one priority
        targets.sort(key=lambda t: t.link.priority)
        return targets

    async def _apply_one(
        self,
        db: aiosqlite.Connection,
        user_id: str,
        event: TriggerEvent,
        target: _Target,
    ) -> TriggerResult:
        progression_id = target.link.progression_id
        outcome = TriggerResult(progression_id=progression_id, lift_id=target.lift_id)

        if target.progression is None:
            outcome.error = f"progression {progression_id!r} not found"
            return outcome

        await db.execute("SAVEPOINT progression")
        try:
            await self._apply_in_savepoint(db, user_id, event, target, outcome)
        except LiftplanError as e:
            await db.execute("ROLLBACK TO progression")
            outcome.applied = False
            outcome.result = None
            outcome.error = str(e)
            logger.warning(
                "Progression %s on %s failed for %s: %s",
                progression_id,
                target.lift_id,
                user_id,
                e,
            )
        await db.execute("RELEASE progression")
        return outcome

    async def _apply_in_savepoint(
        self,
        db: aiosqlite.Connection,
        user_id: str,
        event: TriggerEvent,
        target: _Target,
        outcome: TriggerResult,
    ) -> None:
        progression = target.progression
        lift_id = target.lift_id

        if not event.force and await self.logs.exists(
            user_id, progression.id, lift_id, event.trigger_type, event.context_key, db=db
        ):
            outcome.skipped = True
            outcome.skip_reason = IDEMPOTENT_SKIP_REASON
            return

        current = await self.maxes.current(user_id, lift_id, progression.max_type, db=db)
        if current is None:
            outcome.skipped = True
            outcome.skip_reason = f"no current {progression.max_type.value} found for lift"
            return

        counter = await self.counters.get_or_new(user_id, lift_id, progression.id, db=db)
        seen = counter
        if (
            event.manual
            and event.force
            and isinstance(progression.rule, DeloadOnFailureProgression)
        ):
            seen = replace(counter, consecutive_failures=max(counter.consecutive_failures, 1))

        result = apply_progression(
            ProgressionInput(
                progression=progression,
                event=event,
                link=target.link,
                current=current,
                counter=seen,
            )
        )
        outcome.result = result
        if not result.applied:
            outcome.skipped = True
            outcome.skip_reason = result.reason
            return

        if result.delta != 0:
            await self.maxes.append(
                user_id,
                lift_id,
                progression.max_type,
                result.new_value,
                expected_sequence=current.sequence,
                db=db,
            )

        if result.stage_index is not None or result.reset_failures:
            if result.stage_index is not None:
                counter.current_stage_index = result.stage_index
            if result.reset_failures:
                counter.consecutive_failures = 0
            await self.counters.save(counter, db=db)

        await self.logs.create(
            ProgressionLogEntry(
                user_id=user_id,
                progression_id=progression.id,
                lift_id=lift_id,
                trigger_type=event.trigger_type,
                context_key=event.context_key,
                previous_value=result.previous_value,
                new_value=result.new_value,
                delta=result.delta,
                applied_at=result.applied_at,
            ),
            db=db,
        )
        outcome.applied = True
        logger.info(
            "Applied %s to %s for %s: %s -> %s",
            progression.id,
            lift_id,
            user_id,
            result.previous_value,
            result.new_value,
        )
