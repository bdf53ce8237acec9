"""Data access layer for liftplan.

Every method takes an optional open connection. Without one the method
opens its own connection and commits; with one (see
:func:`liftplan.db.engine.transaction`) it leaves committing to the
owner of the connection.
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Iterable

import aiosqlite

from ..errors import ConcurrencyConflict
from ..models.failure import FailureCounter
from ..models.lift import Lift, LiftMax, MaxType
from ..models.program import Program
from ..models.progression import Progression, ProgressionLogEntry, TriggerType
from ..models.state import (
    CycleStatus,
    EnrollmentState,
    EnrollmentStatus,
    LoggedSet,
    SessionStatus,
    WeekStatus,
    WorkoutSession,
)
from .engine import get_db_path

logger = logging.getLogger(__name__)


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class BaseRepository:
    """Shared connection handling."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    @asynccontextmanager
    async def _connect(
        self, db: aiosqlite.Connection | None = None
    ) -> AsyncIterator[aiosqlite.Connection]:
        if db is not None:
            yield db
            return

        async with aiosqlite.connect(self.db_path) as conn:
            conn.row_factory = aiosqlite.Row
            yield conn
            await conn.commit()


class LiftRepository(BaseRepository):
    """Repository for lift reference data."""

    async def save(self, lift: Lift, db: aiosqlite.Connection | None = None) -> None:
        """Insert or replace a lift."""
        async with self._connect(db) as conn:
            await conn.execute(
                """
                INSERT INTO lifts (id, name, slug) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET name = excluded.name, slug = excluded.slug
                """,
                (lift.id, lift.name, lift.slug),
            )

    async def get(self, lift_id: str, db: aiosqlite.Connection | None = None) -> Lift | None:
        """Get a lift by ID."""
        async with self._connect(db) as conn:
            cursor = await conn.execute("SELECT * FROM lifts WHERE id = ?", (lift_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_lift(row)

    async def get_many(
        self, lift_ids: Iterable[str], db: aiosqlite.Connection | None = None
    ) -> dict[str, Lift]:
        """Get lifts by ID, keyed by ID. Unknown IDs are left out."""
        ids = list(lift_ids)
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                f"SELECT * FROM lifts WHERE id IN ({placeholders})", ids
            )
            rows = await cursor.fetchall()
            return {row["id"]: self._row_to_lift(row) for row in rows}

    async def list_all(self, db: aiosqlite.Connection | None = None) -> list[Lift]:
        """List all lifts by name."""
        async with self._connect(db) as conn:
            cursor = await conn.execute("SELECT * FROM lifts ORDER BY name")
            rows = await cursor.fetchall()
            return [self._row_to_lift(row) for row in rows]

    def _row_to_lift(self, row: aiosqlite.Row) -> Lift:
        return Lift(id=row["id"], name=row["name"], slug=row["slug"])


class LiftMaxRepository(BaseRepository):
    """Append-only store of lift maxes.

    The current value for (user, lift, max type) is the row with the
    highest sequence. Appends are guarded by the expected sequence so
    two writers that read the same current value cannot both land.
    """

    async def append(
        self,
        user_id: str,
        lift_id: str,
        max_type: MaxType,
        value: float,
        expected_sequence: int | None = None,
        db: aiosqlite.Connection | None = None,
    ) -> LiftMax:
        """Append a new max and return it.

        Args:
            expected_sequence: Sequence of the record the caller read as
                current (0 when there was none). None skips the check.

        Raises:
            ConcurrencyConflict: if another record was appended meanwhile
        """
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                """
                SELECT COALESCE(MAX(sequence), 0) AS seq FROM lift_maxes
                WHERE user_id = ? AND lift_id = ? AND max_type = ?
                """,
                (user_id, lift_id, max_type.value),
            )
            row = await cursor.fetchone()
            current_sequence = row["seq"]
            if expected_sequence is not None and expected_sequence != current_sequence:
                raise ConcurrencyConflict(
                    f"{max_type.value} for {lift_id} changed "
                    f"(expected sequence {expected_sequence}, found {current_sequence})"
                )

            record = LiftMax(
                user_id=user_id,
                lift_id=lift_id,
                max_type=max_type,
                value=value,
                sequence=current_sequence + 1,
            )
            try:
                cursor = await conn.execute(
                    """
                    INSERT INTO lift_maxes
                    (user_id, lift_id, max_type, value, sequence, recorded_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        lift_id,
                        max_type.value,
                        value,
                        record.sequence,
                        record.recorded_at.isoformat(),
                    ),
                )
            except aiosqlite.IntegrityError as e:
                raise ConcurrencyConflict(
                    f"{max_type.value} for {lift_id} was appended concurrently"
                ) from e
            record.id = cursor.lastrowid

        logger.debug(
            "Appended %s %s=%s for %s (seq %s)",
            lift_id,
            max_type.value,
            value,
            user_id,
            record.sequence,
        )
        return record

    async def current(
        self,
        user_id: str,
        lift_id: str,
        max_type: MaxType,
        db: aiosqlite.Connection | None = None,
    ) -> LiftMax | None:
        """Get the current max for a key, if any."""
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM lift_maxes
                WHERE user_id = ? AND lift_id = ? AND max_type = ?
                ORDER BY sequence DESC LIMIT 1
                """,
                (user_id, lift_id, max_type.value),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_max(row)

    async def current_values(
        self,
        user_id: str,
        lift_ids: Iterable[str] | None = None,
        db: aiosqlite.Connection | None = None,
    ) -> dict[str, dict[MaxType, float]]:
        """Current values for a user as lift ID -> {max type -> value}."""
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                """
                SELECT m.* FROM lift_maxes m
                JOIN (
                    SELECT lift_id, max_type, MAX(sequence) AS seq FROM lift_maxes
                    WHERE user_id = ? GROUP BY lift_id, max_type
                ) latest
                ON m.lift_id = latest.lift_id
                AND m.max_type = latest.max_type
                AND m.sequence = latest.seq
                WHERE m.user_id = ?
                """,
                (user_id, user_id),
            )
            rows = await cursor.fetchall()

        wanted = set(lift_ids) if lift_ids is not None else None
        values: dict[str, dict[MaxType, float]] = {}
        for row in rows:
            if wanted is not None and row["lift_id"] not in wanted:
                continue
            values.setdefault(row["lift_id"], {})[MaxType(row["max_type"])] = row["value"]
        return values

    async def history(
        self,
        user_id: str,
        lift_id: str,
        max_type: MaxType | None = None,
        db: aiosqlite.Connection | None = None,
    ) -> list[LiftMax]:
        """Every record for a lift, oldest first."""
        query = "SELECT * FROM lift_maxes WHERE user_id = ? AND lift_id = ?"
        params: list = [user_id, lift_id]
        if max_type is not None:
            query += " AND max_type = ?"
            params.append(max_type.value)
        query += " ORDER BY max_type, sequence"

        async with self._connect(db) as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_max(row) for row in rows]

    def _row_to_max(self, row: aiosqlite.Row) -> LiftMax:
        return LiftMax(
            id=row["id"],
            user_id=row["user_id"],
            lift_id=row["lift_id"],
            max_type=MaxType(row["max_type"]),
            value=row["value"],
            sequence=row["sequence"],
            recorded_at=datetime.fromisoformat(row["recorded_at"]),
        )


class ProgressionRepository(BaseRepository):
    """Repository for progression definitions."""

    async def save(
        self, progression: Progression, db: aiosqlite.Connection | None = None
    ) -> None:
        """Insert or replace a progression."""
        data = progression.to_dict()
        async with self._connect(db) as conn:
            await conn.execute(
                """
                INSERT INTO progressions (id, name, type, trigger_type, max_type, parameters)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name, type = excluded.type,
                    trigger_type = excluded.trigger_type, max_type = excluded.max_type,
                    parameters = excluded.parameters
                """,
                (
                    data["id"],
                    data["name"],
                    data["type"],
                    data["trigger_type"],
                    data["max_type"],
                    json.dumps(data["parameters"]),
                ),
            )

    async def get(
        self, progression_id: str, db: aiosqlite.Connection | None = None
    ) -> Progression | None:
        """Get a progression by ID."""
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                "SELECT * FROM progressions WHERE id = ?", (progression_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_progression(row)

    async def get_many(
        self, progression_ids: Iterable[str], db: aiosqlite.Connection | None = None
    ) -> dict[str, Progression]:
        """Get progressions by ID, keyed by ID."""
        ids = list(progression_ids)
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                f"SELECT * FROM progressions WHERE id IN ({placeholders})", ids
            )
            rows = await cursor.fetchall()
            return {row["id"]: self._row_to_progression(row) for row in rows}

    async def list_all(self, db: aiosqlite.Connection | None = None) -> list[Progression]:
        """List all progressions."""
        async with self._connect(db) as conn:
            cursor = await conn.execute("SELECT * FROM progressions ORDER BY id")
            rows = await cursor.fetchall()
            return [self._row_to_progression(row) for row in rows]

    def _row_to_progression(self, row: aiosqlite.Row) -> Progression:
        return Progression.from_dict(
            {
                "id": row["id"],
                "name": row["name"],
                "type": row["type"],
                "trigger_type": row["trigger_type"],
                "max_type": row["max_type"],
                "parameters": json.loads(row["parameters"]),
            }
        )


class ProgramRepository(BaseRepository):
    """Repository for program graphs."""

    async def save(self, program: Program, db: aiosqlite.Connection | None = None) -> None:
        """Insert or replace a program."""
        async with self._connect(db) as conn:
            await conn.execute(
                """
                INSERT INTO programs (id, name, slug, structure) VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name, slug = excluded.slug,
                    structure = excluded.structure, updated_at = CURRENT_TIMESTAMP
                """,
                (program.id, program.name, program.slug, json.dumps(program.to_dict())),
            )

    async def get(self, program_id: str, db: aiosqlite.Connection | None = None) -> Program | None:
        """Get a program by ID or slug."""
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                "SELECT * FROM programs WHERE id = ? OR slug = ?", (program_id, program_id)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_program(row)

    async def list_all(self, db: aiosqlite.Connection | None = None) -> list[Program]:
        """List all programs."""
        async with self._connect(db) as conn:
            cursor = await conn.execute("SELECT * FROM programs ORDER BY name")
            rows = await cursor.fetchall()
            return [self._row_to_program(row) for row in rows]

    def _row_to_program(self, row: aiosqlite.Row) -> Program:
        return Program.from_dict(json.loads(row["structure"]))


class EnrollmentRepository(BaseRepository):
    """Repository for enrollment state, one row per user."""

    async def get(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> EnrollmentState | None:
        """Get a user's enrollment."""
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                "SELECT * FROM enrollments WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_state(row)

    async def save(
        self, state: EnrollmentState, db: aiosqlite.Connection | None = None
    ) -> None:
        """Insert or replace a user's enrollment."""
        data = state.to_dict()
        async with self._connect(db) as conn:
            await conn.execute(
                """
                INSERT OR REPLACE INTO enrollments
                (user_id, program_id, cycle_iteration, current_week, current_day_index,
                 status, cycle_status, week_status, current_session_id,
                 enrolled_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["user_id"],
                    data["program_id"],
                    data["cycle_iteration"],
                    data["current_week"],
                    data["current_day_index"],
                    data["status"],
                    data["cycle_status"],
                    data["week_status"],
                    data["current_session_id"],
                    data["enrolled_at"],
                    data["updated_at"],
                ),
            )

    def _row_to_state(self, row: aiosqlite.Row) -> EnrollmentState:
        return EnrollmentState(
            user_id=row["user_id"],
            program_id=row["program_id"],
            cycle_iteration=row["cycle_iteration"],
            current_week=row["current_week"],
            current_day_index=row["current_day_index"],
            status=EnrollmentStatus(row["status"]),
            cycle_status=CycleStatus(row["cycle_status"]),
            week_status=WeekStatus(row["week_status"]),
            current_session_id=row["current_session_id"],
            enrolled_at=datetime.fromisoformat(row["enrolled_at"]),
            updated_at=_parse_dt(row["updated_at"]),
        )


class WorkoutSessionRepository(BaseRepository):
    """Repository for workout sessions and their logged sets."""

    async def create(
        self, session: WorkoutSession, db: aiosqlite.Connection | None = None
    ) -> None:
        """Create a new session."""
        async with self._connect(db) as conn:
            await conn.execute(
                """
                INSERT INTO workout_sessions
                (id, user_id, program_id, cycle_iteration, week_number, day_slug,
                 status, started_at, finished_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.user_id,
                    session.program_id,
                    session.cycle_iteration,
                    session.week_number,
                    session.day_slug,
                    session.status.value,
                    session.started_at.isoformat(),
                    session.finished_at.isoformat() if session.finished_at else None,
                ),
            )

    async def get(
        self, session_id: str, db: aiosqlite.Connection | None = None
    ) -> WorkoutSession | None:
        """Get a session with its logged sets."""
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                "SELECT * FROM workout_sessions WHERE id = ?", (session_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None

            cursor = await conn.execute(
                "SELECT * FROM logged_sets WHERE session_id = ? ORDER BY id", (session_id,)
            )
            set_rows = await cursor.fetchall()

        return WorkoutSession(
            id=row["id"],
            user_id=row["user_id"],
            program_id=row["program_id"],
            cycle_iteration=row["cycle_iteration"],
            week_number=row["week_number"],
            day_slug=row["day_slug"],
            status=SessionStatus(row["status"]),
            logged_sets=[self._row_to_set(r) for r in set_rows],
            started_at=datetime.fromisoformat(row["started_at"]),
            finished_at=_parse_dt(row["finished_at"]),
        )

    async def add_sets(
        self,
        session_id: str,
        sets: list[LoggedSet],
        db: aiosqlite.Connection | None = None,
    ) -> None:
        """Append logged sets to a session."""
        async with self._connect(db) as conn:
            for logged in sets:
                cursor = await conn.execute(
                    """
                    INSERT INTO logged_sets
                    (session_id, prescription_id, lift_id, set_number, weight,
                     target_reps, reps_performed, is_amrap, rpe, logged_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        session_id,
                        logged.prescription_id,
                        logged.lift_id,
                        logged.set_number,
                        logged.weight,
                        logged.target_reps,
                        logged.reps_performed,
                        1 if logged.is_amrap else 0,
                        logged.rpe,
                        logged.logged_at.isoformat(),
                    ),
                )
                logged.id = cursor.lastrowid

    async def update(
        self, session: WorkoutSession, db: aiosqlite.Connection | None = None
    ) -> None:
        """Update a session's status and finish time."""
        async with self._connect(db) as conn:
            await conn.execute(
                "UPDATE workout_sessions SET status = ?, finished_at = ? WHERE id = ?",
                (
                    session.status.value,
                    session.finished_at.isoformat() if session.finished_at else None,
                    session.id,
                ),
            )

    async def list_for_user(
        self, user_id: str, limit: int = 20, db: aiosqlite.Connection | None = None
    ) -> list[WorkoutSession]:
        """Recent sessions for a user without their sets, newest first."""
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM workout_sessions WHERE user_id = ?
                ORDER BY started_at DESC LIMIT ?
                """,
                (user_id, limit),
            )
            rows = await cursor.fetchall()
            return [
                WorkoutSession(
                    id=row["id"],
                    user_id=row["user_id"],
                    program_id=row["program_id"],
                    cycle_iteration=row["cycle_iteration"],
                    week_number=row["week_number"],
                    day_slug=row["day_slug"],
                    status=SessionStatus(row["status"]),
                    started_at=datetime.fromisoformat(row["started_at"]),
                    finished_at=_parse_dt(row["finished_at"]),
                )
                for row in rows
            ]

    def _row_to_set(self, row: aiosqlite.Row) -> LoggedSet:
        return LoggedSet(
            id=row["id"],
            prescription_id=row["prescription_id"],
            lift_id=row["lift_id"],
            set_number=row["set_number"],
            weight=row["weight"],
            target_reps=row["target_reps"],
            reps_performed=row["reps_performed"],
            is_amrap=bool(row["is_amrap"]),
            rpe=row["rpe"],
            logged_at=datetime.fromisoformat(row["logged_at"]),
        )


class FailureCounterRepository(BaseRepository):
    """Repository for consecutive-failure counters."""

    async def get(
        self,
        user_id: str,
        lift_id: str,
        progression_id: str,
        db: aiosqlite.Connection | None = None,
    ) -> FailureCounter | None:
        """Get the counter for a key, if one was ever written."""
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM failure_counters
                WHERE user_id = ? AND lift_id = ? AND progression_id = ?
                """,
                (user_id, lift_id, progression_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_counter(row)

    async def get_or_new(
        self,
        user_id: str,
        lift_id: str,
        progression_id: str,
        db: aiosqlite.Connection | None = None,
    ) -> FailureCounter:
        """Get the counter for a key, or an unsaved zero counter."""
        counter = await self.get(user_id, lift_id, progression_id, db=db)
        if counter is None:
            counter = FailureCounter(
                user_id=user_id, lift_id=lift_id, progression_id=progression_id
            )
        return counter

    async def save(
        self, counter: FailureCounter, db: aiosqlite.Connection | None = None
    ) -> FailureCounter:
        """Write a counter if nobody else wrote it since it was read.

        Returns the counter with its new version.

        Raises:
            ConcurrencyConflict: if the stored version moved on
        """
        data = counter.to_dict()
        new_version = counter.version + 1
        async with self._connect(db) as conn:
            if counter.version == 0:
                try:
                    await conn.execute(
                        """
                        INSERT INTO failure_counters
                        (user_id, lift_id, progression_id, consecutive_failures,
                         current_stage_index, last_failure_at, last_success_at, version)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            data["user_id"],
                            data["lift_id"],
                            data["progression_id"],
                            data["consecutive_failures"],
                            data["current_stage_index"],
                            data["last_failure_at"],
                            data["last_success_at"],
                            new_version,
                        ),
                    )
                except aiosqlite.IntegrityError as e:
                    raise ConcurrencyConflict(
                        f"failure counter {counter.lift_id}/{counter.progression_id} "
                        "was created concurrently"
                    ) from e
            else:
                cursor = await conn.execute(
                    """
                    UPDATE failure_counters SET
                        consecutive_failures = ?, current_stage_index = ?,
                        last_failure_at = ?, last_success_at = ?, version = ?
                    WHERE user_id = ? AND lift_id = ? AND progression_id = ? AND version = ?
                    """,
                    (
                        data["consecutive_failures"],
                        data["current_stage_index"],
                        data["last_failure_at"],
                        data["last_success_at"],
                        new_version,
                        data["user_id"],
                        data["lift_id"],
                        data["progression_id"],
                        counter.version,
                    ),
                )
                if cursor.rowcount == 0:
                    raise ConcurrencyConflict(
                        f"failure counter {counter.lift_id}/{counter.progression_id} "
                        f"changed since version {counter.version}"
                    )

        counter.version = new_version
        return counter

    async def list_for_user(
        self, user_id: str, db: aiosqlite.Connection | None = None
    ) -> list[FailureCounter]:
        """All counters for a user."""
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                "SELECT * FROM failure_counters WHERE user_id = ? ORDER BY lift_id",
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_counter(row) for row in rows]

    def _row_to_counter(self, row: aiosqlite.Row) -> FailureCounter:
        return FailureCounter(
            user_id=row["user_id"],
            lift_id=row["lift_id"],
            progression_id=row["progression_id"],
            consecutive_failures=row["consecutive_failures"],
            current_stage_index=row["current_stage_index"],
            last_failure_at=_parse_dt(row["last_failure_at"]),
            last_success_at=_parse_dt(row["last_success_at"]),
            version=row["version"],
        )


class ProgressionLogRepository(BaseRepository):
    """Repository for applied-progression history."""

    async def create(
        self, entry: ProgressionLogEntry, db: aiosqlite.Connection | None = None
    ) -> int:
        """Record an applied progression."""
        data = entry.to_dict()
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                """
                INSERT INTO progression_logs
                (user_id, progression_id, lift_id, trigger_type, context_key,
                 previous_value, new_value, delta, applied_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data["user_id"],
                    data["progression_id"],
                    data["lift_id"],
                    data["trigger_type"],
                    data["context_key"],
                    data["previous_value"],
                    data["new_value"],
                    data["delta"],
                    data["applied_at"],
                ),
            )
            entry.id = cursor.lastrowid
            return cursor.lastrowid

    async def exists(
        self,
        user_id: str,
        progression_id: str,
        lift_id: str,
        trigger_type: TriggerType,
        context_key: str,
        db: aiosqlite.Connection | None = None,
    ) -> bool:
        """Whether this progression already fired for this occasion."""
        async with self._connect(db) as conn:
            cursor = await conn.execute(
                """
                SELECT 1 FROM progression_logs
                WHERE user_id = ? AND progression_id = ? AND lift_id = ?
                AND trigger_type = ? AND context_key = ?
                LIMIT 1
                """,
                (user_id, progression_id, lift_id, trigger_type.value, context_key),
            )
            return await cursor.fetchone() is not None

    async def list_for_user(
        self,
        user_id: str,
        lift_id: str | None = None,
        limit: int = 50,
        db: aiosqlite.Connection | None = None,
    ) -> list[ProgressionLogEntry]:
        """Applied progressions for a user, newest first."""
        query = "SELECT * FROM progression_logs WHERE user_id = ?"
        params: list = [user_id]
        if lift_id is not None:
            query += " AND lift_id = ?"
            params.append(lift_id)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        async with self._connect(db) as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return [
                ProgressionLogEntry(
                    id=row["id"],
                    user_id=row["user_id"],
                    progression_id=row["progression_id"],
                    lift_id=row["lift_id"],
                    trigger_type=TriggerType(row["trigger_type"]),
                    context_key=row["context_key"],
                    previous_value=row["previous_value"],
                    new_value=row["new_value"],
                    delta=row["delta"],
                    applied_at=datetime.fromisoformat(row["applied_at"]),
                )
                for row in rows
            ]
