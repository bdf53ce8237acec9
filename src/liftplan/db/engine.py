"""Database engine setup and initialization."""

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

# Default data directory; LIFTPLAN_DATA_DIR overrides it
DATA_DIR = Path(__file__).parent.parent.parent.parent / "data"


def get_data_dir() -> Path:
    """Get the configured data directory."""
    override = os.getenv("LIFTPLAN_DATA_DIR")
    return Path(override) if override else DATA_DIR


def get_db_path(data_dir: Path | None = None) -> Path:
    """Get the database file path."""
    if data_dir is None:
        data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "liftplan.db"


@asynccontextmanager
async def transaction(db_path: Path | None = None) -> AsyncIterator[aiosqlite.Connection]:
    """Open a connection holding the write lock until commit or rollback.

    Repository methods given this connection do not commit on their own,
    so everything inside the block lands together or not at all.
    """
    if db_path is None:
        db_path = get_db_path()

    async with aiosqlite.connect(db_path, isolation_level=None) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("BEGIN IMMEDIATE")
        try:
            yield db
        except BaseException:
            await db.execute("ROLLBACK")
            raise
        await db.execute("COMMIT")


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    if db_path is None:
        db_path = get_db_path()

    async with aiosqlite.connect(db_path) as db:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS lifts (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                slug TEXT UNIQUE NOT NULL
            )
        """)

        # Append-only; the current max is the highest sequence per key
        await db.execute("""
            CREATE TABLE IF NOT EXISTS lift_maxes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                lift_id TEXT NOT NULL,
                max_type TEXT NOT NULL,
                value REAL NOT NULL,
                sequence INTEGER NOT NULL,
                recorded_at TIMESTAMP NOT NULL,
                UNIQUE (user_id, lift_id, max_type, sequence)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS progressions (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                type TEXT NOT NULL,
                trigger_type TEXT NOT NULL,
                max_type TEXT NOT NULL,
                parameters TEXT NOT NULL
            )
        """)

        # Program graph stored as one JSON document
        await db.execute("""
            CREATE TABLE IF NOT EXISTS programs (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                slug TEXT UNIQUE NOT NULL,
                structure TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS enrollments (
                user_id TEXT PRIMARY KEY,
                program_id TEXT NOT NULL,
                cycle_iteration INTEGER DEFAULT 1,
                current_week INTEGER DEFAULT 1,
                current_day_index INTEGER DEFAULT 0,
                status TEXT DEFAULT 'active',
                cycle_status TEXT DEFAULT 'pending',
                week_status TEXT DEFAULT 'pending',
                current_session_id TEXT,
                enrolled_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS workout_sessions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                program_id TEXT NOT NULL,
                cycle_iteration INTEGER NOT NULL,
                week_number INTEGER NOT NULL,
                day_slug TEXT NOT NULL,
                status TEXT DEFAULT 'in_progress',
                started_at TIMESTAMP NOT NULL,
                finished_at TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS logged_sets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                prescription_id TEXT NOT NULL,
                lift_id TEXT NOT NULL,
                set_number INTEGER NOT NULL,
                weight REAL NOT NULL,
                target_reps INTEGER NOT NULL,
                reps_performed INTEGER NOT NULL,
                is_amrap INTEGER DEFAULT 0,
                rpe REAL,
                logged_at TIMESTAMP NOT NULL,
                FOREIGN KEY (session_id) REFERENCES workout_sessions(id) ON DELETE CASCADE
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS failure_counters (
                user_id TEXT NOT NULL,
                lift_id TEXT NOT NULL,
                progression_id TEXT NOT NULL,
                consecutive_failures INTEGER DEFAULT 0,
                current_stage_index INTEGER DEFAULT 0,
                last_failure_at TIMESTAMP,
                last_success_at TIMESTAMP,
                version INTEGER NOT NULL DEFAULT 1,
                PRIMARY KEY (user_id, lift_id, progression_id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS progression_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                progression_id TEXT NOT NULL,
                lift_id TEXT NOT NULL,
                trigger_type TEXT NOT NULL,
                context_key TEXT NOT NULL,
                previous_value REAL NOT NULL,
                new_value REAL NOT NULL,
                delta REAL NOT NULL,
                applied_at TIMESTAMP NOT NULL
            )
        """)

        # Create indexes for common queries
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_lift_maxes_key
            ON lift_maxes(user_id, lift_id, max_type, sequence)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_workout_sessions_user
            ON workout_sessions(user_id, status)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_logged_sets_session
            ON logged_sets(session_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_progression_logs_key
            ON progression_logs(user_id, progression_id, lift_id, trigger_type, context_key)
        """)

        await db.commit()
