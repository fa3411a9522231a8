"""
SQLite persistence for exercises, plans, workouts and workout logs.
"""

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone


def utc_now():
    """Current UTC time as an ISO-8601 string (the format stored in every *_at column)."""
    return datetime.now(timezone.utc).isoformat()


def row_to_dict(row):
    return dict(row) if row is not None else None


class WorkoutDB:
    """Small SQLite wrapper shared by the catalog and the stores."""

    def __init__(self, db_path):
        self.db_path = db_path
        parent = os.path.dirname(db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

        self.conn = sqlite3.connect(db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")

    def close(self):
        self.conn.close()

    @contextmanager
    def transaction(self):
        """Context manager for atomic write operations."""
        try:
            yield
            self.conn.commit()
        except Exception:
            self.conn.rollback()
            raise

    def init_schema(self):
        """Create core schema if it does not already exist."""
        self.conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS exercises (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                description TEXT,
                muscle_group TEXT NOT NULL,
                equipment TEXT,
                created_by TEXT NOT NULL,
                is_verified INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS workout_plans (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                slug TEXT NOT NULL,
                description TEXT,
                workouts_per_week INTEGER NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(user_id, slug)
            );

            CREATE TABLE IF NOT EXISTS shared_workouts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                shared_by_name TEXT NOT NULL,
                name TEXT NOT NULL,
                like_count INTEGER NOT NULL DEFAULT 0,
                usage_counter INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS workouts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                plan_id INTEGER,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                workout_number INTEGER NOT NULL DEFAULT 0,
                display_order INTEGER NOT NULL DEFAULT 0,
                is_template INTEGER NOT NULL DEFAULT 0,
                completion_count INTEGER NOT NULL DEFAULT 0,
                shared_workout_id INTEGER,
                created_at TEXT NOT NULL,
                FOREIGN KEY(plan_id) REFERENCES workout_plans(id) ON DELETE CASCADE,
                FOREIGN KEY(shared_workout_id) REFERENCES shared_workouts(id) ON DELETE SET NULL
            );

            CREATE TABLE IF NOT EXISTS workout_exercises (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                workout_id INTEGER NOT NULL,
                exercise_id INTEGER NOT NULL,
                display_order INTEGER NOT NULL,
                sets INTEGER NOT NULL,
                reps INTEGER NOT NULL,
                weight REAL NOT NULL,
                rest_time INTEGER NOT NULL,
                superset_with INTEGER,
                FOREIGN KEY(workout_id) REFERENCES workouts(id) ON DELETE CASCADE,
                FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE RESTRICT,
                FOREIGN KEY(superset_with) REFERENCES workout_exercises(id) ON DELETE SET NULL
            );

            CREATE TABLE IF NOT EXISTS workout_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                workout_id INTEGER,
                plan_id INTEGER,
                shared_workout_id INTEGER,
                name TEXT NOT NULL,
                started_at TEXT NOT NULL,
                completed_at TEXT,
                status TEXT NOT NULL,
                notes TEXT
            );

            CREATE TABLE IF NOT EXISTS set_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                workout_log_id INTEGER NOT NULL,
                exercise_id INTEGER NOT NULL,
                set_number INTEGER NOT NULL,
                weight REAL NOT NULL,
                reps INTEGER NOT NULL,
                skipped INTEGER NOT NULL DEFAULT 0,
                completed_at TEXT NOT NULL,
                FOREIGN KEY(workout_log_id) REFERENCES workout_logs(id) ON DELETE CASCADE,
                FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE RESTRICT
            );

            CREATE TABLE IF NOT EXISTS shared_workout_exercises (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                shared_workout_id INTEGER NOT NULL,
                exercise_id INTEGER NOT NULL,
                display_order INTEGER NOT NULL,
                sets INTEGER NOT NULL,
                reps INTEGER NOT NULL,
                weight REAL NOT NULL,
                rest_time INTEGER NOT NULL,
                superset_with INTEGER,
                FOREIGN KEY(shared_workout_id) REFERENCES shared_workouts(id) ON DELETE CASCADE,
                FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE RESTRICT
            );

            CREATE TABLE IF NOT EXISTS shared_workout_likes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                shared_workout_id INTEGER NOT NULL,
                user_id TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY(shared_workout_id) REFERENCES shared_workouts(id) ON DELETE CASCADE,
                UNIQUE(shared_workout_id, user_id)
            );

            CREATE INDEX IF NOT EXISTS idx_exercises_muscle_group ON exercises(muscle_group);
            CREATE INDEX IF NOT EXISTS idx_exercises_created_by ON exercises(created_by);
            CREATE INDEX IF NOT EXISTS idx_workout_plans_user ON workout_plans(user_id, is_active);
            CREATE INDEX IF NOT EXISTS idx_workouts_plan ON workouts(plan_id, workout_number);
            CREATE INDEX IF NOT EXISTS idx_workout_exercises_workout ON workout_exercises(workout_id);
            CREATE INDEX IF NOT EXISTS idx_workout_exercises_exercise ON workout_exercises(exercise_id);
            CREATE INDEX IF NOT EXISTS idx_workout_logs_user_status ON workout_logs(user_id, status);
            CREATE INDEX IF NOT EXISTS idx_workout_logs_user_plan ON workout_logs(user_id, plan_id, status);
            CREATE INDEX IF NOT EXISTS idx_set_logs_exercise ON set_logs(exercise_id);
            """
        )
        self.conn.commit()

    def count_summary(self):
        """Return high-level row counts for quick sanity checks."""
        tables = ["exercises", "workout_plans", "workouts", "workout_logs", "shared_workouts"]
        summary = {}
        for table in tables:
            count = self.conn.execute(f"SELECT COUNT(*) AS c FROM {table}").fetchone()["c"]
            summary[table] = int(count)
        return summary
