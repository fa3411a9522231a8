"""
Global exercise library backed by SQLite.
"""

import os
import sqlite3

import yaml

from fitforge.errors import DuplicateExerciseError, NotAuthorizedError, NotFoundError
from fitforge.exercise_names import EQUIPMENT_TYPES, MUSCLE_GROUPS
from fitforge.workout_db import row_to_dict, utc_now


EXERCISE_COLUMNS = "id, name, description, muscle_group, equipment, created_by, is_verified, created_at"
DEFAULT_SEED_FILE = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "default_exercises.yaml"
)


def _validate_fields(name=None, description=None, muscle_group=None, equipment=None):
    if name is not None and (len(name) < 2 or len(name) > 100):
        raise ValueError("Name must be between 2 and 100 characters")
    if description and len(description) > 500:
        raise ValueError("Description must be less than 500 characters")
    if muscle_group is not None and muscle_group not in MUSCLE_GROUPS:
        raise ValueError("Invalid muscle group")
    if equipment and equipment not in EQUIPMENT_TYPES:
        raise ValueError("Invalid equipment type")


class ExerciseCatalog:
    """Exercise catalog: list, search and create exercise definitions."""

    def __init__(self, db):
        self.db = db

    @property
    def conn(self):
        return self.db.conn

    def list_exercises(self):
        """Full catalog snapshot, newest first."""
        rows = self.conn.execute(
            f"SELECT {EXERCISE_COLUMNS} FROM exercises ORDER BY id DESC"
        ).fetchall()
        return [dict(row) for row in rows]

    def list_by_muscle_group(self, muscle_group):
        rows = self.conn.execute(
            f"SELECT {EXERCISE_COLUMNS} FROM exercises WHERE muscle_group = ? ORDER BY name COLLATE NOCASE",
            (muscle_group,),
        ).fetchall()
        return [dict(row) for row in rows]

    def search(self, query, muscle_group=None):
        """
        Search exercises by name.

        Every whitespace-separated term must appear in the name
        (case-insensitive). Optionally filtered by muscle group.
        """
        terms = [term for term in (query or "").lower().split() if term]
        if not terms:
            return []

        sql = f"SELECT {EXERCISE_COLUMNS} FROM exercises WHERE "
        clauses = ["LOWER(name) LIKE ?" for _ in terms]
        params = [f"%{term}%" for term in terms]
        if muscle_group:
            clauses.append("muscle_group = ?")
            params.append(muscle_group)
        sql += " AND ".join(clauses) + " ORDER BY name COLLATE NOCASE"

        return [dict(row) for row in self.conn.execute(sql, params).fetchall()]

    def get_exercise(self, exercise_id):
        row = self.conn.execute(
            f"SELECT {EXERCISE_COLUMNS} FROM exercises WHERE id = ?",
            (exercise_id,),
        ).fetchone()
        return row_to_dict(row)

    def list_created_by(self, user_id):
        rows = self.conn.execute(
            f"SELECT {EXERCISE_COLUMNS} FROM exercises WHERE created_by = ? ORDER BY id DESC",
            (user_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def create_exercise(self, name, muscle_group, equipment=None, description=None, created_by="system"):
        """
        Insert a new exercise and return its id.

        Raises DuplicateExerciseError when a row with this exact
        (case-sensitive) name exists, ValueError on invalid input.
        """
        name = (name or "").strip()
        _validate_fields(name=name, description=description, muscle_group=muscle_group, equipment=equipment)

        existing = self.conn.execute(
            "SELECT id FROM exercises WHERE name = ?", (name,)
        ).fetchone()
        if existing:
            raise DuplicateExerciseError(name)

        try:
            with self.db.transaction():
                cursor = self.conn.execute(
                    """
                    INSERT INTO exercises (
                        name,
                        description,
                        muscle_group,
                        equipment,
                        created_by,
                        is_verified,
                        created_at
                    )
                    VALUES (?, ?, ?, ?, ?, 0, ?)
                    """,
                    (name, description, muscle_group, equipment or None, created_by, utc_now()),
                )
        except sqlite3.IntegrityError as exc:
            # Another writer inserted the same name between the check and the insert.
            raise DuplicateExerciseError(name) from exc

        return int(cursor.lastrowid)

    def update_exercise(self, exercise_id, user_id, name=None, description=None, muscle_group=None, equipment=None):
        """Update an exercise (creator only)."""
        exercise = self.get_exercise(exercise_id)
        if not exercise:
            raise NotFoundError("Exercise not found")
        if exercise["created_by"] != user_id:
            raise NotAuthorizedError("Not authorized to update this exercise")

        _validate_fields(name=name, description=description, muscle_group=muscle_group, equipment=equipment)

        if name and name != exercise["name"]:
            existing = self.conn.execute(
                "SELECT id FROM exercises WHERE name = ?", (name,)
            ).fetchone()
            if existing:
                raise DuplicateExerciseError(name)

        updates = {}
        if name is not None:
            updates["name"] = name
        if description is not None:
            updates["description"] = description
        if muscle_group is not None:
            updates["muscle_group"] = muscle_group
        if equipment is not None:
            updates["equipment"] = equipment

        if updates:
            assignments = ", ".join(f"{column} = ?" for column in updates)
            with self.db.transaction():
                self.conn.execute(
                    f"UPDATE exercises SET {assignments} WHERE id = ?",
                    (*updates.values(), exercise_id),
                )
        return exercise_id

    def remove_exercise(self, exercise_id, user_id):
        """Delete an exercise (creator only, and only if nothing references it)."""
        exercise = self.get_exercise(exercise_id)
        if not exercise:
            raise NotFoundError("Exercise not found")
        if exercise["created_by"] != user_id:
            raise NotAuthorizedError("Not authorized to delete this exercise")

        used_in_workouts = self.conn.execute(
            "SELECT 1 FROM workout_exercises WHERE exercise_id = ? LIMIT 1", (exercise_id,)
        ).fetchone()
        if used_in_workouts:
            raise ValueError(
                "Cannot delete exercise that is used in workouts. Remove it from all workouts first."
            )

        used_in_logs = self.conn.execute(
            "SELECT 1 FROM set_logs WHERE exercise_id = ? LIMIT 1", (exercise_id,)
        ).fetchone()
        if used_in_logs:
            raise ValueError(
                "Cannot delete exercise that has historical logs. This exercise is part of your workout history."
            )

        with self.db.transaction():
            self.conn.execute("DELETE FROM exercises WHERE id = ?", (exercise_id,))


def load_seed_file(path=None):
    """Read a YAML list of exercises ({name, muscle_group, equipment, description})."""
    with open(path or DEFAULT_SEED_FILE, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if isinstance(data, dict):
        data = data.get("exercises", [])
    return list(data)


def seed_catalog(catalog, path=None):
    """
    Insert every seed exercise whose name is not already in the catalog.

    Returns:
        (inserted, skipped)
    """
    inserted = 0
    skipped = 0
    for entry in load_seed_file(path):
        try:
            catalog.create_exercise(
                name=entry["name"],
                muscle_group=entry["muscle_group"],
                equipment=entry.get("equipment"),
                description=entry.get("description"),
                created_by="system",
            )
            inserted += 1
        except DuplicateExerciseError:
            skipped += 1
    return inserted, skipped
