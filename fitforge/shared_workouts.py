"""
Community library of shared workouts: publish, browse, search and like.
"""

from fitforge.errors import NotFoundError
from fitforge.workout_db import row_to_dict, utc_now


class SharedWorkoutStore:
    """Read-mostly copies of user workouts that anyone can browse."""

    def __init__(self, db):
        self.db = db

    @property
    def conn(self):
        return self.db.conn

    def _require_shared(self, shared_workout_id):
        row = self.conn.execute(
            "SELECT * FROM shared_workouts WHERE id = ?", (shared_workout_id,)
        ).fetchone()
        if not row:
            raise NotFoundError("Shared workout not found")
        return dict(row)

    def _with_details(self, shared, user_id=None):
        rows = self.conn.execute(
            """
            SELECT swe.*, e.name AS exercise_name, e.muscle_group, e.equipment
            FROM shared_workout_exercises swe
            JOIN exercises e ON e.id = swe.exercise_id
            WHERE swe.shared_workout_id = ?
            ORDER BY swe.display_order, swe.id
            """,
            (shared["id"],),
        ).fetchall()
        shared["exercises"] = [dict(row) for row in rows]
        shared["has_liked"] = self.has_liked(user_id, shared["id"]) if user_id else False
        return shared

    # ── Queries ──────────────────────────────────────────────────────────

    def list_shared(self, user_id=None):
        """All shared workouts, newest first, with exercises and the caller's like state."""
        rows = self.conn.execute("SELECT * FROM shared_workouts ORDER BY id DESC").fetchall()
        return [self._with_details(dict(row), user_id) for row in rows]

    def get_shared(self, shared_workout_id, user_id=None):
        row = self.conn.execute(
            "SELECT * FROM shared_workouts WHERE id = ?", (shared_workout_id,)
        ).fetchone()
        shared = row_to_dict(row)
        if shared is None:
            return None
        return self._with_details(shared, user_id)

    def search(self, query, user_id=None):
        """Shared workouts whose name contains every term of query. Blank query -> []."""
        terms = [term for term in (query or "").lower().split() if term]
        if not terms:
            return []

        clauses = " AND ".join("LOWER(name) LIKE ?" for _ in terms)
        params = [f"%{term}%" for term in terms]
        rows = self.conn.execute(
            f"SELECT * FROM shared_workouts WHERE {clauses} ORDER BY id DESC", params
        ).fetchall()
        return [self._with_details(dict(row), user_id) for row in rows]

    def has_liked(self, user_id, shared_workout_id):
        if not user_id:
            return False
        row = self.conn.execute(
            "SELECT 1 FROM shared_workout_likes WHERE shared_workout_id = ? AND user_id = ?",
            (shared_workout_id, user_id),
        ).fetchone()
        return row is not None

    # ── Mutations ────────────────────────────────────────────────────────

    def share_workout(self, user_id, workout_id, shared_by_name=None):
        """
        Publish a copy of one of the user's workouts.

        Exercises are copied in display order; superset pairings are
        re-pointed at the copied rows.

        Returns:
            The new shared workout id.
        """
        workout = self.conn.execute("SELECT * FROM workouts WHERE id = ?", (workout_id,)).fetchone()
        if not workout or workout["user_id"] != user_id:
            raise NotFoundError("Workout not found")

        exercises = self.conn.execute(
            "SELECT * FROM workout_exercises WHERE workout_id = ? ORDER BY display_order, id",
            (workout_id,),
        ).fetchall()
        if not exercises:
            raise ValueError("Cannot share a workout without exercises")

        with self.db.transaction():
            cursor = self.conn.execute(
                """
                INSERT INTO shared_workouts (
                    user_id, shared_by_name, name, like_count, usage_counter, created_at
                )
                VALUES (?, ?, ?, 0, 0, ?)
                """,
                (user_id, shared_by_name or "User", workout["name"], utc_now()),
            )
            shared_workout_id = int(cursor.lastrowid)

            copied_ids = {}
            for exercise in exercises:
                cursor = self.conn.execute(
                    """
                    INSERT INTO shared_workout_exercises (
                        shared_workout_id, exercise_id, display_order, sets, reps, weight, rest_time
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        shared_workout_id,
                        exercise["exercise_id"],
                        exercise["display_order"],
                        exercise["sets"],
                        exercise["reps"],
                        exercise["weight"],
                        exercise["rest_time"],
                    ),
                )
                copied_ids[exercise["id"]] = int(cursor.lastrowid)

            for exercise in exercises:
                partner = copied_ids.get(exercise["superset_with"])
                if partner is not None:
                    self.conn.execute(
                        "UPDATE shared_workout_exercises SET superset_with = ? WHERE id = ?",
                        (partner, copied_ids[exercise["id"]]),
                    )

        return shared_workout_id

    def toggle_like(self, user_id, shared_workout_id):
        """Like, or unlike if already liked. Returns {"liked", "like_count"}."""
        shared = self._require_shared(shared_workout_id)
        current = shared["like_count"] or 0

        with self.db.transaction():
            if self.has_liked(user_id, shared_workout_id):
                self.conn.execute(
                    "DELETE FROM shared_workout_likes WHERE shared_workout_id = ? AND user_id = ?",
                    (shared_workout_id, user_id),
                )
                liked, like_count = False, max(0, current - 1)
            else:
                self.conn.execute(
                    """
                    INSERT INTO shared_workout_likes (shared_workout_id, user_id, created_at)
                    VALUES (?, ?, ?)
                    """,
                    (shared_workout_id, user_id, utc_now()),
                )
                liked, like_count = True, current + 1

            self.conn.execute(
                "UPDATE shared_workouts SET like_count = ? WHERE id = ?",
                (like_count, shared_workout_id),
            )

        return {"liked": liked, "like_count": like_count}

    def increment_usage(self, shared_workout_id):
        shared = self._require_shared(shared_workout_id)
        usage_counter = (shared["usage_counter"] or 0) + 1
        with self.db.transaction():
            self.conn.execute(
                "UPDATE shared_workouts SET usage_counter = ? WHERE id = ?",
                (usage_counter, shared_workout_id),
            )
        return usage_counter
