"""
Workouts inside plans (and standalone templates) with their exercises.
"""

from dataclasses import dataclass

from fitforge.errors import NotAuthorizedError, NotFoundError
from fitforge.workout_db import row_to_dict, utc_now


# ---------------------------------------------------------------------------
# Superset links: which sibling exercise an exercise is paired with.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Previous:
    """Pair with the exercise immediately before."""


@dataclass(frozen=True)
class Next:
    """Pair with the exercise immediately after."""


@dataclass(frozen=True)
class ExplicitIndex:
    """Pair with the sibling whose display order equals `order`."""

    order: int


def resolve_superset_index(link, position, orders):
    """
    Resolve a superset link to a list position.

    Args:
        link: Previous(), Next(), ExplicitIndex(order) or None
        position: Position of the linking exercise in the ordered list
        orders: Display orders of all exercises, in list order

    Returns:
        The target position, or None when the link is absent, points at
        itself, or falls outside the list.
    """
    if link is None:
        return None
    if isinstance(link, Previous):
        target = position - 1
    elif isinstance(link, Next):
        target = position + 1
    elif isinstance(link, ExplicitIndex):
        target = orders.index(link.order) if link.order in orders else -1
    else:
        raise ValueError(f"Unknown superset link: {link!r}")

    if target < 0 or target >= len(orders) or target == position:
        return None
    return target


def validate_exercise_params(sets, reps, weight, rest_time):
    if sets < 1 or sets > 10:
        raise ValueError("Sets must be between 1 and 10")
    if reps < 1 or reps > 100:
        raise ValueError("Reps must be between 1 and 100")
    if weight < 0 or weight > 1000:
        raise ValueError("Weight must be between 0 and 1000kg")
    if rest_time < 0 or rest_time > 600:
        raise ValueError("Rest time must be between 0 and 600 seconds")


def _validate_workout_name(name):
    if len(name or "") < 2 or len(name or "") > 100:
        raise ValueError("Name must be between 2 and 100 characters")


class WorkoutStore:
    """Workouts and their prescribed exercises."""

    def __init__(self, db):
        self.db = db

    @property
    def conn(self):
        return self.db.conn

    def _get_row(self, workout_id):
        row = self.conn.execute("SELECT * FROM workouts WHERE id = ?", (workout_id,)).fetchone()
        return row_to_dict(row)

    def _owned_workout(self, workout_id, user_id, action="modify"):
        workout = self._get_row(workout_id)
        if not workout:
            raise NotFoundError("Workout not found")
        if workout["user_id"] != user_id:
            raise NotAuthorizedError(f"Not authorized to {action} this workout")
        return workout

    def _exercise_exists(self, exercise_id):
        return self.conn.execute(
            "SELECT 1 FROM exercises WHERE id = ?", (exercise_id,)
        ).fetchone() is not None

    # ── Queries ──────────────────────────────────────────────────────────

    def get_workout(self, workout_id, user_id):
        """Workout with its ordered exercises, or None if missing / not owned."""
        workout = self._get_row(workout_id)
        if not workout or workout["user_id"] != user_id:
            return None
        workout["exercises"] = self.list_exercises(workout_id)
        return workout

    def list_exercises(self, workout_id):
        rows = self.conn.execute(
            """
            SELECT we.*, e.name AS exercise_name, e.muscle_group, e.equipment
            FROM workout_exercises we
            JOIN exercises e ON e.id = we.exercise_id
            WHERE we.workout_id = ?
            ORDER BY we.display_order, we.id
            """,
            (workout_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def list_plan_workouts(self, plan_id):
        rows = self.conn.execute(
            "SELECT * FROM workouts WHERE plan_id = ? ORDER BY workout_number, id",
            (plan_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def list_templates(self, user_id):
        rows = self.conn.execute(
            "SELECT * FROM workouts WHERE user_id = ? AND is_template = 1 ORDER BY id DESC",
            (user_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def get_by_plan_and_number(self, user_id, plan_id, workout_number):
        row = self.conn.execute(
            """
            SELECT w.*
            FROM workouts w
            JOIN workout_plans p ON p.id = w.plan_id
            WHERE w.plan_id = ? AND w.workout_number = ? AND p.user_id = ?
            """,
            (plan_id, workout_number, user_id),
        ).fetchone()
        if not row:
            return None
        workout = dict(row)
        workout["exercises"] = self.list_exercises(workout["id"])
        return workout

    # ── Mutations ────────────────────────────────────────────────────────

    def create_workout(self, user_id, name, plan_id=None, exercises=None, order=0, is_template=False, shared_workout_id=None):
        """
        Create a workout, optionally inside a plan, with its exercises.

        Args:
            exercises: List of dicts with exercise_id, order, sets, reps,
                weight, rest_time and an optional superset_with link
                (Previous(), Next() or ExplicitIndex(order)).

        Returns:
            (workout_id, workout_number); workout_number is 0 outside a plan.
        """
        _validate_workout_name(name)

        workout_number = 0
        if plan_id is not None:
            plan = self.conn.execute(
                "SELECT * FROM workout_plans WHERE id = ? AND user_id = ?",
                (plan_id, user_id),
            ).fetchone()
            if not plan:
                raise NotFoundError("Plan not found")

            existing = self.list_plan_workouts(plan_id)
            if len(existing) >= plan["workouts_per_week"]:
                per_week = plan["workouts_per_week"]
                raise ValueError(
                    f"Cannot create more workouts. This plan allows {per_week} "
                    f"workout{'' if per_week == 1 else 's'} per week."
                )
            workout_number = max([w["workout_number"] or 0 for w in existing], default=0) + 1

        if shared_workout_id is not None:
            shared = self.conn.execute(
                "SELECT id FROM shared_workouts WHERE id = ?", (shared_workout_id,)
            ).fetchone()
            if not shared:
                raise NotFoundError("Shared workout not found")

        exercises = exercises or []
        for exercise in exercises:
            if not self._exercise_exists(exercise["exercise_id"]):
                raise NotFoundError(f"Exercise {exercise['exercise_id']} not found")
            validate_exercise_params(
                exercise["sets"], exercise["reps"], exercise["weight"], exercise["rest_time"]
            )

        with self.db.transaction():
            cursor = self.conn.execute(
                """
                INSERT INTO workouts (
                    plan_id, user_id, name, workout_number, display_order,
                    is_template, completion_count, shared_workout_id, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)
                """,
                (
                    plan_id,
                    user_id,
                    name,
                    workout_number,
                    order or 0,
                    1 if is_template else 0,
                    shared_workout_id,
                    utc_now(),
                ),
            )
            workout_id = int(cursor.lastrowid)

            if shared_workout_id is not None:
                self.conn.execute(
                    "UPDATE shared_workouts SET usage_counter = usage_counter + 1 WHERE id = ?",
                    (shared_workout_id,),
                )

            # First pass: insert rows; second pass: link supersets.
            row_ids = []
            for exercise in exercises:
                cursor = self.conn.execute(
                    """
                    INSERT INTO workout_exercises (
                        workout_id, exercise_id, display_order, sets, reps, weight, rest_time
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        workout_id,
                        exercise["exercise_id"],
                        exercise["order"],
                        exercise["sets"],
                        exercise["reps"],
                        exercise["weight"],
                        exercise["rest_time"],
                    ),
                )
                row_ids.append(int(cursor.lastrowid))

            orders = [exercise["order"] for exercise in exercises]
            for position, exercise in enumerate(exercises):
                target = resolve_superset_index(exercise.get("superset_with"), position, orders)
                if target is not None:
                    self.conn.execute(
                        "UPDATE workout_exercises SET superset_with = ? WHERE id = ?",
                        (row_ids[target], row_ids[position]),
                    )

        return workout_id, workout_number

    def rename_workout(self, workout_id, user_id, name):
        self._owned_workout(workout_id, user_id, action="update")
        _validate_workout_name(name)
        with self.db.transaction():
            self.conn.execute("UPDATE workouts SET name = ? WHERE id = ?", (name, workout_id))
        return workout_id

    def add_exercise(self, workout_id, user_id, exercise_id, sets, reps, weight, rest_time, order=None):
        """Append an exercise (or insert at `order`) and return the new row id."""
        self._owned_workout(workout_id, user_id)
        if not self._exercise_exists(exercise_id):
            raise NotFoundError("Exercise not found")
        validate_exercise_params(sets, reps, weight, rest_time)

        if order is None:
            order = self.conn.execute(
                "SELECT COALESCE(MAX(display_order), 0) + 1 AS next_order FROM workout_exercises WHERE workout_id = ?",
                (workout_id,),
            ).fetchone()["next_order"]

        with self.db.transaction():
            cursor = self.conn.execute(
                """
                INSERT INTO workout_exercises (
                    workout_id, exercise_id, display_order, sets, reps, weight, rest_time
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (workout_id, exercise_id, order, sets, reps, weight, rest_time),
            )
        return int(cursor.lastrowid)

    def _owned_workout_exercise(self, workout_exercise_id, user_id):
        row = self.conn.execute(
            """
            SELECT we.*, w.user_id
            FROM workout_exercises we
            JOIN workouts w ON w.id = we.workout_id
            WHERE we.id = ?
            """,
            (workout_exercise_id,),
        ).fetchone()
        if not row:
            raise NotFoundError("Workout exercise not found")
        if row["user_id"] != user_id:
            raise NotAuthorizedError("Not authorized to modify this workout")
        return dict(row)

    def update_exercise(self, workout_exercise_id, user_id, sets=None, reps=None, weight=None, rest_time=None):
        current = self._owned_workout_exercise(workout_exercise_id, user_id)
        values = {
            "sets": current["sets"] if sets is None else sets,
            "reps": current["reps"] if reps is None else reps,
            "weight": current["weight"] if weight is None else weight,
            "rest_time": current["rest_time"] if rest_time is None else rest_time,
        }
        validate_exercise_params(values["sets"], values["reps"], values["weight"], values["rest_time"])

        with self.db.transaction():
            self.conn.execute(
                "UPDATE workout_exercises SET sets = ?, reps = ?, weight = ?, rest_time = ? WHERE id = ?",
                (values["sets"], values["reps"], values["weight"], values["rest_time"], workout_exercise_id),
            )
        return workout_exercise_id

    def remove_exercise(self, workout_exercise_id, user_id):
        self._owned_workout_exercise(workout_exercise_id, user_id)
        with self.db.transaction():
            self.conn.execute("DELETE FROM workout_exercises WHERE id = ?", (workout_exercise_id,))

    def remove_workout(self, workout_id, user_id):
        """Delete a workout and close the gap in its plan's workout numbers."""
        workout = self._owned_workout(workout_id, user_id, action="delete")

        with self.db.transaction():
            self.conn.execute("DELETE FROM workout_exercises WHERE workout_id = ?", (workout_id,))
            self.conn.execute("DELETE FROM workouts WHERE id = ?", (workout_id,))
            if workout["plan_id"] is not None:
                self.conn.execute(
                    """
                    UPDATE workouts
                    SET workout_number = workout_number - 1
                    WHERE plan_id = ? AND workout_number > ?
                    """,
                    (workout["plan_id"], workout["workout_number"]),
                )
