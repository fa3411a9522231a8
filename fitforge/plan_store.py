"""
Workout plans: CRUD, activation, persisting generated plans, and picking
the next workout to train.
"""

import re

from fitforge.errors import NotAuthorizedError, NotFoundError
from fitforge.workout_db import row_to_dict, utc_now


def slugify(value):
    """URL-friendly lowercase slug: 'Push Pull Legs!' -> 'push-pull-legs'."""
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").lower()).strip("-")
    return slug or "plan"


def _validate_plan_fields(name=None, workouts_per_week=None, description=None):
    if name is not None and (len(name) < 3 or len(name) > 100):
        raise ValueError("Name must be between 3 and 100 characters")
    if workouts_per_week is not None and (workouts_per_week < 1 or workouts_per_week > 10):
        raise ValueError("Workouts per week must be between 1 and 10")
    if description and len(description) > 500:
        raise ValueError("Description must be less than 500 characters")


class PlanStore:
    """Per-user workout plans."""

    def __init__(self, db):
        self.db = db

    @property
    def conn(self):
        return self.db.conn

    def _unique_slug(self, user_id, name, exclude_plan_id=None):
        base_slug = slugify(name)
        slug = base_slug
        counter = 1
        while True:
            row = self.conn.execute(
                "SELECT id FROM workout_plans WHERE user_id = ? AND slug = ?",
                (user_id, slug),
            ).fetchone()
            if not row or row["id"] == exclude_plan_id:
                return slug
            slug = f"{base_slug}-{counter}"
            counter += 1

    def _insert_plan(self, user_id, name, workouts_per_week, description):
        slug = self._unique_slug(user_id, name)
        now = utc_now()
        cursor = self.conn.execute(
            """
            INSERT INTO workout_plans (
                user_id,
                name,
                slug,
                description,
                workouts_per_week,
                is_active,
                created_at,
                updated_at
            )
            VALUES (?, ?, ?, ?, ?, 0, ?, ?)
            """,
            (user_id, name, slug, description, workouts_per_week, now, now),
        )
        return int(cursor.lastrowid), slug

    def _owned_plan(self, plan_id, user_id):
        plan = self.get_plan(plan_id, user_id)
        if not plan:
            raise NotFoundError("Workout plan not found")
        return plan

    # ── Queries ──────────────────────────────────────────────────────────

    def list_plans(self, user_id):
        rows = self.conn.execute(
            "SELECT * FROM workout_plans WHERE user_id = ? ORDER BY id DESC",
            (user_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def get_plan(self, plan_id, user_id):
        """Return the plan if it exists and belongs to user_id, else None."""
        row = self.conn.execute(
            "SELECT * FROM workout_plans WHERE id = ? AND user_id = ?",
            (plan_id, user_id),
        ).fetchone()
        return row_to_dict(row)

    def get_plan_by_slug(self, user_id, slug):
        row = self.conn.execute(
            "SELECT * FROM workout_plans WHERE user_id = ? AND slug = ?",
            (user_id, slug),
        ).fetchone()
        return row_to_dict(row)

    def get_active_plan(self, user_id):
        row = self.conn.execute(
            "SELECT * FROM workout_plans WHERE user_id = ? AND is_active = 1 LIMIT 1",
            (user_id,),
        ).fetchone()
        return row_to_dict(row)

    def _workout_exercises(self, workout_id):
        rows = self.conn.execute(
            """
            SELECT
                we.*,
                e.name AS exercise_name,
                e.muscle_group,
                e.equipment
            FROM workout_exercises we
            JOIN exercises e ON e.id = we.exercise_id
            WHERE we.workout_id = ?
            ORDER BY we.display_order, we.id
            """,
            (workout_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def _plan_workouts(self, plan_id):
        rows = self.conn.execute(
            "SELECT * FROM workouts WHERE plan_id = ? ORDER BY workout_number, id",
            (plan_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def get_plan_with_workouts(self, plan_id, user_id):
        """Plan dict with a nested, ordered list of workouts and their exercises."""
        plan = self.get_plan(plan_id, user_id)
        if not plan:
            return None
        workouts = self._plan_workouts(plan_id)
        for workout in workouts:
            workout["exercises"] = self._workout_exercises(workout["id"])
        plan["workouts"] = workouts
        return plan

    def get_next_incomplete_workout(self, user_id, plan_id):
        """
        Pick the workout the user should do next in a plan.

        The first workout (by number) with no completed log wins. Once every
        workout has been completed, cycle to the one after the most recently
        completed. A plan with no workouts returns None.
        """
        plan = self.get_plan(plan_id, user_id)
        if not plan:
            return None

        workouts = self._plan_workouts(plan_id)
        if not workouts:
            return None

        completed_logs = self.conn.execute(
            """
            SELECT id, workout_id
            FROM workout_logs
            WHERE user_id = ? AND plan_id = ? AND status = 'completed' AND workout_id IS NOT NULL
            ORDER BY id DESC
            """,
            (user_id, plan_id),
        ).fetchall()
        completed_ids = {row["workout_id"] for row in completed_logs}

        next_workout = None
        for workout in workouts:
            if workout["id"] not in completed_ids:
                next_workout = workout
                break

        if next_workout is None:
            next_workout = workouts[0]
            most_recent_id = completed_logs[0]["workout_id"] if completed_logs else None
            for position, workout in enumerate(workouts):
                if workout["id"] == most_recent_id:
                    next_workout = workouts[(position + 1) % len(workouts)]
                    break

        next_workout["plan"] = plan
        next_workout["exercises"] = self._workout_exercises(next_workout["id"])
        return next_workout

    # ── Mutations ────────────────────────────────────────────────────────

    def create_plan(self, user_id, name, workouts_per_week, description=None):
        """Create an inactive plan; returns (plan_id, slug)."""
        _validate_plan_fields(name, workouts_per_week, description)
        with self.db.transaction():
            return self._insert_plan(user_id, name, workouts_per_week, description)

    def update_plan(self, plan_id, user_id, name=None, description=None, workouts_per_week=None):
        plan = self.conn.execute("SELECT * FROM workout_plans WHERE id = ?", (plan_id,)).fetchone()
        if not plan:
            raise NotFoundError("Workout plan not found")
        if plan["user_id"] != user_id:
            raise NotAuthorizedError("Not authorized to update this plan")

        _validate_plan_fields(name, workouts_per_week, description)

        if workouts_per_week is not None:
            workout_count = self.conn.execute(
                "SELECT COUNT(*) AS c FROM workouts WHERE plan_id = ?", (plan_id,)
            ).fetchone()["c"]
            if workout_count > workouts_per_week:
                raise ValueError(
                    f"Cannot reduce workouts per week below the current number of workouts ({workout_count})"
                )

        updates = {"updated_at": utc_now()}
        if name is not None and name != plan["name"]:
            updates["name"] = name
            updates["slug"] = self._unique_slug(user_id, name, exclude_plan_id=plan_id)
        if description is not None:
            updates["description"] = description
        if workouts_per_week is not None:
            updates["workouts_per_week"] = workouts_per_week

        assignments = ", ".join(f"{column} = ?" for column in updates)
        with self.db.transaction():
            self.conn.execute(
                f"UPDATE workout_plans SET {assignments} WHERE id = ?",
                (*updates.values(), plan_id),
            )
        return plan_id

    def activate_plan(self, plan_id, user_id):
        """Make plan_id the user's only active plan."""
        self._owned_plan(plan_id, user_id)
        now = utc_now()
        with self.db.transaction():
            self.conn.execute(
                """
                UPDATE workout_plans
                SET is_active = 0, updated_at = ?
                WHERE user_id = ? AND id != ? AND is_active = 1
                """,
                (now, user_id, plan_id),
            )
            self.conn.execute(
                "UPDATE workout_plans SET is_active = 1, updated_at = ? WHERE id = ?",
                (now, plan_id),
            )
        return plan_id

    def deactivate_plan(self, plan_id, user_id):
        self._owned_plan(plan_id, user_id)
        with self.db.transaction():
            self.conn.execute(
                "UPDATE workout_plans SET is_active = 0, updated_at = ? WHERE id = ?",
                (utc_now(), plan_id),
            )
        return plan_id

    def remove_plan(self, plan_id, user_id):
        """Delete a plan with its workouts and workout exercises."""
        plan = self.conn.execute("SELECT * FROM workout_plans WHERE id = ?", (plan_id,)).fetchone()
        if not plan:
            raise NotFoundError("Workout plan not found")
        if plan["user_id"] != user_id:
            raise NotAuthorizedError("Not authorized to delete this plan")

        with self.db.transaction():
            self.conn.execute(
                """
                DELETE FROM workout_exercises
                WHERE workout_id IN (SELECT id FROM workouts WHERE plan_id = ?)
                """,
                (plan_id,),
            )
            self.conn.execute("DELETE FROM workouts WHERE plan_id = ?", (plan_id,))
            self.conn.execute("DELETE FROM workout_plans WHERE id = ?", (plan_id,))

    def create_plan_from_draft(self, user_id, draft):
        """
        Persist a reconciled plan draft (as returned by PlanGenerator).

        Every exerciseName must match a catalog row's stored name exactly.

        Returns:
            (plan_id, slug)
        """
        name = draft.get("name") or ""
        description = draft.get("description")
        workouts_per_week = draft.get("workoutsPerWeek")
        workouts = draft.get("workouts") or []

        _validate_plan_fields(name, workouts_per_week, description)
        if not workouts:
            raise ValueError("Plan must have at least one workout")
        if len(workouts) > workouts_per_week:
            raise ValueError(
                f"Cannot have more workouts ({len(workouts)}) than workouts per week ({workouts_per_week})"
            )

        exercise_ids = {
            row["name"]: row["id"]
            for row in self.conn.execute("SELECT id, name FROM exercises").fetchall()
        }
        for workout in workouts:
            for exercise in workout.get("exercises", []):
                if exercise["exerciseName"] not in exercise_ids:
                    raise ValueError(f'Exercise "{exercise["exerciseName"]}" not found in database')

        now = utc_now()
        with self.db.transaction():
            plan_id, slug = self._insert_plan(user_id, name, workouts_per_week, description)
            for workout_number, workout in enumerate(workouts, start=1):
                cursor = self.conn.execute(
                    """
                    INSERT INTO workouts (
                        plan_id, user_id, name, workout_number, display_order,
                        is_template, completion_count, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, 0, 0, ?)
                    """,
                    (plan_id, user_id, workout["name"], workout_number, workout_number, now),
                )
                workout_id = int(cursor.lastrowid)
                for order, exercise in enumerate(workout.get("exercises", []), start=1):
                    self.conn.execute(
                        """
                        INSERT INTO workout_exercises (
                            workout_id, exercise_id, display_order, sets, reps, weight, rest_time
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            workout_id,
                            exercise_ids[exercise["exerciseName"]],
                            order,
                            exercise["sets"],
                            exercise["reps"],
                            exercise["weight"],
                            exercise["restTime"],
                        ),
                    )
        return plan_id, slug
