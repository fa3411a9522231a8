"""
Logged workout sessions: start, record sets, complete, and dashboard stats.
"""

from datetime import datetime, timedelta, timezone

from fitforge.errors import NotAuthorizedError, NotFoundError
from fitforge.progression_context import as_datetime, log_timestamp
from fitforge.workout_db import row_to_dict, utc_now


IN_PROGRESS = "in_progress"
COMPLETED = "completed"
ABANDONED = "abandoned"


def week_start(value):
    """Monday 00:00 UTC of the ISO week containing value."""
    value = as_datetime(value).astimezone(timezone.utc)
    midnight = value.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=midnight.weekday())


def weeks_streak(timestamps, now):
    """
    Count consecutive training weeks ending this week or last week.

    A streak whose most recent week is older than last week is broken (0).
    """
    weeks = sorted({week_start(ts) for ts in timestamps}, reverse=True)
    if not weeks:
        return 0

    current_week = week_start(now)
    one_week = timedelta(weeks=1)
    if weeks[0] < current_week - one_week:
        return 0

    streak = 0
    expected = weeks[0]
    for week in weeks:
        if week == expected:
            streak += 1
            expected -= one_week
        elif week < expected:
            break
    return streak


class WorkoutLogStore:
    """Workout sessions and the sets logged during them."""

    def __init__(self, db):
        self.db = db

    @property
    def conn(self):
        return self.db.conn

    def _owned_log(self, log_id, user_id):
        log = self.get_log(log_id, user_id)
        if not log:
            raise NotFoundError("Workout log not found")
        return log

    def _active_log(self, user_id):
        row = self.conn.execute(
            "SELECT * FROM workout_logs WHERE user_id = ? AND status = ? LIMIT 1",
            (user_id, IN_PROGRESS),
        ).fetchone()
        return row_to_dict(row)

    def _insert_log(self, user_id, name, workout_id, plan_id, shared_workout_id, started_at, status, completed_at=None, notes=None):
        cursor = self.conn.execute(
            """
            INSERT INTO workout_logs (
                user_id, workout_id, plan_id, shared_workout_id, name,
                started_at, completed_at, status, notes
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (user_id, workout_id, plan_id, shared_workout_id, name, started_at, completed_at, status, notes),
        )
        return int(cursor.lastrowid)

    def _plan_workout(self, user_id, plan_id, workout_id):
        plan = self.conn.execute(
            "SELECT id FROM workout_plans WHERE id = ? AND user_id = ?", (plan_id, user_id)
        ).fetchone()
        if not plan:
            raise NotFoundError("Plan not found")
        workout = self.conn.execute(
            "SELECT * FROM workouts WHERE id = ? AND user_id = ? AND plan_id = ?",
            (workout_id, user_id, plan_id),
        ).fetchone()
        if not workout:
            raise NotFoundError("Workout not found")
        return dict(workout)

    def _record_completion(self, log):
        """Bump the template's completion count and its shared workout's usage counter once."""
        shared_ids = set()
        if log.get("workout_id"):
            workout = self.conn.execute(
                "SELECT id, shared_workout_id FROM workouts WHERE id = ?", (log["workout_id"],)
            ).fetchone()
            if workout:
                self.conn.execute(
                    "UPDATE workouts SET completion_count = completion_count + 1 WHERE id = ?",
                    (workout["id"],),
                )
                if workout["shared_workout_id"]:
                    shared_ids.add(workout["shared_workout_id"])
        if log.get("shared_workout_id"):
            shared_ids.add(log["shared_workout_id"])

        for shared_id in shared_ids:
            self.conn.execute(
                "UPDATE shared_workouts SET usage_counter = usage_counter + 1 WHERE id = ?",
                (shared_id,),
            )

    # ── Queries ──────────────────────────────────────────────────────────

    def get_log(self, log_id, user_id):
        row = self.conn.execute(
            "SELECT * FROM workout_logs WHERE id = ? AND user_id = ?", (log_id, user_id)
        ).fetchone()
        return row_to_dict(row)

    def get_active(self, user_id):
        return self._active_log(user_id)

    def list_logs(self, user_id, limit=None, status=None):
        """Logs for a user, most recently started first."""
        sql = "SELECT * FROM workout_logs WHERE user_id = ?"
        params = [user_id]
        if status:
            sql += " AND status = ?"
            params.append(status)
        sql += " ORDER BY started_at DESC, id DESC"
        if limit:
            sql += " LIMIT ?"
            params.append(limit)
        return [dict(row) for row in self.conn.execute(sql, params).fetchall()]

    def list_sets(self, log_id):
        rows = self.conn.execute(
            "SELECT * FROM set_logs WHERE workout_log_id = ? ORDER BY exercise_id, set_number",
            (log_id,),
        ).fetchall()
        return [dict(row) for row in rows]

    def get_completed_count_by_plan(self, user_id, plan_id):
        return int(
            self.conn.execute(
                "SELECT COUNT(*) AS c FROM workout_logs WHERE user_id = ? AND plan_id = ? AND status = ?",
                (user_id, plan_id, COMPLETED),
            ).fetchone()["c"]
        )

    def get_dashboard_stats(self, user_id, now=None):
        """
        Totals for the dashboard.

        Returns:
            {"total_workouts", "this_week_workouts", "weeks_streak"}
        """
        now = as_datetime(now) or datetime.now(timezone.utc)
        completed = self.list_logs(user_id, status=COMPLETED)
        timestamps = [log_timestamp(log) for log in completed]

        this_week = week_start(now)
        return {
            "total_workouts": len(completed),
            "this_week_workouts": sum(1 for ts in timestamps if ts >= this_week),
            "weeks_streak": weeks_streak(timestamps, now),
        }

    # ── Mutations ────────────────────────────────────────────────────────

    def start(self, user_id, name, workout_id=None, plan_id=None, started_at=None):
        """Start a session; refuses while another session is in progress."""
        if len(name or "") < 2 or len(name or "") > 100:
            raise ValueError("Name must be between 2 and 100 characters")
        if self._active_log(user_id):
            raise ValueError("You already have an active workout. Complete it first.")

        if workout_id is not None:
            workout = self.conn.execute(
                "SELECT id FROM workouts WHERE id = ? AND user_id = ?", (workout_id, user_id)
            ).fetchone()
            if not workout:
                raise NotFoundError("Workout not found")
        if plan_id is not None:
            plan = self.conn.execute(
                "SELECT id FROM workout_plans WHERE id = ? AND user_id = ?", (plan_id, user_id)
            ).fetchone()
            if not plan:
                raise NotFoundError("Plan not found")

        with self.db.transaction():
            return self._insert_log(user_id, name, workout_id, plan_id, None, started_at or utc_now(), IN_PROGRESS)

    def start_from_plan(self, user_id, plan_id, workout_id, started_at=None):
        """Start a plan workout, abandoning any session still in progress."""
        workout = self._plan_workout(user_id, plan_id, workout_id)
        active = self._active_log(user_id)

        with self.db.transaction():
            if active:
                self.conn.execute(
                    "UPDATE workout_logs SET status = ? WHERE id = ?", (ABANDONED, active["id"])
                )
            return self._insert_log(
                user_id,
                workout["name"],
                workout_id,
                plan_id,
                workout["shared_workout_id"],
                started_at or utc_now(),
                IN_PROGRESS,
            )

    def log_set(self, log_id, user_id, exercise_id, set_number, weight, reps, skipped=False):
        log = self._owned_log(log_id, user_id)
        if log["status"] != IN_PROGRESS:
            raise ValueError("Workout is not in progress")
        exercise = self.conn.execute("SELECT id FROM exercises WHERE id = ?", (exercise_id,)).fetchone()
        if not exercise:
            raise NotFoundError("Exercise not found")
        if set_number < 1:
            raise ValueError("Set number must be at least 1")
        if not skipped:
            if weight < 0 or weight > 1000:
                raise ValueError("Weight must be between 0 and 1000kg")
            if reps < 1 or reps > 100:
                raise ValueError("Reps must be between 1 and 100")

        with self.db.transaction():
            cursor = self.conn.execute(
                """
                INSERT INTO set_logs (
                    workout_log_id, exercise_id, set_number, weight, reps, skipped, completed_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (log_id, exercise_id, set_number, weight, reps, 1 if skipped else 0, utc_now()),
            )
        return int(cursor.lastrowid)

    def _owned_set(self, set_id, user_id):
        row = self.conn.execute(
            """
            SELECT s.*, l.user_id, l.status
            FROM set_logs s
            JOIN workout_logs l ON l.id = s.workout_log_id
            WHERE s.id = ?
            """,
            (set_id,),
        ).fetchone()
        if not row:
            raise NotFoundError("Set log not found")
        if row["user_id"] != user_id:
            raise NotAuthorizedError("Not authorized to modify this set")
        return dict(row)

    def update_set(self, set_id, user_id, weight=None, reps=None, skipped=None):
        current = self._owned_set(set_id, user_id)
        if current["status"] == COMPLETED:
            raise ValueError("Cannot update sets of a completed workout")
        if weight is not None and (weight < 0 or weight > 1000):
            raise ValueError("Weight must be between 0 and 1000kg")
        if reps is not None and (reps < 1 or reps > 100):
            raise ValueError("Reps must be between 1 and 100")

        with self.db.transaction():
            self.conn.execute(
                "UPDATE set_logs SET weight = ?, reps = ?, skipped = ? WHERE id = ?",
                (
                    current["weight"] if weight is None else weight,
                    current["reps"] if reps is None else reps,
                    current["skipped"] if skipped is None else (1 if skipped else 0),
                    set_id,
                ),
            )
        return set_id

    def delete_set(self, set_id, user_id):
        current = self._owned_set(set_id, user_id)
        if current["status"] == COMPLETED:
            raise ValueError("Cannot delete sets of a completed workout")
        with self.db.transaction():
            self.conn.execute("DELETE FROM set_logs WHERE id = ?", (set_id,))

    def complete(self, log_id, user_id, notes=None, completed_at=None):
        log = self._owned_log(log_id, user_id)
        if log["status"] != IN_PROGRESS:
            raise ValueError("Workout is not in progress")
        if notes and len(notes) > 1000:
            raise ValueError("Notes must be less than 1000 characters")

        with self.db.transaction():
            self.conn.execute(
                "UPDATE workout_logs SET status = ?, completed_at = ?, notes = ? WHERE id = ?",
                (COMPLETED, completed_at or utc_now(), notes, log_id),
            )
            self._record_completion(log)
        return log_id

    def skip_workout(self, user_id, plan_id, workout_id):
        """
        Record a plan workout as completed without training it, so the next one comes up.

        Every skip inserts a new log so cycling sees it as the most recent
        completion. Completion and usage counters are left alone.
        """
        workout = self._plan_workout(user_id, plan_id, workout_id)
        now = utc_now()
        with self.db.transaction():
            return self._insert_log(
                user_id,
                workout["name"],
                workout_id,
                plan_id,
                None,
                now,
                COMPLETED,
                completed_at=now,
                notes="Skipped",
            )

    def abandon(self, log_id, user_id):
        log = self._owned_log(log_id, user_id)
        if log["status"] != IN_PROGRESS:
            raise ValueError("Workout is not in progress")
        with self.db.transaction():
            self.conn.execute("UPDATE workout_logs SET status = ? WHERE id = ?", (ABANDONED, log_id))
        return log_id

    def remove(self, log_id, user_id):
        self._owned_log(log_id, user_id)
        with self.db.transaction():
            self.conn.execute("DELETE FROM set_logs WHERE workout_log_id = ?", (log_id,))
            self.conn.execute("DELETE FROM workout_logs WHERE id = ?", (log_id,))
