"""
Compact progression summary of a user's workout history for AI prompts.
"""

import math
from datetime import datetime, timezone


RECENT_ACTIVITY_LIMIT = 5
SECONDS_PER_WEEK = 7 * 24 * 60 * 60


def as_datetime(value):
    """Accept a datetime, an ISO-8601 string, or epoch milliseconds."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def log_timestamp(log):
    """When a log counts as having happened: completion time, else start time."""
    return as_datetime(log.get("completed_at")) or as_datetime(log.get("started_at"))


def format_date(value):
    """Short M/D/YYYY date, e.g. 2/14/2026."""
    return f"{value.month}/{value.day}/{value.year}"


def consistency_tier(workouts_per_week):
    if workouts_per_week >= 3:
        return "excellent"
    if workouts_per_week >= 2:
        return "good"
    if workouts_per_week >= 1:
        return "moderate"
    return "needs improvement"


def build_progression_context(workout_logs):
    """
    Summarize recent workout history for the trainer prompt.

    Args:
        workout_logs: Workout log dicts ordered most recent first
            (name, status, started_at, completed_at)

    Returns:
        Dictionary with total_workouts, recent_activity, consistency,
        workouts_per_week and an encouragement message.
    """
    if not workout_logs:
        return {
            "message": "No workout history yet. Start tracking workouts to get personalized advice!",
            "total_workouts": 0,
            "recent_activity": [],
        }

    completed = [log for log in workout_logs if log.get("status") == "completed"]
    if not completed:
        return {
            "message": "You have started workouts but haven't completed any yet.",
            "total_workouts": 0,
            "recent_activity": [],
        }

    recent_activity = [
        {
            "name": log.get("name"),
            "date": format_date(log_timestamp(log)),
            "status": log.get("status"),
        }
        for log in completed[:RECENT_ACTIVITY_LIMIT]
    ]

    newest = log_timestamp(completed[0])
    oldest = log_timestamp(completed[-1])
    weeks_spanned = (newest - oldest).total_seconds() / SECONDS_PER_WEEK
    weeks = max(1, math.floor(weeks_spanned))
    workouts_per_week = len(completed) / weeks

    total = len(completed)
    plural = "" if total == 1 else "s"
    encouragement = "Great consistency!" if workouts_per_week >= 3 else "Keep it up!"

    return {
        "total_workouts": total,
        "recent_activity": recent_activity,
        "consistency": consistency_tier(workouts_per_week),
        "workouts_per_week": f"{workouts_per_week:.1f}",
        "message": f"You've completed {total} workout{plural} recently. {encouragement}",
    }
