"""Tests for the chat progression summary."""

import unittest
from datetime import datetime, timezone

from fitforge.progression_context import (
    as_datetime,
    build_progression_context,
    consistency_tier,
    format_date,
)


def log(name, status, started, completed=None):
    return {"name": name, "status": status, "started_at": started, "completed_at": completed}


class ProgressionContextTests(unittest.TestCase):
    def test_empty_history(self):
        context = build_progression_context([])
        self.assertEqual(context["total_workouts"], 0)
        self.assertEqual(context["recent_activity"], [])
        self.assertTrue(context["message"].startswith("No workout history yet"))

    def test_started_but_never_completed(self):
        context = build_progression_context([log("Upper A", "in_progress", "2026-02-10T10:00:00+00:00")])
        self.assertEqual(context["total_workouts"], 0)
        self.assertEqual(context["message"], "You have started workouts but haven't completed any yet.")

    def test_summary_of_completed_history(self):
        logs = [
            log("Session 8", "completed", "2026-02-24T10:00:00+00:00", "2026-02-24T11:00:00+00:00"),
            log("Abandoned", "abandoned", "2026-02-23T10:00:00+00:00"),
        ]
        # Seven more completed sessions spread over the previous three weeks.
        for day in (21, 19, 17, 14, 12, 10, 3):
            logs.append(log(f"Session {day}", "completed", f"2026-02-{day:02d}T10:00:00+00:00"))

        context = build_progression_context(logs)

        self.assertEqual(context["total_workouts"], 8)
        self.assertEqual(len(context["recent_activity"]), 5)
        self.assertEqual(
            context["recent_activity"][0],
            {"name": "Session 8", "date": "2/24/2026", "status": "completed"},
        )
        self.assertEqual(context["workouts_per_week"], "2.7")
        self.assertEqual(context["consistency"], "good")
        self.assertEqual(context["message"], "You've completed 8 workouts recently. Keep it up!")

    def test_single_completed_workout(self):
        context = build_progression_context(
            [log("Upper A", "completed", "2026-02-10T10:00:00+00:00", "2026-02-10T11:00:00+00:00")]
        )
        self.assertEqual(context["workouts_per_week"], "1.0")
        self.assertEqual(context["consistency"], "moderate")
        self.assertEqual(context["message"], "You've completed 1 workout recently. Keep it up!")

    def test_high_frequency_is_excellent(self):
        logs = [
            log(f"Day {day}", "completed", f"2026-02-{day:02d}T10:00:00+00:00")
            for day in (6, 5, 4, 3, 2)
        ]
        context = build_progression_context(logs)
        self.assertEqual(context["consistency"], "excellent")
        self.assertIn("Great consistency!", context["message"])

    def test_consistency_tiers(self):
        self.assertEqual(consistency_tier(3), "excellent")
        self.assertEqual(consistency_tier(2.5), "good")
        self.assertEqual(consistency_tier(1), "moderate")
        self.assertEqual(consistency_tier(0.5), "needs improvement")

    def test_timestamp_formats(self):
        expected = datetime(2026, 2, 14, tzinfo=timezone.utc)
        self.assertEqual(as_datetime("2026-02-14T00:00:00+00:00"), expected)
        self.assertEqual(as_datetime("2026-02-14T00:00:00"), expected)
        self.assertEqual(as_datetime(int(expected.timestamp() * 1000)), expected)
        self.assertIsNone(as_datetime(None))
        self.assertEqual(format_date(expected), "2/14/2026")


if __name__ == "__main__":
    unittest.main()
