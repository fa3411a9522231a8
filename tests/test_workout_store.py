import os
import tempfile
import unittest

from fitforge.errors import NotAuthorizedError, NotFoundError
from fitforge.exercise_catalog import ExerciseCatalog
from fitforge.plan_store import PlanStore
from fitforge.workout_db import WorkoutDB
from fitforge.workout_store import (
    ExplicitIndex,
    Next,
    Previous,
    WorkoutStore,
    resolve_superset_index,
)


class ResolveSupersetIndexTests(unittest.TestCase):
    ORDERS = [1, 2, 3]

    def test_previous_and_next(self):
        self.assertEqual(resolve_superset_index(Previous(), 1, self.ORDERS), 0)
        self.assertEqual(resolve_superset_index(Next(), 1, self.ORDERS), 2)

    def test_explicit_index_matches_display_order(self):
        self.assertEqual(resolve_superset_index(ExplicitIndex(3), 0, self.ORDERS), 2)

    def test_out_of_range_links_are_dropped(self):
        self.assertIsNone(resolve_superset_index(Previous(), 0, self.ORDERS))
        self.assertIsNone(resolve_superset_index(Next(), 2, self.ORDERS))
        self.assertIsNone(resolve_superset_index(ExplicitIndex(7), 0, self.ORDERS))
        self.assertIsNone(resolve_superset_index(ExplicitIndex(1), 0, self.ORDERS))
        self.assertIsNone(resolve_superset_index(None, 0, self.ORDERS))

    def test_unknown_link_type(self):
        with self.assertRaises(ValueError):
            resolve_superset_index("previous", 1, self.ORDERS)


class WorkoutStoreTests(unittest.TestCase):
    def setUp(self):
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.db = WorkoutDB(os.path.join(tmpdir.name, "fitforge.db"))
        self.addCleanup(self.db.close)
        self.db.init_schema()

        catalog = ExerciseCatalog(self.db)
        self.bench = catalog.create_exercise("Bench Press", "chest")
        self.row = catalog.create_exercise("Barbell Row", "back")
        self.curl = catalog.create_exercise("Barbell Curl", "arms")

        self.plans = PlanStore(self.db)
        self.workouts = WorkoutStore(self.db)
        self.plan_id, _ = self.plans.create_plan("user-1", "Upper Focus", 3)

    def exercise(self, exercise_id, order, **overrides):
        values = {"exercise_id": exercise_id, "order": order, "sets": 3, "reps": 10, "weight": 40, "rest_time": 90}
        values.update(overrides)
        return values

    def test_workout_numbers_increment_within_plan(self):
        _, first = self.workouts.create_workout("user-1", "Upper A", plan_id=self.plan_id)
        _, second = self.workouts.create_workout("user-1", "Upper B", plan_id=self.plan_id)
        _, standalone = self.workouts.create_workout("user-1", "Arms Finisher", is_template=True)

        self.assertEqual((first, second, standalone), (1, 2, 0))
        self.assertEqual(len(self.workouts.list_templates("user-1")), 1)
        self.assertEqual(self.workouts.get_by_plan_and_number("user-1", self.plan_id, 2)["name"], "Upper B")

    def test_workouts_per_week_limit(self):
        for name in ("Day One", "Day Two", "Day Three"):
            self.workouts.create_workout("user-1", name, plan_id=self.plan_id)
        with self.assertRaises(ValueError) as ctx:
            self.workouts.create_workout("user-1", "Day Four", plan_id=self.plan_id)
        self.assertIn("3 workouts per week", str(ctx.exception))

    def test_plan_must_belong_to_user(self):
        with self.assertRaises(NotFoundError):
            self.workouts.create_workout("user-2", "Sneaky", plan_id=self.plan_id)

    def test_exercise_bounds_are_enforced(self):
        bad_values = [{"sets": 11}, {"reps": 0}, {"weight": 1001}, {"rest_time": 601}]
        for overrides in bad_values:
            with self.assertRaises(ValueError):
                self.workouts.create_workout(
                    "user-1", "Bad Workout", exercises=[self.exercise(self.bench, 1, **overrides)]
                )
        self.assertEqual(self.db.count_summary()["workouts"], 0)

    def test_superset_links_resolve_to_sibling_rows(self):
        workout_id, _ = self.workouts.create_workout(
            "user-1",
            "Upper A",
            plan_id=self.plan_id,
            exercises=[
                self.exercise(self.bench, 1),
                self.exercise(self.row, 2, superset_with=Previous()),
                self.exercise(self.curl, 3, superset_with=ExplicitIndex(1)),
            ],
        )

        exercises = self.workouts.get_workout(workout_id, "user-1")["exercises"]
        bench, row, curl = exercises
        self.assertIsNone(bench["superset_with"])
        self.assertEqual(row["superset_with"], bench["id"])
        self.assertEqual(curl["superset_with"], bench["id"])

    def test_get_workout_hides_other_users(self):
        workout_id, _ = self.workouts.create_workout("user-1", "Upper A")
        self.assertIsNone(self.workouts.get_workout(workout_id, "user-2"))

    def test_add_update_remove_exercise(self):
        workout_id, _ = self.workouts.create_workout("user-1", "Upper A", exercises=[self.exercise(self.bench, 1)])

        added = self.workouts.add_exercise(workout_id, "user-1", self.row, sets=4, reps=8, weight=50, rest_time=120)
        self.workouts.update_exercise(added, "user-1", reps=6)
        exercises = self.workouts.list_exercises(workout_id)
        self.assertEqual([e["exercise_name"] for e in exercises], ["Bench Press", "Barbell Row"])
        self.assertEqual(exercises[1]["display_order"], 2)
        self.assertEqual(exercises[1]["reps"], 6)
        self.assertEqual(exercises[1]["sets"], 4)

        with self.assertRaises(NotAuthorizedError):
            self.workouts.update_exercise(added, "user-2", reps=12)
        with self.assertRaises(ValueError):
            self.workouts.update_exercise(added, "user-1", sets=0)

        self.workouts.remove_exercise(added, "user-1")
        self.assertEqual(len(self.workouts.list_exercises(workout_id)), 1)

    def test_rename_workout(self):
        workout_id, _ = self.workouts.create_workout("user-1", "Upper A")
        self.workouts.rename_workout(workout_id, "user-1", "Upper Heavy")
        self.assertEqual(self.workouts.get_workout(workout_id, "user-1")["name"], "Upper Heavy")
        with self.assertRaises(ValueError):
            self.workouts.rename_workout(workout_id, "user-1", "U")

    def test_remove_workout_closes_number_gap(self):
        first_id, _ = self.workouts.create_workout("user-1", "Day One", plan_id=self.plan_id)
        self.workouts.create_workout("user-1", "Day Two", plan_id=self.plan_id)
        self.workouts.create_workout("user-1", "Day Three", plan_id=self.plan_id)

        with self.assertRaises(NotAuthorizedError):
            self.workouts.remove_workout(first_id, "user-2")
        self.workouts.remove_workout(first_id, "user-1")

        remaining = self.workouts.list_plan_workouts(self.plan_id)
        self.assertEqual([(w["name"], w["workout_number"]) for w in remaining], [("Day Two", 1), ("Day Three", 2)])

        _, number = self.workouts.create_workout("user-1", "Day Four", plan_id=self.plan_id)
        self.assertEqual(number, 3)


if __name__ == "__main__":
    unittest.main()
