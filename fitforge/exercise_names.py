"""
Exercise name identity.

Exercise identity across the catalog is the case-insensitive name. All
modules use these helpers instead of ad-hoc string matching.
"""

MUSCLE_GROUPS = [
    "chest",
    "back",
    "shoulders",
    "arms",
    "legs",
    "core",
    "cardio",
    "other",
]

EQUIPMENT_TYPES = [
    "machine",
    "dumbbell",
    "barbell",
    "bodyweight",
    "other",
]

# Hold/duration exercises: a defaulted rep count means seconds, not reps.
TIME_BASED_EXERCISES = [
    "plank",
    "wall sit",
    "dead hang",
    "hollow hold",
    "l-sit",
    "side plank",
    "forearm plank",
    "high plank",
]


def name_key(name):
    """Return the identity key for an exercise name ("" for empty/None)."""
    if not name:
        return ""
    return str(name).lower()


def is_time_based(name):
    """True when the name contains one of the known hold/duration exercises."""
    key = name_key(name)
    return any(token in key for token in TIME_BASED_EXERCISES)


class CatalogIndex:
    """
    Case-insensitive lookup over a catalog snapshot.

    Usage:
        index = CatalogIndex(catalog.list_exercises())
        index.canonical_name("barbell squat")  # -> "Barbell Squat"
        index.contains("PUSH-UP")  # -> True
    """

    def __init__(self, exercises):
        self._by_key = {}
        for exercise in exercises or []:
            key = name_key(exercise.get("name"))
            # First stored row wins when two rows differ only by case.
            if key and key not in self._by_key:
                self._by_key[key] = exercise

    def __len__(self):
        return len(self._by_key)

    def contains(self, name):
        return name_key(name) in self._by_key

    def find(self, name):
        """Return the stored exercise row matching name, or None."""
        return self._by_key.get(name_key(name))

    def canonical_name(self, name):
        """Return the stored casing for name, or None when absent."""
        exercise = self.find(name)
        return exercise["name"] if exercise else None
