"""
AI-powered workout plan generation using Claude API.

The generated JSON is treated as untrusted: it is validated, normalized,
and every exercise it names is reconciled against the exercise catalog
(creating missing exercises on demand) before the plan is returned.
"""

import json
import math

from fitforge.errors import (
    DuplicateExerciseError,
    ErrorKind,
    PlanGenerationError,
    TextGenerationError,
)
from fitforge.exercise_names import (
    EQUIPMENT_TYPES,
    MUSCLE_GROUPS,
    CatalogIndex,
    is_time_based,
    name_key,
)
from fitforge.text_generation import empty_usage, parse_json_content


MAX_PROMPT_LENGTH = 2000
MAX_DESCRIPTION_LENGTH = 500
DETAIL_CONTEXT_SIZE = 10

DEFAULT_SETS = 3
DEFAULT_REPS = 12
DEFAULT_TIME_BASED_REPS = 30
DEFAULT_WEIGHT = 0
DEFAULT_REST_TIME = 60
MAX_SETS = 10
MAX_REPS = 50


def _is_finite_number(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    # JSON integers are arbitrary precision and may not fit in a float.
    return isinstance(value, int) or math.isfinite(value)


def normalize_exercise_spec(exercise):
    """
    Coerce one generated exercise prescription into bounds, in place.

    Missing or out-of-range values get defaults; oversized sets/reps are
    capped. Applying it twice gives the same result as applying it once.

    Returns:
        The same dict, for chaining.
    """
    exercise_name = exercise.get("exerciseName") or ""

    reps = exercise.get("reps")
    if not _is_finite_number(reps) or reps < 1:
        reps = DEFAULT_TIME_BASED_REPS if is_time_based(exercise_name) else DEFAULT_REPS
    elif reps > MAX_REPS:
        reps = MAX_REPS
    exercise["reps"] = int(round(reps))

    sets = exercise.get("sets")
    if not _is_finite_number(sets) or sets < 1:
        sets = DEFAULT_SETS
    elif sets > MAX_SETS:
        sets = MAX_SETS
    exercise["sets"] = int(round(sets))

    weight = exercise.get("weight")
    if not _is_finite_number(weight) or weight < 0:
        weight = DEFAULT_WEIGHT
    exercise["weight"] = weight

    rest_time = exercise.get("restTime")
    if not _is_finite_number(rest_time) or rest_time < 0:
        rest_time = DEFAULT_REST_TIME
    exercise["restTime"] = int(round(rest_time))

    return exercise


def check_exercise_bounds(exercise):
    """Raise SCHEMA_VIOLATION if a normalized prescription is still out of bounds."""
    exercise_name = exercise.get("exerciseName")
    if not 1 <= exercise["sets"] <= MAX_SETS:
        raise PlanGenerationError(
            ErrorKind.SCHEMA_VIOLATION, f"Invalid sets for {exercise_name}: must be 1-{MAX_SETS}"
        )
    if not 1 <= exercise["reps"] <= MAX_REPS:
        raise PlanGenerationError(
            ErrorKind.SCHEMA_VIOLATION, f"Invalid reps for {exercise_name}: must be 1-{MAX_REPS}"
        )
    if exercise["restTime"] < 0:
        raise PlanGenerationError(
            ErrorKind.SCHEMA_VIOLATION, f"Invalid rest time for {exercise_name}: must be >= 0"
        )


def validate_plan_structure(plan_data):
    """
    Check the top-level shape of a generated plan.

    Raises PlanGenerationError(SCHEMA_VIOLATION) naming the offending field.
    workoutsPerWeek is coerced to int when it is an integral number.
    """
    name = plan_data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise PlanGenerationError(ErrorKind.SCHEMA_VIOLATION, "Invalid plan structure: missing name")
    name = name.strip()
    if len(name) < 3 or len(name) > 100:
        raise PlanGenerationError(
            ErrorKind.SCHEMA_VIOLATION, "Invalid plan name: must be between 3 and 100 characters"
        )
    plan_data["name"] = name

    workouts = plan_data.get("workouts")
    if not isinstance(workouts, list):
        raise PlanGenerationError(
            ErrorKind.SCHEMA_VIOLATION, "Invalid plan structure: missing workouts array"
        )

    per_week = plan_data.get("workoutsPerWeek")
    if (
        not _is_finite_number(per_week)
        or per_week != int(per_week)
        or per_week < 1
        or per_week > 7
    ):
        raise PlanGenerationError(
            ErrorKind.SCHEMA_VIOLATION, "Invalid workoutsPerWeek: must be an integer between 1 and 7"
        )
    plan_data["workoutsPerWeek"] = int(per_week)

    description = plan_data.get("description")
    if description is not None and not isinstance(description, str):
        plan_data["description"] = str(description)

    for index, workout in enumerate(workouts, start=1):
        if not isinstance(workout, dict) or not workout.get("name"):
            raise PlanGenerationError(
                ErrorKind.SCHEMA_VIOLATION, f"Invalid workout structure: workout {index} is missing name"
            )
        if not isinstance(workout.get("exercises"), list):
            raise PlanGenerationError(
                ErrorKind.SCHEMA_VIOLATION,
                f"Invalid workout structure: workout '{workout['name']}' is missing exercises array",
            )
        for exercise in workout["exercises"]:
            if not isinstance(exercise, dict):
                raise PlanGenerationError(
                    ErrorKind.SCHEMA_VIOLATION,
                    f"Invalid exercise entry in workout '{workout['name']}'",
                )
            exercise_name = exercise.get("exerciseName")
            if not isinstance(exercise_name, str) or not exercise_name.strip():
                raise PlanGenerationError(ErrorKind.SCHEMA_VIOLATION, "Exercise missing exerciseName")


def iter_plan_exercises(plan_data):
    for workout in plan_data.get("workouts", []):
        for exercise in workout.get("exercises", []):
            yield exercise


def _catalog_context(exercises, limit=None, include_description=True):
    selected = exercises if limit is None else exercises[:limit]
    context = []
    for exercise in selected:
        entry = {
            "name": exercise["name"],
            "muscleGroup": exercise["muscle_group"],
            "equipment": exercise.get("equipment") or "none",
        }
        if include_description:
            entry["description"] = exercise.get("description") or ""
        context.append(entry)
    return json.dumps(context, indent=2)


class PlanGenerator:
    """Generates workout plans with Claude and reconciles them against the catalog."""

    def __init__(self, text_generator, catalog, config=None):
        """
        Initialize the plan generator.

        Args:
            text_generator: Object exposing complete(system_prompt, user_prompt, ...)
            catalog: ExerciseCatalog (list_exercises / create_exercise)
            config: Full configuration dictionary (generation.* keys are read)
        """
        self.text_generator = text_generator
        self.catalog = catalog
        generation = ((config or {}).get("generation", {}) or {})
        self.plan_temperature = generation.get("plan_temperature", 0.7)
        self.plan_max_tokens = generation.get("plan_max_tokens", 2000)
        self.exercise_temperature = generation.get("exercise_temperature", 0.5)
        self.exercise_max_tokens = generation.get("exercise_max_tokens", 300)

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    def _build_system_prompt(self, exercises):
        return f"""You are an expert fitness trainer with deep knowledge of exercise science,
programming, and periodization. Your task is to generate the BEST workout plan possible based on user requests.

Guidelines:
- Generate the optimal workout plan for the user's goals, even if some exercises don't exist in the database
- Prefer using exercises from the provided database when they fit well
- If the best exercise for a goal doesn't exist, suggest it anyway - it will be created automatically
- Follow evidence-based training principles
- Sets must be 1-{MAX_SETS}, reps must be 1-{MAX_REPS}, weight is in kg and must be >= 0, rest time is in seconds and must be >= 0
- Consider the user's experience level and goals mentioned in their request
- Ensure proper exercise selection and order
- Return valid JSON matching the exact schema provided

Available Exercises (use these when appropriate, but don't limit yourself):
{_catalog_context(exercises)}

Return ONLY valid JSON, no markdown formatting, no code blocks."""

    def _build_user_prompt(self, prompt):
        return f"""{prompt}

Return a JSON object with this exact structure:
{{
  "name": "string (workout plan name, 3-100 characters)",
  "description": "string (brief description, optional)",
  "workoutsPerWeek": number (1-7, number of workouts per week),
  "workouts": [
    {{
      "name": "string (workout name, e.g., 'Upper Body Day 1')",
      "exercises": [
        {{
          "exerciseName": "string (exercise name - can be from database or a new exercise)",
          "sets": number (must be 1-{MAX_SETS}, typically 3-5),
          "reps": number (MUST be 1-{MAX_REPS}, typically 5-20 for strength exercises, 10-30 for hypertrophy, 15-50 for endurance. For time-based exercises like Plank, use 1-50 to represent duration in seconds or number of holds),
          "weight": number (0 if user should set their own weight, otherwise suggested weight in kg, must be >= 0),
          "restTime": number (rest time in seconds, must be >= 0, typically 60-300)
        }}
      ]
    }}
  ]
}}

CRITICAL: All reps values MUST be between 1 and {MAX_REPS}. Never use 0 or negative numbers for reps. For time-based exercises (like Plank, Wall Sit, etc.), use reps to represent either the number of holds/sets OR the duration in seconds (within 1-{MAX_REPS} range)."""

    # ------------------------------------------------------------------
    # Exercise details
    # ------------------------------------------------------------------

    def generate_exercise_details(self, exercise_name, existing_exercises):
        """
        Ask Claude for catalog details of an exercise that doesn't exist yet.

        Args:
            exercise_name: Name the plan referenced
            existing_exercises: Catalog rows; up to 10 are sent as style context

        Returns:
            {"name", "muscle_group", "equipment", "description"} with the
            enums validated.

        Raises:
            TextGenerationError on API failure, empty content or bad JSON.
        """
        system_prompt = f"""You are an expert fitness trainer. Generate exercise details for exercises that don't exist in the database.

Available muscle groups: {", ".join(MUSCLE_GROUPS)}
Available equipment types: {", ".join(EQUIPMENT_TYPES)}

Return ONLY valid JSON with this structure:
{{
  "name": "string (exercise name, exactly as provided)",
  "muscleGroup": "string (one of: {", ".join(MUSCLE_GROUPS)})",
  "equipment": "string (optional, one of: {", ".join(EQUIPMENT_TYPES)})",
  "description": "string (optional, brief description of the exercise)"
}}

Return ONLY valid JSON, no markdown formatting, no code blocks."""

        user_prompt = f"""Generate exercise details for: "{exercise_name}"

Consider similar exercises in the database for context:
{_catalog_context(existing_exercises, limit=DETAIL_CONTEXT_SIZE, include_description=False)}"""

        result = self.text_generator.complete(
            system_prompt,
            user_prompt,
            response_format="json",
            temperature=self.exercise_temperature,
            max_tokens=self.exercise_max_tokens,
        )
        data = parse_json_content(result.get("content"))

        muscle_group = data.get("muscleGroup")
        if muscle_group not in MUSCLE_GROUPS:
            muscle_group = "other"

        equipment = data.get("equipment")
        if equipment not in EQUIPMENT_TYPES:
            equipment = None

        description = data.get("description")
        if description is not None:
            description = str(description)[:MAX_DESCRIPTION_LENGTH] or None

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            name = exercise_name

        return {
            "name": name.strip(),
            "muscle_group": muscle_group,
            "equipment": equipment,
            "description": description,
        }

    # ------------------------------------------------------------------
    # Reconciliation passes
    # ------------------------------------------------------------------

    def _normalize_exercises(self, plan_data, index):
        """Normalize every prescription and return the missing names in first-seen order."""
        missing = {}
        for exercise in iter_plan_exercises(plan_data):
            normalize_exercise_spec(exercise)
            check_exercise_bounds(exercise)

            exercise_name = exercise["exerciseName"]
            if not index.contains(exercise_name):
                missing.setdefault(name_key(exercise_name), exercise_name)
        return list(missing.values())

    def _refetch_catalog(self, exercise_name):
        try:
            return self.catalog.list_exercises()
        except Exception as exc:
            raise PlanGenerationError(
                ErrorKind.EXERCISE_CREATION_FAILED,
                f'Failed to create exercise "{exercise_name}": {exc}',
            ) from exc

    def _adopt_existing(self, exercise_name):
        """Re-read the catalog and return the stored name matching exercise_name, or None."""
        return CatalogIndex(self._refetch_catalog(exercise_name)).canonical_name(exercise_name)

    def _materialize_exercise(self, exercise_name, user_id, created):
        """
        Make sure exercise_name exists in the catalog.

        Returns:
            The canonical stored name the plan should reference.
        """
        current = self._refetch_catalog(exercise_name)
        index = CatalogIndex(current)
        existing_name = index.canonical_name(exercise_name)
        if existing_name:
            return existing_name

        try:
            details = self.generate_exercise_details(exercise_name, current)
        except TextGenerationError as exc:
            raise PlanGenerationError(
                ErrorKind.EXERCISE_CREATION_FAILED,
                f'Failed to create exercise "{exercise_name}": {exc}',
            ) from exc

        existing_name = index.canonical_name(details["name"])
        if existing_name:
            return existing_name

        try:
            self.catalog.create_exercise(
                name=details["name"],
                muscle_group=details["muscle_group"],
                equipment=details["equipment"],
                description=details["description"],
                created_by=user_id,
            )
        except DuplicateExerciseError:
            # Lost a race with a concurrent creator: adopt the winner's row.
            adopted = self._adopt_existing(details["name"])
            if adopted:
                return adopted
            raise PlanGenerationError(
                ErrorKind.EXERCISE_CREATION_FAILED,
                f'Failed to create exercise "{exercise_name}": name collision but no matching exercise found',
            )
        except Exception as exc:
            raise PlanGenerationError(
                ErrorKind.EXERCISE_CREATION_FAILED,
                f'Failed to create exercise "{exercise_name}": {exc}',
            ) from exc

        created_name = self._adopt_existing(details["name"])
        if not created_name:
            raise PlanGenerationError(
                ErrorKind.EXERCISE_CREATION_FAILED,
                f'Failed to create exercise "{exercise_name}": not found after creation',
            )
        created.append(created_name)
        print(f"  Created missing exercise: {created_name}")
        return created_name

    def _resolve_names(self, plan_data, name_map):
        """Rewrite every reference to its canonical catalog name; return unresolved names."""
        index = CatalogIndex(self.catalog.list_exercises())
        for exercise in iter_plan_exercises(plan_data):
            exercise_name = exercise["exerciseName"]
            mapped = name_map.get(name_key(exercise_name))
            if mapped:
                exercise["exerciseName"] = mapped
                continue
            canonical = index.canonical_name(exercise_name)
            if canonical:
                exercise["exerciseName"] = canonical

        unresolved = []
        for exercise in iter_plan_exercises(plan_data):
            if not index.contains(exercise["exerciseName"]):
                unresolved.append(exercise["exerciseName"])
        return unresolved

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def _generate(self, prompt, user_id, created):
        if not isinstance(prompt, str) or not prompt.strip():
            raise PlanGenerationError(ErrorKind.INVALID_INPUT, "Prompt cannot be empty")
        if len(prompt) > MAX_PROMPT_LENGTH:
            raise PlanGenerationError(
                ErrorKind.INVALID_INPUT, f"Prompt must be less than {MAX_PROMPT_LENGTH} characters"
            )

        exercises = self.catalog.list_exercises()

        try:
            completion = self.text_generator.complete(
                self._build_system_prompt(exercises),
                self._build_user_prompt(prompt),
                response_format="json",
                temperature=self.plan_temperature,
                max_tokens=self.plan_max_tokens,
            )
            plan_data = parse_json_content(completion.get("content"))
        except TextGenerationError as exc:
            raise PlanGenerationError(ErrorKind.GENERATION_FAILED, str(exc)) from exc

        usage = completion.get("usage") or empty_usage()

        validate_plan_structure(plan_data)
        missing = self._normalize_exercises(plan_data, CatalogIndex(exercises))

        name_map = {}
        for exercise_name in missing:
            name_map[name_key(exercise_name)] = self._materialize_exercise(exercise_name, user_id, created)

        unresolved = self._resolve_names(plan_data, name_map)
        if unresolved:
            raise PlanGenerationError(
                ErrorKind.UNRESOLVED_EXERCISES,
                f"Failed to create exercises: {', '.join(unresolved)}. Please try again.",
            )

        return plan_data, usage

    def generate_plan(self, prompt, user_id):
        """
        Generate a workout plan from a natural-language request.

        Args:
            prompt: The user's request (1-2000 characters)
            user_id: Authenticated user; recorded as creator of new exercises

        Returns:
            On success: {"success": True, "plan", "created_exercises", "usage"}
            On failure: {"success": False, "error_kind", "error", "created_exercises"}
        """
        print("\n🤖 Generating workout plan with Claude AI...")
        created = []
        try:
            plan_data, usage = self._generate(prompt, user_id, created)
        except PlanGenerationError as exc:
            print(f"Error generating plan ({exc.kind}): {exc.message}")
            return {
                "success": False,
                "error_kind": exc.kind,
                "error": exc.message,
                "created_exercises": created,
            }
        except Exception as exc:
            print(f"Error generating plan: {exc}")
            return {
                "success": False,
                "error_kind": ErrorKind.GENERATION_FAILED,
                "error": f"Failed to generate workout plan: {exc}",
                "created_exercises": created,
            }

        print("✓ Workout plan generated successfully!\n")
        return {
            "success": True,
            "plan": plan_data,
            "created_exercises": created,
            "usage": usage,
        }
