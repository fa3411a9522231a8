#!/usr/bin/env python3
"""
FitForge command line.

Commands:
    init-db            Create the SQLite schema
    seed               Load the default exercise catalog
    generate PROMPT    Generate a plan with Claude, reconcile it and save it
    chat MESSAGE       Ask the AI trainer a question
    stats              Dashboard stats for a user
"""

import argparse
import json
import sys

from fitforge.config import get_api_key, get_db_path, load_config
from fitforge.exercise_catalog import ExerciseCatalog, seed_catalog
from fitforge.plan_generator import PlanGenerator
from fitforge.plan_store import PlanStore
from fitforge.text_generation import TextGenerator
from fitforge.trainer_chat import TrainerChat
from fitforge.workout_db import WorkoutDB
from fitforge.workout_logs import WorkoutLogStore


DEFAULT_USER = "local-user"


def print_banner():
    """Print welcome banner."""
    banner = """
╔══════════════════════════════════════════════════════════════╗
║                                                              ║
║        FITFORGE WORKOUT PLANNER                              ║
║        Powered by Claude AI                                  ║
║                                                              ║
╚══════════════════════════════════════════════════════════════╝
    """
    print(banner)


def print_section(title):
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="AI workout plan generator and tracker.")
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to config.yaml (default: config.yaml)",
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="SQLite database file (overrides database.path from config)",
    )
    parser.add_argument(
        "--user",
        default=DEFAULT_USER,
        help=f"User id to act as (default: {DEFAULT_USER})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("init-db", help="Create the database schema")

    seed = subparsers.add_parser("seed", help="Seed the exercise catalog")
    seed.add_argument(
        "--file",
        default=None,
        help="YAML file of exercises (default: data/default_exercises.yaml)",
    )

    generate = subparsers.add_parser("generate", help="Generate and save a workout plan")
    generate.add_argument("prompt", help="What kind of plan you want")
    generate.add_argument("--activate", action="store_true", help="Make the new plan active")
    generate.add_argument("--dry-run", action="store_true", help="Print the plan without saving it")

    chat = subparsers.add_parser("chat", help="Ask the AI trainer")
    chat.add_argument("message", help="Your question")

    subparsers.add_parser("stats", help="Show dashboard stats")
    return parser.parse_args(argv)


def build_text_generator(config):
    api_key_env = config["claude"]["api_key_env"]
    api_key = get_api_key(config)
    if not api_key:
        print(f"\n❌ Error: {api_key_env} not found in environment variables!")
        print("\nPlease:")
        print("1. Copy .env.example to .env")
        print("2. Add your Anthropic API key to .env")
        print("3. Get your API key from: https://console.anthropic.com/")
        sys.exit(1)
    return TextGenerator(api_key=api_key, config=config)


def cmd_init_db(db, args, config):
    db.init_schema()
    print(f"✓ Schema ready at {db.db_path}")
    return 0


def cmd_seed(db, args, config):
    db.init_schema()
    inserted, skipped = seed_catalog(ExerciseCatalog(db), args.file)
    print(f"✓ Seeded {inserted} exercises ({skipped} already present)")
    return 0


def cmd_generate(db, args, config):
    db.init_schema()
    catalog = ExerciseCatalog(db)
    generator = PlanGenerator(build_text_generator(config), catalog, config)

    print_section("GENERATING WORKOUT PLAN")
    result = generator.generate_plan(args.prompt, args.user)

    if result["created_exercises"]:
        print("New exercises added to the catalog:")
        for name in result["created_exercises"]:
            print(f"  - {name}")

    if not result["success"]:
        print(f"\n❌ {result['error']}")
        return 1

    plan = result["plan"]
    print(json.dumps(plan, indent=2))
    usage = result["usage"]
    print(f"\nTokens used: {usage['total_tokens']} ({usage['prompt_tokens']} in / {usage['completion_tokens']} out)")

    if args.dry_run:
        return 0

    plans = PlanStore(db)
    try:
        plan_id, slug = plans.create_plan_from_draft(args.user, plan)
    except ValueError as e:
        print(f"\n❌ Could not save plan: {e}")
        return 1
    if args.activate:
        plans.activate_plan(plan_id, args.user)
    print(f"\n✓ Saved plan '{plan['name']}' as {slug}{' (active)' if args.activate else ''}")
    return 0


def cmd_chat(db, args, config):
    db.init_schema()
    trainer = TrainerChat(
        build_text_generator(config),
        ExerciseCatalog(db),
        WorkoutLogStore(db),
        config,
    )
    result = trainer.chat(args.user, args.message)
    if not result["success"]:
        print(f"\n❌ {result['error']}")
        return 1
    print(result["response"])
    return 0


def cmd_stats(db, args, config):
    db.init_schema()
    stats = WorkoutLogStore(db).get_dashboard_stats(args.user)
    active_plan = PlanStore(db).get_active_plan(args.user)

    print_section("DASHBOARD")
    print(f"  Active plan:        {active_plan['name'] if active_plan else 'none'}")
    print(f"  Total workouts:     {stats['total_workouts']}")
    print(f"  This week:          {stats['this_week_workouts']}")
    print(f"  Week streak:        {stats['weeks_streak']}")

    print_section("DATABASE")
    for table, count in db.count_summary().items():
        print(f"  {table:<18}{count}")
    return 0


COMMANDS = {
    "init-db": cmd_init_db,
    "seed": cmd_seed,
    "generate": cmd_generate,
    "chat": cmd_chat,
    "stats": cmd_stats,
}


def main(argv=None):
    """Main application flow."""
    args = parse_args(argv)
    print_banner()

    print("Loading configuration...")
    config = load_config(args.config)
    db = WorkoutDB(args.db_path or get_db_path(config))
    try:
        return COMMANDS[args.command](db, args, config)
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
