"""
Seed the exercise catalog from data/default_exercises.yaml.

Creates the schema if needed, inserts any exercise not already present
(matched by exact name), and reports catalog counts per muscle group.

Usage:
    python3 scripts/seed_exercises.py [--db-path data/fitforge.db] [--file data/default_exercises.yaml]
"""

import argparse
import os
import sys

# Ensure project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fitforge.config import get_db_path, load_config
from fitforge.exercise_catalog import ExerciseCatalog, seed_catalog
from fitforge.workout_db import WorkoutDB


def parse_args():
    parser = argparse.ArgumentParser(description="Seed the exercise catalog.")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml (default: config.yaml)")
    parser.add_argument("--db-path", default=None, help="SQLite database file (overrides config)")
    parser.add_argument("--file", default=None, help="YAML seed file (default: data/default_exercises.yaml)")
    return parser.parse_args()


def main():
    args = parse_args()
    config = load_config(args.config)

    db = WorkoutDB(args.db_path or get_db_path(config))
    db.init_schema()

    catalog = ExerciseCatalog(db)
    inserted, skipped = seed_catalog(catalog, args.file)

    print(f"\nSeed complete:")
    print(f"  Inserted:              {inserted}")
    print(f"  Already present:       {skipped}")
    print(f"  Exercises in DB:       {len(catalog.list_exercises())}")

    groups = db.conn.execute(
        """
        SELECT muscle_group, COUNT(*) AS c
        FROM exercises
        GROUP BY muscle_group
        ORDER BY c DESC
        """
    ).fetchall()
    if groups:
        print("\nBy muscle group:")
        for g in groups:
            print(f"  {g['muscle_group']:<12}{g['c']}")

    db.close()


if __name__ == "__main__":
    main()
