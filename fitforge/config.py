"""
Configuration loading (config.yaml + .env).
"""

import os

import yaml
from dotenv import load_dotenv


DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_DB_PATH = "data/fitforge.db"

DEFAULT_CONFIG = {
    "claude": {
        "api_key_env": "ANTHROPIC_API_KEY",
        "model": "claude-3-5-haiku-latest",
        "timeout": 30,
    },
    "database": {
        "path": DEFAULT_DB_PATH,
    },
    "generation": {
        "plan_temperature": 0.7,
        "plan_max_tokens": 2000,
        "exercise_temperature": 0.5,
        "exercise_max_tokens": 300,
        "chat_temperature": 0.8,
        "chat_max_tokens": 500,
    },
}


def _merge(defaults, overrides):
    merged = dict(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path=None):
    """
    Load configuration from config.yaml, layered over the defaults.

    A missing file is not an error: the defaults are returned as-is.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not os.path.exists(path):
        return _merge(DEFAULT_CONFIG, {})

    with open(path, "r", encoding="utf-8") as f:
        loaded = yaml.safe_load(f) or {}

    return _merge(DEFAULT_CONFIG, loaded)


def get_db_path(config):
    """Resolve DB path from config with fallback."""
    return ((config or {}).get("database", {}) or {}).get("path") or DEFAULT_DB_PATH


def get_api_key(config):
    """Load .env and return the Anthropic API key named in config (or None)."""
    load_dotenv()
    api_key_env = ((config or {}).get("claude", {}) or {}).get("api_key_env") or "ANTHROPIC_API_KEY"
    return os.getenv(api_key_env)
