"""
Runtime Configuration
=====================
Central registry for settings that may be tuned without touching code.

Values are read once from environment variables at import time:

    ARCADE_SCALE (int): window pixels per logical display pixel (default 5).
    ARCADE_HIGHSCORES (str): path of the JSON high-score table.
    ARCADE_LOG_LEVEL (str): logging level name (default INFO).
    ARCADE_LOG_FILE (str): optional log file path.
"""
import logging
import os


def _env_int(name, default, minimum=1):
    """Read a positive integer from the environment, falling back to `default`."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        print(f"WARNING: {name}={raw!r} is not an integer, using {default}")
        return default
    return max(minimum, value)


def _env_level(name, default="INFO"):
    """Resolve a logging level name (e.g. "DEBUG") to its numeric value."""
    raw = (os.environ.get(name) or default).strip().upper()
    level = logging.getLevelName(raw)
    if isinstance(level, int):
        return level
    print(f"WARNING: {name}={raw!r} is not a logging level, using {default}")
    return logging.getLevelName(default)


SCALE = _env_int("ARCADE_SCALE", 5)
HIGHSCORE_FILE = os.environ.get("ARCADE_HIGHSCORES") or "highscores.json"
LOG_LEVEL = _env_level("ARCADE_LOG_LEVEL")
LOG_FILE = os.environ.get("ARCADE_LOG_FILE") or None
