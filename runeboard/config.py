"""Runtime configuration for the runeboard engine and service.

Tunables are read once from ``RUNEBOARD_*`` environment variables at import
time. Scoring values are plain module constants: they define the game's
balance and are not meant to be changed per deployment.
"""

from __future__ import annotations

import os
from typing import Final

from .errors import ConfigurationError


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer", context={"value": raw}
        ) from e
    if value < minimum:
        raise ConfigurationError(
            f"{name} must be >= {minimum}", context={"value": value}
        )
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be a number", context={"value": raw}
        ) from e
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(
            f"{name} must be within [0, 1]", context={"value": value}
        )
    return value


# Board geometry
BOARD_SIZE: Final[int] = 8
STONE_HEALTH: Final[int] = 2
OVERLAY_HEALTH: Final[int] = 1

# Scoring
TILE_SCORE: Final[int] = 10  # a plain match-3 is worth 30
POWER_UP_ACTIVATION_BONUS: Final[int] = 20
POWER_UP_CREATION_BONUS: Final[int] = 20
STONE_HIT_SCORE: Final[int] = 20
STONE_BREAK_BONUS: Final[int] = 40
OVERLAY_BREAK_SCORE: Final[int] = 30
COLOR_BOMB_SWAP_BONUS: Final[int] = 200
POINTS_PER_REMAINING_MOVE: Final[int] = 150
EXTRA_MOVES_BOOSTER: Final[int] = 5

# Star thresholds as multiples of the level's target score
STAR_THRESHOLDS: Final[tuple[float, float, float]] = (1.0, 1.5, 2.5)

# Cascade loop ceiling. Not expected to be reached on a well-formed board.
MAX_CASCADE_ITERATIONS = _env_int("RUNEBOARD_MAX_CASCADE_ITERATIONS", 15, minimum=1)

# Objective item replenishment
POTION_SPAWN_CHANCE = _env_float("RUNEBOARD_POTION_SPAWN_CHANCE", 0.25)
MIN_POTIONS_ON_BOARD = _env_int("RUNEBOARD_MIN_POTIONS_ON_BOARD", 2)
INITIAL_POTION_ATTEMPTS: Final[int] = 100

# Auto-reshuffle when the board has no legal move
MAX_SHUFFLE_ATTEMPTS = _env_int("RUNEBOARD_MAX_SHUFFLE_ATTEMPTS", 10, minimum=1)

# HTTP session store
SESSION_TTL_SEC = _env_int("RUNEBOARD_SESSION_TTL_SEC", 1800, minimum=1)
SESSION_MAX = _env_int("RUNEBOARD_SESSION_MAX", 256, minimum=1)
