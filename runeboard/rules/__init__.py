"""Board resolution rules.

Leaf-first: matching -> explosions -> obstacles -> clearing -> gravity,
plus feasibility for the idle-time legal-move check.
"""

from .clearing import handle_matches
from .explosions import collect_explosions, trigger_color_bomb
from .feasibility import find_possible_moves, has_possible_moves, shuffle_board
from .gravity import apply_gravity, reset_status
from .matching import find_matches, scan_runs
from .obstacles import damage_obstacles
from .results import (
    ColorBombResult,
    ExplosionResult,
    GravityResult,
    MatchHandlingResult,
    MatchResult,
    PowerUpSpawn,
)

__all__ = [
    "ColorBombResult",
    "ExplosionResult",
    "GravityResult",
    "MatchHandlingResult",
    "MatchResult",
    "PowerUpSpawn",
    "apply_gravity",
    "collect_explosions",
    "damage_obstacles",
    "find_matches",
    "find_possible_moves",
    "handle_matches",
    "has_possible_moves",
    "reset_status",
    "scan_runs",
    "shuffle_board",
    "trigger_color_bomb",
]
