"""Apply a detected match to the board."""

from __future__ import annotations

import random

from ..models import Grid, RuneType, Tile, TileStatus
from .obstacles import damage_obstacles
from .results import MatchHandlingResult, PowerUpSpawn


def handle_matches(
    grid: Grid,
    matches: list[Tile],
    new_power_ups: list[PowerUpSpawn],
    rng: random.Random | None = None,
) -> MatchHandlingResult:
    """Destroy ``matches``, place ``new_power_ups`` and damage obstacles.

    Mutates ``grid`` in place. Destroyed tiles become MATCHED/WILD and are
    swept by the next gravity pass. A cell named by a new power-up keeps its
    tile and color, gains the power-up and is marked NEW; it is not treated
    as destroyed for obstacle damage.
    """
    anchors = {(p.row, p.col) for p in new_power_ups}
    cleared: list[Tile] = []

    for match in matches:
        if (match.row, match.col) in anchors:
            continue
        tile = grid[match.row][match.col]
        tile.status = TileStatus.MATCHED
        tile.type = RuneType.WILD
        cleared.append(tile)

    for spawn in new_power_ups:
        tile = grid[spawn.row][spawn.col]
        tile.status = TileStatus.NEW
        tile.power_up = spawn.type

    score_bonus = damage_obstacles(grid, cleared, rng)
    return MatchHandlingResult(grid=grid, score_bonus=score_bonus, cleared=cleared)
