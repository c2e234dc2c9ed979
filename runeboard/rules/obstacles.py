"""Obstacle damage caused by destroyed tiles."""

from __future__ import annotations

import logging
import random

from ..board_manager import BoardManager, resolve_rng
from ..config import OVERLAY_BREAK_SCORE, STONE_BREAK_BONUS, STONE_HIT_SCORE
from ..models import Grid, ObstacleType, Tile, TileStatus

logger = logging.getLogger(__name__)

OVERLAYS = (ObstacleType.ICE, ObstacleType.CHAINS)


def damage_obstacles(
    grid: Grid, destroyed: list[Tile], rng: random.Random | None = None
) -> int:
    """Apply one resolution step of obstacle damage and return the bonus score.

    Mutates ``grid`` in place:

    - every STONE orthogonally next to a destroyed tile loses one health
      point, at most once per call however many destroyed tiles touch it,
      and turns into a plain tile of a random color at zero health;
    - an ICE or CHAINS overlay on a destroyed tile is removed outright.
    """
    rng = resolve_rng(rng)
    score = 0
    damaged: set[str] = set()

    for gone in destroyed:
        tile = grid[gone.row][gone.col]
        for neighbor in BoardManager.orthogonal_neighbors(grid, tile):
            if (
                neighbor.is_empty
                or neighbor.id in damaged
                or neighbor.obstacle != ObstacleType.STONE
                or neighbor.status == TileStatus.MATCHED
            ):
                continue
            damaged.add(neighbor.id)
            neighbor.obstacle_health = max(0, neighbor.obstacle_health - 1)
            neighbor.status = TileStatus.NEW
            score += STONE_HIT_SCORE

            if neighbor.obstacle_health == 0:
                neighbor.obstacle = ObstacleType.NONE
                neighbor.type = BoardManager.random_color(rng)
                score += STONE_BREAK_BONUS
                logger.debug("Stone broken at %s", neighbor.to_key())

        if tile.obstacle in OVERLAYS:
            tile.obstacle = ObstacleType.NONE
            tile.obstacle_health = 0
            score += OVERLAY_BREAK_SCORE

    return score
