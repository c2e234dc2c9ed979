"""Gravity, refill and potion collection.

Each column is split into segments: maximal vertical runs of free cells
bounded by holes, stones or the board edge. Holes and stones never move.
Inside a segment the surviving tiles keep their order and settle onto the
segment floor, a potion landing on that floor is collected, and whatever
space is left at the top of the segment is refilled with fresh tiles.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable

from ..board_manager import BoardManager, resolve_rng
from ..config import BOARD_SIZE, POTION_SPAWN_CHANCE
from ..models import Grid, ObstacleType, RuneType, Tile, TileStatus
from .results import GravityResult

logger = logging.getLogger(__name__)

CollectedCallback = Callable[[int, int], None]


def column_segments(grid: Grid, col: int) -> list[list[int]]:
    """Rows of each free segment in ``col``, top to bottom within a segment."""
    segments: list[list[int]] = []
    current: list[int] = []
    for r in range(BOARD_SIZE):
        tile = grid[r][col]
        if tile.is_empty or tile.obstacle == ObstacleType.STONE:
            if current:
                segments.append(current)
            current = []
        else:
            current.append(r)
    if current:
        segments.append(current)
    return segments


def apply_gravity(
    grid: Grid,
    on_collected: CollectedCallback | None = None,
    should_spawn_potion: bool = False,
    rng: random.Random | None = None,
    spawn_chance: float = POTION_SPAWN_CHANCE,
) -> GravityResult:
    """Compact every column, collect potions and refill. Mutates ``grid`` in place.

    Args:
        grid: Board after matches have been marked MATCHED.
        on_collected: Called with ``(row, col)`` of every collected potion.
        should_spawn_potion: Allow fresh potions in this pass, at most one
            per column and each gated by a ``spawn_chance`` roll.
        rng: Source for fresh tile colors and the spawn roll.

    Returns:
        The same grid with the collection count and positions.
    """
    rng = resolve_rng(rng)
    result = GravityResult(grid=grid)

    for c in range(BOARD_SIZE):
        spawned_in_column = 0
        for rows in column_segments(grid, c):
            survivors = [
                grid[r][c] for r in rows if grid[r][c].status != TileStatus.MATCHED
            ]
            floor = rows[-1]
            idx = len(survivors) - 1

            for r in reversed(rows):
                placed: Tile | None = None
                while idx >= 0:
                    tile = survivors[idx]
                    idx -= 1
                    if tile.type == RuneType.POTION and r == floor:
                        result.collected_count += 1
                        result.collected_at.append((r, c))
                        logger.debug("Potion collected at %d,%d", r, c)
                        if on_collected is not None:
                            on_collected(r, c)
                        continue
                    placed = tile
                    break

                if placed is not None:
                    placed.row = r
                    placed.col = c
                    placed.status = TileStatus.DROPPING
                    grid[r][c] = placed
                    continue

                rune_type = None
                if (
                    should_spawn_potion
                    and spawned_in_column == 0
                    and rng.random() < spawn_chance
                ):
                    rune_type = RuneType.POTION
                    spawned_in_column += 1
                    result.spawned_potions += 1
                grid[r][c] = BoardManager.make_tile(r, c, rng, rune_type)

    return result


def reset_status(grid: Grid) -> Grid:
    """Clear every transient status back to NORMAL. Mutates ``grid`` in place."""
    for tile in BoardManager.iter_tiles(grid):
        tile.status = TileStatus.NORMAL
    return grid
