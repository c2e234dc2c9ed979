"""Chained power-up explosions.

A destroyed tile that carries a power-up detonates before it is removed,
and whatever its blast reaches may carry further power-ups. The chain is a
breadth-first walk keyed by tile id, so every tile is scored and detonated
at most once no matter how the blasts overlap.
"""

from __future__ import annotations

import logging
import random

from ..board_manager import BoardManager, resolve_rng
from ..config import (
    BOARD_SIZE,
    COLOR_BOMB_SWAP_BONUS,
    POWER_UP_ACTIVATION_BONUS,
    TILE_SCORE,
)
from ..models import Grid, ObstacleType, PowerUp, RuneType, Tile, TileStatus
from .obstacles import damage_obstacles
from .results import ColorBombResult, ExplosionResult
from .traversal import breadth_first, tile_key

logger = logging.getLogger(__name__)

NOVA_RADIUS = 2


def color_bomb_target(tile: Tile, rng: random.Random) -> RuneType:
    """Color a detonating bomb clears; a consumed (WILD) bomb picks one at random."""
    if tile.type == RuneType.WILD:
        return BoardManager.random_color(rng)
    return tile.type


def blast_area(grid: Grid, tile: Tile, rng: random.Random) -> list[Tile]:
    """Cells reached by ``tile``'s power-up, before target filtering."""
    if tile.power_up == PowerUp.HORIZONTAL:
        return list(grid[tile.row])
    if tile.power_up == PowerUp.VERTICAL:
        return [grid[r][tile.col] for r in range(BOARD_SIZE)]
    if tile.power_up == PowerUp.COLOR_BOMB:
        target = color_bomb_target(tile, rng)
        return [t for t in BoardManager.iter_tiles(grid) if t.type == target]
    if tile.power_up == PowerUp.NOVA:
        return [
            grid[r][c]
            for r in range(tile.row - NOVA_RADIUS, tile.row + NOVA_RADIUS + 1)
            for c in range(tile.col - NOVA_RADIUS, tile.col + NOVA_RADIUS + 1)
            if BoardManager.is_valid_position(r, c)
        ]
    return []


def collect_explosions(
    grid: Grid,
    seeds: list[Tile],
    rng: random.Random | None = None,
    visited: set | None = None,
) -> ExplosionResult:
    """Expand ``seeds`` through every power-up they set off.

    Returns the full destroy set in visiting order and its score: a flat
    TILE_SCORE per tile plus POWER_UP_ACTIVATION_BONUS per detonated power-up.
    Potions, stones, holes and already-matched tiles are never pulled in by a
    blast.
    """
    rng = resolve_rng(rng)

    def expand(tile: Tile) -> list[Tile]:
        if tile.power_up == PowerUp.NONE:
            return []
        return [t for t in blast_area(grid, tile, rng) if BoardManager.is_blast_target(t)]

    tiles = breadth_first(seeds, expand, tile_key, visited)

    score = 0
    for tile in tiles:
        score += TILE_SCORE
        if tile.power_up != PowerUp.NONE:
            score += POWER_UP_ACTIVATION_BONUS
            logger.debug("%s detonated at %s", tile.power_up.value, tile.to_key())

    return ExplosionResult(tiles=tiles, score=score)


def trigger_color_bomb(
    grid: Grid,
    bomb: Tile,
    target_type: RuneType,
    rng: random.Random | None = None,
) -> ColorBombResult:
    """Player-initiated bomb swap: clear the bomb and every tile of ``target_type``.

    Mutates ``grid`` in place. Potions and stones are never cleared; overlay
    tiles of the target color are cleared and lose their overlay, and stones
    next to cleared tiles take damage as they would from a match.
    """
    rng = resolve_rng(rng)
    score = 0
    count = 0
    cleared: list[Tile] = []

    bomb_tile = grid[bomb.row][bomb.col]
    if bomb_tile.status != TileStatus.MATCHED:
        bomb_tile.status = TileStatus.MATCHED
        bomb_tile.type = RuneType.WILD
        bomb_tile.power_up = PowerUp.NONE
        score += COLOR_BOMB_SWAP_BONUS
        cleared.append(bomb_tile)

    if target_type in (RuneType.WILD, RuneType.POTION):
        logger.debug("Color bomb swap with %s clears nothing else", target_type.value)
    else:
        for tile in BoardManager.iter_tiles(grid):
            if (
                not tile.is_empty
                and tile.obstacle != ObstacleType.STONE
                and tile.type == target_type
                and tile.status != TileStatus.MATCHED
            ):
                tile.status = TileStatus.MATCHED
                tile.type = RuneType.WILD
                score += TILE_SCORE
                count += 1
                cleared.append(tile)

    score += damage_obstacles(grid, cleared, rng)
    return ColorBombResult(grid=grid, score=score, count=count)
