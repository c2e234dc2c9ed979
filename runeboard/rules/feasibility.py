"""Legal-move detection and reshuffling."""

from __future__ import annotations

import logging
import random
from collections.abc import Iterator

from ..board_manager import BoardManager, resolve_rng
from ..models import Grid, TileStatus
from .matching import scan_runs

logger = logging.getLogger(__name__)

Swap = tuple[tuple[int, int], tuple[int, int]]


def _candidate_swaps(grid: Grid) -> Iterator[Swap]:
    size = len(grid)
    for r in range(size):
        for c in range(size):
            for r2, c2 in ((r, c + 1), (r + 1, c)):
                if not BoardManager.is_valid_position(r2, c2):
                    continue
                if BoardManager.is_swappable(grid[r][c]) and BoardManager.is_swappable(grid[r2][c2]):
                    yield (r, c), (r2, c2)


def _swap_makes_run(grid: Grid, swap: Swap) -> bool:
    (r1, c1), (r2, c2) = swap
    a = grid[r1][c1]
    b = grid[r2][c2]
    a.type, b.type = b.type, a.type
    try:
        return bool(scan_runs(grid))
    finally:
        a.type, b.type = b.type, a.type


def iter_possible_moves(grid: Grid) -> Iterator[Swap]:
    """Yield every right/down swap that would produce at least one run.

    Only tile types are exchanged during the trial swap and they are always
    restored, so the grid is unchanged once iteration stops.
    """
    for swap in _candidate_swaps(grid):
        if _swap_makes_run(grid, swap):
            yield swap


def has_possible_moves(grid: Grid) -> bool:
    return next(iter_possible_moves(grid), None) is not None


def find_possible_moves(grid: Grid) -> list[Swap]:
    return list(iter_possible_moves(grid))


def shuffle_board(grid: Grid, rng: random.Random | None = None) -> Grid:
    """Redistribute plain tiles' types and power-ups over their own cells.

    Holes, stones, overlay tiles and potions stay exactly where they are.
    Reassigned cells get fresh ids and are marked NEW. Mutates ``grid``
    in place.
    """
    rng = resolve_rng(rng)
    slots = [t for t in BoardManager.iter_tiles(grid) if BoardManager.is_shufflable(t)]
    contents = [(t.type, t.power_up) for t in slots]
    rng.shuffle(contents)

    for tile, (rune_type, power_up) in zip(slots, contents):
        tile.id = BoardManager.new_tile_id(rng)
        tile.type = rune_type
        tile.power_up = power_up
        tile.status = TileStatus.NEW

    logger.debug("Shuffled %d tiles", len(slots))
    return grid
