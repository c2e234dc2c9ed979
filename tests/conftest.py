"""
Shared pytest fixtures for runeboard tests.

Boards are written as eight strings of eight characters:

    F W N L V   colored runes        P   potion
    *           consumed (WILD)      .   permanent hole
    S           stone (health 2)     -   filler

Filler cells follow ``FILLER[(row + 2 * col) % 4]``, a pattern with no run
of three in any row or column and no FIRE, so a test only has to spell out
the cells it cares about.
"""

import os
import random
import sys
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

# Ensure runeboard package is importable without installation
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from runeboard.config import BOARD_SIZE, STONE_HEALTH  # noqa: E402
from runeboard.models import (  # noqa: E402
    Grid,
    ObstacleType,
    RuneType,
    Tile,
)

LETTERS: Dict[str, RuneType] = {
    "F": RuneType.FIRE,
    "W": RuneType.WATER,
    "N": RuneType.NATURE,
    "L": RuneType.LIGHT,
    "V": RuneType.VOID,
    "P": RuneType.POTION,
    "*": RuneType.WILD,
}

FILLER = ("W", "N", "L", "V")


def filler_letter(row: int, col: int) -> str:
    return FILLER[(row + 2 * col) % 4]


def build_grid(rows: Optional[Sequence[str]] = None) -> Grid:
    """Build a grid from letter rows; missing rows are all filler."""
    rows = list(rows or [])
    rows += ["-" * BOARD_SIZE] * (BOARD_SIZE - len(rows))
    assert len(rows) == BOARD_SIZE

    grid: Grid = []
    for r, line in enumerate(rows):
        line = line.ljust(BOARD_SIZE, "-")
        assert len(line) == BOARD_SIZE, line
        row: List[Tile] = []
        for c, char in enumerate(line):
            if char == "-":
                char = filler_letter(r, c)
            tile = Tile(id=f"t{r}{c}", type=RuneType.VOID, row=r, col=c)
            if char == ".":
                tile.is_empty = True
            elif char == "S":
                tile.obstacle = ObstacleType.STONE
                tile.obstacle_health = STONE_HEALTH
            else:
                tile.type = LETTERS[char]
            row.append(tile)
        grid.append(row)
    return grid


def set_tile(grid: Grid, row: int, col: int, /, **fields) -> Tile:
    """Change fields of one tile in place and return it."""
    tile = grid[row][col]
    for name, value in fields.items():
        setattr(tile, name, value)
    return tile


def letters(grid: Grid) -> List[str]:
    """Inverse of build_grid (filler cells come back as their letters)."""
    symbols = {v: k for k, v in LETTERS.items()}
    out = []
    for line in grid:
        chars = []
        for tile in line:
            if tile.is_empty:
                chars.append(".")
            elif tile.obstacle == ObstacleType.STONE:
                chars.append("S")
            else:
                chars.append(symbols[tile.type])
        out.append("".join(chars))
    return out


def positions(tiles) -> List[Tuple[int, int]]:
    return [(t.row, t.col) for t in tiles]


def statuses(grid: Grid) -> set:
    return {t.status for line in grid for t in line}


# Row 0 of the only playable line on an otherwise empty board, no legal move
NO_MOVES_ROWS = ["FWNLVFWN"] + ["." * BOARD_SIZE] * (BOARD_SIZE - 1)

# Same shape with exactly one legal swap: (0,2) <-> (0,3)
ONE_MOVE_ROWS = ["FFWFNLVN"] + ["." * BOARD_SIZE] * (BOARD_SIZE - 1)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def filler_grid() -> Grid:
    return build_grid()
