"""Board-level helpers for the rune board engine.

Construction from layout descriptors, structural validation, coordinate
queries and the tile predicates shared by the resolution rules. Nothing here
resolves matches; see :mod:`runeboard.rules` for that.
"""
from __future__ import annotations

import random
from collections import Counter
from collections.abc import Iterator

from .config import BOARD_SIZE, OVERLAY_HEALTH, STONE_HEALTH
from .errors import InvalidLayoutError, InvalidStateError
from .models import (
    COLOR_TYPES,
    Grid,
    ObstacleType,
    PowerUp,
    RuneType,
    Tile,
    TileStatus,
)

__all__ = ["BoardManager", "resolve_rng"]

LAYOUT_CHARS = frozenset("#.SICP")
FULL_ROW = "#" * BOARD_SIZE

ORTHOGONAL_DELTAS = ((-1, 0), (1, 0), (0, -1), (0, 1))

_default_rng = random.Random()


def resolve_rng(rng: random.Random | None) -> random.Random:
    """Return ``rng`` or the shared process-level fallback."""
    return rng if rng is not None else _default_rng


class BoardManager:
    """Helper for board-level operations.

    Mostly side-effect-free static helpers. The exceptions are
    :meth:`swap_tiles`, which mutates the grid it is given, and
    :meth:`create_board`, which builds a new one.
    """

    @staticmethod
    def new_tile_id(rng: random.Random) -> str:
        return f"{rng.getrandbits(48):012x}"

    @staticmethod
    def random_color(rng: random.Random) -> RuneType:
        return rng.choice(COLOR_TYPES)

    @staticmethod
    def make_tile(
        row: int,
        col: int,
        rng: random.Random,
        rune_type: RuneType | None = None,
        status: TileStatus = TileStatus.NEW,
    ) -> Tile:
        """Build a fresh, unobstructed tile at ``(row, col)``."""
        return Tile(
            id=BoardManager.new_tile_id(rng),
            type=rune_type if rune_type is not None else BoardManager.random_color(rng),
            status=status,
            power_up=PowerUp.NONE,
            obstacle=ObstacleType.NONE,
            obstacle_health=0,
            is_empty=False,
            row=row,
            col=col,
        )

    @staticmethod
    def validate_layout(layout: list[str]) -> None:
        """Raise :class:`InvalidLayoutError` unless ``layout`` is BOARD_SIZE x BOARD_SIZE."""
        if len(layout) != BOARD_SIZE:
            raise InvalidLayoutError(
                f"Layout must have {BOARD_SIZE} rows",
                context={"rows": len(layout)},
            )
        for r, line in enumerate(layout):
            if len(line) != BOARD_SIZE:
                raise InvalidLayoutError(
                    f"Layout rows must have {BOARD_SIZE} characters",
                    row=r,
                    context={"length": len(line)},
                )
            unknown = set(line) - LAYOUT_CHARS
            if unknown:
                raise InvalidLayoutError(
                    "Unknown layout characters",
                    row=r,
                    context={"chars": "".join(sorted(unknown))},
                )

    @staticmethod
    def create_board(
        layout: list[str] | None = None, rng: random.Random | None = None
    ) -> Grid:
        """Build a grid from a layout descriptor.

        Characters: ``#`` random tile, ``.`` empty hole, ``S`` stone
        (health 2), ``I`` ice overlay, ``C`` chains overlay, ``P`` potion.
        Holes and stones carry a placeholder VOID type that is never read.
        """
        rng = resolve_rng(rng)
        if layout is None:
            layout = [FULL_ROW] * BOARD_SIZE
        BoardManager.validate_layout(layout)

        grid: Grid = []
        for r, line in enumerate(layout):
            row: list[Tile] = []
            for c, char in enumerate(line):
                rune_type = BoardManager.random_color(rng)
                obstacle = ObstacleType.NONE
                health = 0
                is_empty = False

                if char == ".":
                    is_empty = True
                    rune_type = RuneType.VOID
                elif char == "S":
                    obstacle = ObstacleType.STONE
                    health = STONE_HEALTH
                    rune_type = RuneType.VOID
                elif char == "I":
                    obstacle = ObstacleType.ICE
                    health = OVERLAY_HEALTH
                elif char == "C":
                    obstacle = ObstacleType.CHAINS
                    health = OVERLAY_HEALTH
                elif char == "P":
                    rune_type = RuneType.POTION

                row.append(
                    Tile(
                        id=BoardManager.new_tile_id(rng),
                        type=rune_type,
                        status=TileStatus.NORMAL,
                        power_up=PowerUp.NONE,
                        obstacle=obstacle,
                        obstacle_health=health,
                        is_empty=is_empty,
                        row=r,
                        col=c,
                    )
                )
            grid.append(row)
        return grid

    @staticmethod
    def to_layout(grid: Grid) -> list[str]:
        """Project a grid back onto its layout descriptor.

        Colors are not part of the descriptor, and a damaged stone is written
        as a fresh ``S``.
        """
        rows = []
        for line in grid:
            chars = []
            for tile in line:
                if tile.is_empty:
                    chars.append(".")
                elif tile.obstacle == ObstacleType.STONE:
                    chars.append("S")
                elif tile.obstacle == ObstacleType.ICE:
                    chars.append("I")
                elif tile.obstacle == ObstacleType.CHAINS:
                    chars.append("C")
                elif tile.type == RuneType.POTION:
                    chars.append("P")
                else:
                    chars.append("#")
            rows.append("".join(chars))
        return rows

    @staticmethod
    def validate_grid(grid: Grid) -> None:
        """Fail fast on a structurally malformed grid."""
        if not isinstance(grid, list) or len(grid) != BOARD_SIZE:
            raise InvalidStateError(
                f"Grid must have {BOARD_SIZE} rows",
                context={"rows": len(grid) if isinstance(grid, list) else None},
            )
        seen: dict[str, tuple[int, int]] = {}
        for r, line in enumerate(grid):
            if not isinstance(line, list) or len(line) != BOARD_SIZE:
                raise InvalidStateError(
                    f"Grid rows must have {BOARD_SIZE} cells", context={"row": r}
                )
            for c, tile in enumerate(line):
                if not isinstance(tile, Tile):
                    raise InvalidStateError(
                        "Grid cell is not a Tile", context={"row": r, "col": c}
                    )
                if tile.row != r or tile.col != c:
                    raise InvalidStateError(
                        "Tile coordinates out of sync with grid position",
                        context={"row": r, "col": c, "tile": tile.to_key()},
                    )
                first = seen.setdefault(tile.id, (r, c))
                if first != (r, c):
                    raise InvalidStateError(
                        "Duplicate tile id",
                        context={"id": tile.id, "first": list(first), "row": r, "col": c},
                    )

    @staticmethod
    def is_valid_position(row: int, col: int) -> bool:
        return 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE

    @staticmethod
    def orthogonal_neighbors(grid: Grid, tile: Tile) -> list[Tile]:
        """Return the up/down/left/right neighbours of ``tile`` that lie on the board."""
        result = []
        for dr, dc in ORTHOGONAL_DELTAS:
            r, c = tile.row + dr, tile.col + dc
            if BoardManager.is_valid_position(r, c):
                result.append(grid[r][c])
        return result

    @staticmethod
    def iter_tiles(grid: Grid) -> Iterator[Tile]:
        for line in grid:
            yield from line

    @staticmethod
    def count_potions(grid: Grid) -> int:
        return sum(
            1
            for tile in BoardManager.iter_tiles(grid)
            if not tile.is_empty and tile.type == RuneType.POTION
        )

    # ------------------------------------------------------------------
    # Tile predicates
    # ------------------------------------------------------------------

    @staticmethod
    def is_matchable(tile: Tile) -> bool:
        """True if ``tile`` can take part in a color run."""
        return (
            not tile.is_empty
            and tile.obstacle != ObstacleType.STONE
            and tile.status != TileStatus.MATCHED
            and tile.type in COLOR_TYPES
        )

    @staticmethod
    def is_swappable(tile: Tile) -> bool:
        return not tile.is_empty and tile.obstacle not in (
            ObstacleType.STONE,
            ObstacleType.CHAINS,
        )

    @staticmethod
    def is_shufflable(tile: Tile) -> bool:
        """True for plain tiles whose type/power-up may be redistributed."""
        return (
            not tile.is_empty
            and tile.obstacle == ObstacleType.NONE
            and tile.status != TileStatus.MATCHED
            and tile.type != RuneType.POTION
        )

    @staticmethod
    def is_blast_target(tile: Tile) -> bool:
        """True if an area effect may consume ``tile``."""
        return (
            not tile.is_empty
            and tile.status != TileStatus.MATCHED
            and tile.obstacle != ObstacleType.STONE
            and tile.type != RuneType.POTION
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    @staticmethod
    def swap_tiles(grid: Grid, r1: int, c1: int, r2: int, c2: int) -> None:
        """Exchange two whole tile records and fix their coordinates."""
        a = grid[r1][c1]
        b = grid[r2][c2]
        grid[r1][c1] = b
        grid[r2][c2] = a
        b.row, b.col = r1, c1
        a.row, a.col = r2, c2

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @staticmethod
    def summarize_board(grid: Grid) -> dict[str, int]:
        """Counts of the board's structural contents, for logs and soak output."""
        counts: Counter[str] = Counter()
        for tile in BoardManager.iter_tiles(grid):
            if tile.is_empty:
                counts["empty"] += 1
            elif tile.obstacle == ObstacleType.STONE:
                counts["stone"] += 1
            else:
                counts[tile.type.value.lower()] += 1
                if tile.obstacle != ObstacleType.NONE:
                    counts[tile.obstacle.value.lower()] += 1
                if tile.power_up != PowerUp.NONE:
                    counts["power_ups"] += 1
        return dict(counts)

    @staticmethod
    def render(grid: Grid) -> str:
        """Compact text rendering, one character per cell."""
        symbols = {
            RuneType.FIRE: "F",
            RuneType.WATER: "W",
            RuneType.NATURE: "N",
            RuneType.LIGHT: "L",
            RuneType.VOID: "V",
            RuneType.WILD: "*",
            RuneType.POTION: "P",
        }
        lines = []
        for line in grid:
            chars = []
            for tile in line:
                if tile.is_empty:
                    chars.append(".")
                elif tile.obstacle == ObstacleType.STONE:
                    chars.append("S")
                else:
                    chars.append(symbols[tile.type])
            lines.append("".join(chars))
        return "\n".join(lines)
