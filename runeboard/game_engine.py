"""
Rune board resolution engine.

``GameEngine`` is the entry point callers use: it exposes the individual
board operations (detect, clear, gravity, reset, shuffle, feasibility,
manual colour-bomb) as static methods over a caller-owned ``Grid``, and
:meth:`GameEngine.resolve_cascade` chains them into the full
match -> clear -> gravity loop that follows a player move.

Every operation is synchronous and leaves the grid in a consistent state
when it returns, so a host may stop between any two calls (e.g. when the
player leaves mid-cascade) without cleanup.

Randomness (fresh tile colours, shuffle order, potion rolls, wild bomb
targets) is always drawn from the ``random.Random`` passed in, so a seeded
generator reproduces a whole game.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field

from .board_manager import BoardManager, resolve_rng
from .config import MAX_CASCADE_ITERATIONS
from .errors import InvalidMoveError
from .metrics import POTIONS_COLLECTED, POWER_UPS_CREATED, record_cascade
from .models import Grid, PowerUp, RuneType, Tile
from .rules import (
    ColorBombResult,
    GravityResult,
    MatchHandlingResult,
    MatchResult,
    PowerUpSpawn,
)
from .rules import clearing, explosions, feasibility, gravity, matching
from .rules.gravity import CollectedCallback

logger = logging.getLogger(__name__)


@dataclass
class CascadeStep:
    """One iteration of the resolution loop."""
    iteration: int
    combo: int
    matched: int = 0
    match_score: int = 0
    score_gain: int = 0
    obstacle_bonus: int = 0
    new_power_ups: list[PowerUpSpawn] = field(default_factory=list)
    activated: list[tuple[int, int, PowerUp]] = field(default_factory=list)
    collected: list[tuple[int, int]] = field(default_factory=list)


@dataclass
class CascadeResult:
    grid: Grid
    score: int = 0
    steps: list[CascadeStep] = field(default_factory=list)
    hit_ceiling: bool = False

    @property
    def iterations(self) -> int:
        return len(self.steps)

    @property
    def collected_count(self) -> int:
        return sum(len(s.collected) for s in self.steps)

    @property
    def max_combo(self) -> int:
        return max((s.combo for s in self.steps if s.matched), default=0)

    @property
    def tiles_cleared(self) -> int:
        return sum(s.matched for s in self.steps)


def combo_multiplier(combo: int) -> int:
    """Score multiplier for the ``combo``-th matching iteration of a move.

    The first match scores x1; from the second on the multiplier jumps by
    one extra step (x3, x4, ...).
    """
    return combo + (1 if combo > 1 else 0)


class GameEngine:
    """Board operations and the cascade loop.

    All methods are static; the engine keeps no state between calls. Grids
    passed to the mutating operations are changed in place and returned.
    """

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @staticmethod
    def create_board(
        layout: list[str] | None = None, rng: random.Random | None = None
    ) -> Grid:
        return BoardManager.create_board(layout, rng)

    # ------------------------------------------------------------------
    # Single-step operations
    # ------------------------------------------------------------------

    @staticmethod
    def find_matches(grid: Grid, rng: random.Random | None = None) -> MatchResult:
        BoardManager.validate_grid(grid)
        return matching.find_matches(grid, rng)

    @staticmethod
    def handle_matches(
        grid: Grid,
        matches: list[Tile],
        new_power_ups: list[PowerUpSpawn],
        rng: random.Random | None = None,
    ) -> MatchHandlingResult:
        BoardManager.validate_grid(grid)
        return clearing.handle_matches(grid, matches, new_power_ups, rng)

    @staticmethod
    def apply_gravity(
        grid: Grid,
        on_collected: CollectedCallback | None = None,
        should_spawn_potion: bool = False,
        rng: random.Random | None = None,
    ) -> GravityResult:
        BoardManager.validate_grid(grid)
        return gravity.apply_gravity(grid, on_collected, should_spawn_potion, rng)

    @staticmethod
    def reset_status(grid: Grid) -> Grid:
        return gravity.reset_status(grid)

    @staticmethod
    def shuffle_board(grid: Grid, rng: random.Random | None = None) -> Grid:
        BoardManager.validate_grid(grid)
        return feasibility.shuffle_board(grid, rng)

    @staticmethod
    def has_possible_moves(grid: Grid) -> bool:
        BoardManager.validate_grid(grid)
        return feasibility.has_possible_moves(grid)

    @staticmethod
    def find_possible_moves(grid: Grid) -> list[tuple[tuple[int, int], tuple[int, int]]]:
        BoardManager.validate_grid(grid)
        return feasibility.find_possible_moves(grid)

    @staticmethod
    def trigger_color_bomb(
        grid: Grid,
        bomb: Tile,
        target_type: RuneType,
        rng: random.Random | None = None,
    ) -> ColorBombResult:
        BoardManager.validate_grid(grid)
        return explosions.trigger_color_bomb(grid, bomb, target_type, rng)

    # ------------------------------------------------------------------
    # Swaps
    # ------------------------------------------------------------------

    @staticmethod
    def validate_swap(grid: Grid, r1: int, c1: int, r2: int, c2: int) -> None:
        """Raise :class:`InvalidMoveError` unless the two cells may be swapped.

        Checks bounds, orthogonal adjacency, holes, stones and chains.
        Whether the swap produces a match is not checked here.
        """
        context = {"from": f"{r1},{c1}", "to": f"{r2},{c2}"}
        if not (
            BoardManager.is_valid_position(r1, c1)
            and BoardManager.is_valid_position(r2, c2)
        ):
            raise InvalidMoveError("Swap leaves the board", reason="out_of_bounds", context=context)
        if abs(r1 - r2) + abs(c1 - c2) != 1:
            raise InvalidMoveError("Tiles are not adjacent", reason="not_adjacent", context=context)
        for tile in (grid[r1][c1], grid[r2][c2]):
            if tile.is_empty:
                raise InvalidMoveError("Cannot swap an empty cell", reason="empty", context=context)
            if not BoardManager.is_swappable(tile):
                reason = tile.obstacle.value.lower()
                raise InvalidMoveError(
                    f"Cannot swap a tile under {tile.obstacle.value}",
                    reason=reason,
                    context=context,
                )

    @staticmethod
    def is_color_bomb_swap(a: Tile, b: Tile) -> bool:
        """True when a swap should detonate a colour bomb instead of matching."""
        if a.power_up == PowerUp.COLOR_BOMB:
            partner = b
        elif b.power_up == PowerUp.COLOR_BOMB:
            partner = a
        else:
            return False
        return partner.type not in (RuneType.WILD, RuneType.POTION)

    # ------------------------------------------------------------------
    # Cascade
    # ------------------------------------------------------------------

    @staticmethod
    def resolve_cascade(
        grid: Grid,
        rng: random.Random | None = None,
        potion_floor: int = 0,
        on_collected: CollectedCallback | None = None,
        max_iterations: int = MAX_CASCADE_ITERATIONS,
        on_step: Callable[[CascadeStep], None] | None = None,
    ) -> CascadeResult:
        """Resolve matches, gravity and collections until the board settles.

        Each iteration detects matches, clears them (placing new power-ups and
        damaging obstacles), then always applies gravity so potions sitting on
        a floor are collected even without a match. The loop continues while
        an iteration matched or collected something, up to ``max_iterations``.

        Args:
            grid: Board to resolve; mutated in place.
            rng: Random source for refills and shuffles.
            potion_floor: Fresh potions may spawn while fewer than this many
                are on the board (0 disables spawning).
            on_collected: Forwarded to gravity for every collected potion.
            max_iterations: Hard ceiling on loop iterations.
            on_step: Called after every iteration, e.g. for animation pacing.

        Returns:
            The settled grid, the total score and the per-iteration steps.
        """
        BoardManager.validate_grid(grid)
        rng = resolve_rng(rng)
        result = CascadeResult(grid=grid)
        combo = 1

        for iteration in range(1, max_iterations + 1):
            step = CascadeStep(iteration=iteration, combo=combo)
            found = matching.find_matches(grid, rng)

            if found.matches:
                step.activated = [
                    (t.row, t.col, t.power_up)
                    for t in found.matches
                    if t.power_up != PowerUp.NONE
                ]
                handled = clearing.handle_matches(
                    grid, found.matches, found.new_power_ups, rng
                )
                step.matched = len(handled.cleared)
                step.match_score = found.score
                step.score_gain = int(found.score * 2 * combo_multiplier(combo))
                step.obstacle_bonus = handled.score_bonus
                step.new_power_ups = list(found.new_power_ups)
                result.score += step.score_gain + step.obstacle_bonus
                for spawn in found.new_power_ups:
                    POWER_UPS_CREATED.labels(spawn.type.value).inc()

            should_spawn = (
                potion_floor > 0 and BoardManager.count_potions(grid) < potion_floor
            )
            settled = gravity.apply_gravity(grid, on_collected, should_spawn, rng)
            step.collected = list(settled.collected_at)
            if settled.collected_count:
                POTIONS_COLLECTED.inc(settled.collected_count)

            gravity.reset_status(grid)
            result.steps.append(step)
            logger.debug(
                "cascade step %d: combo=%d matched=%d gain=%d bonus=%d collected=%d",
                iteration,
                combo,
                step.matched,
                step.score_gain,
                step.obstacle_bonus,
                len(step.collected),
            )
            if on_step is not None:
                on_step(step)

            if not found.matches and not settled.collected_count:
                break
            if found.matches:
                combo += 1
        else:
            result.hit_ceiling = True
            logger.warning(
                "Cascade stopped after %d iterations without settling: %s",
                max_iterations,
                BoardManager.summarize_board(grid),
            )

        record_cascade(result.iterations, result.tiles_cleared, result.hit_ceiling)
        return result
