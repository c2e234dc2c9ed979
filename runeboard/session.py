"""Game session: one level played on one board.

The session owns its grid for its whole lifetime and wraps the engine with
the level-level rules: move budget, objective tracking, swap handling
(including the manual colour-bomb swap), boosters, automatic reshuffles
and the final win/lose evaluation.

Presentation concerns stay outside. A host that animates the cascade can
pass ``on_step`` to :meth:`GameSession.swap`; sound is routed through an
optional :class:`EffectPlayer`. After :meth:`GameSession.close` every
mutating call raises, so a continuation scheduled before teardown cannot
touch the board.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

from .board_manager import BoardManager
from .config import (
    BOARD_SIZE,
    EXTRA_MOVES_BOOSTER,
    INITIAL_POTION_ATTEMPTS,
    MAX_SHUFFLE_ATTEMPTS,
    MIN_POTIONS_ON_BOARD,
    POINTS_PER_REMAINING_MOVE,
    STAR_THRESHOLDS,
)
from .errors import InvalidMoveError, InvalidStateError
from .game_engine import CascadeResult, CascadeStep, GameEngine
from .metrics import AUTO_SHUFFLES, SWAPS
from .models import (
    BoosterType,
    Grid,
    LevelConfig,
    LevelObjective,
    LevelResult,
    ObstacleType,
    PowerUp,
    RuneType,
    SessionEvent,
    SessionEventType,
    TileStatus,
)

logger = logging.getLogger(__name__)


class EffectPlayer(Protocol):
    """Sound/feedback sink owned by the application shell."""

    def play_effect(self, kind: str) -> None:
        ...

    def toggle_music(self) -> bool:
        ...

    def toggle_sfx(self) -> bool:
        ...


class LoggingEffects:
    """EffectPlayer for headless hosts: logs effects while sfx is enabled."""

    def __init__(self, music: bool = True, sfx: bool = True):
        self.music = music
        self.sfx = sfx

    def play_effect(self, kind: str) -> None:
        if self.sfx:
            logger.debug(f"effect: {kind}")

    def toggle_music(self) -> bool:
        self.music = not self.music
        return self.music

    def toggle_sfx(self) -> bool:
        self.sfx = not self.sfx
        return self.sfx


@dataclass
class SwapResult:
    """Outcome of a player swap.

    ``accepted`` is False when the swap matched nothing and was reverted;
    no move is consumed in that case.
    """
    accepted: bool
    score_gain: int = 0
    color_bomb: bool = False
    cascade: Optional[CascadeResult] = None
    events: List[SessionEvent] = field(default_factory=list)


class GameSession:
    """State of one level in progress."""

    def __init__(
        self,
        level: LevelConfig,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        effects: Optional[EffectPlayer] = None,
        grid: Optional[Grid] = None,
    ):
        self.level = level
        self.rng = rng if rng is not None else random.Random(seed)
        self.effects = effects
        self.score = 0
        self.moves_left = level.moves
        self.potions_collected = 0
        self.alive = True
        self.events: List[SessionEvent] = []

        if grid is None:
            grid = GameEngine.create_board(level.layout, self.rng)
            if level.objective == LevelObjective.COLLECT_POTIONS:
                self._seed_potions(grid)
        BoardManager.validate_grid(grid)
        self.grid: Grid = grid

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Mark the session dead; pending continuations must not mutate it."""
        self.alive = False

    def _require_alive(self) -> None:
        if not self.alive:
            raise InvalidStateError("Session is closed")

    def _play(self, kind: str) -> None:
        if self.effects is not None:
            self.effects.play_effect(kind)

    def _emit(self, event: SessionEvent, sink: List[SessionEvent]) -> None:
        self.events.append(event)
        sink.append(event)

    # ------------------------------------------------------------------
    # Objective items
    # ------------------------------------------------------------------

    @property
    def potion_floor(self) -> int:
        if self.level.objective == LevelObjective.COLLECT_POTIONS:
            return MIN_POTIONS_ON_BOARD
        return 0

    def _seed_potions(self, grid: Grid) -> None:
        """Place potions in the top half until the objective minimum is on the board."""
        placed = BoardManager.count_potions(grid)
        attempts = 0
        while placed < MIN_POTIONS_ON_BOARD and attempts < INITIAL_POTION_ATTEMPTS:
            attempts += 1
            r = self.rng.randrange(BOARD_SIZE // 2)
            c = self.rng.randrange(BOARD_SIZE)
            tile = grid[r][c]
            if (
                tile.obstacle == ObstacleType.NONE
                and not tile.is_empty
                and tile.type != RuneType.POTION
            ):
                tile.type = RuneType.POTION
                placed += 1

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def swap(
        self,
        r1: int,
        c1: int,
        r2: int,
        c2: int,
        on_step: Optional[Callable[[CascadeStep], None]] = None,
    ) -> SwapResult:
        """Swap two adjacent tiles and resolve the consequences.

        Raises:
            InvalidMoveError: the swap is illegal, or no moves are left.
            InvalidStateError: the session is closed.
        """
        self._require_alive()
        if self.outcome() is not None:
            raise InvalidMoveError("Level is over", reason="level_over")
        try:
            GameEngine.validate_swap(self.grid, r1, c1, r2, c2)
        except InvalidMoveError:
            SWAPS.labels("rejected").inc()
            raise

        a = self.grid[r1][c1]
        b = self.grid[r2][c2]
        if GameEngine.is_color_bomb_swap(a, b):
            return self._color_bomb_swap(r1, c1, r2, c2, on_step)

        self._play("swap")
        BoardManager.swap_tiles(self.grid, r1, c1, r2, c2)
        if not GameEngine.find_matches(self.grid, self.rng):
            BoardManager.swap_tiles(self.grid, r1, c1, r2, c2)
            self._play("swap")
            SWAPS.labels("reverted").inc()
            return SwapResult(accepted=False)

        self.moves_left -= 1
        SWAPS.labels("matched").inc()
        result = SwapResult(accepted=True)
        cascade = self._run_cascade(result.events, on_step)
        result.cascade = cascade
        result.score_gain = cascade.score
        return result

    def _color_bomb_swap(
        self,
        r1: int,
        c1: int,
        r2: int,
        c2: int,
        on_step: Optional[Callable[[CascadeStep], None]],
    ) -> SwapResult:
        self._play("special")
        BoardManager.swap_tiles(self.grid, r1, c1, r2, c2)
        self.moves_left -= 1
        SWAPS.labels("color_bomb").inc()

        a = self.grid[r1][c1]
        b = self.grid[r2][c2]
        bomb, partner = (a, b) if a.power_up == PowerUp.COLOR_BOMB else (b, a)
        target = partner.type

        result = SwapResult(accepted=True, color_bomb=True)
        exploded = GameEngine.trigger_color_bomb(self.grid, bomb, target, self.rng)
        self.score += exploded.score
        self._emit(
            SessionEvent(
                type=SessionEventType.COLOR_BOMB_SWAP,
                row=bomb.row,
                col=bomb.col,
                value=exploded.count,
            ),
            result.events,
        )

        should_spawn = (
            self.potion_floor > 0
            and BoardManager.count_potions(self.grid) < self.potion_floor
        )
        GameEngine.apply_gravity(
            self.grid,
            lambda r, c: self._collect(r, c, result.events),
            should_spawn,
            self.rng,
        )
        GameEngine.reset_status(self.grid)

        cascade = self._run_cascade(result.events, on_step)
        result.cascade = cascade
        result.score_gain = exploded.score + cascade.score
        return result

    def _collect(self, row: int, col: int, sink: List[SessionEvent]) -> None:
        self.potions_collected += 1
        self._play("win")
        self._emit(
            SessionEvent(type=SessionEventType.POTION_COLLECTED, row=row, col=col, value=1),
            sink,
        )

    def _run_cascade(
        self,
        sink: List[SessionEvent],
        on_step: Optional[Callable[[CascadeStep], None]] = None,
    ) -> CascadeResult:
        def observe(step: CascadeStep) -> None:
            for spawn in step.new_power_ups:
                self._emit(
                    SessionEvent(
                        type=SessionEventType.POWER_UP_CREATED,
                        row=spawn.row,
                        col=spawn.col,
                        power_up=spawn.type,
                    ),
                    sink,
                )
            for row, col, power_up in step.activated:
                self._emit(
                    SessionEvent(
                        type=SessionEventType.POWER_UP_ACTIVATED,
                        row=row,
                        col=col,
                        power_up=power_up,
                    ),
                    sink,
                )
            if step.matched:
                if step.new_power_ups:
                    self._play("special")
                elif step.combo > 1:
                    self._play("combo")
                else:
                    self._play("match")
                if step.combo > 1:
                    self._emit(
                        SessionEvent(type=SessionEventType.COMBO, value=step.combo), sink
                    )
            if on_step is not None:
                on_step(step)

        cascade = GameEngine.resolve_cascade(
            self.grid,
            self.rng,
            potion_floor=self.potion_floor,
            on_collected=lambda r, c: self._collect(r, c, sink),
            on_step=observe,
        )
        self.score += cascade.score
        return cascade

    # ------------------------------------------------------------------
    # Boosters and reshuffles
    # ------------------------------------------------------------------

    def use_booster(self, booster: BoosterType) -> SwapResult:
        """Apply a booster. Pricing and inventory belong to the caller."""
        self._require_alive()
        result = SwapResult(accepted=True)
        self._play("special")

        if booster == BoosterType.EXTRA_MOVES:
            self.moves_left += EXTRA_MOVES_BOOSTER
        elif booster == BoosterType.SHUFFLE:
            GameEngine.shuffle_board(self.grid, self.rng)
            self._emit(SessionEvent(type=SessionEventType.SHUFFLED), result.events)
            cascade = self._run_cascade(result.events)
            result.cascade = cascade
            result.score_gain = cascade.score
        elif booster == BoosterType.COLOR_BOMB:
            candidates = [
                t
                for t in BoardManager.iter_tiles(self.grid)
                if BoardManager.is_shufflable(t) and t.power_up == PowerUp.NONE
            ]
            if candidates:
                tile = self.rng.choice(candidates)
                tile.power_up = PowerUp.COLOR_BOMB
                tile.status = TileStatus.NEW
                self._emit(
                    SessionEvent(
                        type=SessionEventType.POWER_UP_CREATED,
                        row=tile.row,
                        col=tile.col,
                        power_up=PowerUp.COLOR_BOMB,
                    ),
                    result.events,
                )
            else:
                result.accepted = False
        return result

    def ensure_playable(self) -> int:
        """Reshuffle until a legal move exists; return the number of shuffles.

        Shuffles can create matches, so each one is followed by a cascade.
        Gives up after MAX_SHUFFLE_ATTEMPTS.
        """
        self._require_alive()
        shuffles = 0
        while not GameEngine.has_possible_moves(self.grid):
            if shuffles >= MAX_SHUFFLE_ATTEMPTS:
                logger.warning(
                    "No legal move after %d shuffles; board:\n%s",
                    shuffles,
                    BoardManager.render(self.grid),
                )
                break
            shuffles += 1
            AUTO_SHUFFLES.inc()
            self._play("special")
            GameEngine.shuffle_board(self.grid, self.rng)
            self._emit(SessionEvent(type=SessionEventType.SHUFFLED), [])
            self._run_cascade([])
        return shuffles

    def hint(self) -> Optional[tuple[tuple[int, int], tuple[int, int]]]:
        """First legal swap in scan order, or None."""
        moves = GameEngine.find_possible_moves(self.grid)
        return moves[0] if moves else None

    # ------------------------------------------------------------------
    # Outcome
    # ------------------------------------------------------------------

    def objective_met(self) -> bool:
        if self.level.objective == LevelObjective.COLLECT_POTIONS:
            return self.potions_collected >= self.level.objective_target
        return self.score >= self.level.target_score

    def stars_for(self, score: int) -> int:
        target = self.level.target_score
        thresholds = [math.floor(target * m) for m in STAR_THRESHOLDS]
        return sum(1 for t in thresholds if score >= t)

    def outcome(self) -> Optional[LevelResult]:
        """Win/lose result, or None while the level is still being played.

        A win adds POINTS_PER_REMAINING_MOVE for every unused move and is
        always worth at least one star.
        """
        if self.objective_met():
            final_score = self.score + self.moves_left * POINTS_PER_REMAINING_MOVE
            return LevelResult(
                won=True,
                score=final_score,
                stars=max(1, self.stars_for(final_score)),
                moves_left=self.moves_left,
                potions_collected=self.potions_collected,
            )
        if self.moves_left <= 0:
            return LevelResult(
                won=False,
                score=self.score,
                stars=0,
                moves_left=0,
                potions_collected=self.potions_collected,
            )
        return None

    def snapshot(self) -> dict:
        """JSON-ready view of the session for hosts."""
        return {
            "level": self.level.model_dump(by_alias=True, mode="json"),
            "score": self.score,
            "movesLeft": self.moves_left,
            "potionsCollected": self.potions_collected,
            "alive": self.alive,
            "grid": [
                [tile.model_dump(by_alias=True, mode="json") for tile in line]
                for line in self.grid
            ],
        }
