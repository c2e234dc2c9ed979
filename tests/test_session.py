"""Tests for GameSession: swaps, boosters, reshuffles and level outcome."""

import random
from typing import List

import pytest

from conftest import NO_MOVES_ROWS, ONE_MOVE_ROWS, build_grid, set_tile
from runeboard.board_manager import BoardManager
from runeboard.config import MAX_SHUFFLE_ATTEMPTS, MIN_POTIONS_ON_BOARD
from runeboard.errors import InvalidMoveError, InvalidStateError
from runeboard.models import (
    BoosterType,
    LevelConfig,
    LevelObjective,
    PowerUp,
    RuneType,
    SessionEventType,
)
from runeboard.session import GameSession, LoggingEffects

# Swapping (0,2) and (0,3) lines up FIRE at (0,0)-(0,2)
MATCH_ROWS = ["FF-F"]

# Swapping (7,2) and (7,3) clears (7,0)-(7,2) and drops the potion at (6,0)
POTION_ROWS = ["", "", "", "", "", "", "P", "FF-F"]


class RecordingEffects:
    def __init__(self) -> None:
        self.played: List[str] = []

    def play_effect(self, kind: str) -> None:
        self.played.append(kind)

    def toggle_music(self) -> bool:
        return False

    def toggle_sfx(self) -> bool:
        return False


def make_session(rows=None, **level_fields) -> GameSession:
    level = LevelConfig(**level_fields)
    return GameSession(level, rng=random.Random(21), grid=build_grid(rows))


class TestSessionSetup:
    def test_default_level(self) -> None:
        session = GameSession(LevelConfig(), seed=5)
        assert session.moves_left == 20
        assert session.score == 0
        assert session.outcome() is None
        BoardManager.validate_grid(session.grid)

    def test_seed_reproducible(self) -> None:
        a = GameSession(LevelConfig(), seed=5)
        b = GameSession(LevelConfig(), seed=5)
        assert BoardManager.render(a.grid) == BoardManager.render(b.grid)

    def test_potion_level_seeds_potions(self) -> None:
        level = LevelConfig(objective=LevelObjective.COLLECT_POTIONS, objective_target=3)
        session = GameSession(level, seed=3)
        assert BoardManager.count_potions(session.grid) >= MIN_POTIONS_ON_BOARD
        assert session.potion_floor == MIN_POTIONS_ON_BOARD

    def test_score_level_has_no_potion_floor(self) -> None:
        assert make_session().potion_floor == 0


class TestSwap:
    """Tests for GameSession.swap."""

    def test_matching_swap(self) -> None:
        session = make_session(MATCH_ROWS)

        result = session.swap(0, 2, 0, 3)

        assert result.accepted
        assert not result.color_bomb
        assert session.moves_left == 19
        assert result.score_gain >= 60
        assert session.score == result.score_gain
        assert result.cascade is not None
        assert result.cascade.steps[0].score_gain == 60

    def test_non_matching_swap_reverted(self, filler_grid) -> None:
        session = GameSession(LevelConfig(), rng=random.Random(1), grid=filler_grid)
        a = filler_grid[0][0]
        b = filler_grid[0][1]

        result = session.swap(0, 0, 0, 1)

        assert not result.accepted
        assert session.moves_left == 20
        assert session.grid[0][0] is a
        assert session.grid[0][1] is b
        assert (a.row, a.col) == (0, 0)

    def test_illegal_swap_raises(self) -> None:
        session = make_session(MATCH_ROWS)
        with pytest.raises(InvalidMoveError) as exc_info:
            session.swap(0, 0, 2, 0)
        assert exc_info.value.reason == "not_adjacent"
        assert session.moves_left == 20

    def test_closed_session_rejects_moves(self) -> None:
        session = make_session(MATCH_ROWS)
        session.close()
        with pytest.raises(InvalidStateError):
            session.swap(0, 2, 0, 3)
        with pytest.raises(InvalidStateError):
            session.use_booster(BoosterType.EXTRA_MOVES)

    def test_level_over_rejects_moves(self) -> None:
        session = make_session(MATCH_ROWS, moves=1, target_score=1_000_000)
        session.swap(0, 2, 0, 3)

        assert session.outcome() is not None
        with pytest.raises(InvalidMoveError) as exc_info:
            session.swap(0, 0, 0, 1)
        assert exc_info.value.reason == "level_over"

    def test_effects_played(self) -> None:
        effects = RecordingEffects()
        level = LevelConfig()
        session = GameSession(level, rng=random.Random(2), effects=effects, grid=build_grid(MATCH_ROWS))

        session.swap(0, 2, 0, 3)

        assert effects.played[0] == "swap"
        assert effects.played[1] == "match"

    def test_logging_effects_toggles(self) -> None:
        effects = LoggingEffects()
        session = GameSession(LevelConfig(), rng=random.Random(2), effects=effects, grid=build_grid(MATCH_ROWS))

        assert effects.toggle_sfx() is False
        assert effects.toggle_music() is False
        assert session.swap(0, 2, 0, 3).accepted
        assert effects.toggle_sfx() is True

    def test_on_step_forwarded(self) -> None:
        session = make_session(MATCH_ROWS)
        steps = []
        result = session.swap(0, 2, 0, 3, on_step=steps.append)
        assert steps == result.cascade.steps


class TestColorBombSwap:
    """Swapping a color bomb with a colored tile."""

    def test_clears_partner_color(self) -> None:
        grid = build_grid()
        set_tile(grid, 1, 0, type=RuneType.FIRE, power_up=PowerUp.COLOR_BOMB)
        session = GameSession(LevelConfig(), rng=random.Random(4), grid=grid)

        result = session.swap(1, 0, 1, 1)

        assert result.accepted
        assert result.color_bomb
        assert session.moves_left == 19
        bomb_events = [e for e in result.events if e.type == SessionEventType.COLOR_BOMB_SWAP]
        assert len(bomb_events) == 1
        # filler holds VOID at (r + 2c) % 4 == 3: four cells in each odd row
        assert bomb_events[0].value == 16
        assert result.score_gain >= 200 + 16 * 10
        assert session.score == result.score_gain

    def test_bomb_with_potion_is_plain_swap(self) -> None:
        grid = build_grid()
        set_tile(grid, 1, 0, type=RuneType.FIRE, power_up=PowerUp.COLOR_BOMB)
        set_tile(grid, 1, 1, type=RuneType.POTION)
        session = GameSession(LevelConfig(), rng=random.Random(4), grid=grid)

        result = session.swap(1, 0, 1, 1)

        assert not result.accepted
        assert session.grid[1][0].power_up == PowerUp.COLOR_BOMB


class TestPotions:
    def test_potion_collected_by_swap(self) -> None:
        level = LevelConfig(objective=LevelObjective.COLLECT_POTIONS, objective_target=1)
        session = GameSession(level, rng=random.Random(6), grid=build_grid(POTION_ROWS))

        result = session.swap(7, 2, 7, 3)

        assert result.accepted
        assert session.potions_collected >= 1
        collected = [e for e in result.events if e.type == SessionEventType.POTION_COLLECTED]
        assert (collected[0].row, collected[0].col) == (7, 0)
        outcome = session.outcome()
        assert outcome is not None and outcome.won


class TestBoosters:
    """Tests for GameSession.use_booster."""

    def test_extra_moves(self) -> None:
        session = make_session()
        session.use_booster(BoosterType.EXTRA_MOVES)
        assert session.moves_left == 25

    def test_color_bomb_booster(self) -> None:
        session = make_session()

        result = session.use_booster(BoosterType.COLOR_BOMB)

        bombs = [t for t in BoardManager.iter_tiles(session.grid) if t.power_up == PowerUp.COLOR_BOMB]
        assert result.accepted
        assert len(bombs) == 1
        assert result.events[0].type == SessionEventType.POWER_UP_CREATED

    def test_shuffle_booster(self) -> None:
        session = make_session()

        result = session.use_booster(BoosterType.SHUFFLE)

        assert result.events[0].type == SessionEventType.SHUFFLED
        assert session.moves_left == 20
        BoardManager.validate_grid(session.grid)


class TestPlayability:
    def test_playable_board_not_shuffled(self) -> None:
        session = make_session(ONE_MOVE_ROWS)
        assert session.ensure_playable() == 0

    def test_dead_board_shuffled(self) -> None:
        session = make_session(NO_MOVES_ROWS)

        shuffles = session.ensure_playable()

        assert 1 <= shuffles <= MAX_SHUFFLE_ATTEMPTS
        assert all(session.grid[r][c].is_empty for r in range(1, 8) for c in range(8))

    def test_hint(self) -> None:
        assert make_session(ONE_MOVE_ROWS).hint() == ((0, 2), (0, 3))
        assert make_session(NO_MOVES_ROWS).hint() is None


class TestOutcome:
    """Tests for win/lose evaluation and stars."""

    @pytest.mark.parametrize(
        "score,stars",
        [(0, 0), (999, 0), (1000, 1), (1499, 1), (1500, 2), (2499, 2), (2500, 3), (9000, 3)],
    )
    def test_stars(self, score, stars) -> None:
        session = make_session(target_score=1000)
        assert session.stars_for(score) == stars

    def test_win_adds_move_bonus(self) -> None:
        session = make_session(target_score=100)
        session.score = 120

        outcome = session.outcome()

        assert outcome.won
        assert outcome.score == 120 + 20 * 150
        assert outcome.moves_left == 20
        assert outcome.stars == 3

    def test_win_is_at_least_one_star(self) -> None:
        level = LevelConfig(
            moves=0,
            target_score=1_000_000,
            objective=LevelObjective.COLLECT_POTIONS,
            objective_target=1,
        )
        session = GameSession(level, rng=random.Random(0), grid=build_grid())
        session.potions_collected = 1

        outcome = session.outcome()

        assert outcome.won
        assert outcome.stars == 1

    def test_loss_when_out_of_moves(self) -> None:
        session = make_session(moves=0)
        outcome = session.outcome()
        assert not outcome.won
        assert outcome.stars == 0

    def test_snapshot_shape(self) -> None:
        snap = make_session().snapshot()
        assert snap["movesLeft"] == 20
        assert snap["level"]["targetScore"] == 3000
        assert len(snap["grid"]) == 8
        assert "powerUp" in snap["grid"][0][0]
