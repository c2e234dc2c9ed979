#!/usr/bin/env python
"""Cascade soak harness for the runeboard engine.

Plays many seeded levels with a random legal-move policy and checks the
board invariants after every move. Intended for offline runs outside
pytest timeouts.

Checked after every move
========================
- the grid is 8x8 and every tile's row/col matches its position;
- every status is back to NORMAL;
- tile ids are unique;
- holes never move;
- unless the cascade hit its iteration ceiling, no run of three is left.

Each game record also carries the final board summary (holes, stones,
colors, overlays and power-ups).

Example usage
-------------

From the repository root::

    python scripts/run_cascade_soak.py \
        --num-games 200 \
        --seed 42 \
        --layout-file levels/stones.txt \
        --log-jsonl logs/soak/cascade.jsonl \
        --summary-json logs/soak/cascade.summary.json \
        --fail-on-anomaly
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import random
import sys
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.append(ROOT)

from runeboard.board_manager import BoardManager  # noqa: E402
from runeboard.errors import RuneBoardError  # noqa: E402
from runeboard.game_engine import GameEngine  # noqa: E402
from runeboard.models import (  # noqa: E402
    LevelConfig,
    LevelObjective,
    TileStatus,
)
from runeboard.rules import scan_runs  # noqa: E402
from runeboard.session import GameSession  # noqa: E402

logger = logging.getLogger("run_cascade_soak")


@dataclass
class GameRecord:
    index: int
    seed: int
    won: bool = False
    score: int = 0
    stars: int = 0
    moves_played: int = 0
    rejected_swaps: int = 0
    max_iterations: int = 0
    max_combo: int = 0
    ceiling_hits: int = 0
    auto_shuffles: int = 0
    potions_collected: int = 0
    final_board: Dict[str, int] = field(default_factory=dict)
    anomalies: List[str] = field(default_factory=list)
    duration_sec: float = 0.0


def _load_layout(path: Optional[str]) -> Optional[List[str]]:
    if not path:
        return None
    with open(path, "r", encoding="utf-8") as f:
        return [line.rstrip("\n") for line in f if line.strip()]


def _check_board(session: GameSession, holes: set, hit_ceiling: bool) -> List[str]:
    problems: List[str] = []
    grid = session.grid
    try:
        BoardManager.validate_grid(grid)
    except RuneBoardError as e:
        return [f"malformed grid: {e}"]

    ids = set()
    for tile in BoardManager.iter_tiles(grid):
        if tile.status != TileStatus.NORMAL:
            problems.append(f"status {tile.status.value} left at {tile.to_key()}")
        if tile.id in ids:
            problems.append(f"duplicate tile id {tile.id}")
        ids.add(tile.id)

    now_holes = {t.to_key() for t in BoardManager.iter_tiles(grid) if t.is_empty}
    if now_holes != holes:
        problems.append("holes moved")

    if not hit_ceiling and scan_runs(grid):
        problems.append("board settled with a run left")
    return problems


def play_game(index: int, seed: int, level: LevelConfig, max_moves: int) -> GameRecord:
    record = GameRecord(index=index, seed=seed)
    start = time.time()
    session = GameSession(level, seed=seed)
    rng = random.Random(seed ^ 0x5EED)
    holes = {t.to_key() for t in BoardManager.iter_tiles(session.grid) if t.is_empty}

    record.auto_shuffles += session.ensure_playable()
    while (
        session.outcome() is None
        and record.moves_played + record.rejected_swaps < max_moves
    ):
        moves = GameEngine.find_possible_moves(session.grid)
        if not moves:
            record.anomalies.append("no legal move after auto-shuffle")
            break
        (r1, c1), (r2, c2) = rng.choice(moves)
        result = session.swap(r1, c1, r2, c2)
        if not result.accepted:
            record.rejected_swaps += 1
            continue
        record.moves_played += 1
        cascade = result.cascade
        hit_ceiling = bool(cascade and cascade.hit_ceiling)
        if cascade is not None:
            record.max_iterations = max(record.max_iterations, cascade.iterations)
            record.max_combo = max(record.max_combo, cascade.max_combo)
            record.ceiling_hits += int(hit_ceiling)
        for problem in _check_board(session, holes, hit_ceiling):
            record.anomalies.append(f"move {record.moves_played}: {problem}")
        if session.outcome() is None:
            record.auto_shuffles += session.ensure_playable()

    outcome = session.outcome()
    if outcome is not None:
        record.won = outcome.won
        record.score = outcome.score
        record.stars = outcome.stars
    else:
        record.score = session.score
    record.potions_collected = session.potions_collected
    record.final_board = BoardManager.summarize_board(session.grid)
    record.duration_sec = round(time.time() - start, 4)
    session.close()
    return record


def _summarize(records: List[GameRecord]) -> Dict[str, Any]:
    n = len(records)
    return {
        "games": n,
        "wins": sum(r.won for r in records),
        "avg_score": round(sum(r.score for r in records) / n, 2) if n else 0,
        "max_iterations": max((r.max_iterations for r in records), default=0),
        "max_combo": max((r.max_combo for r in records), default=0),
        "ceiling_hits": sum(r.ceiling_hits for r in records),
        "auto_shuffles": sum(r.auto_shuffles for r in records),
        "potions_collected": sum(r.potions_collected for r in records),
        "games_with_anomalies": sum(1 for r in records if r.anomalies),
    }


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Play random seeded levels and check board invariants after every move.",
    )
    parser.add_argument(
        "--num-games",
        type=int,
        default=100,
        help="Number of games to play (default: 100).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Base seed; game i uses seed + i (default: 0).",
    )
    parser.add_argument(
        "--moves",
        type=int,
        default=20,
        help="Move budget per level (default: 20).",
    )
    parser.add_argument(
        "--target-score",
        type=int,
        default=3000,
        help="Target score per level (default: 3000).",
    )
    parser.add_argument(
        "--objective",
        choices=[o.value for o in LevelObjective],
        default=LevelObjective.SCORE.value,
        help="Level objective (default: SCORE).",
    )
    parser.add_argument(
        "--objective-target",
        type=int,
        default=5,
        help="Potions to collect for COLLECT_POTIONS levels (default: 5).",
    )
    parser.add_argument(
        "--layout-file",
        default=None,
        help="Optional file with 8 layout rows ('#', '.', 'S', 'I', 'C', 'P').",
    )
    parser.add_argument(
        "--max-moves",
        type=int,
        default=500,
        help="Safety cap on swaps attempted per game (default: 500).",
    )
    parser.add_argument(
        "--log-jsonl",
        default=None,
        help="Optional path for per-game JSONL records.",
    )
    parser.add_argument(
        "--summary-json",
        default=None,
        help="Optional path for the aggregate summary.",
    )
    parser.add_argument(
        "--fail-on-anomaly",
        action="store_true",
        help="Exit non-zero if any game recorded an invariant violation.",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    level = LevelConfig(
        id=0,
        name="soak",
        moves=args.moves,
        target_score=args.target_score,
        layout=_load_layout(args.layout_file),
        objective=LevelObjective(args.objective),
        objective_target=args.objective_target,
    )

    log_f = None
    if args.log_jsonl:
        os.makedirs(os.path.dirname(args.log_jsonl) or ".", exist_ok=True)
        log_f = open(args.log_jsonl, "w", encoding="utf-8")

    records: List[GameRecord] = []
    try:
        for i in range(args.num_games):
            rec = play_game(i, args.seed + i, level, args.max_moves)
            records.append(rec)
            if rec.anomalies:
                logger.warning(
                    "game %d (seed %d): %d anomalies, first: %s",
                    i,
                    rec.seed,
                    len(rec.anomalies),
                    rec.anomalies[0],
                )
            if log_f is not None:
                log_f.write(json.dumps(asdict(rec)) + "\n")
                log_f.flush()
    finally:
        if log_f is not None:
            log_f.close()

    summary = _summarize(records)
    print("\n=== Cascade soak summary ===")
    print(json.dumps(summary, indent=2, sort_keys=True))

    if args.summary_json:
        os.makedirs(os.path.dirname(args.summary_json) or ".", exist_ok=True)
        with open(args.summary_json, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2, sort_keys=True)

    if args.fail_on_anomaly and summary["games_with_anomalies"]:
        print(
            "Cascade soak detected invariant anomalies; "
            "exiting with non-zero status due to --fail-on-anomaly.",
            file=sys.stderr,
        )
        raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
