"""Match detection and power-up classification.

Detection runs in two passes. A linear scan flags every tile that sits in
a horizontal or vertical run of three or more of the same color. The
flagged tiles are then grouped into 4-connected same-color clusters, so an
L, T or cross made of two overlapping runs is treated as one match. Each
cluster's size and bounding box decide which power-up, if any, it leaves
behind:

====================  ===================
cluster               power-up
====================  ===================
6+ tiles, any shape   NOVA
5 tiles, not a line   NOVA
5 tiles in a line     COLOR_BOMB
4 tiles in a row      VERTICAL
4 tiles in a column   HORIZONTAL
3 tiles               none
====================  ===================
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterator

from ..board_manager import BoardManager
from ..config import POWER_UP_CREATION_BONUS
from ..models import Grid, PowerUp, Tile
from .explosions import collect_explosions
from .results import ClusterShape, MatchResult, PowerUpSpawn
from .traversal import connected_component

logger = logging.getLogger(__name__)

MIN_RUN = 3


def _line_runs(line: list[Tile]) -> Iterator[list[Tile]]:
    run: list[Tile] = []
    for tile in line:
        if BoardManager.is_matchable(tile) and run and run[0].type == tile.type:
            run.append(tile)
            continue
        if len(run) >= MIN_RUN:
            yield run
        run = [tile] if BoardManager.is_matchable(tile) else []
    if len(run) >= MIN_RUN:
        yield run


def scan_runs(grid: Grid) -> list[Tile]:
    """Every tile that belongs to a row or column run of three or more.

    Rows are scanned before columns; a tile found by both appears once, at
    its first position.
    """
    found: dict[str, Tile] = {}
    lines = list(grid) + [list(column) for column in zip(*grid)]
    for line in lines:
        for run in _line_runs(line):
            for tile in run:
                found.setdefault(tile.id, tile)
    return list(found.values())


def group_clusters(grid: Grid, candidates: list[Tile]) -> list[list[Tile]]:
    """Split the flagged tiles into 4-connected same-color clusters."""
    flagged = {t.id for t in candidates}
    clustered: set[str] = set()
    clusters = []

    def accept(current: Tile, neighbor: Tile) -> bool:
        return neighbor.id in flagged and neighbor.type == current.type

    for tile in candidates:
        if tile.id in clustered:
            continue
        clusters.append(connected_component(grid, tile, accept, clustered))
    return clusters


def analyze_cluster(cluster: list[Tile]) -> ClusterShape:
    """Bounding box and anchor of a non-empty cluster.

    The anchor is the member with the most same-cluster orthogonal
    neighbours; on a tie the earliest member wins.
    """
    rows = [t.row for t in cluster]
    cols = [t.col for t in cluster]
    width = max(cols) - min(cols) + 1
    height = max(rows) - min(rows) + 1

    cells = {(t.row, t.col) for t in cluster}
    anchor = cluster[0]
    best = -1
    for tile in cluster:
        n = sum(
            (tile.row + dr, tile.col + dc) in cells
            for dr, dc in ((-1, 0), (1, 0), (0, -1), (0, 1))
        )
        if n > best:
            best = n
            anchor = tile

    return ClusterShape(
        width=width,
        height=height,
        is_line=width == 1 or height == 1,
        anchor=anchor,
    )


def classify_power_up(size: int, shape: ClusterShape) -> PowerUp:
    """Power-up left behind by a cluster of ``size`` tiles.

    Straight fours are cross-oriented: a row of four (wider than tall)
    yields a column-clearing VERTICAL, a column of four a row-clearing
    HORIZONTAL.
    """
    if size >= 6:
        return PowerUp.NOVA
    if size >= 5 and not shape.is_line:
        return PowerUp.NOVA
    if size == 5 and shape.is_line:
        return PowerUp.COLOR_BOMB
    if size == 4 and shape.is_line:
        return PowerUp.VERTICAL if shape.width > shape.height else PowerUp.HORIZONTAL
    return PowerUp.NONE


def find_matches(grid: Grid, rng: random.Random | None = None) -> MatchResult:
    """Detect matches, power-up births and the full destroy set.

    Pure with respect to ``grid``: nothing is marked or moved. The
    returned ``matches`` holds live references into ``grid``.
    """
    candidates = scan_runs(grid)
    if not candidates:
        return MatchResult()

    new_power_ups: list[PowerUpSpawn] = []
    for cluster in group_clusters(grid, candidates):
        shape = analyze_cluster(cluster)
        power_up = classify_power_up(len(cluster), shape)
        if power_up != PowerUp.NONE:
            new_power_ups.append(
                PowerUpSpawn(row=shape.anchor.row, col=shape.anchor.col, type=power_up)
            )

    explosion = collect_explosions(grid, candidates, rng)
    score = explosion.score + POWER_UP_CREATION_BONUS * len(new_power_ups)

    logger.debug(
        "find_matches: %d flagged, %d destroyed, %d power-ups",
        len(candidates),
        len(explosion.tiles),
        len(new_power_ups),
    )
    return MatchResult(matches=explosion.tiles, score=score, new_power_ups=new_power_ups)
