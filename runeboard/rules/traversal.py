"""Breadth-first traversal shared by cluster grouping and explosion propagation."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Hashable, Iterable
from typing import TypeVar

from ..board_manager import BoardManager
from ..models import Grid, Tile

T = TypeVar("T")


def breadth_first(
    seeds: Iterable[T],
    expand: Callable[[T], Iterable[T]],
    key: Callable[[T], Hashable],
    visited: set | None = None,
) -> list[T]:
    """Return every item reachable from ``seeds`` in visiting order.

    Each key is visited at most once, which bounds the walk on a finite
    board. ``expand`` is only called for items that were actually visited.
    Passing ``visited`` lets several walks share one exclusion set.
    """
    seen = visited if visited is not None else set()
    order: list[T] = []
    queue = deque(seeds)
    while queue:
        item = queue.popleft()
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        order.append(item)
        for nxt in expand(item):
            if key(nxt) not in seen:
                queue.append(nxt)
    return order


def tile_key(tile: Tile) -> str:
    return tile.id


def connected_component(
    grid: Grid,
    start: Tile,
    accept: Callable[[Tile, Tile], bool],
    visited: set | None = None,
) -> list[Tile]:
    """4-connected component around ``start``.

    ``accept(current, neighbour)`` decides whether the walk may step from
    ``current`` onto ``neighbour``.
    """
    def expand(tile: Tile) -> list[Tile]:
        return [
            n for n in BoardManager.orthogonal_neighbors(grid, tile)
            if accept(tile, n)
        ]

    return breadth_first([start], expand, tile_key, visited)
