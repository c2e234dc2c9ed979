"""Value objects returned by the resolution rules.

These hold references to live Tile objects of the grid they were computed
from, so they are plain dataclasses rather than pydantic models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..models import Grid, PowerUp, Tile


@dataclass(frozen=True)
class PowerUpSpawn:
    """A power-up to be born at ``(row, col)`` by the current match."""
    row: int
    col: int
    type: PowerUp


@dataclass
class ClusterShape:
    """Bounding-box geometry of one match cluster."""
    width: int
    height: int
    is_line: bool
    anchor: Tile


@dataclass
class MatchResult:
    """Outcome of :func:`runeboard.rules.matching.find_matches`.

    ``matches`` is the full destroy set, anchor tiles of new power-ups
    included. ``cleared`` drops the anchors, which survive as the new
    power-up tiles.
    """
    matches: list[Tile] = field(default_factory=list)
    score: int = 0
    new_power_ups: list[PowerUpSpawn] = field(default_factory=list)

    @property
    def cleared(self) -> list[Tile]:
        anchors = {(p.row, p.col) for p in self.new_power_ups}
        return [t for t in self.matches if (t.row, t.col) not in anchors]

    def __bool__(self) -> bool:
        return bool(self.matches)


@dataclass
class ExplosionResult:
    tiles: list[Tile] = field(default_factory=list)
    score: int = 0


@dataclass
class MatchHandlingResult:
    grid: Grid
    score_bonus: int = 0
    cleared: list[Tile] = field(default_factory=list)


@dataclass
class GravityResult:
    grid: Grid
    collected_count: int = 0
    collected_at: list[tuple[int, int]] = field(default_factory=list)
    spawned_potions: int = 0


@dataclass
class ColorBombResult:
    grid: Grid
    score: int = 0
    count: int = 0
