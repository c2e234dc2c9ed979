"""Prometheus metrics for the runeboard engine and service.

Counters and histograms are module-level so the engine, the session layer
and the HTTP adapter can record telemetry without passing metric objects
around. Labels are kept small: power-up type, swap outcome.
"""

from __future__ import annotations

from typing import Final

from prometheus_client import Counter, Histogram


CASCADE_ITERATIONS: Final[Histogram] = Histogram(
    "runeboard_cascade_iterations",
    "Number of match/gravity iterations needed to settle one move.",
    buckets=(1, 2, 3, 4, 5, 6, 8, 10, 15),
)

CASCADE_CEILING_HITS: Final[Counter] = Counter(
    "runeboard_cascade_ceiling_hits_total",
    "Cascades stopped by the iteration ceiling instead of settling.",
)

TILES_CLEARED: Final[Counter] = Counter(
    "runeboard_tiles_cleared_total",
    "Total tiles destroyed by matches and explosions.",
)

POWER_UPS_CREATED: Final[Counter] = Counter(
    "runeboard_power_ups_created_total",
    "Power-ups born from match clusters, labeled by power_up type.",
    labelnames=("power_up",),
)

POTIONS_COLLECTED: Final[Counter] = Counter(
    "runeboard_potions_collected_total",
    "Objective items collected at the bottom of a column segment.",
)

AUTO_SHUFFLES: Final[Counter] = Counter(
    "runeboard_auto_shuffles_total",
    "Boards reshuffled because no legal move was left.",
)

SWAPS: Final[Counter] = Counter(
    "runeboard_swaps_total",
    "Player swaps, labeled by outcome (matched, reverted, color_bomb, rejected).",
    labelnames=("outcome",),
)

SESSIONS_ACTIVE_EVICTIONS: Final[Counter] = Counter(
    "runeboard_session_evictions_total",
    "Sessions evicted from the in-memory store (ttl or capacity).",
    labelnames=("reason",),
)


def record_cascade(iterations: int, tiles_cleared: int, hit_ceiling: bool) -> None:
    """Record the shape of one settled (or capped) cascade."""
    CASCADE_ITERATIONS.observe(iterations)
    if tiles_cleared:
        TILES_CLEARED.inc(tiles_cleared)
    if hit_ceiling:
        CASCADE_CEILING_HITS.inc()
