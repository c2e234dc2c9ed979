"""Runeboard: match-3 rune board resolution engine and level sessions."""

from .errors import (
    InvalidLayoutError,
    InvalidMoveError,
    InvalidStateError,
    RuneBoardError,
)
from .game_engine import CascadeResult, CascadeStep, GameEngine
from .models import (
    LevelConfig,
    LevelObjective,
    ObstacleType,
    PowerUp,
    RuneType,
    Tile,
    TileStatus,
)
from .session import EffectPlayer, GameSession, LoggingEffects, SwapResult

__version__ = "1.0.0"

__all__ = [
    "CascadeResult",
    "CascadeStep",
    "EffectPlayer",
    "GameEngine",
    "GameSession",
    "InvalidLayoutError",
    "InvalidMoveError",
    "InvalidStateError",
    "LevelConfig",
    "LevelObjective",
    "LoggingEffects",
    "ObstacleType",
    "PowerUp",
    "RuneBoardError",
    "RuneType",
    "SwapResult",
    "Tile",
    "TileStatus",
]
