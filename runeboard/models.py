"""
Pydantic Models for the rune board
Field aliases follow the camelCase shape used by the game client
(isEmpty, powerUp, obstacleHealth, ...).
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum

from .config import BOARD_SIZE


class RuneType(str, Enum):
    """Tile type enumeration"""
    FIRE = "FIRE"
    WATER = "WATER"
    NATURE = "NATURE"
    LIGHT = "LIGHT"
    VOID = "VOID"
    WILD = "WILD"  # consumed, awaiting removal
    POTION = "POTION"  # objective item, collected at the bottom


# Types that take part in color matching and random refills
COLOR_TYPES = (
    RuneType.FIRE,
    RuneType.WATER,
    RuneType.NATURE,
    RuneType.LIGHT,
    RuneType.VOID,
)


class TileStatus(str, Enum):
    """Per-step presentation marker"""
    NORMAL = "NORMAL"
    MATCHED = "MATCHED"
    DROPPING = "DROPPING"
    NEW = "NEW"


class PowerUp(str, Enum):
    """Power-up carried by a tile"""
    NONE = "NONE"
    HORIZONTAL = "HORIZONTAL"
    VERTICAL = "VERTICAL"
    COLOR_BOMB = "COLOR_BOMB"
    NOVA = "NOVA"


class ObstacleType(str, Enum):
    """Obstacle enumeration"""
    NONE = "NONE"
    ICE = "ICE"  # overlay, breaks when the tile beneath is matched
    STONE = "STONE"  # blocker, breaks after adjacent matches
    CHAINS = "CHAINS"  # overlay, prevents swapping


class LevelObjective(str, Enum):
    """Level goal"""
    SCORE = "SCORE"
    COLLECT_POTIONS = "COLLECT_POTIONS"


class BoosterType(str, Enum):
    """In-game boosters a session can apply"""
    SHUFFLE = "shuffle"
    COLOR_BOMB = "bomb"
    EXTRA_MOVES = "moves_5"


class SessionEventType(str, Enum):
    """Events emitted by a game session for presentation layers"""
    POTION_COLLECTED = "potion_collected"
    POWER_UP_CREATED = "power_up_created"
    POWER_UP_ACTIVATED = "power_up_activated"
    COMBO = "combo"
    SHUFFLED = "shuffled"
    COLOR_BOMB_SWAP = "color_bomb_swap"


class Tile(BaseModel):
    """A single board cell.

    Every grid position always holds exactly one Tile; permanent holes are
    tiles with ``is_empty`` set.
    """
    id: str
    type: RuneType
    status: TileStatus = TileStatus.NORMAL
    power_up: PowerUp = Field(PowerUp.NONE, alias="powerUp")
    obstacle: ObstacleType = ObstacleType.NONE
    obstacle_health: int = Field(0, alias="obstacleHealth", ge=0)
    is_empty: bool = Field(False, alias="isEmpty")
    row: int = Field(ge=0, lt=BOARD_SIZE)
    col: int = Field(ge=0, lt=BOARD_SIZE)

    class Config:
        populate_by_name = True

    def to_key(self) -> str:
        """Convert position to string key"""
        return f"{self.row},{self.col}"


Grid = List[List[Tile]]


class Position(BaseModel):
    """Board coordinate"""
    row: int = Field(ge=0, lt=BOARD_SIZE)
    col: int = Field(ge=0, lt=BOARD_SIZE)

    class Config:
        frozen = True


class LevelConfig(BaseModel):
    """Level definition consumed by a game session.

    ``layout`` is the persisted board descriptor: BOARD_SIZE strings of
    BOARD_SIZE characters ('#' tile, '.' hole, 'S' stone, 'I' ice,
    'C' chains, 'P' potion). ``None`` means a full board.
    """
    id: int = 1
    name: str = "Level 1"
    moves: int = Field(20, ge=0)
    target_score: int = Field(3000, alias="targetScore", ge=0)
    layout: Optional[List[str]] = None
    objective: LevelObjective = LevelObjective.SCORE
    objective_target: int = Field(0, alias="objectiveTarget", ge=0)

    class Config:
        populate_by_name = True


class LevelResult(BaseModel):
    """Final outcome of a level"""
    won: bool
    score: int
    stars: int = Field(ge=0, le=3)
    moves_left: int = Field(alias="movesLeft")
    potions_collected: int = Field(0, alias="potionsCollected")

    class Config:
        populate_by_name = True


class SessionEvent(BaseModel):
    """Something a presentation layer may want to animate or play a sound for"""
    type: SessionEventType
    row: Optional[int] = None
    col: Optional[int] = None
    power_up: Optional[PowerUp] = Field(None, alias="powerUp")
    value: int = 0

    class Config:
        populate_by_name = True
