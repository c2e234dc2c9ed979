"""
Runeboard Service - FastAPI Application
HTTP host adapter around the board engine and game sessions
"""

import logging
import os
import random
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config import SESSION_MAX, SESSION_TTL_SEC
from .errors import (
    InvalidLayoutError,
    InvalidMoveError,
    InvalidStateError,
    SessionNotFoundError,
)
from .game_engine import GameEngine
from .metrics import SESSIONS_ACTIVE_EVICTIONS
from .models import BoosterType, LevelConfig, Position, PowerUp, SessionEvent, Tile
from .session import GameSession, LoggingEffects, SwapResult

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Runeboard Service",
    description="Tile-matching board resolution and level sessions",
    version="1.0.0"
)

cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Session store
@dataclass
class StoredSession:
    session: GameSession
    last_access: float


_session_lock = threading.Lock()
sessions: Dict[str, StoredSession] = {}


def _prune_sessions(now: float) -> None:
    """Drop expired sessions, then the least recently used beyond SESSION_MAX."""
    expired = [
        key
        for key, entry in sessions.items()
        if now - entry.last_access > SESSION_TTL_SEC
    ]
    for key in expired:
        entry = sessions.pop(key)
        entry.session.close()
        SESSIONS_ACTIVE_EVICTIONS.labels("ttl").inc()

    if len(sessions) <= SESSION_MAX:
        return

    entries_by_age = sorted(sessions.items(), key=lambda kv: kv[1].last_access)
    overflow = len(sessions) - SESSION_MAX
    for key, entry in entries_by_age[:overflow]:
        sessions.pop(key, None)
        entry.session.close()
        SESSIONS_ACTIVE_EVICTIONS.labels("capacity").inc()


def _put_session(session: GameSession) -> str:
    now = time.time()
    session_id = uuid.uuid4().hex
    with _session_lock:
        sessions[session_id] = StoredSession(
            session=session, last_access=now
        )
        _prune_sessions(now)
    return session_id


def _get_session(session_id: str) -> GameSession:
    now = time.time()
    with _session_lock:
        _prune_sessions(now)
        entry = sessions.get(session_id)
        if entry is None:
            raise SessionNotFoundError(
                "Unknown session", context={"session_id": session_id}
            )
        entry.last_access = now
        return entry.session


def _not_found(e: SessionNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=e.to_dict())


class PowerUpSpawnModel(BaseModel):
    row: int
    col: int
    type: PowerUp


class AnalyzeRequest(BaseModel):
    """Request model for stateless board analysis"""
    grid: List[List[Tile]]
    seed: Optional[int] = Field(None, ge=0, le=0x7FFFFFFF)


class AnalyzeResponse(BaseModel):
    """Response model for stateless board analysis"""
    matches: List[Position]
    score: int
    new_power_ups: List[PowerUpSpawnModel] = Field(alias="newPowerUps")
    has_possible_moves: bool = Field(alias="hasPossibleMoves")

    class Config:
        populate_by_name = True


class CreateSessionRequest(BaseModel):
    level: LevelConfig = Field(default_factory=LevelConfig)
    seed: Optional[int] = Field(None, ge=0, le=0x7FFFFFFF)


class SwapRequest(BaseModel):
    from_pos: Position = Field(alias="from")
    to: Position

    class Config:
        populate_by_name = True


class BoosterRequest(BaseModel):
    booster: BoosterType


def _session_view(session_id: str, session: GameSession) -> Dict[str, Any]:
    view = session.snapshot()
    view["id"] = session_id
    outcome = session.outcome()
    view["outcome"] = outcome.model_dump(by_alias=True) if outcome else None
    return view


def _move_view(
    session_id: str, session: GameSession, result: SwapResult
) -> Dict[str, Any]:
    cascade = result.cascade
    return {
        "accepted": result.accepted,
        "scoreGain": result.score_gain,
        "colorBomb": result.color_bomb,
        "iterations": cascade.iterations if cascade else 0,
        "maxCombo": cascade.max_combo if cascade else 0,
        "events": [
            e.model_dump(by_alias=True, mode="json") for e in result.events
        ],
        "session": _session_view(session_id, session),
    }


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "service": "Runeboard Service",
        "status": "running",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    """Health check for container orchestration"""
    return {"status": "healthy"}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@app.post("/boards/analyze", response_model=AnalyzeResponse)
async def analyze_board(request: AnalyzeRequest):
    """
    Detect matches and legal moves on a posted grid without changing it.

    The grid is the same camelCase tile matrix returned by the session
    endpoints.
    """
    try:
        rng = random.Random(request.seed)
        found = GameEngine.find_matches(request.grid, rng)
        return AnalyzeResponse(
            matches=[Position(row=t.row, col=t.col) for t in found.matches],
            score=found.score,
            newPowerUps=[
                PowerUpSpawnModel(row=p.row, col=p.col, type=p.type)
                for p in found.new_power_ups
            ],
            hasPossibleMoves=GameEngine.has_possible_moves(request.grid),
        )
    except InvalidStateError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())


@app.post("/sessions")
async def create_session(request: CreateSessionRequest):
    """Start a level and return its initial board."""
    try:
        session = GameSession(
            request.level, seed=request.seed, effects=LoggingEffects()
        )
    except (InvalidLayoutError, InvalidStateError) as e:
        logger.warning(f"Rejected level: {e}")
        raise HTTPException(status_code=422, detail=e.to_dict())
    session.ensure_playable()
    session_id = _put_session(session)
    logger.info(f"Created session {session_id} for level {request.level.id}")
    return _session_view(session_id, session)


@app.get("/sessions/{session_id}")
async def get_session(session_id: str):
    try:
        session = _get_session(session_id)
    except SessionNotFoundError as e:
        raise _not_found(e)
    return _session_view(session_id, session)


@app.post("/sessions/{session_id}/swap")
async def swap(session_id: str, request: SwapRequest):
    """
    Swap two adjacent tiles and resolve the full cascade.

    A swap that matches nothing is reverted and reported with
    ``accepted: false``; illegal swaps return 400.
    """
    try:
        session = _get_session(session_id)
        result = session.swap(
            request.from_pos.row,
            request.from_pos.col,
            request.to.row,
            request.to.col,
        )
        if session.outcome() is None:
            session.ensure_playable()
        return _move_view(session_id, session, result)
    except SessionNotFoundError as e:
        raise _not_found(e)
    except InvalidMoveError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=e.to_dict())


@app.post("/sessions/{session_id}/booster")
async def use_booster(session_id: str, request: BoosterRequest):
    try:
        session = _get_session(session_id)
        result = session.use_booster(request.booster)
        if session.outcome() is None:
            session.ensure_playable()
        return _move_view(session_id, session, result)
    except SessionNotFoundError as e:
        raise _not_found(e)
    except InvalidStateError as e:
        raise HTTPException(status_code=409, detail=e.to_dict())


@app.get("/sessions/{session_id}/hint")
async def hint(session_id: str):
    try:
        session = _get_session(session_id)
    except SessionNotFoundError as e:
        raise _not_found(e)
    move = session.hint()
    if move is None:
        return {"hint": None}
    (r1, c1), (r2, c2) = move
    return {"hint": {"from": {"row": r1, "col": c1}, "to": {"row": r2, "col": c2}}}


@app.delete("/sessions/{session_id}")
async def close_session(session_id: str):
    """Close a session; later calls with this id return 404."""
    with _session_lock:
        entry = sessions.pop(session_id, None)
    if entry is None:
        raise HTTPException(
            status_code=404,
            detail=SessionNotFoundError(
                "Unknown session", context={"session_id": session_id}
            ).to_dict(),
        )
    entry.session.close()
    return {"status": "closed", "id": session_id}


def _events_summary(events: List[SessionEvent]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for event in events:
        counts[event.type.value] = counts.get(event.type.value, 0) + 1
    return counts


@app.get("/sessions/{session_id}/events")
async def session_events(session_id: str):
    """All events emitted by the session so far, with per-type counts."""
    try:
        session = _get_session(session_id)
    except SessionNotFoundError as e:
        raise _not_found(e)
    return {
        "events": [e.model_dump(by_alias=True, mode="json") for e in session.events],
        "counts": _events_summary(session.events),
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("RUNEBOARD_PORT", "8001"))
    uvicorn.run(app, host="0.0.0.0", port=port)
