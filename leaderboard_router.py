"""
Leaderboard router — score submission and ranked reads.

Routes:
  /submit         — record one score (every submission is kept)
  /leaderboard    — ranked rows for a category, plus the requesting player's best row
  /player-stats   — per-category best/count/rank for a player and global totals
"""

import logging
import math
import sqlite3
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from constants import DEFAULT_LEADERBOARD_CATEGORY, SERVICE_LEADERBOARD_DEFAULT_LIMIT, UNKNOWN_COUNTRY
from db import get_db
import leaderboard_repository
from score_service import is_valid_category

MAX_LEADERBOARD_LIMIT = 1000

router = APIRouter()


# ── Request models ─────────────────────────────────────────────────────────────

class SubmitScoreRequest(BaseModel):
    playerName: Optional[str] = None
    score: Optional[Any] = None
    category: Optional[str] = None
    deviceId: Optional[str] = None
    country: Optional[str] = None


def _row(row: sqlite3.Row) -> Dict[str, Any]:
    return {k: row[k] for k in row.keys()}


def _parse_limit(raw: Optional[str]) -> int:
    try:
        limit = int(raw) if raw is not None else SERVICE_LEADERBOARD_DEFAULT_LIMIT
    except ValueError:
        return SERVICE_LEADERBOARD_DEFAULT_LIMIT
    if limit <= 0:
        return SERVICE_LEADERBOARD_DEFAULT_LIMIT
    return min(limit, MAX_LEADERBOARD_LIMIT)


# ── Routes ─────────────────────────────────────────────────────────────────────

@router.post("/submit")
def submit_score(req: SubmitScoreRequest, conn: sqlite3.Connection = Depends(get_db)):
    player_name = (req.playerName or "").strip()
    if not player_name or req.score is None or not req.category:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if not is_valid_category(req.category):
        raise HTTPException(status_code=400, detail=f"Invalid category: {req.category}")
    if (
        isinstance(req.score, bool)
        or not isinstance(req.score, (int, float))
        or not math.isfinite(req.score)
        or req.score != int(req.score)
    ):
        raise HTTPException(status_code=400, detail="Score must be an integer")
    score = int(req.score)
    if score < 0:
        raise HTTPException(status_code=400, detail="Score must be non-negative")

    leaderboard_repository.insert_score(
        conn,
        player_name=player_name,
        score=score,
        category=req.category,
        device_id=(req.deviceId or "unknown"),
        country=(req.country or UNKNOWN_COUNTRY),
        submitted_at=time.time(),
    )
    conn.commit()
    rank = leaderboard_repository.player_rank(conn, req.category, player_name)
    logging.info("Score %s submitted for %s in %s (rank %s)", score, player_name, req.category, rank)
    return {"success": True, "rank": rank, "score": score}


@router.get("/leaderboard")
def get_leaderboard(
    category: str = DEFAULT_LEADERBOARD_CATEGORY,
    limit: Optional[str] = None,
    playerName: Optional[str] = None,
    conn: sqlite3.Connection = Depends(get_db),
):
    if not is_valid_category(category):
        raise HTTPException(status_code=400, detail=f"Invalid category: {category}")

    rows = [_row(r) for r in leaderboard_repository.top_entries(conn, category, _parse_limit(limit))]
    if playerName and not any(r["player_name"] == playerName for r in rows):
        own = leaderboard_repository.best_entry_for_player(conn, category, playerName)
        if own is not None:
            rows.append(_row(own))

    return {"success": True, "category": category, "leaderboard": rows}


@router.get("/player-stats")
def get_player_stats(playerName: Optional[str] = None, conn: sqlite3.Connection = Depends(get_db)):
    if not playerName:
        raise HTTPException(status_code=400, detail="Missing playerName parameter")
    stats = [_row(r) for r in leaderboard_repository.player_category_stats(conn, playerName)]
    overall = _row(leaderboard_repository.overall_stats(conn))
    return {"success": True, "stats": stats, "overall": overall}
