"""
Score model — the totalScore formula, the per-category scores submitted to the
leaderboard, and the local top-N board kept per category.
"""

import math
import time
from typing import Any, Dict, List, Optional

from constants import LEADERBOARD_CATEGORIES, LOCAL_LEADERBOARD_SIZE
from progression_service import ProgressionState
from reactor_service import ReactorState


def compute_score(progression: ProgressionState, reactor: ReactorState, catalog_size: int) -> int:
    """Floor is applied once, after every term has been summed."""
    completion = (progression.elements_found / catalog_size * 100) if catalog_size > 0 else 0.0
    score = (
        progression.elements_found * 100
        + progression.merge_count * 50
        + (reactor.level ** 2) * 100
        + math.log10(max(0.0, progression.fusion_energy) + 1) * 100
        + completion * 50
    )
    return int(math.floor(score))


def category_scores(
    progression: ProgressionState,
    reactor: ReactorState,
    catalog_size: int,
    highest_energy: float = 0.0,
) -> Dict[str, int]:
    return {
        "totalScore": compute_score(progression, reactor, catalog_size),
        "elementsFound": progression.elements_found,
        "topFusions": progression.merge_count,
        "highestEnergy": int(math.floor(max(highest_energy, progression.fusion_energy))),
        "reactorLevel": reactor.level,
    }


def is_valid_category(category: str) -> bool:
    return category in LEADERBOARD_CATEGORIES


# ── Local board ───────────────────────────────────────────────────────────────
# Shape: {category: [{"playerName", "score", "submittedAt", "deviceId", "country"}, ...]}
# sorted by score descending, one row per player.

def empty_local_boards() -> Dict[str, List[Dict[str, Any]]]:
    return {category: [] for category in LEADERBOARD_CATEGORIES}


def add_local_score(
    boards: Dict[str, List[Dict[str, Any]]],
    category: str,
    player_name: str,
    score: int,
    device_id: str = "",
    country: str = "",
    submitted_at: Optional[float] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """Return a copy of ``boards`` with the score recorded; a player's best score wins."""
    if not is_valid_category(category):
        raise ValueError(f"Unknown leaderboard category: {category}")
    out = {k: list(v) for k, v in boards.items()}
    rows = out.setdefault(category, [])

    existing = next((r for r in rows if r.get("playerName") == player_name), None)
    if existing is not None:
        if int(existing.get("score", 0)) >= score:
            return out
        rows.remove(existing)

    rows.append(
        {
            "playerName": player_name,
            "score": int(score),
            "submittedAt": time.time() if submitted_at is None else submitted_at,
            "deviceId": device_id,
            "country": country,
        }
    )
    rows.sort(key=lambda r: int(r.get("score", 0)), reverse=True)
    out[category] = rows[:LOCAL_LEADERBOARD_SIZE]
    return out


def local_rank(boards: Dict[str, List[Dict[str, Any]]], category: str, player_name: str) -> Optional[int]:
    for idx, row in enumerate(boards.get(category, [])):
        if row.get("playerName") == player_name:
            return idx + 1
    return None


def local_best(boards: Dict[str, List[Dict[str, Any]]], category: str, player_name: str) -> int:
    for row in boards.get(category, []):
        if row.get("playerName") == player_name:
            return int(row.get("score", 0))
    return 0
