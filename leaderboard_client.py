"""
Leaderboard client — score submission, ranked lists, player stats and country
detection against the leaderboard service.

Network trouble never escapes this module: every call returns a result object
with an ``error`` string instead, and ranked lists fall back to the last good
copy cached in the local store, flagged ``stale``.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from constants import GLOBAL_LEADERBOARD_LIMIT, LEADERBOARD_CATEGORIES, PLAYER_RANK_LOOKUP_LIMIT, UNKNOWN_COUNTRY
from local_store import LocalStore
from save_service import PlayerIdentity
from score_service import is_valid_category
from service_client import ServiceError, build_http_client, request_json

COUNTRY_LOOKUP_URL = os.environ.get("FUSION_COUNTRY_LOOKUP_URL", "https://ipapi.co/json/")


@dataclass
class SubmitResult:
    category: str
    success: bool = False
    rank: Optional[int] = None
    score: Optional[int] = None
    error: Optional[str] = None


@dataclass
class LeaderboardResult:
    category: str
    entries: List[Dict[str, Any]] = field(default_factory=list)
    player_entry: Optional[Dict[str, Any]] = None
    stale: bool = False
    fetched_at: Optional[float] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def player_in_top(self) -> bool:
        if self.player_entry is None:
            return False
        name = self.player_entry.get("player_name")
        return any(e.get("player_name") == name for e in self.entries)


@dataclass
class PlayerStatsResult:
    stats: List[Dict[str, Any]] = field(default_factory=list)
    overall: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


def dedupe_entries(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep the first row seen per player_name; rows arrive best-rank first."""
    seen = set()
    unique: List[Dict[str, Any]] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        name = row.get("player_name")
        if name in seen:
            continue
        seen.add(name)
        unique.append(row)
    return unique


class LeaderboardClient:
    def __init__(self, store: LocalStore, http: Optional[httpx.Client] = None) -> None:
        self.store = store
        self.http = http if http is not None else build_http_client()

    # ── Submission ────────────────────────────────────────────────────────────

    def submit(self, category: str, score: int, identity: PlayerIdentity) -> SubmitResult:
        if not is_valid_category(category):
            return SubmitResult(category=category, error=f"invalid category: {category}")
        payload = {
            "playerName": identity.player_name,
            "score": int(score),
            "category": category,
            "deviceId": identity.device_id,
            "country": identity.country,
        }
        try:
            body = request_json(self.http, "POST", "/submit", json_body=payload)
        except ServiceError as exc:
            logging.warning("Score submission for %s failed: %s", category, exc)
            return SubmitResult(category=category, error=str(exc))

        rank = body.get("rank")
        return SubmitResult(
            category=category,
            success=True,
            rank=int(rank) if isinstance(rank, (int, float)) else None,
            score=body.get("score", score),
        )

    # ── Ranked lists ──────────────────────────────────────────────────────────

    def _cache(self) -> Dict[str, Any]:
        cache = self.store.get_json("global_leaderboards", {})
        return cache if isinstance(cache, dict) else {}

    def _write_cache(self, result: LeaderboardResult) -> None:
        cache = self._cache()
        cache[result.category] = {
            "entries": result.entries,
            "playerEntry": result.player_entry,
            "fetchedAt": result.fetched_at,
        }
        self.store.set_json("global_leaderboards", cache)

    def cached(self, category: str) -> Optional[LeaderboardResult]:
        entry = self._cache().get(category)
        if not isinstance(entry, dict) or not isinstance(entry.get("entries"), list):
            return None
        return LeaderboardResult(
            category=category,
            entries=entry["entries"],
            player_entry=entry.get("playerEntry"),
            stale=True,
            fetched_at=entry.get("fetchedAt"),
        )

    def fetch_top(
        self,
        category: str,
        limit: int = GLOBAL_LEADERBOARD_LIMIT,
        requesting_player: Optional[str] = None,
    ) -> LeaderboardResult:
        params: Dict[str, Any] = {"category": category, "limit": limit}
        if requesting_player:
            params["playerName"] = requesting_player
        try:
            body = request_json(self.http, "GET", "/leaderboard", params=params)
            rows = body.get("leaderboard")
            if not isinstance(rows, list):
                raise ServiceError("invalid response")
        except ServiceError as exc:
            logging.warning("Leaderboard fetch for %s failed: %s", category, exc)
            fallback = self.cached(category)
            if fallback is None:
                return LeaderboardResult(category=category, error=str(exc))
            fallback.error = str(exc)
            return fallback

        unique = dedupe_entries(rows)
        player_entry = None
        if requesting_player:
            player_entry = next((r for r in unique if r.get("player_name") == requesting_player), None)
        result = LeaderboardResult(
            category=category,
            entries=unique[:limit],
            player_entry=player_entry,
            fetched_at=time.time(),
        )
        self._write_cache(result)
        return result

    def fetch_all(self, requesting_player: Optional[str] = None) -> Dict[str, LeaderboardResult]:
        return {c: self.fetch_top(c, requesting_player=requesting_player) for c in LEADERBOARD_CATEGORIES}

    def fetch_player_rank(self, category: str, player_name: str) -> Optional[Dict[str, Any]]:
        """The player's own row (rank, score, submitted_at), or None when unranked or offline."""
        params = {"category": category, "limit": PLAYER_RANK_LOOKUP_LIMIT, "playerName": player_name}
        try:
            body = request_json(self.http, "GET", "/leaderboard", params=params)
        except ServiceError as exc:
            logging.warning("Player rank lookup for %s failed: %s", category, exc)
            return None
        rows = body.get("leaderboard") if isinstance(body.get("leaderboard"), list) else []
        return next((r for r in rows if isinstance(r, dict) and r.get("player_name") == player_name), None)

    # ── Stats / identity ──────────────────────────────────────────────────────

    def player_stats(self, player_name: str) -> PlayerStatsResult:
        try:
            body = request_json(self.http, "GET", "/player-stats", params={"playerName": player_name})
        except ServiceError as exc:
            logging.warning("Player stats fetch failed: %s", exc)
            return PlayerStatsResult(error=str(exc))
        stats = body.get("stats") if isinstance(body.get("stats"), list) else []
        overall = body.get("overall") if isinstance(body.get("overall"), dict) else {}
        return PlayerStatsResult(stats=stats, overall=overall)

    def detect_country(self, lookup_url: str = COUNTRY_LOOKUP_URL) -> str:
        """Country code for this player; looked up once, then read from the store."""
        known = self.store.get("country")
        if known and known != UNKNOWN_COUNTRY:
            return known
        try:
            resp = self.http.get(lookup_url)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logging.info("Country detection failed, using default: %s", exc)
            return UNKNOWN_COUNTRY
        code = data.get("country_code") if isinstance(data, dict) else None
        if not isinstance(code, str) or not code.strip():
            return UNKNOWN_COUNTRY
        code = code.strip().upper()
        self.store.set("country", code)
        return code
