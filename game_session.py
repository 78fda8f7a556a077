"""
Game session — owns the one live progression/reactor/identity for a player and
serializes every mutation through a single lock.

Network calls (cloud save, leaderboard) run outside the lock; only the read of
the state they need and the write of what they bring back are taken under it,
so a slow request never blocks fusions, ticks or harvests.

SessionScheduler drives the periodic work as independent asyncio tasks:
reactor tick, local autosave, cloud sync, leaderboard refresh and tips.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from constants import (
    ANONYMOUS_PLAYER,
    AUTOSAVE_INTERVAL_S,
    CLOUD_SYNC_INTERVAL_S,
    EDUCATIONAL_TIPS,
    LEADERBOARD_CATEGORIES,
    LEADERBOARD_REFRESH_INTERVAL_S,
    PLAYER_NAME_MAX_LEN,
    PLAYER_NAME_MIN_LEN,
    REACTOR_TICK_INTERVAL_S,
    TIP_INTERVAL_S,
    UNKNOWN_COUNTRY,
)
from cloud_save_client import CloudSaveClient, CloudSaveResult
from element_catalog import ElementCatalog
from leaderboard_client import LeaderboardClient, LeaderboardResult
from local_store import LocalStore
import progression_service
from progression_service import FusionReport, PendingFusion, PlacementResult, ProgressionState
import reactor_service
from reactor_service import ReactorActionResult, ReactorState
from save_service import (
    ConflictPolicy,
    PlayerIdentity,
    Snapshot,
    deserialize,
    dumps_snapshot,
    generate_device_id,
    loads_snapshot,
    reconcile,
    serialize,
)
import score_service


def normalize_player_name(name: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Return (clean_name, error). Names are trimmed and cut to the maximum length."""
    clean = (name or "").strip()[:PLAYER_NAME_MAX_LEN]
    if len(clean) < PLAYER_NAME_MIN_LEN:
        return None, f"Name must be at least {PLAYER_NAME_MIN_LEN} characters"
    if clean == ANONYMOUS_PLAYER:
        return None, "Choose a player name before submitting"
    return clean, None


@dataclass
class SubmissionSummary:
    submitted: int = 0
    attempted: int = 0
    best_rank: Optional[int] = None
    best_category: Optional[str] = None
    offline: bool = False
    scores: Dict[str, int] = field(default_factory=dict)
    message: str = ""
    error: Optional[str] = None


class GameSession:
    def __init__(
        self,
        catalog: ElementCatalog,
        store: LocalStore,
        leaderboard: Optional[LeaderboardClient] = None,
        cloud: Optional[CloudSaveClient] = None,
        clock: Callable[[], float] = time.time,
        restore: bool = True,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.leaderboard = leaderboard
        self.cloud = cloud
        self.clock = clock
        self._lock = threading.Lock()
        self._tip_index = 0

        self.progression: ProgressionState = progression_service.new_progression()
        self.reactor: ReactorState = reactor_service.new_reactor(clock())
        self.identity = self._load_identity()
        self.last_saved_at = store.get_float("save_time", 0.0)

        if cloud is not None and not cloud.api_key:
            cloud.api_key = store.get("api_key", "") or ""

        if restore:
            self.load_local()

    # ── Identity ──────────────────────────────────────────────────────────────

    def _load_identity(self) -> PlayerIdentity:
        device_id = self.store.get("device_id")
        if not device_id:
            device_id = generate_device_id(self.clock())
            self.store.set("device_id", device_id)
        return PlayerIdentity(
            player_name=self.store.get("player_name") or ANONYMOUS_PLAYER,
            device_id=device_id,
            country=self.store.get("country") or UNKNOWN_COUNTRY,
        )

    def set_player_name(self, name: str) -> Optional[str]:
        clean, error = normalize_player_name(name)
        if error:
            return error
        with self._lock:
            self.identity = PlayerIdentity(clean, self.identity.device_id, self.identity.country)
            self.store.set("player_name", clean)
        return None

    def detect_country(self) -> str:
        if self.leaderboard is None:
            return self.identity.country
        code = self.leaderboard.detect_country()
        with self._lock:
            self.identity = PlayerIdentity(self.identity.player_name, self.identity.device_id, code)
        return code

    # ── Workspace / fusion ────────────────────────────────────────────────────

    def place(self, symbol: str, x: float, y: float) -> PlacementResult:
        with self._lock:
            result = progression_service.place_element(self.progression, symbol, x, y, self.catalog)
            self.progression = result.state
            return result

    def move(self, record_id: str, x: float, y: float) -> None:
        with self._lock:
            self.progression = progression_service.move_element(self.progression, record_id, x, y)

    def remove(self, record_id: str) -> None:
        with self._lock:
            self.progression = progression_service.remove_element(self.progression, record_id)

    def clear_workspace(self) -> None:
        with self._lock:
            self.progression = progression_service.clear_workspace(self.progression)

    def reset_game(self) -> None:
        with self._lock:
            self.progression = progression_service.new_progression()
            self.reactor = reactor_service.new_reactor(self.clock())
        self.save_local()

    def fuse(self, first_id: str, second_id: str, position: Optional[Tuple[float, float]] = None) -> FusionReport:
        with self._lock:
            report = progression_service.apply_fusion(self.progression, self.catalog, first_id, second_id, position)
            self.progression = report.state
        if report.ok:
            self.save_local()
        return report

    def begin_fusion(
        self, first_id: str, second_id: str, position: Optional[Tuple[float, float]] = None
    ) -> Tuple[Optional[PendingFusion], Optional[str]]:
        with self._lock:
            state, pending, rejection = progression_service.begin_fusion(
                self.progression, self.catalog, first_id, second_id, position
            )
            self.progression = state
        return pending, (rejection.message if rejection else None)

    def complete_fusion(self, pending: PendingFusion) -> FusionReport:
        with self._lock:
            report = progression_service.complete_fusion(self.progression, pending, self.catalog)
            self.progression = report.state
        if report.ok:
            self.save_local()
        return report

    def abort_fusion(self) -> None:
        with self._lock:
            self.progression = progression_service.abort_fusion(self.progression)

    # ── Reactor ───────────────────────────────────────────────────────────────

    def tick(self, now: Optional[float] = None) -> ReactorState:
        with self._lock:
            self.reactor = reactor_service.tick_reactor(self.reactor, self.clock() if now is None else now)
            return self.reactor

    def harvest(self) -> ReactorActionResult:
        with self._lock:
            self.reactor = reactor_service.tick_reactor(self.reactor, self.clock())
            result = reactor_service.harvest(self.reactor, self.progression)
            self.reactor, self.progression = result.reactor, result.progression
            if result.ok:
                self._track_highest_energy()
            return result

    def upgrade(self) -> ReactorActionResult:
        with self._lock:
            result = reactor_service.upgrade(self.reactor, self.progression)
            self.reactor, self.progression = result.reactor, result.progression
            return result

    # ── Scores ────────────────────────────────────────────────────────────────

    def highest_energy(self) -> float:
        return self.store.get_float("highest_energy", 0.0)

    def _track_highest_energy(self) -> None:
        if self.progression.fusion_energy > self.highest_energy():
            self.store.set("highest_energy", str(self.progression.fusion_energy))

    def score(self) -> int:
        with self._lock:
            return score_service.compute_score(self.progression, self.reactor, self.catalog.size)

    def category_scores(self) -> Dict[str, int]:
        with self._lock:
            return score_service.category_scores(
                self.progression, self.reactor, self.catalog.size, self.highest_energy()
            )

    def local_boards(self) -> Dict[str, List[Dict[str, Any]]]:
        boards = self.store.get_json("local_leaderboards")
        return boards if isinstance(boards, dict) else score_service.empty_local_boards()

    def submit_scores(self) -> SubmissionSummary:
        name = self.identity.player_name
        clean, error = normalize_player_name(name)
        if error:
            return SubmissionSummary(error=error, message=error)
        identity = PlayerIdentity(clean, self.identity.device_id, self.identity.country)
        scores = self.category_scores()

        summary = SubmissionSummary(scores=scores)
        boards = self.local_boards()
        for category, value in scores.items():
            if value <= 0:
                continue
            summary.attempted += 1
            boards = score_service.add_local_score(
                boards, category, clean, value, identity.device_id, identity.country, self.clock()
            )
            if self.leaderboard is None:
                continue
            result = self.leaderboard.submit(category, value, identity)
            if not result.success:
                continue
            summary.submitted += 1
            if result.rank is not None and (summary.best_rank is None or result.rank < summary.best_rank):
                summary.best_rank = result.rank
                summary.best_category = category
        self.store.set_json("local_leaderboards", boards)

        summary.offline = summary.submitted == 0
        if summary.offline:
            summary.message = "Scores saved locally (offline mode)"
        elif summary.best_rank is not None:
            label = LEADERBOARD_CATEGORIES.get(summary.best_category, summary.best_category)
            summary.message = f"Rank #{summary.best_rank} globally in {label}!"
        else:
            summary.message = f"Submitted {summary.submitted} scores to the global leaderboard"
        return summary

    def refresh_leaderboards(self) -> Dict[str, LeaderboardResult]:
        if self.leaderboard is None:
            return {}
        return self.leaderboard.fetch_all(requesting_player=self.identity.player_name)

    # ── Local persistence ─────────────────────────────────────────────────────

    def snapshot(self, timestamp: Optional[float] = None) -> Snapshot:
        with self._lock:
            return serialize(self.progression, self.reactor, self.identity, timestamp)

    def save_local(self) -> Snapshot:
        now = self.clock()
        snapshot = self.snapshot(now)
        self.store.set("save_data", dumps_snapshot(snapshot))
        self.store.set("save_time", str(now))
        self.last_saved_at = now
        return snapshot

    def _apply_snapshot(self, snapshot: Snapshot) -> None:
        progression, reactor, identity = deserialize(snapshot, self.catalog, self.clock())
        clean, error = normalize_player_name(identity.player_name)
        with self._lock:
            self.progression, self.reactor = progression, reactor
            if error is None:
                self.identity = PlayerIdentity(clean, self.identity.device_id, self.identity.country)
            self._track_highest_energy()

    def load_local(self) -> bool:
        snapshot = loads_snapshot(self.store.get("save_data"))
        if snapshot is None:
            return False
        self._apply_snapshot(snapshot)
        return True

    # ── Cloud ─────────────────────────────────────────────────────────────────

    def configure_cloud(self, enabled: bool, api_key: str = "", policy: str = ConflictPolicy.PREFER_NEWEST.value) -> None:
        self.store.set("cloud_enabled", "true" if enabled else "false")
        self.store.set("api_key", api_key)
        self.store.set("conflict_policy", ConflictPolicy.parse(policy).value)
        if self.cloud is not None:
            self.cloud.api_key = api_key

    @property
    def cloud_enabled(self) -> bool:
        return (
            self.cloud is not None
            and self.store.get_bool("cloud_enabled")
            and bool(self.store.get("api_key"))
        )

    @property
    def conflict_policy(self) -> ConflictPolicy:
        return ConflictPolicy.parse(self.store.get("conflict_policy", ConflictPolicy.PREFER_NEWEST.value))

    def sync_to_cloud(self) -> CloudSaveResult:
        if not self.cloud_enabled:
            return CloudSaveResult(error="cloud sync disabled")
        snapshot = self.save_local()
        return self.cloud.upload(self.identity.device_id, snapshot, self.identity.player_name)

    def load_from_cloud(self) -> bool:
        """Pull the remote save and adopt it when the conflict policy picks it."""
        if not self.cloud_enabled:
            return False
        fetched = self.cloud.download(self.identity.device_id)
        if not fetched.ok or fetched.save_data is None:
            return False

        # Compare against the state as of the last local save, taken after the fetch returns.
        local = self.snapshot(self.last_saved_at)
        chosen = reconcile(local, fetched.save_data, self.conflict_policy)
        if chosen is local:
            return False
        self._apply_snapshot(chosen)
        self.save_local()
        logging.info("Adopted cloud save for %s", self.identity.device_id)
        return True

    # ── Tips ──────────────────────────────────────────────────────────────────

    def next_tip(self) -> str:
        tip = EDUCATIONAL_TIPS[self._tip_index % len(EDUCATIONAL_TIPS)]
        self._tip_index += 1
        return tip


class SessionScheduler:
    """Periodic session work, one asyncio task per responsibility."""

    def __init__(
        self,
        session: GameSession,
        tick_interval_s: float = REACTOR_TICK_INTERVAL_S,
        autosave_interval_s: float = AUTOSAVE_INTERVAL_S,
        cloud_sync_interval_s: float = CLOUD_SYNC_INTERVAL_S,
        leaderboard_interval_s: float = LEADERBOARD_REFRESH_INTERVAL_S,
        tip_interval_s: float = TIP_INTERVAL_S,
        on_tip: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.session = session
        self.on_tip = on_tip
        self._jobs: List[Tuple[str, float, Callable[[], Any], bool]] = [
            ("reactor-tick", tick_interval_s, session.tick, False),
            ("autosave", autosave_interval_s, session.save_local, False),
            ("cloud-sync", cloud_sync_interval_s, self._cloud_sync, True),
            ("leaderboard-refresh", leaderboard_interval_s, session.refresh_leaderboards, True),
            ("tips", tip_interval_s, self._tip, False),
        ]
        self._tasks: List[asyncio.Task] = []

    def _cloud_sync(self) -> None:
        if self.session.cloud_enabled:
            self.session.sync_to_cloud()

    def _tip(self) -> None:
        tip = self.session.next_tip()
        if self.on_tip is not None:
            self.on_tip(tip)

    async def _every(self, name: str, interval_s: float, job: Callable[[], Any], blocking: bool) -> None:
        while True:
            await asyncio.sleep(interval_s)
            try:
                if blocking:
                    await asyncio.to_thread(job)
                else:
                    job()
            except Exception:
                logging.exception("Scheduled job %s failed", name)

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.get_running_loop().create_task(self._every(name, interval, job, blocking), name=name)
            for name, interval, job, blocking in self._jobs
        ]

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
