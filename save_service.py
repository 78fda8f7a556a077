"""
Save snapshots — serialize / deserialize progression + reactor + identity and
reconcile a local snapshot against a remote one.

A snapshot is a JSON-ready dict:

  {
    "version": "1.0",
    "timestamp": <unix seconds>,
    "playerName": ..., "deviceId": ..., "country": ...,
    "gameState": {
      "elementsFound", "mergeCount", "discoveredElements", "fusionEnergy",
      "reactorLevel", "reactorEnergyStored", "reactorMaxStorage",
      "reactorProductionRate", "reactorUpgradeCost", "lastUpdateTime"
    },
    "mergeElements": [{"id", "symbol", "x", "y"}, ...]
  }

Loading never fails as a whole: each missing or malformed field falls back to
its default on its own.
"""

import enum
import json
import logging
import math
import secrets
import string
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from constants import (
    ANONYMOUS_PLAYER,
    DEFAULT_FUSION_ENERGY,
    DEFAULT_MERGE_COUNT,
    DEFAULT_REACTOR_LEVEL,
    SAVE_FORMAT_VERSION,
    STARTING_ELEMENTS,
    UNKNOWN_COUNTRY,
)
from element_catalog import ElementCatalog
from progression_service import ProgressionState, WorkspaceElement, build_progression, new_record_id
from reactor_service import ReactorState, max_storage_for, production_rate_for, upgrade_cost_for

Snapshot = Dict[str, Any]

_DEVICE_ID_ALPHABET = string.digits + string.ascii_lowercase


class ConflictPolicy(str, enum.Enum):
    PREFER_LOCAL = "local"
    PREFER_REMOTE = "remote"
    PREFER_NEWEST = "newest"

    @classmethod
    def parse(cls, value: Any) -> "ConflictPolicy":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.PREFER_NEWEST


@dataclass(frozen=True)
class PlayerIdentity:
    player_name: str = ANONYMOUS_PLAYER
    device_id: str = ""
    country: str = UNKNOWN_COUNTRY


def generate_device_id(now: Optional[float] = None) -> str:
    ms = int((time.time() if now is None else now) * 1000)
    suffix = "".join(secrets.choice(_DEVICE_ID_ALPHABET) for _ in range(9))
    return f"device_{ms}_{suffix}"


# ── Serialize ─────────────────────────────────────────────────────────────────

def serialize(
    progression: ProgressionState,
    reactor: ReactorState,
    identity: PlayerIdentity,
    timestamp: Optional[float] = None,
) -> Snapshot:
    return {
        "version": SAVE_FORMAT_VERSION,
        "timestamp": time.time() if timestamp is None else timestamp,
        "playerName": identity.player_name,
        "deviceId": identity.device_id,
        "country": identity.country,
        "gameState": {
            "elementsFound": progression.elements_found,
            "mergeCount": progression.merge_count,
            "discoveredElements": sorted(progression.discovered),
            "fusionEnergy": progression.fusion_energy,
            "reactorLevel": reactor.level,
            "reactorEnergyStored": reactor.energy_stored,
            "reactorMaxStorage": reactor.max_storage,
            "reactorProductionRate": reactor.production_rate,
            "reactorUpgradeCost": reactor.upgrade_cost,
            "lastUpdateTime": reactor.last_update_time,
        },
        "mergeElements": [
            {"id": r.id, "symbol": r.symbol, "x": r.x, "y": r.y} for r in progression.merge_elements
        ],
    }


def dumps_snapshot(snapshot: Snapshot) -> str:
    return json.dumps(snapshot, separators=(",", ":"), sort_keys=True)


def loads_snapshot(text: Optional[str]) -> Optional[Snapshot]:
    """Parse stored snapshot text; corrupt or non-object text reads as no snapshot."""
    if not text:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logging.warning("Discarding corrupt save snapshot: %s", exc)
        return None
    if not isinstance(data, dict):
        logging.warning("Discarding save snapshot that is not an object")
        return None
    return data


# ── Deserialize ───────────────────────────────────────────────────────────────

def _number(obj: Dict[str, Any], key: str, default: float, minimum: float = 0.0) -> float:
    value = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        if key in obj:
            logging.debug("Snapshot field %s malformed (%r); using default %s", key, value, default)
        return default
    if value < minimum:
        logging.debug("Snapshot field %s below %s; using default %s", key, minimum, default)
        return default
    return value


def _integer(obj: Dict[str, Any], key: str, default: int, minimum: int = 0) -> int:
    value = _number(obj, key, default, minimum)
    if value != int(value):
        return default
    return int(value)


def _text(obj: Dict[str, Any], key: str, default: str) -> str:
    value = obj.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _discovered(game: Dict[str, Any]) -> List[str]:
    raw = game.get("discoveredElements")
    if not isinstance(raw, list):
        return list(STARTING_ELEMENTS)
    # Symbols outside the loaded catalog are kept; a degraded catalog must not shrink a save.
    return [s for s in raw if isinstance(s, str) and s]


def _workspace(raw: Any) -> List[WorkspaceElement]:
    if not isinstance(raw, list):
        return []
    records: List[WorkspaceElement] = []
    seen = set()
    for item in raw:
        if not isinstance(item, dict):
            continue
        symbol = item.get("symbol")
        if not isinstance(symbol, str) or not symbol:
            continue
        record_id = item.get("id")
        if not isinstance(record_id, str) or not record_id or record_id in seen:
            record_id = new_record_id()
        seen.add(record_id)
        records.append(
            WorkspaceElement(
                id=record_id,
                symbol=symbol,
                x=float(_number(item, "x", 0.0)),
                y=float(_number(item, "y", 0.0)),
            )
        )
    return records


def deserialize(
    snapshot: Optional[Snapshot],
    catalog: Optional[ElementCatalog] = None,
    now: Optional[float] = None,
) -> Tuple[ProgressionState, ReactorState, PlayerIdentity]:
    snapshot = snapshot if isinstance(snapshot, dict) else {}
    game = snapshot.get("gameState")
    if not isinstance(game, dict):
        game = {}

    progression = build_progression(
        discovered=_discovered(game),
        merge_count=_integer(game, "mergeCount", DEFAULT_MERGE_COUNT),
        fusion_energy=_number(game, "fusionEnergy", DEFAULT_FUSION_ENERGY),
        merge_elements=_workspace(snapshot.get("mergeElements")),
        catalog=catalog,
    )

    level = _integer(game, "reactorLevel", DEFAULT_REACTOR_LEVEL, minimum=1)
    max_storage = _integer(game, "reactorMaxStorage", max_storage_for(level), minimum=1)
    reactor = ReactorState(
        level=level,
        energy_stored=min(float(_number(game, "reactorEnergyStored", 0.0)), max_storage),
        max_storage=max_storage,
        production_rate=_integer(game, "reactorProductionRate", production_rate_for(level)),
        upgrade_cost=_integer(game, "reactorUpgradeCost", upgrade_cost_for(level), minimum=1),
        last_update_time=float(_number(game, "lastUpdateTime", time.time() if now is None else now)),
    )

    identity = PlayerIdentity(
        player_name=_text(snapshot, "playerName", ANONYMOUS_PLAYER),
        device_id=_text(snapshot, "deviceId", ""),
        country=_text(snapshot, "country", UNKNOWN_COUNTRY),
    )
    return progression, reactor, identity


# ── Reconcile ─────────────────────────────────────────────────────────────────

def snapshot_timestamp(snapshot: Optional[Snapshot]) -> float:
    if not isinstance(snapshot, dict):
        return 0.0
    return float(_number(snapshot, "timestamp", 0.0))


def reconcile(
    local: Optional[Snapshot],
    remote: Optional[Snapshot],
    policy: ConflictPolicy = ConflictPolicy.PREFER_NEWEST,
) -> Optional[Snapshot]:
    """Whole-snapshot last-writer-wins; fields are never merged across the two."""
    if remote is None:
        return local
    if local is None:
        return remote
    if policy == ConflictPolicy.PREFER_LOCAL:
        return local
    if policy == ConflictPolicy.PREFER_REMOTE:
        return remote
    if snapshot_timestamp(remote) > snapshot_timestamp(local):
        return remote
    return local
