import math
import time
from dataclasses import dataclass, replace
from typing import Optional

from constants import (
    DEFAULT_REACTOR_LEVEL,
    REACTOR_BASE_UPGRADE_COST,
    REACTOR_HARVEST_MINIMUM,
    REACTOR_PRODUCTION_FACTOR,
    REACTOR_STORAGE_PER_LEVEL,
    REACTOR_UPGRADE_COST_GROWTH,
)
from fusion_service import Rejection, RejectionReason
from progression_service import ProgressionState, grant_energy, spend_energy


@dataclass(frozen=True)
class ReactorState:
    level: int = DEFAULT_REACTOR_LEVEL
    energy_stored: float = 0.0
    max_storage: int = DEFAULT_REACTOR_LEVEL * REACTOR_STORAGE_PER_LEVEL
    production_rate: int = int(math.floor(DEFAULT_REACTOR_LEVEL * REACTOR_PRODUCTION_FACTOR))
    upgrade_cost: int = REACTOR_BASE_UPGRADE_COST
    last_update_time: float = 0.0


@dataclass(frozen=True)
class ReactorActionResult:
    reactor: ReactorState
    progression: ProgressionState
    message: str
    rejection: Optional[Rejection] = None
    amount: int = 0

    @property
    def ok(self) -> bool:
        return self.rejection is None


def max_storage_for(level: int) -> int:
    return level * REACTOR_STORAGE_PER_LEVEL


def production_rate_for(level: int) -> int:
    return int(math.floor(level * REACTOR_PRODUCTION_FACTOR))


def upgrade_cost_for(level: int) -> int:
    """Cost to go from ``level`` to ``level + 1``; the floor is taken at each step."""
    cost = REACTOR_BASE_UPGRADE_COST
    for _ in range(1, level):
        cost = int(math.floor(cost * REACTOR_UPGRADE_COST_GROWTH))
    return cost


def new_reactor(now: Optional[float] = None) -> ReactorState:
    return ReactorState(last_update_time=time.time() if now is None else now)


def reactor_for_level(level: int, energy_stored: float = 0.0, last_update_time: float = 0.0) -> ReactorState:
    level = max(DEFAULT_REACTOR_LEVEL, int(level))
    cap = max_storage_for(level)
    return ReactorState(
        level=level,
        energy_stored=min(max(0.0, energy_stored), cap),
        max_storage=cap,
        production_rate=production_rate_for(level),
        upgrade_cost=upgrade_cost_for(level),
        last_update_time=last_update_time,
    )


def tick_reactor(reactor: ReactorState, now: float) -> ReactorState:
    """Accrue production for the wall time since the last tick.

    Clock skew backwards counts as zero elapsed time; the timestamp still moves.
    """
    if now == reactor.last_update_time:
        return reactor
    elapsed = max(0.0, now - reactor.last_update_time)
    stored = reactor.energy_stored + elapsed * reactor.production_rate
    stored = min(max(0.0, stored), reactor.max_storage)
    return replace(reactor, energy_stored=stored, last_update_time=now)


def harvest(reactor: ReactorState, progression: ProgressionState) -> ReactorActionResult:
    if reactor.energy_stored < REACTOR_HARVEST_MINIMUM:
        message = f"Need at least {REACTOR_HARVEST_MINIMUM} energy to harvest!"
        return ReactorActionResult(
            reactor=reactor,
            progression=progression,
            message=message,
            rejection=Rejection(RejectionReason.INSUFFICIENT_STORED_ENERGY, message, required=REACTOR_HARVEST_MINIMUM),
        )
    amount = int(math.floor(reactor.energy_stored))
    return ReactorActionResult(
        reactor=replace(reactor, energy_stored=0.0),
        progression=grant_energy(progression, amount),
        message=f"Harvested {amount} fusion energy from reactor!",
        amount=amount,
    )


def upgrade(reactor: ReactorState, progression: ProgressionState) -> ReactorActionResult:
    cost = reactor.upgrade_cost
    if progression.fusion_energy < cost:
        message = f"Need {cost} fusion energy to upgrade!"
        return ReactorActionResult(
            reactor=reactor,
            progression=progression,
            message=message,
            rejection=Rejection(RejectionReason.INSUFFICIENT_ENERGY, message, required=cost),
        )
    level = reactor.level + 1
    upgraded = replace(
        reactor,
        level=level,
        production_rate=production_rate_for(level),
        max_storage=max_storage_for(level),
        upgrade_cost=int(math.floor(cost * REACTOR_UPGRADE_COST_GROWTH)),
    )
    return ReactorActionResult(
        reactor=upgraded,
        progression=spend_energy(progression, cost),
        message=f"Reactor upgraded to Level {level}! Production: {upgraded.production_rate}/sec",
        amount=cost,
    )


def fill_ratio(reactor: ReactorState) -> float:
    if reactor.max_storage <= 0:
        return 0.0
    return reactor.energy_stored / reactor.max_storage
