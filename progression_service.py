"""
Progression state and its transitions.

State objects are frozen; every transition returns a new state and never
touches the one it was given, so a caller that drops a half-finished
transition still holds a consistent state.

Fusion runs in two phases so a presentation layer can animate between them:

  begin_fusion     — validates, sets the merge latch, changes nothing else
  complete_fusion  — applies cost, workspace swap, counters and discovery; clears the latch
  abort_fusion     — clears the latch with no other effect

apply_fusion runs both phases back to back.
"""

import uuid
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Iterable, Optional, Tuple

from constants import DEFAULT_FUSION_ENERGY, DEFAULT_MERGE_COUNT, STARTING_ELEMENTS
from element_catalog import ElementCatalog
from fusion_service import Accepted, Rejection, RejectionReason, evaluate_pair, fusion_message

COMPLETION_MESSAGE = "Congratulations! You've discovered every element!"


@dataclass(frozen=True)
class WorkspaceElement:
    id: str
    symbol: str
    x: float
    y: float


@dataclass(frozen=True)
class ProgressionState:
    discovered: FrozenSet[str] = field(default_factory=lambda: frozenset(STARTING_ELEMENTS))
    elements_found: int = len(STARTING_ELEMENTS)
    merge_count: int = DEFAULT_MERGE_COUNT
    fusion_energy: float = DEFAULT_FUSION_ENERGY
    is_merging: bool = False
    merge_pair: Tuple[str, ...] = ()
    merge_elements: Tuple[WorkspaceElement, ...] = ()
    completion_announced: bool = False

    def record(self, record_id: str) -> Optional[WorkspaceElement]:
        for rec in self.merge_elements:
            if rec.id == record_id:
                return rec
        return None


@dataclass(frozen=True)
class PendingFusion:
    first: WorkspaceElement
    second: WorkspaceElement
    outcome: Accepted
    position: Tuple[float, float]


@dataclass(frozen=True)
class FusionReport:
    state: ProgressionState
    accepted: Optional[Accepted] = None
    rejection: Optional[Rejection] = None
    created: Optional[WorkspaceElement] = None
    is_new_discovery: bool = False
    completed_now: bool = False
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.accepted is not None


@dataclass(frozen=True)
class PlacementResult:
    state: ProgressionState
    record: Optional[WorkspaceElement] = None
    rejection: Optional[Rejection] = None


def new_record_id() -> str:
    return uuid.uuid4().hex[:12]


def new_progression() -> ProgressionState:
    return ProgressionState()


def build_progression(
    discovered: Iterable[str],
    merge_count: int = DEFAULT_MERGE_COUNT,
    fusion_energy: float = DEFAULT_FUSION_ENERGY,
    merge_elements: Iterable[WorkspaceElement] = (),
    catalog: Optional[ElementCatalog] = None,
) -> ProgressionState:
    """Assemble a state with the starting set merged in and the count derived."""
    found = frozenset(STARTING_ELEMENTS) | frozenset(discovered)
    state = ProgressionState(
        discovered=found,
        elements_found=len(found),
        merge_count=max(0, int(merge_count)),
        fusion_energy=max(0.0, fusion_energy),
        merge_elements=tuple(merge_elements),
    )
    if catalog is not None and is_complete(state, catalog):
        state = replace(state, completion_announced=True)
    return state


def is_complete(state: ProgressionState, catalog: ElementCatalog) -> bool:
    return sum(1 for symbol in state.discovered if symbol in catalog) >= catalog.size


def grant_energy(state: ProgressionState, amount: float) -> ProgressionState:
    if amount <= 0:
        return state
    return replace(state, fusion_energy=state.fusion_energy + amount)


def spend_energy(state: ProgressionState, amount: float) -> ProgressionState:
    if amount > state.fusion_energy:
        raise ValueError(f"cannot spend {amount} with {state.fusion_energy} available")
    return replace(state, fusion_energy=state.fusion_energy - amount)


# ── Workspace ─────────────────────────────────────────────────────────────────

def place_element(
    state: ProgressionState,
    symbol: str,
    x: float,
    y: float,
    catalog: ElementCatalog,
) -> PlacementResult:
    if symbol not in catalog or symbol not in state.discovered:
        return PlacementResult(
            state=state,
            rejection=Rejection(RejectionReason.NOT_DISCOVERED, f"{symbol} has not been discovered yet"),
        )
    record = WorkspaceElement(id=new_record_id(), symbol=symbol, x=max(0.0, float(x)), y=max(0.0, float(y)))
    return PlacementResult(state=replace(state, merge_elements=state.merge_elements + (record,)), record=record)


def move_element(state: ProgressionState, record_id: str, x: float, y: float) -> ProgressionState:
    moved = tuple(
        replace(rec, x=max(0.0, float(x)), y=max(0.0, float(y))) if rec.id == record_id else rec
        for rec in state.merge_elements
    )
    return replace(state, merge_elements=moved)


def remove_element(state: ProgressionState, record_id: str) -> ProgressionState:
    return replace(state, merge_elements=tuple(r for r in state.merge_elements if r.id != record_id))


def clear_workspace(state: ProgressionState) -> ProgressionState:
    """Empty the workspace; also releases a stuck merge latch."""
    return replace(state, merge_elements=(), is_merging=False, merge_pair=())


# ── Fusion ────────────────────────────────────────────────────────────────────

def _reject(state: ProgressionState, reason: RejectionReason, message: str) -> FusionReport:
    rejection = Rejection(reason, message)
    return FusionReport(state=state, rejection=rejection, message=message)


def begin_fusion(
    state: ProgressionState,
    catalog: ElementCatalog,
    first_id: str,
    second_id: str,
    position: Optional[Tuple[float, float]] = None,
) -> Tuple[ProgressionState, Optional[PendingFusion], Optional[Rejection]]:
    if state.is_merging:
        return state, None, Rejection(RejectionReason.MERGE_IN_PROGRESS, "A fusion is already in progress")

    first = state.record(first_id)
    second = state.record(second_id)
    if first is None or second is None or first_id == second_id:
        return state, None, Rejection(RejectionReason.UNKNOWN_RECORD, "Those elements are not on the workspace")

    outcome = evaluate_pair(first.symbol, second.symbol, state.fusion_energy, catalog)
    if isinstance(outcome, Rejection):
        return state, None, outcome

    if position is None:
        position = ((first.x + second.x) / 2, (first.y + second.y) / 2)
    pending = PendingFusion(first=first, second=second, outcome=outcome, position=position)
    return replace(state, is_merging=True, merge_pair=(first.id, second.id)), pending, None


def abort_fusion(state: ProgressionState) -> ProgressionState:
    return replace(state, is_merging=False, merge_pair=())


def complete_fusion(state: ProgressionState, pending: PendingFusion, catalog: ElementCatalog) -> FusionReport:
    outcome = pending.outcome
    # Only the fusion holding the latch may complete; anything else leaves the state alone.
    if not state.is_merging or state.merge_pair != (pending.first.id, pending.second.id):
        return _reject(state, RejectionReason.NO_PENDING_FUSION, "That fusion is no longer in progress")
    # Energy or workspace may have changed between the phases.
    if state.record(pending.first.id) is None or state.record(pending.second.id) is None:
        return _reject(abort_fusion(state), RejectionReason.UNKNOWN_RECORD, "Those elements are not on the workspace")
    if state.fusion_energy < outcome.cost:
        return FusionReport(
            state=abort_fusion(state),
            rejection=Rejection(
                RejectionReason.INSUFFICIENT_ENERGY,
                f"Not enough fusion energy! Need {outcome.cost}",
                required=outcome.cost,
            ),
            message=f"Not enough fusion energy! Need {outcome.cost}",
        )

    consumed = {pending.first.id, pending.second.id}
    x, y = pending.position
    created = WorkspaceElement(id=new_record_id(), symbol=outcome.result.symbol, x=max(0.0, x), y=max(0.0, y))
    workspace = tuple(r for r in state.merge_elements if r.id not in consumed) + (created,)

    is_new = outcome.result.symbol not in state.discovered
    discovered = state.discovered | {outcome.result.symbol} if is_new else state.discovered

    nxt = replace(
        state,
        fusion_energy=state.fusion_energy - outcome.cost,
        merge_elements=workspace,
        merge_count=state.merge_count + 1,
        discovered=discovered,
        elements_found=len(discovered),
        is_merging=False,
        merge_pair=(),
    )

    completed_now = False
    message = fusion_message(outcome, is_new)
    if is_complete(nxt, catalog) and not nxt.completion_announced:
        nxt = replace(nxt, completion_announced=True)
        completed_now = True
        message = f"{message}\n{COMPLETION_MESSAGE}"

    return FusionReport(
        state=nxt,
        accepted=outcome,
        created=created,
        is_new_discovery=is_new,
        completed_now=completed_now,
        message=message,
    )


def apply_fusion(
    state: ProgressionState,
    catalog: ElementCatalog,
    first_id: str,
    second_id: str,
    position: Optional[Tuple[float, float]] = None,
) -> FusionReport:
    latched, pending, rejection = begin_fusion(state, catalog, first_id, second_id, position)
    if rejection is not None:
        return FusionReport(state=state, rejection=rejection, message=rejection.message)
    return complete_fusion(latched, pending, catalog)
