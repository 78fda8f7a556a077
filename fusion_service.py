"""
Fusion rules — pure decisions about whether two elements combine and at what cost.

Nothing here mutates state; progression_service applies accepted outcomes.
"""

import enum
import math
from dataclasses import dataclass
from typing import Optional, Union

from constants import FUSION_COST_FACTOR
from element_catalog import Element, ElementCatalog


class RejectionReason(str, enum.Enum):
    NO_NEXT_ELEMENT = "no_next_element"
    INSUFFICIENT_ENERGY = "insufficient_energy"
    NOT_FUSABLE = "not_fusable"
    MERGE_IN_PROGRESS = "merge_in_progress"
    UNKNOWN_RECORD = "unknown_record"
    INSUFFICIENT_STORED_ENERGY = "insufficient_stored_energy"
    NOT_DISCOVERED = "not_discovered"
    NO_PENDING_FUSION = "no_pending_fusion"


@dataclass(frozen=True)
class Rejection:
    reason: RejectionReason
    message: str
    required: Optional[int] = None


@dataclass(frozen=True)
class Accepted:
    source: Element
    result: Element
    cost: int


FusionOutcome = Union[Accepted, Rejection]


def fusion_cost(element: Element) -> int:
    return int(math.floor(element.mass * FUSION_COST_FACTOR))


def can_fuse(a: str, b: str, catalog: ElementCatalog) -> bool:
    """Only identical pairs of catalog elements fuse."""
    return a == b and a in catalog


def compute_fusion_result(symbol: str, current_energy: float, catalog: ElementCatalog) -> FusionOutcome:
    element = catalog.get(symbol)
    if element is None:
        return Rejection(RejectionReason.NOT_FUSABLE, f"Unknown element: {symbol}")

    # Successor check comes first: the last element is never fusable, whatever the energy.
    nxt = catalog.successor(element)
    if nxt is None:
        return Rejection(RejectionReason.NO_NEXT_ELEMENT, f"{element.symbol} cannot be merged further!")

    cost = fusion_cost(element)
    if current_energy < cost:
        return Rejection(
            RejectionReason.INSUFFICIENT_ENERGY,
            f"Not enough fusion energy! Need {cost}",
            required=cost,
        )
    return Accepted(source=element, result=nxt, cost=cost)


def evaluate_pair(a: str, b: str, current_energy: float, catalog: ElementCatalog) -> FusionOutcome:
    if not can_fuse(a, b, catalog):
        return Rejection(RejectionReason.NOT_FUSABLE, "Only identical elements can be fused!")
    return compute_fusion_result(a, current_energy, catalog)


def fusion_message(outcome: Accepted, is_new: bool) -> str:
    s = outcome.source.symbol
    equation = f"{s} + {s} = {outcome.result.symbol}"
    if is_new:
        return f"New Discovery! {equation}"
    return f"{equation} (Rediscovered)"
