"""
Fusion rule tests — pairing rules, successor lookup and energy cost.

Catches:
  - Cost rounding drift (floor of mass * 5)
  - Fusing past the end of the table
  - Energy checks applied before the successor check
"""

import pytest


class TestCanFuse:
    def test_identical_known_pair(self, catalog):
        from fusion_service import can_fuse

        assert can_fuse("H", "H", catalog)

    def test_different_elements(self, catalog):
        from fusion_service import can_fuse

        assert not can_fuse("H", "He", catalog)

    def test_unknown_symbol(self, catalog):
        from fusion_service import can_fuse

        assert not can_fuse("Xx", "Xx", catalog)


class TestComputeFusionResult:
    @pytest.mark.parametrize("energy", [5, 6, 100, 10_000])
    def test_hydrogen_accepted_at_or_above_cost(self, catalog, energy):
        from fusion_service import Accepted, compute_fusion_result

        outcome = compute_fusion_result("H", energy, catalog)
        assert isinstance(outcome, Accepted)
        assert outcome.result.symbol == "He"
        assert outcome.cost == 5

    @pytest.mark.parametrize("energy", [0, 4, 4.99])
    def test_hydrogen_rejected_below_cost(self, catalog, energy):
        from fusion_service import Rejection, RejectionReason, compute_fusion_result

        outcome = compute_fusion_result("H", energy, catalog)
        assert isinstance(outcome, Rejection)
        assert outcome.reason is RejectionReason.INSUFFICIENT_ENERGY
        assert outcome.required == 5
        assert outcome.message == "Not enough fusion energy! Need 5"

    @pytest.mark.parametrize("energy", [0, 10**9])
    def test_last_element_never_fuses(self, catalog, energy):
        from fusion_service import RejectionReason, compute_fusion_result

        last = catalog.highest()
        outcome = compute_fusion_result(last.symbol, energy, catalog)
        assert outcome.reason is RejectionReason.NO_NEXT_ELEMENT
        assert outcome.message == f"{last.symbol} cannot be merged further!"

    def test_last_element_of_small_catalog(self, small_catalog):
        from fusion_service import RejectionReason, compute_fusion_result

        outcome = compute_fusion_result("Ca", 0, small_catalog)
        assert outcome.reason is RejectionReason.NO_NEXT_ELEMENT

    def test_cost_is_floor_of_mass_times_five(self, catalog):
        from fusion_service import fusion_cost

        assert fusion_cost(catalog.get("He")) == 20      # 4.0026 * 5
        assert fusion_cost(catalog.get("C")) == 60       # 12.011 * 5
        assert fusion_cost(catalog.get("Fe")) == int(catalog.get("Fe").mass * 5)


class TestEvaluatePair:
    def test_mismatch_is_not_fusable(self, catalog):
        from fusion_service import RejectionReason, evaluate_pair

        assert evaluate_pair("H", "He", 100, catalog).reason is RejectionReason.NOT_FUSABLE

    def test_messages(self, catalog):
        from fusion_service import compute_fusion_result, fusion_message

        outcome = compute_fusion_result("H", 100, catalog)
        assert fusion_message(outcome, True) == "New Discovery! H + H = He"
        assert fusion_message(outcome, False) == "H + H = He (Rediscovered)"
