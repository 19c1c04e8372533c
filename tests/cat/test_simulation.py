"""
Tests for the CAT simulation harness.

Uses small examinee counts so the suite stays fast; recovery quality at
scale is checked by running scripts/run_cat_simulation.py.
"""

import random

import pytest

from cat_service.core.cat.models import Item
from cat_service.core.cat.stopping_rules import StopReason
from cat_service.core.cat.simulation import (
    DIFFICULTY_MAX,
    DIFFICULTY_MIN,
    DISCRIMINATION_MAX,
    DISCRIMINATION_MIN,
    ExamineeResult,
    SimulationConfig,
    SimulationResult,
    generate_item_bank,
    run_simulation,
    simulate_response,
)


class TestGenerateItemBank:
    """Tests for synthetic item bank generation."""

    def test_size_and_ids(self):
        bank = generate_item_bank(n_items=50, seed=1)
        assert len(bank) == 50
        assert [item.id for item in bank] == list(range(1, 51))

    def test_parameters_within_bounds(self):
        for item in generate_item_bank(n_items=300, seed=9):
            assert DISCRIMINATION_MIN <= item.discrimination <= DISCRIMINATION_MAX
            assert DIFFICULTY_MIN <= item.difficulty <= DIFFICULTY_MAX
            assert item.guessing in (0.0, 0.25)

    def test_same_seed_same_bank(self):
        assert generate_item_bank(n_items=40, seed=5) == generate_item_bank(
            n_items=40, seed=5
        )

    def test_different_seed_different_bank(self):
        assert generate_item_bank(n_items=40, seed=5) != generate_item_bank(
            n_items=40, seed=6
        )

    def test_free_response_only(self):
        bank = generate_item_bank(n_items=30, multiple_choice_ratio=0.0)
        assert all(item.guessing == 0.0 for item in bank)

    def test_multiple_choice_only(self):
        bank = generate_item_bank(n_items=30, multiple_choice_ratio=1.0)
        assert all(item.guessing == 0.25 for item in bank)

    @pytest.mark.parametrize("ratio", [-0.1, 1.5])
    def test_invalid_ratio_raises(self, ratio):
        with pytest.raises(ValueError, match="multiple_choice_ratio"):
            generate_item_bank(n_items=10, multiple_choice_ratio=ratio)


class TestSimulateResponse:
    """Tests for 3PL response simulation."""

    def test_far_above_difficulty_is_correct(self):
        item = Item(id=1, discrimination=2.5, difficulty=-3.0)
        rng = random.Random(0)
        assert all(simulate_response(4.0, item, rng) for _ in range(50))

    def test_far_below_difficulty_is_incorrect(self):
        item = Item(id=1, discrimination=2.5, difficulty=3.0)
        rng = random.Random(0)
        assert not any(simulate_response(-4.0, item, rng) for _ in range(50))


class TestRunSimulation:
    """Tests for the Monte Carlo driver."""

    @pytest.fixture
    def bank(self):
        return generate_item_bank(n_items=120, seed=3)

    def test_result_structure(self, bank):
        config = SimulationConfig(n_examinees=8, seed=11)
        result = run_simulation(bank, config)

        assert isinstance(result, SimulationResult)
        assert result.config is config
        assert len(result.examinee_results) == 8
        assert sum(result.stopping_reason_counts.values()) == 8
        assert 0.0 <= result.precision_rate <= 1.0
        assert result.rmse >= abs(result.mean_bias)

    def test_examinee_invariants(self, bank):
        config = SimulationConfig(n_examinees=6, max_items=20, seed=2)
        for examinee in run_simulation(bank, config).examinee_results:
            assert isinstance(examinee, ExamineeResult)
            assert examinee.items_administered == len(examinee.administered_item_ids)
            assert len(set(examinee.administered_item_ids)) == len(
                examinee.administered_item_ids
            )
            assert examinee.items_administered <= 20
            assert examinee.bias == pytest.approx(
                examinee.estimated_theta - examinee.true_theta
            )
            assert examinee.stopping_reason in {reason.value for reason in StopReason}
            if examinee.stopping_reason == StopReason.SE_THRESHOLD.value:
                assert examinee.items_administered >= config.min_items
                assert examinee.final_se <= config.max_standard_error

    def test_reproducible_with_seed(self, bank):
        config = SimulationConfig(n_examinees=5, seed=21)
        first = run_simulation(bank, config)
        second = run_simulation(bank, config)
        assert first.examinee_results == second.examinee_results
        assert first.mean_items == second.mean_items

    def test_tiny_bank_exhausts(self):
        bank = generate_item_bank(n_items=3, seed=4)
        config = SimulationConfig(n_examinees=2, max_items=None, seed=4)
        result = run_simulation(bank, config)
        assert result.stopping_reason_counts == {StopReason.POOL_EXHAUSTED.value: 2}
        assert result.mean_items == 3.0

    def test_precision_rate_counts_se_threshold_stops(self, bank):
        result = run_simulation(bank, SimulationConfig(n_examinees=6, seed=8))
        se_stops = result.stopping_reason_counts.get(StopReason.SE_THRESHOLD.value, 0)
        assert result.precision_rate == se_stops / 6

    def test_no_examinees_raises(self, bank):
        with pytest.raises(ValueError, match="n_examinees"):
            run_simulation(bank, SimulationConfig(n_examinees=0))
