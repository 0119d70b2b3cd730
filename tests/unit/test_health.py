"""
test_health.py - Unit tests for health metrics and liquidation planning

Tests:
- Pure ratio, health factor and bonus calculations
- compute_health / is_liquidatable against a static oracle
- batch_check_liquidatable filtering
- plan_liquidation payout, bonus cap and conservation
- LiquidationPlan.moves rendering
"""

from dataclasses import replace

import pytest

from lending_market import (
    calculate_collateralization_ratio, calculate_health_factor, calculate_liquidator_bonus,
    compute_health, is_liquidatable, batch_check_liquidatable, plan_liquidation,
    PriceOracle, StaticPriceFeed, Loan, U32_MAX,
    LoanNotActive, NotLiquidatable, InsufficientCollateralValue, PriceUnavailable,
)
from tests.market_factory import FakeClock, ONE, T0, XLM, USDC


def make_loan(**overrides) -> Loan:
    """1,000 USDC against 10,000 XLM, threshold 120%, opened at T0."""
    fields = dict(
        loan_id=7, offer_id=1, borrower="bob", lender="alice",
        collateral_amount=10_000 * ONE, borrowed_amount=1_000 * ONE,
        interest_rate=500, start_time=T0, last_interest_update=T0,
        accumulated_interest=0, liquidation_threshold=12_000, is_active=True,
    )
    fields.update(overrides)
    return Loan(**fields)


def oracle_at(price: int) -> PriceOracle:
    return PriceOracle(StaticPriceFeed({XLM: (price, T0)}), XLM, FakeClock(T0))


class TestPureCalculations:

    def test_ratio(self):
        assert calculate_collateralization_ratio(1_500 * ONE, 1_000 * ONE) == 15_000

    def test_ratio_without_debt(self):
        assert calculate_collateralization_ratio(1_500 * ONE, 0) == U32_MAX

    def test_ratio_saturates(self):
        assert calculate_collateralization_ratio(10**30, 1) == U32_MAX

    def test_health_factor(self):
        assert calculate_health_factor(15_000, 12_500) == 12_000
        assert calculate_health_factor(12_000, 12_000) == 10_000

    def test_health_factor_zero_threshold(self):
        assert calculate_health_factor(15_000, 0) == U32_MAX

    def test_liquidator_bonus(self):
        assert calculate_liquidator_bonus(1_200 * ONE) == 60 * ONE
        assert calculate_liquidator_bonus(1_000, bonus_bps=1_000) == 100


class TestComputeHealth:

    def test_default_loan_metrics(self):
        health = compute_health(make_loan(), oracle_at(15_000_000_000_000), T0)
        assert health.loan_id == 7
        assert health.collateral_value_usd == 1_500 * ONE
        assert health.debt_value_usd == 1_000 * ONE
        assert health.collateralization_ratio == 15_000
        assert health.health_factor == 12_500
        assert health.liquidation_price == 12_000_000_000_000
        assert not health.is_liquidatable

    def test_pending_interest_counts_as_debt(self):
        health = compute_health(make_loan(), oracle_at(15_000_000_000_000), T0 + 604_800)
        assert health.debt_value_usd == 1_050 * ONE

    def test_at_threshold_is_liquidatable(self):
        health = compute_health(make_loan(), oracle_at(12_000_000_000_000), T0)
        assert health.collateralization_ratio == 12_000
        assert health.health_factor == 10_000
        assert health.is_liquidatable

    def test_inactive_loan_never_liquidatable(self):
        loan = make_loan(is_active=False)
        oracle = oracle_at(5_000_000_000_000)
        assert not compute_health(loan, oracle, T0).is_liquidatable
        assert not is_liquidatable(loan, oracle, T0)

    def test_is_liquidatable_tracks_price(self):
        assert not is_liquidatable(make_loan(), oracle_at(12_001_000_000_000), T0)
        assert is_liquidatable(make_loan(), oracle_at(12_000_000_000_000), T0)

    def test_ratio_floors_toward_liquidation(self):
        # Value 1200.0000001 against 1,000 of debt still floors to ratio 12000
        health = compute_health(make_loan(), oracle_at(12_000_000_001_000), T0)
        assert health.collateral_value_usd == 12_000_000_001
        assert health.collateralization_ratio == 12_000
        assert health.is_liquidatable
        # A sub-unit price step does not move the value at all
        assert compute_health(make_loan(), oracle_at(12_000_000_000_001), T0).collateral_value_usd == 1_200 * ONE

    def test_missing_price_propagates(self):
        oracle = PriceOracle(StaticPriceFeed(), XLM, FakeClock(T0))
        with pytest.raises(PriceUnavailable):
            compute_health(make_loan(), oracle, T0)


class TestBatchCheck:

    def test_filters_in_input_order(self):
        loans = {
            1: make_loan(loan_id=1),
            2: make_loan(loan_id=2, collateral_amount=5_000 * ONE),
            3: make_loan(loan_id=3, collateral_amount=5_000 * ONE, is_active=False),
            4: make_loan(loan_id=4, collateral_amount=7_000 * ONE),
        }
        result = batch_check_liquidatable([4, 99, 3, 2, 1], loans.get, oracle_at(15_000_000_000_000), T0)
        # 7,000 XLM is 1,050 USDC (ratio 10500); 5,000 XLM is 750 USDC
        assert result == [4, 2]

    def test_no_price_needed_without_active_loans(self):
        oracle = PriceOracle(StaticPriceFeed(), XLM, FakeClock(T0))
        inactive = {1: make_loan(loan_id=1, is_active=False)}
        assert batch_check_liquidatable([1, 2], inactive.get, oracle, T0) == []


class TestPlanLiquidation:

    def test_payout_at_threshold(self):
        plan = plan_liquidation(make_loan(), "keeper", oracle_at(12_000_000_000_000), T0)
        assert plan.collateral_amount == 10_000 * ONE
        assert plan.collateral_value == 1_200 * ONE
        assert plan.total_debt == 1_000 * ONE
        assert plan.liquidator_bonus == 60 * ONE
        assert plan.excess_to_borrower == 140 * ONE
        assert plan.lender == "alice"
        assert plan.borrower == "bob"

    def test_bonus_capped_by_margin(self):
        plan = plan_liquidation(make_loan(), "keeper", oracle_at(10_500_000_000_000), T0)
        assert plan.collateral_value == 1_050 * ONE
        assert plan.liquidator_bonus == 50 * ONE
        assert plan.excess_to_borrower == 0

    @pytest.mark.parametrize("price", [12_000_000_000_000, 11_000_000_000_000, 10_000_000_000_000])
    def test_value_is_conserved(self, price):
        plan = plan_liquidation(make_loan(), "keeper", oracle_at(price), T0)
        assert plan.collateral_value == plan.total_debt + plan.liquidator_bonus + plan.excess_to_borrower

    def test_healthy_loan_rejected(self):
        with pytest.raises(NotLiquidatable):
            plan_liquidation(make_loan(), "keeper", oracle_at(15_000_000_000_000), T0)

    def test_underwater_loan_rejected(self):
        with pytest.raises(InsufficientCollateralValue):
            plan_liquidation(make_loan(), "keeper", oracle_at(9_000_000_000_000), T0)

    def test_closed_loan_rejected(self):
        with pytest.raises(LoanNotActive):
            plan_liquidation(make_loan(is_active=False), "keeper", oracle_at(12_000_000_000_000), T0)

    def test_interest_included_in_debt(self):
        loan = make_loan(accumulated_interest=50 * ONE)
        plan = plan_liquidation(loan, "keeper", oracle_at(12_000_000_000_000), T0)
        assert plan.total_debt == 1_050 * ONE
        assert plan.liquidator_bonus == 60 * ONE
        assert plan.excess_to_borrower == 90 * ONE


class TestPlanMoves:

    def test_three_legs(self):
        plan = plan_liquidation(make_loan(), "keeper", oracle_at(12_000_000_000_000), T0)
        moves = plan.moves("engine", USDC, XLM)
        legs = [(m.quantity, m.asset, m.source, m.dest) for m in moves]
        assert legs == [
            (10_000 * ONE, XLM, "engine", "keeper"),
            (1_000 * ONE, USDC, "keeper", "alice"),
            (140 * ONE, USDC, "keeper", "bob"),
        ]
        assert all(m.memo == "liquidate:7" for m in moves)

    def test_zero_excess_leg_omitted(self):
        plan = plan_liquidation(make_loan(), "keeper", oracle_at(10_500_000_000_000), T0)
        assert len(plan.moves("engine", USDC, XLM)) == 2

    def test_self_payment_legs_omitted(self):
        plan = plan_liquidation(make_loan(), "alice", oracle_at(12_000_000_000_000), T0)
        legs = [(m.source, m.dest) for m in plan.moves("engine", USDC, XLM)]
        assert legs == [("engine", "alice"), ("alice", "bob")]

    def test_plan_is_immutable(self):
        plan = plan_liquidation(make_loan(), "keeper", oracle_at(12_000_000_000_000), T0)
        with pytest.raises(AttributeError):
            plan.total_debt = 0
        assert replace(plan, total_debt=0).total_debt == 0
