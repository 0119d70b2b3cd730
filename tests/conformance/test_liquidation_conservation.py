"""
Liquidation Conservation Tests

INVARIANT: A liquidation redistributes the collateral value exactly.

    ∀ liquidated loan L:
        collateral_value == total_debt + liquidator_bonus + excess_to_borrower
        liquidator_bonus <= collateral_value * bonus_bps / 10000
        lender receives total_debt, borrower receives excess_to_borrower,
        liquidator receives all collateral

    Token supplies are unchanged by any market operation.
"""

from contextlib import suppress

from hypothesis import given, settings
from hypothesis import strategies as st

from lending_market import LendingError, InsufficientCollateralValue, LIQUIDATION_BONUS_BPS, BASIS_POINTS
from tests.market_factory import make_market, ONE, USDC, XLM, LOAN_COLLATERAL

SUPPLIES = {USDC: 201_000 * ONE, XLM: 2_000_000 * ONE}


class TestLiquidationConservation:
    """Property-based conservation of liquidation payouts."""

    @given(
        borrow=st.integers(min_value=1, max_value=1_000 * ONE),
        price=st.integers(min_value=1_000_000_000_000, max_value=15_000_000_000_000),
        elapsed=st.integers(min_value=0, max_value=8 * 604_800),
    )
    @settings(max_examples=60, deadline=None)
    def test_payout_conserves_value(self, borrow, price, elapsed):
        env = make_market()
        loan_id = env.open_loan(env.open_offer(), amount=borrow)
        env.advance(elapsed, price=price)

        if not env.market.is_liquidatable(loan_id):
            return

        before = env.fingerprint()
        keeper_usdc = env.balance("keeper", USDC)
        lender_usdc = env.balance("alice", USDC)
        borrower_usdc = env.balance("bob", USDC)
        try:
            plan = env.market.liquidate("keeper", loan_id)
        except InsufficientCollateralValue:
            assert env.fingerprint() == before
            return

        assert plan.collateral_value == plan.total_debt + plan.liquidator_bonus + plan.excess_to_borrower
        assert plan.liquidator_bonus <= plan.collateral_value * LIQUIDATION_BONUS_BPS // BASIS_POINTS
        assert plan.excess_to_borrower >= 0

        assert env.balance("keeper", XLM) == LOAN_COLLATERAL
        assert env.balance("alice", USDC) - lender_usdc == plan.total_debt
        assert env.balance("bob", USDC) - borrower_usdc == plan.excess_to_borrower
        assert keeper_usdc - env.balance("keeper", USDC) == plan.total_debt + plan.excess_to_borrower
        assert env.balance(env.market.address, XLM) == 0

        result = env.ledger.verify_double_entry(SUPPLIES)
        assert result['valid'], result['discrepancies']

    @given(st.lists(st.sampled_from(["borrow", "repay", "add", "withdraw", "cancel"]), max_size=8))
    @settings(max_examples=40, deadline=None)
    def test_supplies_constant_across_operations(self, operations):
        """PROPERTY: No sequence of market operations creates or destroys tokens."""
        env = make_market()
        offer_id = env.open_offer()
        loans = []
        for op in operations:
            with suppress(LendingError):
                if op == "borrow":
                    loans.append(env.open_loan(offer_id, amount=100 * ONE))
                elif op == "repay" and loans:
                    env.market.repay("bob", loans.pop(0), 100 * ONE)
                elif op == "add" and loans:
                    env.market.add_collateral("bob", loans[-1], 10 * ONE)
                elif op == "withdraw" and loans:
                    env.market.withdraw_collateral("bob", loans[-1], 10 * ONE)
                elif op == "cancel":
                    env.market.cancel_offer("alice", offer_id)
            assert env.ledger.verify_double_entry(SUPPLIES)['valid']

        escrowed_usdc = sum(
            env.market.get_offer(o).usdc_amount for o in env.market.get_active_offers()
        )
        escrowed_xlm = sum(env.market.get_loan(i).collateral_amount for i in env.market.get_active_loans())
        assert env.balance(env.market.address, USDC) == escrowed_usdc
        assert env.balance(env.market.address, XLM) == escrowed_xlm
