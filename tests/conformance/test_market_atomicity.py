"""
Market Atomicity Conformance Tests

INVARIANT: Market operations are all-or-nothing.

    ∀ operation O:
        O raises  ⟹  store and every ledger balance are unchanged
        O returns ⟹  every record write and every token move of O is applied

A failure in token settlement (the last step) discards the staged record
writes, so records can never disagree with balances.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from lending_market import (
    LendingError, InsufficientBalance, InsufficientCollateral, StalePrice,
    WithdrawalBreachesHealth, RepayExceedsDebt, TooManyOffers, EngineParameters,
)
from tests.market_factory import make_market, ONE, T0, USDC, XLM, LOAN_COLLATERAL


def failing_operations():
    """(label, operation on an env with an open offer and loan, expected error)."""
    return [
        ("borrow_without_collateral",
         lambda env, offer, loan: env.open_loan(offer, borrower="dave"), InsufficientBalance),
        ("borrow_too_much",
         lambda env, offer, loan: env.open_loan(offer, amount=1_001 * ONE), InsufficientCollateral),
        ("liquidator_without_funds",
         lambda env, offer, loan: (env.set_price(12_000_000_000_000), env.market.liquidate("dave", loan)),
         InsufficientBalance),
        ("withdraw_past_margin",
         lambda env, offer, loan: env.market.withdraw_collateral("bob", loan, 5_000 * ONE),
         WithdrawalBreachesHealth),
        ("repay_too_much",
         lambda env, offer, loan: env.market.repay("bob", loan, 2_000 * ONE), RepayExceedsDebt),
        ("lender_without_funds",
         lambda env, offer, loan: env.open_offer("dave"), InsufficientBalance),
    ]


class TestAtomicityExamples:
    """Each rejected operation leaves the market exactly as it was."""

    @pytest.mark.parametrize(
        "operation, error",
        [(op, err) for _, op, err in failing_operations()],
        ids=[label for label, _, _ in failing_operations()],
    )
    def test_failure_changes_nothing(self, env, offer_id, loan_id, operation, error):
        before = env.fingerprint()
        log_size = len(env.ledger.transaction_log)
        with pytest.raises(error):
            operation(env, offer_id, loan_id)
        assert env.fingerprint() == before
        assert len(env.ledger.transaction_log) == log_size

    def test_stale_price_changes_nothing(self, env, offer_id):
        env.ledger.advance_time(T0 + 10_000)
        before = env.fingerprint()
        with pytest.raises(StalePrice):
            env.open_loan(offer_id)
        assert env.fingerprint() == before

    def test_settlement_failure_discards_counter(self, env, offer_id):
        with pytest.raises(InsufficientBalance):
            env.open_loan(offer_id, borrower="dave")
        assert env.open_loan(offer_id) == 1

    def test_success_applies_everything(self, env, offer_id):
        loan_id = env.open_loan(offer_id)
        loan = env.market.get_loan(loan_id)
        assert env.balance(env.market.address, XLM) == loan.collateral_amount
        assert env.market.get_offer(offer_id).usdc_amount == 10_000 * ONE - loan.borrowed_amount

    def test_cap_rejection_changes_nothing(self):
        env = make_market(params=EngineParameters(max_offers_per_user=1))
        env.open_offer()
        before = env.fingerprint()
        with pytest.raises(TooManyOffers):
            env.open_offer()
        assert env.fingerprint() == before


class TestAtomicityProperties:
    """Property-based atomicity tests."""

    @given(
        collateral=st.integers(min_value=1, max_value=2_000_000 * ONE),
        amount=st.integers(min_value=1, max_value=12_000 * ONE),
    )
    @settings(max_examples=80, deadline=None)
    def test_borrow_applies_fully_or_not_at_all(self, collateral, amount):
        """
        PROPERTY: A borrow either moves collateral, funds and records together,
        or moves nothing.
        """
        env = make_market()
        offer_id = env.open_offer()
        before = env.fingerprint()
        try:
            loan_id = env.open_loan(offer_id, collateral=collateral, amount=amount)
        except LendingError:
            assert env.fingerprint() == before
            return

        assert env.market.get_loan(loan_id).collateral_amount == collateral
        assert env.balance(env.market.address, XLM) == collateral
        assert env.balance("bob", USDC) == 1_000 * ONE + amount
        assert env.market.get_offer(offer_id).usdc_amount == 10_000 * ONE - amount

    @given(st.integers(min_value=1, max_value=LOAN_COLLATERAL))
    @settings(max_examples=60, deadline=None)
    def test_withdrawal_applies_fully_or_not_at_all(self, amount):
        env = make_market()
        loan_id = env.open_loan(env.open_offer())
        before = env.fingerprint()
        try:
            env.market.withdraw_collateral("bob", loan_id, amount)
        except WithdrawalBreachesHealth:
            assert env.fingerprint() == before
            return
        assert env.market.get_loan(loan_id).collateral_amount == LOAN_COLLATERAL - amount
        assert env.balance(env.market.address, XLM) == LOAN_COLLATERAL - amount
