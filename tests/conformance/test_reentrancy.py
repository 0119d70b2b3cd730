"""
Reentrancy Conformance Tests

INVARIANT: Market operations never nest.

    ∀ operation O in progress:
        any mutating call made while O holds the lock raises Reentrant
        the lock is released when O finishes, whether O succeeded or failed
"""

import pytest

from lending_market import StaticPriceFeed, Reentrant, InsufficientBalance
from lending_market.storage import LOCK_KEY
from tests.market_factory import make_market, ONE, T0, XLM, PRICE, ORACLE


class CallbackFeed(StaticPriceFeed):
    """Feed that calls back into the market whenever it is read."""

    def __init__(self, callback, **kwargs):
        super().__init__(**kwargs)
        self.callback = callback
        self.errors = []

    def latest_price(self, asset):
        try:
            self.callback()
        except Reentrant as e:
            self.errors.append(e)
        return super().latest_price(asset)


def market_with_callback(callback_for):
    """Market whose oracle feed runs callback_for(env) on every read."""
    env = make_market()
    feed = CallbackFeed(lambda: callback_for(env), quotes={XLM: (PRICE, T0)})
    env.market.price_feeds[ORACLE] = feed
    env.feed = feed
    return env


class TestReentrancy:

    def test_nested_call_rejected(self):
        env = market_with_callback(lambda env: env.open_offer())
        offer_id = env.open_offer()
        loan_id = env.open_loan(offer_id)

        assert len(env.feed.errors) == 1
        assert env.market.get_loan(loan_id).is_active
        # The nested offer was never created
        assert env.market.get_active_offers() == [offer_id]

    def test_lock_released_after_success(self):
        env = market_with_callback(lambda env: None)
        env.open_loan(env.open_offer())
        assert not env.store.has(LOCK_KEY)
        env.open_offer()

    def test_lock_released_after_failure(self, env, offer_id):
        with pytest.raises(InsufficientBalance):
            env.open_loan(offer_id, borrower="dave")
        assert not env.store.has(LOCK_KEY)
        env.open_loan(offer_id)

    def test_nested_call_propagates_when_unhandled(self):
        env = make_market()

        class NestingFeed(StaticPriceFeed):
            def latest_price(self, asset):
                env.market.add_collateral("bob", 1, ONE)
                return super().latest_price(asset)

        env.market.price_feeds[ORACLE] = NestingFeed({XLM: (PRICE, T0)})
        offer_id = env.open_offer()
        before = env.fingerprint()
        with pytest.raises(Reentrant):
            env.open_loan(offer_id)
        assert env.fingerprint() == before

    def test_queries_allowed_during_operation(self):
        seen = []
        env = market_with_callback(lambda env: seen.append(env.market.get_active_offers()))
        offer_id = env.open_offer()
        env.open_loan(offer_id)
        # Queries read committed state: the loan being opened is not visible yet
        assert seen == [[offer_id]]
        assert env.feed.errors == []
