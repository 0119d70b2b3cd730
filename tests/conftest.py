"""
conftest.py - Shared pytest fixtures for lending market tests

Provides common fixtures used across unit, functional and conformance tests:
- A funded token ledger
- An initialized market with its feed, store and authorizer
- A standing offer and an open loan on that market
"""

import pytest

from tests.market_factory import make_ledger, make_market, FakeClock, T0


@pytest.fixture
def ledger():
    """Funded ledger with USDC and XLM registered."""
    return make_ledger()


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def env():
    """Initialized market with funded wallets, XLM at $0.15."""
    return make_market()


@pytest.fixture
def market(env):
    return env.market


@pytest.fixture
def offer_id(env):
    """alice: 10,000 USDC at 500 bps/week, ratio 15000, threshold 12000."""
    return env.open_offer()


@pytest.fixture
def loan_id(env, offer_id):
    """bob: 1,000 USDC against 10,000 XLM (ratio exactly 15000)."""
    return env.open_loan(offer_id)
