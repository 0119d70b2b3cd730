"""
test_stress.py - Unit tests for the price-shock report
"""

import numpy as np
import pytest

from lending_market import shock_report, PriceUnavailable
from tests.market_factory import ONE, XLM, PRICE


class TestShockReport:

    def test_single_loan(self, env, loan_id):
        report = shock_report(env.market, [0.0, -0.25, -0.5])
        assert report.loan_ids == (loan_id,)
        assert report.base_price == PRICE
        assert report.health_factors.shape == (1, 3)
        np.testing.assert_allclose(report.health_factors[0], [12_500, 9_375, 6_250])
        assert report.liquidatable[0].tolist() == [False, True, True]
        np.testing.assert_allclose(report.breakeven_shocks, [-0.2])

    def test_counts_and_lookup(self, env, offer_id):
        safe = env.open_loan(offer_id, collateral=20_000 * ONE)
        risky = env.open_loan(offer_id)
        report = shock_report(env.market, [0.0, -0.25, -0.65])
        assert report.liquidatable_counts().tolist() == [0, 1, 2]
        assert report.liquidatable_at(1) == [risky]
        assert report.liquidatable_at(2) == [safe, risky]

    def test_agrees_with_exact_check(self, env, loan_id):
        report = shock_report(env.market, [-0.19, -0.21])
        assert report.liquidatable_at(0) == []
        assert report.liquidatable_at(1) == [loan_id]
        env.set_price(11_850_000_000_000)
        assert env.market.is_liquidatable(loan_id)

    def test_no_loans(self, market):
        report = shock_report(market, [0.0, -0.1])
        assert report.loan_ids == ()
        assert report.liquidatable_counts().tolist() == [0, 0]

    @pytest.mark.parametrize("shocks", [[-1.0], [0.1, -1.5], [[0.1]]])
    def test_invalid_shocks(self, market, shocks):
        with pytest.raises(ValueError):
            shock_report(market, shocks)

    def test_needs_price(self, env):
        env.feed.remove_price(XLM)
        with pytest.raises(PriceUnavailable):
            shock_report(env.market, [0.0])
