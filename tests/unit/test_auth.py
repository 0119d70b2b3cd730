"""
test_auth.py - Unit tests for caller authorization
"""

import pytest

from lending_market import Authorizer, SessionAuthorizer, MockAllAuthorizer, Unauthorized
from tests.market_factory import make_market


class TestSessionAuthorizer:

    def test_protocol(self):
        assert isinstance(SessionAuthorizer(), Authorizer)
        assert isinstance(MockAllAuthorizer(), Authorizer)

    def test_no_caller(self):
        with pytest.raises(Unauthorized):
            SessionAuthorizer().require_caller_is("alice")

    def test_matching_caller(self):
        auth = SessionAuthorizer()
        with auth.invoked_by("alice"):
            auth.require_caller_is("alice")
            with pytest.raises(Unauthorized):
                auth.require_caller_is("bob")

    def test_nesting_restores_outer_caller(self):
        auth = SessionAuthorizer()
        with auth.invoked_by("alice"):
            with auth.invoked_by("bob"):
                assert auth.caller == "bob"
            assert auth.caller == "alice"
        assert auth.caller is None


class TestMarketAuthorization:

    def test_create_offer_requires_lender(self):
        auth = SessionAuthorizer()
        env = make_market(authorizer=auth, initialize=False)
        with auth.invoked_by("admin"):
            env.market.initialize("admin", "USDC", "XLM", "oracle")

        with auth.invoked_by("bob"):
            with pytest.raises(Unauthorized):
                env.open_offer("alice")
        with auth.invoked_by("alice"):
            assert env.open_offer("alice") == 1

    def test_mock_records_principals(self, env, offer_id):
        env.open_loan(offer_id)
        assert env.authorizer.required == ["admin", "alice", "bob"]
