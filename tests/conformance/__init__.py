"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the lending market.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. interest_properties.py - Accrual is linear, truncating and monotone
2. repayment_properties.py - Interest is paid before principal; nothing is lost
3. liquidation_conservation.py - Collateral value splits exactly into debt, bonus and excess
4. market_atomicity.py - A failed operation changes neither store nor balances
5. reentrancy.py - Operations cannot nest

These tests use hypothesis for property-based testing.
"""
