"""
interest.py - Per-second simple interest on loan principal

ARCHITECTURE (Pure Function Pattern):
=====================================

1. PURE CALCULATION FUNCTIONS (accrue_interest, total_debt, ...):
   - Take all inputs explicitly as parameters
   - Integer-only, checked arithmetic, no clock and no storage
   - Trivially testable, property-testable

2. CONVENIENCE FUNCTIONS (pending_interest, loan_total_debt):
   - Take a Loan record and a timestamp
   - Internally call the pure functions with the loan's fields

Key Formulas:
    interest = principal * rate_bps * elapsed_seconds / (10000 * 604800)
    total_debt = principal + accumulated_interest + interest since last update

Multiplication always happens before division so that short periods on small
principals still accrue. Results truncate toward zero.
"""

from __future__ import annotations
from typing import Tuple

from .core import BASIS_POINTS, SECONDS_PER_WEEK, InvalidInput
from .fixed_point import checked_add, checked_sub, checked_mul, checked_div, saturate_u32
from .types import Loan

WEEKS_PER_YEAR = 52


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def accrue_interest(principal: int, rate_bps: int, from_time: int, to_time: int) -> int:
    """
    Interest accrued on a principal between two instants.

    PURE FUNCTION - All inputs explicit.

    Args:
        principal: Outstanding principal (7-decimal fixed point)
        rate_bps: Weekly interest rate in basis points
        from_time: Start of the period, seconds
        to_time: End of the period, seconds

    Returns:
        Interest in the principal's units, truncated toward zero.
        0 when no time has elapsed.

    Raises:
        InvalidInput: If to_time is before from_time
        ArithmeticOverflow: If an intermediate product leaves the 128-bit range

    Example:
        # 1000 USDC at 5% weekly for one week
        accrue_interest(1000_0000000, 500, 0, 604800)  # -> 50_0000000
    """
    if to_time < from_time:
        raise InvalidInput(f"interest period ends before it starts: {to_time} < {from_time}")
    elapsed = to_time - from_time
    if elapsed == 0:
        return 0

    numerator = checked_mul(checked_mul(principal, rate_bps), elapsed)
    return checked_div(checked_div(numerator, BASIS_POINTS), SECONDS_PER_WEEK)


def total_debt(principal: int, accumulated: int, rate_bps: int, last_update: int, now: int) -> int:
    """
    Principal plus accumulated plus pending interest.

    PURE FUNCTION - All inputs explicit.
    """
    pending = accrue_interest(principal, rate_bps, last_update, now)
    return checked_add(checked_add(principal, accumulated), pending)


def interest_for_period(principal: int, rate_bps: int, weeks: int) -> int:
    """Interest on a principal over a whole number of weeks."""
    seconds = checked_mul(weeks, SECONDS_PER_WEEK)
    return accrue_interest(principal, rate_bps, 0, seconds)


def calculate_apy(weekly_rate_bps: int) -> int:
    """
    Simple (non-compounding) annual rate in bps for display.

    Saturates at U32_MAX instead of raising.
    """
    return saturate_u32(weekly_rate_bps * WEEKS_PER_YEAR)


def apply_repayment(principal: int, total_interest: int, amount: int) -> Tuple[int, int]:
    """
    Split a repayment between interest and principal.

    PURE FUNCTION - All inputs explicit.

    Interest is paid first. Whatever exceeds the total interest owed reduces
    the principal.

    Args:
        principal: Outstanding principal before the payment
        total_interest: Accumulated plus pending interest at payment time
        amount: Payment, assumed already validated against total debt

    Returns:
        Tuple of (new_principal, new_accumulated_interest)
    """
    if amount >= total_interest:
        remaining = checked_sub(amount, total_interest)
        return checked_sub(principal, remaining), 0
    return principal, checked_sub(total_interest, amount)


# ============================================================================
# CONVENIENCE FUNCTIONS - Loan record in, integer out
# ============================================================================

def pending_interest(loan: Loan, now: int) -> int:
    """Interest accrued since the loan's last interest update."""
    return accrue_interest(loan.borrowed_amount, loan.interest_rate, loan.last_interest_update, now)


def loan_total_debt(loan: Loan, now: int) -> int:
    """Everything the borrower owes on the loan at ``now``."""
    return total_debt(
        loan.borrowed_amount,
        loan.accumulated_interest,
        loan.interest_rate,
        loan.last_interest_update,
        now,
    )
