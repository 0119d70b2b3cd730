"""
validation.py - Precondition guards for market operations

Each guard takes every input explicitly, returns None on success and raises
the specific LendingError subclass on failure. Guards never touch storage,
the oracle or the token ledger; callers look those values up first.
"""

from __future__ import annotations

from .core import (
    BASIS_POINTS, MAX_COLLATERAL_RATIO, MAX_OFFERS_PER_USER, MAX_LOANS_PER_USER,
    MIN_COLLATERAL_RATIO, MAX_PAGE_SIZE, WITHDRAWAL_SAFETY_MARGIN_BPS,
    InvalidInterestRate, InvalidCollateralRatio, InvalidLiquidationThreshold,
    InvalidOfferAmount, InvalidBorrowAmount, InvalidCollateralAmount,
    TooManyOffers, TooManyLoans, InsufficientCollateral,
    InvalidRepayAmount, RepayExceedsDebt, WithdrawalBreachesHealth,
    LoanDurationExceeded, InvalidInput, InvalidPagination,
)
from .fixed_point import checked_add, checked_mul, checked_div, U32_MAX


# ============================================================================
# OFFER PARAMETERS
# ============================================================================

def validate_interest_rate(rate: int, max_rate: int) -> None:
    if rate <= 0 or rate > max_rate:
        raise InvalidInterestRate(f"rate {rate} bps not in (0, {max_rate}]")


def validate_collateral_ratio(ratio: int, max_ratio: int = MAX_COLLATERAL_RATIO) -> None:
    if ratio < MIN_COLLATERAL_RATIO or ratio > max_ratio:
        raise InvalidCollateralRatio(f"collateral ratio {ratio} bps not in [{MIN_COLLATERAL_RATIO}, {max_ratio}]")


def validate_liquidation_threshold(threshold: int, min_ratio: int) -> None:
    """The threshold must be at least 100% and strictly below the origination ratio."""
    if threshold < MIN_COLLATERAL_RATIO or threshold >= min_ratio:
        raise InvalidLiquidationThreshold(
            f"liquidation threshold {threshold} bps not in [{MIN_COLLATERAL_RATIO}, {min_ratio})"
        )


def validate_max_duration(weeks: int) -> None:
    if weeks <= 0:
        raise InvalidInput(f"max duration must be positive, got {weeks} weeks")


# ============================================================================
# AMOUNTS
# ============================================================================

def validate_offer_amount(amount: int) -> None:
    if amount <= 0:
        raise InvalidOfferAmount(f"offer amount must be positive, got {amount}")


def validate_borrow_amount(amount: int) -> None:
    if amount <= 0:
        raise InvalidBorrowAmount(f"borrow amount must be positive, got {amount}")


def validate_collateral_amount(amount: int) -> None:
    if amount <= 0:
        raise InvalidCollateralAmount(f"collateral amount must be positive, got {amount}")


# ============================================================================
# PER-USER LIMITS
# ============================================================================

def validate_offer_limit(count: int, limit: int = MAX_OFFERS_PER_USER) -> None:
    """``count`` is the number of active offers the lender already has."""
    if count >= limit:
        raise TooManyOffers(f"lender already has {count} active offers (max {limit})")


def validate_loan_limit(count: int, limit: int = MAX_LOANS_PER_USER) -> None:
    """``count`` is the number of active loans the borrower already has."""
    if count >= limit:
        raise TooManyLoans(f"borrower already has {count} active loans (max {limit})")


# ============================================================================
# SOLVENCY
# ============================================================================

def max_borrow_for(collateral_value: int, min_ratio: int) -> int:
    """Largest loan a collateral value supports at the given ratio."""
    return checked_div(checked_mul(collateral_value, BASIS_POINTS), min_ratio)


def validate_sufficient_collateral(collateral_value: int, borrow_amount: int, min_ratio: int) -> None:
    """
    Raises InsufficientCollateral unless
    ``borrow_amount <= collateral_value * 10000 / min_ratio``.
    """
    max_borrow = max_borrow_for(collateral_value, min_ratio)
    if borrow_amount > max_borrow:
        raise InsufficientCollateral(
            f"collateral worth {collateral_value} supports at most {max_borrow}, requested {borrow_amount}"
        )


def validate_repay_amount(amount: int, total_debt: int) -> None:
    if amount <= 0:
        raise InvalidRepayAmount(f"repay amount must be positive, got {amount}")
    if amount > total_debt:
        raise RepayExceedsDebt(f"repay amount {amount} exceeds total debt {total_debt}")


def validate_collateral_withdrawal(
    current_collateral: int,
    amount: int,
    new_collateral_value: int,
    total_debt: int,
    liquidation_threshold: int,
    safety_margin: int = WITHDRAWAL_SAFETY_MARGIN_BPS,
) -> None:
    """
    Check that a collateral withdrawal keeps the loan comfortably healthy.

    Args:
        current_collateral: Collateral posted before the withdrawal
        amount: Collateral to withdraw
        new_collateral_value: Value of the remaining collateral in the debt asset
        total_debt: Live debt including pending interest
        liquidation_threshold: The loan's threshold in bps
        safety_margin: Headroom in bps required on top of the threshold

    Raises:
        InvalidInput: Non-positive amount, or more than is posted
        WithdrawalBreachesHealth: Resulting ratio below threshold + margin

    A loan without debt has an unbounded ratio and may withdraw freely.
    """
    if amount <= 0 or amount > current_collateral:
        raise InvalidInput(f"cannot withdraw {amount} of {current_collateral} collateral")

    if total_debt == 0:
        return

    new_ratio = checked_div(checked_mul(new_collateral_value, BASIS_POINTS), total_debt)
    required = checked_add(liquidation_threshold, safety_margin)
    if new_ratio < required:
        raise WithdrawalBreachesHealth(
            f"ratio after withdrawal {min(new_ratio, U32_MAX)} bps below required {required} bps"
        )


# ============================================================================
# DURATION AND QUERIES
# ============================================================================

def validate_loan_duration(weeks: int, max_weeks: int) -> None:
    if weeks <= 0:
        raise InvalidInput(f"loan duration must be positive, got {weeks} weeks")
    if weeks > max_weeks:
        raise LoanDurationExceeded(f"requested {weeks} weeks, offer allows {max_weeks}")


def validate_pagination(limit: int, offset: int) -> None:
    if limit <= 0 or limit > MAX_PAGE_SIZE:
        raise InvalidPagination(f"limit must be in [1, {MAX_PAGE_SIZE}], got {limit}")
    if offset < 0:
        raise InvalidPagination(f"offset cannot be negative, got {offset}")
