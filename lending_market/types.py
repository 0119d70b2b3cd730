"""
types.py - Records persisted and returned by the lending market

All records are immutable. State transitions produce new instances with
dataclasses.replace(); the market never mutates a stored record in place.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from enum import Enum

from .core import Address, RecordDict, DEFAULT_MAX_INTEREST_RATE, InvalidSortOption


class SortOption(Enum):
    """
    Ordering of offer listings.

    BEST_RATE: lowest weekly rate first
    HIGHEST_AMOUNT: largest remaining amount first
    NEWEST: most recently created first
    """
    BEST_RATE = "best_rate"
    HIGHEST_AMOUNT = "highest_amount"
    NEWEST = "newest"

    @classmethod
    def parse(cls, value) -> 'SortOption':
        """Accept a SortOption or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidSortOption(f"unknown sort option {value!r}") from None


@dataclass(frozen=True, slots=True)
class LendingOffer:
    """
    A lender's standing offer of debt-asset funds.

    Attributes:
        offer_id: Unique id assigned from the offer counter (starts at 1)
        lender: Principal who funded the offer
        usdc_amount: Funds still available to borrow
        weekly_interest_rate: Simple interest per week in basis points
        min_collateral_ratio: Collateral value required at origination, in bps of the loan
        liquidation_threshold: Ratio at or below which loans become liquidatable
        max_duration_weeks: Longest duration a borrower may request
        is_active: False once cancelled; never reactivated
        created_at: Creation time in seconds
    """
    offer_id: int
    lender: Address
    usdc_amount: int
    weekly_interest_rate: int
    min_collateral_ratio: int
    liquidation_threshold: int
    max_duration_weeks: int
    is_active: bool
    created_at: int

    def to_dict(self) -> RecordDict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class Loan:
    """
    An open or closed borrowing position drawn from an offer.

    The rate and liquidation threshold are copied from the offer at origination
    and do not change afterwards. Interest accrued up to last_interest_update is
    held in accumulated_interest; anything after that is computed on demand.
    """
    loan_id: int
    offer_id: int
    borrower: Address
    lender: Address
    collateral_amount: int
    borrowed_amount: int
    interest_rate: int
    start_time: int
    last_interest_update: int
    accumulated_interest: int
    liquidation_threshold: int
    is_active: bool

    def to_dict(self) -> RecordDict:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class LoanHealth:
    """
    Derived risk metrics of a loan at one instant. Never stored.

    Attributes:
        loan_id: Loan the metrics describe
        collateral_value_usd: Collateral valued in the debt asset
        debt_value_usd: Principal plus all interest owed
        collateralization_ratio: collateral value / debt in bps (U32_MAX when debt is 0)
        liquidation_price: Collateral price at which the ratio reaches the threshold
        health_factor: ratio / threshold in bps; 10000 means at the threshold
        is_liquidatable: ratio <= threshold on an active loan
    """
    loan_id: int
    collateral_value_usd: int
    debt_value_usd: int
    collateralization_ratio: int
    liquidation_price: int
    health_factor: int
    is_liquidatable: bool


@dataclass(frozen=True, slots=True)
class PriceQuote:
    """A validated collateral price, in debt-asset units scaled by 10**decimals."""
    price: int
    timestamp: int
    decimals: int


@dataclass(frozen=True, slots=True)
class MarketConfig:
    """
    The market's single configuration record.

    Written once by initialize(); admin operations replace it with an
    updated copy.
    """
    admin: Address
    debt_asset: str
    collateral_asset: str
    oracle: str
    max_interest_rate: int = DEFAULT_MAX_INTEREST_RATE
    paused: bool = False

    def to_dict(self) -> RecordDict:
        return asdict(self)
