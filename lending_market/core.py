"""
Core constants, tunables and exceptions for the lending market engine.

This module provides the foundations shared by every other module:
1. Constants: basis points, period lengths, per-user caps, oracle bounds
2. EngineParameters: the tunable limits, passed explicitly to the market
3. Exceptions: LendingError and its grouped, coded subclasses

All amounts in the engine are plain Python ints interpreted as fixed-point
values (7 implied decimals for both the debt asset and the collateral asset).
Rates, ratios and thresholds are integer basis points.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any, Protocol, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# 10000 bps = 100%
BASIS_POINTS = 10_000

# Interest is quoted per week and accrued per second.
SECONDS_PER_WEEK = 604_800

# Per-user cardinality caps.
MAX_OFFERS_PER_USER = 10
MAX_LOANS_PER_USER = 20

# Oracle quotes older than this many seconds are rejected.
PRICE_STALENESS_THRESHOLD = 300

# Share of the collateral value granted to the liquidator.
LIQUIDATION_BONUS_BPS = 500

# Headroom above the liquidation threshold required after a collateral withdrawal.
WITHDRAWAL_SAFETY_MARGIN_BPS = 2_500

# Collateral ratio bounds accepted on offers.
MIN_COLLATERAL_RATIO = BASIS_POINTS
MAX_COLLATERAL_RATIO = 50_000

# Used when initialize() is not given an explicit cap (30% weekly).
DEFAULT_MAX_INTEREST_RATE = 3_000

# Fixed-point precision of the two supported assets.
USDC_DECIMALS = 7
XLM_DECIMALS = 7

# Oracle sanity band: $0.01 .. $100 per unit of collateral.
MIN_PRICE_CENTS = 1
MAX_PRICE_UNITS = 100

# Pagination bound for offer listings.
MAX_PAGE_SIZE = 100

# Reserved wallet for token issuance and redemption on the token ledger.
# The system wallet is exempt from balance validation.
SYSTEM_WALLET = "system"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Opaque principal identifier (lender, borrower, liquidator, admin).
Address = str

# Storage key in the state store namespace.
StoreKey = tuple

# Snapshot of a record serialised for display or export.
RecordDict = Dict[str, Any]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class Clock(Protocol):
    """
    Source of the current time in whole seconds.

    The engine never reads wall-clock time. Interest accrual, oracle freshness
    and record timestamps all come from the clock handed to the market.
    """

    def now(self) -> int:
        """Return the current time in seconds."""
        ...


# ============================================================================
# ENGINE PARAMETERS
# ============================================================================

@dataclass(frozen=True, slots=True)
class EngineParameters:
    """
    Tunable limits of the engine.

    Defaults equal the module constants. A market is built with one instance
    and never reads the constants directly, so tests and simulations can tighten
    or relax limits without touching global state.
    """
    max_offers_per_user: int = MAX_OFFERS_PER_USER
    max_loans_per_user: int = MAX_LOANS_PER_USER
    price_staleness_threshold: int = PRICE_STALENESS_THRESHOLD
    liquidation_bonus_bps: int = LIQUIDATION_BONUS_BPS
    withdrawal_safety_margin_bps: int = WITHDRAWAL_SAFETY_MARGIN_BPS
    max_collateral_ratio: int = MAX_COLLATERAL_RATIO
    min_price_cents: int = MIN_PRICE_CENTS
    max_price_units: int = MAX_PRICE_UNITS

    def __post_init__(self):
        if self.max_offers_per_user <= 0:
            raise ValueError(f"max_offers_per_user must be positive, got {self.max_offers_per_user}")
        if self.max_loans_per_user <= 0:
            raise ValueError(f"max_loans_per_user must be positive, got {self.max_loans_per_user}")
        if self.price_staleness_threshold < 0:
            raise ValueError(
                f"price_staleness_threshold cannot be negative, got {self.price_staleness_threshold}"
            )
        if not 0 <= self.liquidation_bonus_bps <= BASIS_POINTS:
            raise ValueError(
                f"liquidation_bonus_bps must be in [0, {BASIS_POINTS}], got {self.liquidation_bonus_bps}"
            )
        if self.withdrawal_safety_margin_bps < 0:
            raise ValueError(
                f"withdrawal_safety_margin_bps cannot be negative, got {self.withdrawal_safety_margin_bps}"
            )
        if self.max_collateral_ratio < MIN_COLLATERAL_RATIO:
            raise ValueError(
                f"max_collateral_ratio must be at least {MIN_COLLATERAL_RATIO}, got {self.max_collateral_ratio}"
            )
        if self.min_price_cents <= 0 or self.max_price_units <= 0:
            raise ValueError("price band bounds must be positive")


# ============================================================================
# EXCEPTIONS
# ============================================================================
#
# Every failure kind is a subclass of LendingError carrying a stable integer
# code. Codes are grouped by range:
#   1-9 lifecycle, 10-19 authorization, 20-39 offer, 40-59 loan,
#   60-79 liquidation, 80-99 oracle, 100-119 token, 120-139 state/arithmetic,
#   140-159 query.

class LendingError(Exception):
    """Base exception for all lending market errors."""
    code: int = 0

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)


# Lifecycle -----------------------------------------------------------------

class InitializationError(LendingError):
    """Market configuration lifecycle errors."""


class AlreadyInitialized(InitializationError):
    """Raised when initialize() is called on a configured market."""
    code = 1


class NotInitialized(InitializationError):
    """Raised when an operation needs a configuration that does not exist yet."""
    code = 2


# Authorization -------------------------------------------------------------

class AuthorizationError(LendingError):
    """The invoking principal is not allowed to perform the operation."""


class Unauthorized(AuthorizationError):
    """Raised when the invoking principal does not match the required address."""
    code = 10


class OnlyAdmin(AuthorizationError):
    """Raised when a non-admin calls an admin operation."""
    code = 11


class OnlyLender(AuthorizationError):
    """Raised when someone other than the offer's lender manages the offer."""
    code = 12


class OnlyBorrower(AuthorizationError):
    """Raised when someone other than the loan's borrower manages the loan."""
    code = 13


# Offer -----------------------------------------------------------------------

class OfferError(LendingError):
    """Offer lookup and parameter errors."""


class OfferNotFound(OfferError):
    code = 20


class OfferNotActive(OfferError):
    code = 21


class InvalidInterestRate(OfferError):
    """Raised when a rate is zero or above the configured maximum."""
    code = 22


class InvalidCollateralRatio(OfferError):
    """Raised when a minimum collateral ratio is outside [100%, 500%]."""
    code = 23


class InvalidLiquidationThreshold(OfferError):
    """Raised when a threshold is below 100% or not below the collateral ratio."""
    code = 24


class InvalidOfferAmount(OfferError):
    code = 25


class TooManyOffers(OfferError):
    code = 26


class InsufficientOfferFunds(OfferError):
    """Raised when a borrow asks for more than the offer has left."""
    code = 27


# Loan ------------------------------------------------------------------------

class LoanError(LendingError):
    """Loan lookup, parameter and solvency errors."""


class LoanNotFound(LoanError):
    code = 40


class LoanNotActive(LoanError):
    code = 41


class InvalidBorrowAmount(LoanError):
    code = 42


class InvalidCollateralAmount(LoanError):
    code = 43


class InsufficientCollateral(LoanError):
    """Raised when the posted collateral does not cover the requested amount."""
    code = 44


class TooManyLoans(LoanError):
    code = 45


class InvalidRepayAmount(LoanError):
    code = 46


class RepayExceedsDebt(LoanError):
    code = 47


class WithdrawalBreachesHealth(LoanError):
    """Raised when a collateral withdrawal would leave too little headroom."""
    code = 48


class LoanDurationExceeded(LoanError):
    code = 49


# Liquidation -----------------------------------------------------------------

class LiquidationError(LendingError):
    """Liquidation preconditions that do not hold."""


class NotLiquidatable(LiquidationError):
    code = 60


class InsufficientCollateralValue(LiquidationError):
    """Raised when the collateral is worth less than the debt it secures."""
    code = 63


# Oracle ----------------------------------------------------------------------

class OracleError(LendingError):
    """Price feed configuration and quote validation errors."""


class OracleNotConfigured(OracleError):
    code = 80


class PriceUnavailable(OracleError):
    code = 81


class StalePrice(OracleError):
    code = 82


class InvalidPrice(OracleError):
    """Raised for non-positive quotes or quotes outside the sanity band."""
    code = 83


# Token -----------------------------------------------------------------------

class TokenError(LendingError):
    """Token ledger configuration and transfer errors."""


class TokenNotConfigured(TokenError):
    code = 100


class TokenTransferFailed(TokenError):
    code = 102


class InsufficientBalance(TokenTransferFailed):
    """Raised when a transfer would take a wallet below its minimum balance."""
    code = 103


# State -----------------------------------------------------------------------

class StateError(LendingError):
    """Errors about the engine's execution state or malformed inputs."""


class ContractPaused(StateError):
    code = 120


class Reentrant(StateError):
    code = 121


class InvalidInput(StateError):
    code = 122


# Arithmetic ------------------------------------------------------------------

class LendingArithmeticError(LendingError):
    """Checked fixed-point arithmetic failed."""


class ArithmeticOverflow(LendingArithmeticError):
    code = 123


class ArithmeticUnderflow(LendingArithmeticError):
    code = 124


class DivisionByZero(LendingArithmeticError):
    code = 125


# Query -----------------------------------------------------------------------

class QueryError(LendingError):
    """Errors raised by listing queries."""


class InvalidSortOption(QueryError):
    code = 140


class InvalidPagination(QueryError):
    code = 141


class NoOffersAvailable(QueryError):
    code = 142
