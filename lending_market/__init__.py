"""
lending_market - Peer-to-peer collateralized lending engine

Lenders escrow a debt asset in offers at a weekly interest rate; borrowers
draw against posted collateral; debt accrues simple per-second interest;
loans whose collateralization ratio falls to their liquidation threshold can
be liquidated by anyone.

Usage:
    from lending_market import (
        LendingMarket, TokenLedger, Asset, InMemoryStateStore,
        MockAllAuthorizer, StaticPriceFeed,
    )

    ledger = TokenLedger("main")
    ledger.register_asset(Asset("USDC", "USD Coin"))
    ledger.register_asset(Asset("XLM", "Stellar Lumens"))
    for wallet in ("admin", "alice", "bob"):
        ledger.register_wallet(wallet)
    ledger.issue("alice", "USDC", 1000_0000000)
    ledger.issue("bob", "XLM", 10_000_0000000)

    feed = StaticPriceFeed({"XLM": (15_000_000_000_000, 0)})
    market = LendingMarket(InMemoryStateStore(), ledger, MockAllAuthorizer(), {"oracle": feed})
    market.initialize("admin", "USDC", "XLM", "oracle")

    offer_id = market.create_offer("alice", 1000_0000000, 500, 15000, 12000, 4)
    loan_id = market.borrow("bob", offer_id, 10_000_0000000, 500_0000000)
    health = market.get_loan_health(loan_id)
"""

# Core constants, parameters and exceptions
from .core import (
    BASIS_POINTS,
    SECONDS_PER_WEEK,
    MAX_OFFERS_PER_USER,
    MAX_LOANS_PER_USER,
    PRICE_STALENESS_THRESHOLD,
    LIQUIDATION_BONUS_BPS,
    WITHDRAWAL_SAFETY_MARGIN_BPS,
    MIN_COLLATERAL_RATIO,
    MAX_COLLATERAL_RATIO,
    DEFAULT_MAX_INTEREST_RATE,
    USDC_DECIMALS,
    XLM_DECIMALS,
    SYSTEM_WALLET,
    Clock,
    EngineParameters,
    LendingError,
    InitializationError, AlreadyInitialized, NotInitialized,
    AuthorizationError, Unauthorized, OnlyAdmin, OnlyLender, OnlyBorrower,
    OfferError, OfferNotFound, OfferNotActive, InvalidInterestRate,
    InvalidCollateralRatio, InvalidLiquidationThreshold, InvalidOfferAmount,
    TooManyOffers, InsufficientOfferFunds,
    LoanError, LoanNotFound, LoanNotActive, InvalidBorrowAmount,
    InvalidCollateralAmount, InsufficientCollateral, TooManyLoans,
    InvalidRepayAmount, RepayExceedsDebt, WithdrawalBreachesHealth,
    LoanDurationExceeded,
    LiquidationError, NotLiquidatable, InsufficientCollateralValue,
    OracleError, OracleNotConfigured, PriceUnavailable, StalePrice, InvalidPrice,
    TokenError, TokenNotConfigured, TokenTransferFailed, InsufficientBalance,
    StateError, ContractPaused, Reentrant, InvalidInput,
    LendingArithmeticError, ArithmeticOverflow, ArithmeticUnderflow, DivisionByZero,
    QueryError, InvalidSortOption, InvalidPagination, NoOffersAvailable,
)

# Records
from .types import SortOption, LendingOffer, Loan, LoanHealth, PriceQuote, MarketConfig

# Arithmetic
from .fixed_point import (
    I128_MAX, I128_MIN, U32_MAX,
    checked_add, checked_sub, checked_mul, checked_div, mul_div, saturate_u32,
)

# Interest
from .interest import (
    accrue_interest, total_debt, interest_for_period, calculate_apy,
    apply_repayment, pending_interest, loan_total_debt,
)

# Pricing
from .pricing_source import PriceFeed, StaticPriceFeed, TimeSeriesPriceFeed
from .oracle import PriceOracle, liquidation_price, price_band, is_fresh

# Guards
from .validation import (
    validate_interest_rate, validate_collateral_ratio, validate_liquidation_threshold,
    validate_offer_amount, validate_borrow_amount, validate_collateral_amount,
    validate_offer_limit, validate_loan_limit, validate_sufficient_collateral,
    validate_repay_amount, validate_collateral_withdrawal, validate_loan_duration,
    validate_pagination, validate_max_duration,
)

# Health and liquidation
from .liquidation import (
    LiquidationPlan,
    calculate_collateralization_ratio, calculate_health_factor, calculate_liquidator_bonus,
    compute_health, is_liquidatable, batch_check_liquidatable, plan_liquidation,
)

# Collaborators
from .storage import StateStore, InMemoryStateStore, StagedStore, MarketStorage
from .ledger import (
    TokenLedger, LedgerToken, LedgerClock, Asset, Move,
    TransferBatch, Transaction, ExecuteResult, build_batch,
)
from .auth import Authorizer, SessionAuthorizer, MockAllAuthorizer

# Market
from .market import LendingMarket

# Operations
from .keeper import LiquidationKeeper
from .stress import ShockReport, shock_report

__all__ = [
    # Constants
    'BASIS_POINTS', 'SECONDS_PER_WEEK', 'MAX_OFFERS_PER_USER', 'MAX_LOANS_PER_USER',
    'PRICE_STALENESS_THRESHOLD', 'LIQUIDATION_BONUS_BPS', 'WITHDRAWAL_SAFETY_MARGIN_BPS',
    'MIN_COLLATERAL_RATIO', 'MAX_COLLATERAL_RATIO', 'DEFAULT_MAX_INTEREST_RATE',
    'USDC_DECIMALS', 'XLM_DECIMALS', 'SYSTEM_WALLET',
    'I128_MAX', 'I128_MIN', 'U32_MAX',
    # Configuration
    'Clock', 'EngineParameters', 'MarketConfig',
    # Exceptions
    'LendingError',
    'InitializationError', 'AlreadyInitialized', 'NotInitialized',
    'AuthorizationError', 'Unauthorized', 'OnlyAdmin', 'OnlyLender', 'OnlyBorrower',
    'OfferError', 'OfferNotFound', 'OfferNotActive', 'InvalidInterestRate',
    'InvalidCollateralRatio', 'InvalidLiquidationThreshold', 'InvalidOfferAmount',
    'TooManyOffers', 'InsufficientOfferFunds',
    'LoanError', 'LoanNotFound', 'LoanNotActive', 'InvalidBorrowAmount',
    'InvalidCollateralAmount', 'InsufficientCollateral', 'TooManyLoans',
    'InvalidRepayAmount', 'RepayExceedsDebt', 'WithdrawalBreachesHealth',
    'LoanDurationExceeded',
    'LiquidationError', 'NotLiquidatable', 'InsufficientCollateralValue',
    'OracleError', 'OracleNotConfigured', 'PriceUnavailable', 'StalePrice', 'InvalidPrice',
    'TokenError', 'TokenNotConfigured', 'TokenTransferFailed', 'InsufficientBalance',
    'StateError', 'ContractPaused', 'Reentrant', 'InvalidInput',
    'LendingArithmeticError', 'ArithmeticOverflow', 'ArithmeticUnderflow', 'DivisionByZero',
    'QueryError', 'InvalidSortOption', 'InvalidPagination', 'NoOffersAvailable',
    # Records
    'SortOption', 'LendingOffer', 'Loan', 'LoanHealth', 'PriceQuote',
    # Arithmetic
    'checked_add', 'checked_sub', 'checked_mul', 'checked_div', 'mul_div', 'saturate_u32',
    # Interest
    'accrue_interest', 'total_debt', 'interest_for_period', 'calculate_apy',
    'apply_repayment', 'pending_interest', 'loan_total_debt',
    # Pricing
    'PriceFeed', 'StaticPriceFeed', 'TimeSeriesPriceFeed',
    'PriceOracle', 'liquidation_price', 'price_band', 'is_fresh',
    # Guards
    'validate_interest_rate', 'validate_collateral_ratio', 'validate_liquidation_threshold',
    'validate_offer_amount', 'validate_borrow_amount', 'validate_collateral_amount',
    'validate_offer_limit', 'validate_loan_limit', 'validate_sufficient_collateral',
    'validate_repay_amount', 'validate_collateral_withdrawal', 'validate_loan_duration',
    'validate_pagination', 'validate_max_duration',
    # Health and liquidation
    'LiquidationPlan',
    'calculate_collateralization_ratio', 'calculate_health_factor', 'calculate_liquidator_bonus',
    'compute_health', 'is_liquidatable', 'batch_check_liquidatable', 'plan_liquidation',
    # Collaborators
    'StateStore', 'InMemoryStateStore', 'StagedStore', 'MarketStorage',
    'TokenLedger', 'LedgerToken', 'LedgerClock', 'Asset', 'Move',
    'TransferBatch', 'Transaction', 'ExecuteResult', 'build_batch',
    'Authorizer', 'SessionAuthorizer', 'MockAllAuthorizer',
    # Market
    'LendingMarket',
    # Operations
    'LiquidationKeeper', 'ShockReport', 'shock_report',
]

__version__ = '1.0.0'
