"""
liquidation.py - Loan health metrics and the liquidation payout algorithm

ARCHITECTURE (Pure Function Pattern):
=====================================

1. PURE CALCULATION FUNCTIONS (calculate_*):
   - Integer inputs only, no oracle and no clock
   - Saturating sentinel policy: a zero debt gives ratio U32_MAX, a zero
     threshold gives health factor U32_MAX

2. ORACLE-AWARE FUNCTIONS (compute_health, is_liquidatable, plan_liquidation):
   - Take a Loan, a PriceOracle and the current time
   - Read one validated quote and feed the pure functions

3. LIQUIDATION PLAN:
   - plan_liquidation() decides everything a liquidation moves, without moving it
   - LiquidationPlan.moves() renders the plan as token ledger moves, which the
     market submits as one atomic batch

Key Formulas:
    collateralization_ratio = collateral_value * 10000 / total_debt
    health_factor = collateralization_ratio * 10000 / liquidation_threshold
    liquidation_price = total_debt * threshold * 10**decimals / collateral / 10000
    liquidator_bonus = collateral_value * 500 / 10000
    excess_to_borrower = collateral_value - total_debt - liquidator_bonus  (if positive)

Value conservation: collateral_value == total_debt + liquidator_bonus + excess_to_borrower.
When the collateral covers the debt but not the full nominal bonus, the
liquidator keeps whatever is left above the debt and the borrower gets nothing.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from .core import (
    Address, BASIS_POINTS, LIQUIDATION_BONUS_BPS,
    LoanNotActive, NotLiquidatable, InsufficientCollateralValue,
)
from .fixed_point import checked_mul, checked_div, checked_sub, saturate_u32, U32_MAX
from .interest import loan_total_debt
from .ledger import Move
from .oracle import PriceOracle, liquidation_price
from .types import Loan, LoanHealth, PriceQuote


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def calculate_collateralization_ratio(collateral_value: int, total_debt: int) -> int:
    """
    Collateral value over debt, in bps, clamped to U32_MAX.

    PURE FUNCTION - A loan without debt reports U32_MAX.
    """
    if total_debt == 0:
        return U32_MAX
    return saturate_u32(checked_div(checked_mul(collateral_value, BASIS_POINTS), total_debt))


def calculate_health_factor(ratio: int, liquidation_threshold: int) -> int:
    """
    Ratio normalised against the threshold, in bps (10000 = exactly at threshold).

    PURE FUNCTION - A zero threshold reports U32_MAX.
    """
    if liquidation_threshold == 0:
        return U32_MAX
    return saturate_u32(checked_div(checked_mul(ratio, BASIS_POINTS), liquidation_threshold))


def calculate_liquidator_bonus(collateral_value: int, bonus_bps: int = LIQUIDATION_BONUS_BPS) -> int:
    return checked_div(checked_mul(collateral_value, bonus_bps), BASIS_POINTS)


# ============================================================================
# ORACLE-AWARE FUNCTIONS
# ============================================================================

def compute_health(loan: Loan, oracle: PriceOracle, now: int, quote: Optional[PriceQuote] = None) -> LoanHealth:
    """
    Recompute every risk metric of a loan at ``now``.

    Args:
        loan: Loan to assess
        oracle: Validating oracle for the collateral asset
        now: Current time in seconds
        quote: Already validated quote to reuse; read from the oracle if None

    Returns:
        LoanHealth snapshot. Never cached by the market.

    Raises:
        OracleError: If no valid quote is available
        DivisionByZero: If the loan holds no collateral (liquidation price undefined)
    """
    quote = quote or oracle.get_price()
    debt = loan_total_debt(loan, now)
    value = oracle.convert_collateral_to_debt(loan.collateral_amount, quote)

    ratio = calculate_collateralization_ratio(value, debt)
    health = calculate_health_factor(ratio, loan.liquidation_threshold)
    liq_price = liquidation_price(debt, loan.collateral_amount, loan.liquidation_threshold, quote.decimals)

    return LoanHealth(
        loan_id=loan.loan_id,
        collateral_value_usd=value,
        debt_value_usd=debt,
        collateralization_ratio=ratio,
        liquidation_price=liq_price,
        health_factor=health,
        is_liquidatable=loan.is_active and ratio <= loan.liquidation_threshold,
    )


def is_liquidatable(loan: Loan, oracle: PriceOracle, now: int, quote: Optional[PriceQuote] = None) -> bool:
    """
    True iff the loan is active and its ratio is at or below its threshold.

    Inactive loans are never liquidatable and need no price.
    """
    if not loan.is_active:
        return False
    quote = quote or oracle.get_price()
    debt = loan_total_debt(loan, now)
    value = oracle.convert_collateral_to_debt(loan.collateral_amount, quote)
    return calculate_collateralization_ratio(value, debt) <= loan.liquidation_threshold


def batch_check_liquidatable(
    loan_ids: Iterable[int],
    lookup: Callable[[int], Optional[Loan]],
    oracle: PriceOracle,
    now: int,
) -> List[int]:
    """
    The subset of ``loan_ids`` that can be liquidated, in input order.

    Ids that ``lookup`` does not know are skipped. The price is read once,
    on the first loan that needs it.
    """
    result = []
    quote = None
    for loan_id in loan_ids:
        loan = lookup(loan_id)
        if loan is None or not loan.is_active:
            continue
        if quote is None:
            quote = oracle.get_price()
        if is_liquidatable(loan, oracle, now, quote):
            result.append(loan_id)
    return result


# ============================================================================
# LIQUIDATION PLAN
# ============================================================================

@dataclass(frozen=True, slots=True)
class LiquidationPlan:
    """
    Everything one liquidation moves, decided before anything moves.

    Attributes:
        loan_id: Loan being liquidated
        liquidator: Principal seizing the collateral and paying the debt
        lender: Receives total_debt
        borrower: Receives excess_to_borrower, if any
        collateral_amount: Collateral handed to the liquidator
        collateral_value: That collateral valued in the debt asset
        total_debt: Principal plus all interest at liquidation time
        liquidator_bonus: Value the liquidator keeps above the debt
        excess_to_borrower: Value returned to the borrower
    """
    loan_id: int
    liquidator: Address
    lender: Address
    borrower: Address
    collateral_amount: int
    collateral_value: int
    total_debt: int
    liquidator_bonus: int
    excess_to_borrower: int

    def moves(self, engine: Address, debt_asset: str, collateral_asset: str) -> List[Move]:
        """
        Token moves settling the plan, in distribution order.

        1. Full collateral: engine -> liquidator
        2. Total debt: liquidator -> lender
        3. Excess, when positive: liquidator -> borrower

        A leg whose payer is also its payee (a lender or borrower liquidating
        their own loan) nets to nothing and is left out.
        """
        memo = f"liquidate:{self.loan_id}"
        legs = [
            (self.collateral_amount, collateral_asset, engine, self.liquidator),
            (self.total_debt, debt_asset, self.liquidator, self.lender),
            (self.excess_to_borrower, debt_asset, self.liquidator, self.borrower),
        ]
        return [
            Move(quantity, asset, source, dest, memo)
            for quantity, asset, source, dest in legs
            if quantity > 0 and source != dest
        ]


def plan_liquidation(
    loan: Loan,
    liquidator: Address,
    oracle: PriceOracle,
    now: int,
    bonus_bps: int = LIQUIDATION_BONUS_BPS,
) -> LiquidationPlan:
    """
    Decide the payout of liquidating ``loan`` at ``now``.

    Raises:
        LoanNotActive: The loan is already closed
        NotLiquidatable: The loan's ratio is above its threshold
        InsufficientCollateralValue: The collateral is worth less than the debt
        OracleError: No valid quote is available

    Example:
        plan = plan_liquidation(loan, "keeper", oracle, now)
        assert plan.collateral_value == plan.total_debt + plan.liquidator_bonus + plan.excess_to_borrower
    """
    if not loan.is_active:
        raise LoanNotActive(f"loan {loan.loan_id} is not active")

    quote = oracle.get_price()
    if not is_liquidatable(loan, oracle, now, quote):
        raise NotLiquidatable(f"loan {loan.loan_id} is above its liquidation threshold")

    debt = loan_total_debt(loan, now)
    value = oracle.convert_collateral_to_debt(loan.collateral_amount, quote)
    if value < debt:
        raise InsufficientCollateralValue(
            f"loan {loan.loan_id}: collateral worth {value} does not cover debt {debt}"
        )

    margin = checked_sub(value, debt)
    bonus = calculate_liquidator_bonus(value, bonus_bps)
    if bonus >= margin:
        bonus, excess = margin, 0
    else:
        excess = checked_sub(margin, bonus)

    return LiquidationPlan(
        loan_id=loan.loan_id,
        liquidator=liquidator,
        lender=loan.lender,
        borrower=loan.borrower,
        collateral_amount=loan.collateral_amount,
        collateral_value=value,
        total_debt=debt,
        liquidator_bonus=bonus,
        excess_to_borrower=excess,
    )
