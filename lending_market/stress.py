"""
stress.py - Vectorised price-shock report over a market's open loans

Answers "which loans become liquidatable if the collateral price moves by x%?"
for many shocks at once. Values are float64 approximations of the exact
integer formulas in liquidation.py and are for reporting only; settlement
always goes through the integer path.

Key Formulas (per loan i and shock s):
    shocked_price[s] = price * (1 + shocks[s])
    value[i, s] = collateral[i] * shocked_price[s] / 10**decimals
    ratio[i, s] = value[i, s] * 10000 / debt[i]
    health_factor[i, s] = ratio[i, s] * 10000 / threshold[i]
    breakeven_shock[i] = liquidation_price[i] / price - 1
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .core import BASIS_POINTS
from .interest import loan_total_debt
from .market import LendingMarket


@dataclass(frozen=True, slots=True)
class ShockReport:
    """
    Health of every active loan under each price shock.

    Attributes:
        loan_ids: Active loans, in creation order (rows)
        shocks: Relative price moves, e.g. -0.2 for a 20% drop (columns)
        base_price: Validated price the shocks are applied to
        health_factors: (loans x shocks) health factors in bps
        liquidatable: (loans x shocks) ratio <= threshold
        breakeven_shocks: Per loan, the shock at which it reaches its threshold
    """
    loan_ids: Tuple[int, ...]
    shocks: np.ndarray
    base_price: int
    health_factors: np.ndarray
    liquidatable: np.ndarray
    breakeven_shocks: np.ndarray

    def liquidatable_at(self, shock_index: int) -> List[int]:
        """Loan ids liquidatable under the shock in column ``shock_index``."""
        mask = self.liquidatable[:, shock_index]
        return [loan_id for loan_id, hit in zip(self.loan_ids, mask) if hit]

    def liquidatable_counts(self) -> np.ndarray:
        """Number of liquidatable loans per shock."""
        return self.liquidatable.sum(axis=0)


def shock_report(market: LendingMarket, shocks: Sequence[float]) -> ShockReport:
    """
    Stress every active loan of ``market`` against relative price shocks.

    Debt includes interest up to the market clock's current time.

    Raises:
        ValueError: If a shock would make the price non-positive (<= -1)
        OracleError: If the market has no valid price
    """
    shock_arr = np.asarray(shocks, dtype=float)
    if shock_arr.ndim != 1:
        raise ValueError("shocks must be a one-dimensional sequence")
    if np.any(shock_arr <= -1.0):
        raise ValueError("shocks must be greater than -1")

    quote = market.get_price()
    now = market.clock.now()
    loans = [market.get_loan(loan_id) for loan_id in market.get_active_loans()]

    collateral = np.array([loan.collateral_amount for loan in loans], dtype=float)
    debt = np.array([loan_total_debt(loan, now) for loan in loans], dtype=float)
    threshold = np.array([loan.liquidation_threshold for loan in loans], dtype=float)
    scale = float(10 ** quote.decimals)

    prices = quote.price * (1.0 + shock_arr)
    values = np.outer(collateral, prices) / scale

    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.where(debt[:, None] > 0, values * BASIS_POINTS / debt[:, None], np.inf)
        health = ratio * BASIS_POINTS / threshold[:, None]
        liq_price = debt * threshold * scale / (collateral * BASIS_POINTS)
    breakeven = liq_price / quote.price - 1.0

    return ShockReport(
        loan_ids=tuple(loan.loan_id for loan in loans),
        shocks=shock_arr,
        base_price=quote.price,
        health_factors=health.reshape(len(loans), len(shock_arr)),
        liquidatable=(ratio <= threshold[:, None]).reshape(len(loans), len(shock_arr)),
        breakeven_shocks=breakeven,
    )
