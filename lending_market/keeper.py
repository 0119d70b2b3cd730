"""
keeper.py - Liquidation keeper

Drives a market through time and liquidates whatever becomes liquidatable.

Execution order each step():
1. Advance ledger time
2. Scan the active loans with batch_check_liquidatable (one price read)
3. Liquidate each hit, in loan creation order

Loans whose collateral no longer covers their debt cannot be liquidated; they
are reported in ``underwater`` and retried on later steps. The token ledger's
transaction log is the audit trail of everything the keeper settled.
"""

from __future__ import annotations
import logging
from typing import Callable, Dict, List, Optional

from .core import Address, InsufficientCollateralValue
from .liquidation import LiquidationPlan
from .market import LendingMarket
from .pricing_source import StaticPriceFeed

logger = logging.getLogger(__name__)


class LiquidationKeeper:
    """
    Liquidates undercollateralized loans on behalf of one wallet.

    The keeper wallet must hold enough of the debt asset to pay off the loans
    it liquidates; it is repaid in collateral.

    Example:
        keeper = LiquidationKeeper(market, "keeper", feed)
        keeper.run(range(0, 3600, 60), lambda t: price_path[t])
    """

    def __init__(self, market: LendingMarket, keeper: Address, feed: Optional[StaticPriceFeed] = None):
        """
        Args:
            market: Market to watch
            keeper: Wallet acting as liquidator
            feed: Feed to publish prices to during run(); optional for step()
        """
        self.market = market
        self.keeper = keeper
        self.feed = feed
        self.history: List[LiquidationPlan] = []
        self.underwater: Dict[int, int] = {}

    def step(self, timestamp: int) -> List[int]:
        """
        Advance time and liquidate every liquidatable loan.

        Args:
            timestamp: New ledger time in seconds

        Returns:
            Ids of the loans liquidated in this step
        """
        self.market.ledger.advance_time(timestamp)
        candidates = self.market.batch_check_liquidatable(self.market.get_active_loans())

        liquidated: List[int] = []
        for loan_id in candidates:
            try:
                plan = self.market.liquidate(self.keeper, loan_id)
            except InsufficientCollateralValue as e:
                self.underwater[loan_id] = timestamp
                logger.warning("loan %d is underwater at %d and cannot be liquidated: %s", loan_id, timestamp, e)
                continue
            self.underwater.pop(loan_id, None)
            self.history.append(plan)
            liquidated.append(loan_id)

        if liquidated:
            logger.info("keeper %s liquidated %d loans at %d", self.keeper, len(liquidated), timestamp)
        return liquidated

    def run(
        self,
        timestamps: List[int],
        price_at: Optional[Callable[[int], int]] = None,
    ) -> List[int]:
        """
        Run the keeper through a sequence of timestamps.

        Args:
            timestamps: Increasing ledger times to process
            price_at: Collateral price to publish at each timestamp; needs a feed

        Returns:
            All liquidated loan ids, in liquidation order
        """
        if price_at is not None and self.feed is None:
            raise ValueError("price_at requires the keeper to be given a feed")

        asset = self.market.get_config().collateral_asset
        all_liquidated: List[int] = []
        for timestamp in timestamps:
            if price_at is not None:
                self.feed.update_price(asset, price_at(timestamp), timestamp)
            all_liquidated.extend(self.step(timestamp))
        return all_liquidated
