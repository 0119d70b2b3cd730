"""
oracle.py - Validated collateral pricing and value conversions

The PriceOracle wraps a PriceFeed for one asset and turns raw quotes into
validated PriceQuote records:

    1. The feed must have a quote           -> PriceUnavailable otherwise
    2. The quote must be fresh              -> StalePrice otherwise
    3. The price must be inside the band    -> InvalidPrice otherwise
       [$0.01, $100] in feed fixed point, i.e. [10**(d-2), 100 * 10**d]

Conversions between collateral and debt amounts use the validated quote:

    collateral -> debt:  amount * price // 10**decimals
    debt -> collateral:  amount * 10**decimals // price

Both truncate toward zero. Every multiplication is checked.
"""

from __future__ import annotations
import logging
from typing import Optional

from .core import (
    Clock,
    BASIS_POINTS, PRICE_STALENESS_THRESHOLD, MIN_PRICE_CENTS, MAX_PRICE_UNITS,
    PriceUnavailable, StalePrice, InvalidPrice,
)
from .fixed_point import checked_mul, checked_div, pow10
from .pricing_source import PriceFeed
from .types import PriceQuote

logger = logging.getLogger(__name__)


def is_fresh(quote_timestamp: int, now: int, max_staleness: int) -> bool:
    """True when a quote is not from the future and not older than max_staleness."""
    if quote_timestamp > now:
        return False
    return (now - quote_timestamp) <= max_staleness


def price_band(decimals: int, min_price_cents: int = MIN_PRICE_CENTS,
               max_price_units: int = MAX_PRICE_UNITS) -> tuple:
    """
    Inclusive (low, high) sanity bounds for a price with ``decimals`` places.

    The low bound is ``min_price_cents`` hundredths of a unit; below two
    decimals of precision it is the smallest representable price.
    """
    if decimals >= 2:
        low = min_price_cents * pow10(decimals - 2)
    else:
        low = max(1, min_price_cents * pow10(decimals) // 100)
    high = max_price_units * pow10(decimals)
    return low, high


def liquidation_price(total_debt: int, collateral_amount: int, threshold: int, decimals: int) -> int:
    """
    Collateral price at which the loan's ratio reaches the threshold.

    ``total_debt * threshold * 10**decimals // collateral_amount // 10000``

    Raises:
        DivisionByZero: If collateral_amount is zero
    """
    scaled = checked_mul(checked_mul(total_debt, threshold), pow10(decimals))
    return checked_div(checked_div(scaled, collateral_amount), BASIS_POINTS)


class PriceOracle:
    """
    Validating adapter over a price feed for a single collateral asset.

    Example:
        oracle = PriceOracle(feed, "XLM", ledger_clock)
        quote = oracle.get_price()
        usdc = oracle.convert_collateral_to_debt(1000_0000000, quote)
    """

    def __init__(
        self,
        feed: PriceFeed,
        asset: str,
        clock: Clock,
        staleness_threshold: int = PRICE_STALENESS_THRESHOLD,
        min_price_cents: int = MIN_PRICE_CENTS,
        max_price_units: int = MAX_PRICE_UNITS,
    ):
        self.feed = feed
        self.asset = asset
        self.clock = clock
        self.staleness_threshold = staleness_threshold
        self.min_price_cents = min_price_cents
        self.max_price_units = max_price_units

    def get_price(self) -> PriceQuote:
        """
        Read and validate the latest quote.

        Raises:
            PriceUnavailable: The feed has no quote for the asset
            StalePrice: The quote is older than the staleness threshold or from the future
            InvalidPrice: The price is non-positive or outside the sanity band
        """
        raw = self.feed.latest_price(self.asset)
        if raw is None:
            raise PriceUnavailable(f"no price for {self.asset}")

        price, timestamp = raw
        decimals = self.feed.decimals()
        now = self.clock.now()

        if not is_fresh(timestamp, now, self.staleness_threshold):
            logger.debug("stale %s quote: published %s, now %s", self.asset, timestamp, now)
            raise StalePrice(
                f"{self.asset} quote from {timestamp} is not fresh at {now} "
                f"(max age {self.staleness_threshold}s)"
            )

        if price <= 0:
            raise InvalidPrice(f"{self.asset} price must be positive, got {price}")
        low, high = price_band(decimals, self.min_price_cents, self.max_price_units)
        if not low <= price <= high:
            raise InvalidPrice(f"{self.asset} price {price} outside [{low}, {high}]")

        return PriceQuote(price=price, timestamp=timestamp, decimals=decimals)

    def convert_collateral_to_debt(self, amount: int, quote: Optional[PriceQuote] = None) -> int:
        """Value a collateral amount in the debt asset."""
        quote = quote or self.get_price()
        return checked_div(checked_mul(amount, quote.price), pow10(quote.decimals))

    def convert_debt_to_collateral(self, amount: int, quote: Optional[PriceQuote] = None) -> int:
        """Collateral amount worth a given debt amount."""
        quote = quote or self.get_price()
        return checked_div(checked_mul(amount, pow10(quote.decimals)), quote.price)

    def __repr__(self):
        return f"PriceOracle({self.asset}, max_age={self.staleness_threshold}s)"
