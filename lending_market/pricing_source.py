"""
pricing_source.py - Price feeds quoting the collateral asset

Provides the raw quote sources the oracle adapter reads from.

Classes:
- PriceFeed: Protocol defining the feed interface
- StaticPriceFeed: Fixed quotes, updated explicitly
- TimeSeriesPriceFeed: Historical quotes, read at the clock's current time

Quotes are (price, timestamp) pairs. Prices are integers denominated in the
debt asset and scaled by 10**decimals(); timestamps are the instant the quote
was published. Feeds do no validation; that is the oracle adapter's job.
"""

from typing import Dict, Optional, List, Tuple, Protocol, runtime_checkable
from bisect import bisect_right

from .core import Clock

# Fixed-point precision of the reference price feed.
DEFAULT_FEED_DECIMALS = 14

# Quote as published by a feed: (price, timestamp).
RawQuote = Tuple[int, int]


@runtime_checkable
class PriceFeed(Protocol):
    """
    Protocol for price feeds.

    A feed returns the latest quote for an asset, or None when it has never
    quoted it, and reports the fixed-point precision of its prices.
    """

    def latest_price(self, asset: str) -> Optional[RawQuote]:
        """Latest (price, timestamp) for the asset, or None."""
        ...

    def decimals(self) -> int:
        """Number of implied decimals in every price."""
        ...


class StaticPriceFeed:
    """
    Feed with explicitly set quotes.

    Each quote keeps the timestamp it was published with, so a quote that is
    never refreshed goes stale as the market clock moves on.
    """

    def __init__(self, quotes: Optional[Dict[str, RawQuote]] = None, decimals: int = DEFAULT_FEED_DECIMALS):
        """
        Initialize with a quote map.

        Args:
            quotes: Dictionary mapping asset symbols to (price, timestamp)
            decimals: Implied decimals of the prices
        """
        self._decimals = decimals
        self.quotes: Dict[str, RawQuote] = dict(quotes or {})

    def latest_price(self, asset: str) -> Optional[RawQuote]:
        return self.quotes.get(asset)

    def decimals(self) -> int:
        return self._decimals

    def update_price(self, asset: str, price: int, timestamp: int):
        """Publish a new quote for an asset."""
        self.quotes[asset] = (price, timestamp)

    def remove_price(self, asset: str):
        """Withdraw the quote for an asset."""
        self.quotes.pop(asset, None)

    def __repr__(self):
        return f"StaticPriceFeed({len(self.quotes)} quotes, decimals={self._decimals})"


class TimeSeriesPriceFeed:
    """
    Feed backed by historical quotes.

    Returns the most recent quote published at or before the clock's current
    time. Quotes published later than that are invisible until the clock
    reaches them.

    Supports two initialization patterns:
    - Empty initialization for incremental addition via add_price()
    - Batch initialization with complete price paths for simulations
    """

    def __init__(
        self,
        clock: Clock,
        price_paths: Optional[Dict[str, List[RawQuote]]] = None,
        decimals: int = DEFAULT_FEED_DECIMALS,
    ):
        """
        Initialize the feed.

        Args:
            clock: Time source deciding which quotes are visible
            price_paths: Optional dict mapping assets to lists of (timestamp, price)
            decimals: Implied decimals of the prices

        Examples:
            feed = TimeSeriesPriceFeed(clock, {
                'XLM': [(0, 15_000_000_000_000), (3600, 12_000_000_000_000)],
            })
        """
        self.clock = clock
        self._decimals = decimals
        self.price_history: Dict[str, List[Tuple[int, int]]] = {}

        if price_paths:
            for asset, path in price_paths.items():
                if not path:
                    continue
                self.price_history[asset] = sorted(path, key=lambda x: x[0])

    def add_price(self, asset: str, timestamp: int, price: int):
        """Add a quote published at ``timestamp``."""
        history = self.price_history.setdefault(asset, [])
        history.append((timestamp, price))
        history.sort(key=lambda x: x[0])

    def latest_price(self, asset: str) -> Optional[RawQuote]:
        """
        Latest quote at or before the clock's current time.

        Uses binary search for O(log n) lookup.
        """
        history = self.price_history.get(asset)
        if not history:
            return None

        timestamps = [ts for ts, _ in history]
        idx = bisect_right(timestamps, self.clock.now())
        if idx == 0:
            return None

        timestamp, price = history[idx - 1]
        return price, timestamp

    def decimals(self) -> int:
        return self._decimals

    def get_all_timestamps(self, asset: Optional[str] = None) -> List[int]:
        """
        All quote timestamps, for one asset or the union over all assets.
        """
        if asset:
            return [ts for ts, _ in self.price_history.get(asset, [])]

        all_times = set()
        for path in self.price_history.values():
            all_times.update(ts for ts, _ in path)
        return sorted(all_times)

    def __repr__(self):
        total = sum(len(history) for history in self.price_history.values())
        return f"TimeSeriesPriceFeed({len(self.price_history)} assets, {total} observations)"
