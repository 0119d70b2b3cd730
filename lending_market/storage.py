"""
storage.py - Keyed state store and the market's typed repository

Classes:
- StateStore: Protocol of the keyed namespace the market persists into
- InMemoryStateStore: Dict-backed store, copies values in and out
- StagedStore: Write overlay on another store, committed or discarded as a unit
- MarketStorage: Typed access to config, counters, records and index sets

Key layout:
    ("config",)                       MarketConfig
    ("locked",)                       reentrancy flag
    ("counter", "offer"|"loan")       next id to assign
    ("offer", offer_id)               LendingOffer
    ("loan", loan_id)                 Loan
    ("index", name[, owner])          insertion-ordered id set

Index sets are dicts mapping id -> None, which gives O(1) membership and
removal while keeping creation order for queries.
"""

from __future__ import annotations
import copy
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .core import Address, StoreKey, NotInitialized, OfferNotFound, LoanNotFound
from .types import LendingOffer, Loan, MarketConfig

CONFIG_KEY: StoreKey = ("config",)
LOCK_KEY: StoreKey = ("locked",)

# Index names
ACTIVE_OFFERS = "active_offers"
ACTIVE_LOANS = "active_loans"
USER_OFFERS = "user_offers"
BORROWER_LOANS = "borrower_loans"
LENDER_LOANS = "lender_loans"


# ============================================================================
# STORES
# ============================================================================

@runtime_checkable
class StateStore(Protocol):
    """Keyed namespace holding the market's persistent state."""

    def get(self, key: StoreKey) -> Optional[Any]:
        ...

    def set(self, key: StoreKey, value: Any) -> None:
        ...

    def has(self, key: StoreKey) -> bool:
        ...

    def remove(self, key: StoreKey) -> None:
        ...


class InMemoryStateStore:
    """
    Dict-backed StateStore.

    Values are deep-copied on the way in and out, so callers can never
    mutate stored state through a reference they hold.
    """

    def __init__(self):
        self._data: Dict[StoreKey, Any] = {}

    def get(self, key: StoreKey) -> Optional[Any]:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def set(self, key: StoreKey, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def has(self, key: StoreKey) -> bool:
        return key in self._data

    def remove(self, key: StoreKey) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[StoreKey]:
        return list(self._data.keys())

    def snapshot(self) -> Dict[StoreKey, Any]:
        """Deep copy of the whole namespace."""
        return copy.deepcopy(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self):
        return f"InMemoryStateStore({len(self._data)} keys)"


class StagedStore:
    """
    Overlay recording writes against a base store without applying them.

    Reads see staged writes first. commit() pushes every staged write and
    removal to the base store; discard() drops them. Nothing reaches the
    base store before commit().
    """

    def __init__(self, base: StateStore):
        self.base = base
        self._writes: Dict[StoreKey, Any] = {}
        self._removed: set = set()

    def get(self, key: StoreKey) -> Optional[Any]:
        if key in self._removed:
            return None
        if key in self._writes:
            return copy.deepcopy(self._writes[key])
        return self.base.get(key)

    def set(self, key: StoreKey, value: Any) -> None:
        self._writes[key] = copy.deepcopy(value)
        self._removed.discard(key)

    def has(self, key: StoreKey) -> bool:
        if key in self._removed:
            return False
        return key in self._writes or self.base.has(key)

    def remove(self, key: StoreKey) -> None:
        self._writes.pop(key, None)
        self._removed.add(key)

    @property
    def dirty(self) -> bool:
        return bool(self._writes or self._removed)

    def commit(self) -> None:
        for key in self._removed:
            self.base.remove(key)
        for key, value in self._writes.items():
            self.base.set(key, value)
        self.discard()

    def discard(self) -> None:
        self._writes.clear()
        self._removed.clear()


# ============================================================================
# REPOSITORY
# ============================================================================

class MarketStorage:
    """
    Typed repository over a StateStore.

    The market builds one per operation on top of a StagedStore, so every
    write below is staged until the operation commits.
    """

    def __init__(self, store: StateStore):
        self.store = store

    # Config -----------------------------------------------------------------

    def has_config(self) -> bool:
        return self.store.has(CONFIG_KEY)

    def get_config(self) -> MarketConfig:
        config = self.store.get(CONFIG_KEY)
        if config is None:
            raise NotInitialized("market is not initialized")
        return config

    def put_config(self, config: MarketConfig) -> None:
        self.store.set(CONFIG_KEY, config)

    # Counters ---------------------------------------------------------------

    def next_id(self, kind: str) -> int:
        """Return the next id of a kind and advance its counter. Ids start at 1."""
        key = ("counter", kind)
        current = self.store.get(key) or 1
        self.store.set(key, current + 1)
        return current

    def peek_id(self, kind: str) -> int:
        return self.store.get(("counter", kind)) or 1

    # Records ----------------------------------------------------------------

    def find_offer(self, offer_id: int) -> Optional[LendingOffer]:
        return self.store.get(("offer", offer_id))

    def get_offer(self, offer_id: int) -> LendingOffer:
        offer = self.find_offer(offer_id)
        if offer is None:
            raise OfferNotFound(f"offer {offer_id} not found")
        return offer

    def put_offer(self, offer: LendingOffer) -> None:
        self.store.set(("offer", offer.offer_id), offer)

    def find_loan(self, loan_id: int) -> Optional[Loan]:
        return self.store.get(("loan", loan_id))

    def get_loan(self, loan_id: int) -> Loan:
        loan = self.find_loan(loan_id)
        if loan is None:
            raise LoanNotFound(f"loan {loan_id} not found")
        return loan

    def put_loan(self, loan: Loan) -> None:
        self.store.set(("loan", loan.loan_id), loan)

    # Indices ----------------------------------------------------------------

    @staticmethod
    def _index_key(name: str, owner: Optional[Address] = None) -> StoreKey:
        return ("index", name) if owner is None else ("index", name, owner)

    def index_members(self, name: str, owner: Optional[Address] = None) -> List[int]:
        return list(self.store.get(self._index_key(name, owner)) or {})

    def index_count(self, name: str, owner: Optional[Address] = None) -> int:
        return len(self.store.get(self._index_key(name, owner)) or {})

    def index_add(self, name: str, record_id: int, owner: Optional[Address] = None) -> None:
        key = self._index_key(name, owner)
        members = self.store.get(key) or {}
        members[record_id] = None
        self.store.set(key, members)

    def index_remove(self, name: str, record_id: int, owner: Optional[Address] = None) -> None:
        key = self._index_key(name, owner)
        members = self.store.get(key) or {}
        if record_id not in members:
            return
        del members[record_id]
        if members:
            self.store.set(key, members)
        else:
            self.store.remove(key)
