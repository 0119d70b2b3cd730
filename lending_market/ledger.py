"""
ledger.py - Double-entry token ledger backing the market's value transfers

The TokenLedger holds integer balances of fungible assets (the debt asset and
the collateral asset) per wallet, and is the only thing in the package that
moves value. It provides the token transfer capability the market consumes.

Key responsibilities:
    - Executes transfer batches atomically (all moves succeed or all fail)
    - Validates every batch: registration, timestamps, minimum balances
    - Logs every applied batch in an append-only transaction log
    - Verifies conservation of every asset's total supply
    - Tracks a logical clock in seconds, readable through LedgerClock

The SYSTEM_WALLET may go negative; it is the issuance and redemption
counterparty. Every other wallet is held to the asset's minimum balance.
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Set, Optional, Tuple, Any
import logging

from .core import (
    Address, SYSTEM_WALLET, USDC_DECIMALS,
    TokenError, TokenNotConfigured, TokenTransferFailed, InsufficientBalance,
)

logger = logging.getLogger(__name__)


# ============================================================================
# TYPES
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a batch execution attempt.

    APPLIED: Batch was validated and applied to the ledger.
    REJECTED: Batch failed validation; no balance changed.
    """
    APPLIED = "applied"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class Asset:
    """
    A fungible asset held on the ledger.

    Attributes:
        symbol: Ledger-wide identifier, e.g. "USDC"
        name: Human readable name
        decimals: Implied decimals of integer quantities
        min_balance: Lowest balance an ordinary wallet may hold
    """
    symbol: str
    name: str
    decimals: int = USDC_DECIMALS
    min_balance: int = 0

    def __post_init__(self):
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Asset symbol cannot be empty")
        if self.decimals < 0:
            raise ValueError(f"Asset decimals cannot be negative, got {self.decimals}")


@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of an asset between two wallets.

    Attributes:
        quantity: Positive integer amount in the asset's fixed-point units
        asset: Symbol of the asset being transferred
        source: Wallet debited
        dest: Wallet credited
        memo: Identifier of the operation generating this move

    All fields are validated in __post_init__.
    """
    quantity: int
    asset: str
    source: Address
    dest: Address
    memo: str

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.asset or not self.asset.strip():
            raise ValueError("Move asset cannot be empty")
        if not self.memo or not self.memo.strip():
            raise ValueError("Move memo cannot be empty")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity)}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.asset}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class TransferBatch:
    """
    Moves submitted together - represents INTENT.

    Attributes:
        moves: Transfers that must all apply or none
        origin: Operation that produced the batch (e.g. "borrow:loan=3")
        timestamp: Ledger time the batch was built at
    """
    moves: Tuple[Move, ...]
    origin: str
    timestamp: int

    def is_empty(self) -> bool:
        return not self.moves

    def __repr__(self) -> str:
        return f"TransferBatch({len(self.moves)} moves, {self.origin})"


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An applied batch - represents FACT.

    Created by the ledger when a TransferBatch is applied; appended to the
    transaction log and never modified.
    """
    moves: Tuple[Move, ...]
    origin: str
    timestamp: int
    exec_id: str
    ledger_name: str
    execution_time: int
    sequence_number: int

    def __repr__(self) -> str:
        moves = ", ".join(repr(m) for m in self.moves)
        return f"Transaction({self.exec_id}, {self.origin}, [{moves}])"


def build_batch(ledger: 'TokenLedger', moves: List[Move], origin: str) -> TransferBatch:
    """
    Build a TransferBatch stamped with the ledger's current time.

    Example:
        batch = build_batch(ledger, [Move(100, "USDC", "alice", "bob", "payment")], "payment")
        ledger.execute(batch)
    """
    return TransferBatch(moves=tuple(moves), origin=origin, timestamp=ledger.current_time)


# ============================================================================
# TOKEN LEDGER
# ============================================================================

class TokenLedger:
    """
    Double-entry token ledger with full validation and audit trail.

    Design Principles:
        - Always validates: every batch is checked against registration,
          timestamps and minimum balances. No shortcuts.
        - Always logs: every applied batch is recorded in transaction_log.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own TokenLedger.

    Example:
        ledger = TokenLedger("main")
        ledger.register_asset(Asset("USDC", "USD Coin"))
        ledger.register_wallet("alice")
        ledger.issue("alice", "USDC", 1000_0000000)
    """

    def __init__(
        self,
        name: str,
        initial_time: int = 0,
        verbose: bool = False,
        test_mode: bool = False
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_time: Starting time in seconds
            verbose: Log applied and rejected batches at INFO/WARNING instead of DEBUG
            test_mode: Allow set_balance() calls
        """
        self.name = name
        self.balances: Dict[str, Dict[str, int]] = {}
        self.assets: Dict[str, Asset] = {}
        self.registered_wallets: Set[str] = set()
        self.transaction_log: List[Transaction] = []
        self.last_rejection: Optional[str] = None
        self._current_time: int = initial_time
        self.verbose = verbose
        self._test_mode = test_mode
        self._next_sequence: int = 0

        self.registered_wallets.add(SYSTEM_WALLET)
        self.balances[SYSTEM_WALLET] = defaultdict(int)

    # ========================================================================
    # READ-ONLY METHODS
    # ========================================================================

    @property
    def current_time(self) -> int:
        """Current logical time of the ledger, in seconds."""
        return self._current_time

    def get_balance(self, wallet_id: str, asset: str) -> int:
        """
        Balance of an asset in a wallet (0 if never held).

        Raises:
            TokenTransferFailed: If the wallet is not registered
            TokenNotConfigured: If the asset is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise TokenTransferFailed(f"Wallet {wallet_id} not registered")
        if asset not in self.assets:
            raise TokenNotConfigured(f"Asset {asset} not registered")
        return self.balances[wallet_id].get(asset, 0)

    def get_wallet_balances(self, wallet_id: str) -> Dict[str, int]:
        if wallet_id not in self.registered_wallets:
            raise TokenTransferFailed(f"Wallet {wallet_id} not registered")
        return dict(self.balances[wallet_id])

    def get_positions(self, asset: str) -> Dict[str, int]:
        """Non-zero holdings of an asset, by wallet."""
        return {
            w: self.balances[w][asset]
            for w in sorted(self.registered_wallets)
            if self.balances[w].get(asset, 0) != 0
        }

    def list_wallets(self) -> Set[str]:
        return self.registered_wallets.copy()

    def list_assets(self) -> List[str]:
        return sorted(self.assets.keys())

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self.registered_wallets

    def total_supply(self, asset: str) -> int:
        """
        Sum of an asset's balances across all wallets, system wallet included.

        Always zero for an asset that only moves through the ledger: issuance
        leaves the system wallet negative by exactly what it issued.
        """
        if asset not in self.assets:
            raise TokenNotConfigured(f"Asset {asset} not registered")
        return sum(self.balances[w].get(asset, 0) for w in sorted(self.registered_wallets))

    def circulating_supply(self, asset: str) -> int:
        """Sum of an asset's balances outside the system wallet."""
        return self.total_supply(asset) - self.balances[SYSTEM_WALLET].get(asset, 0)

    def verify_double_entry(self, expected_supplies: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        """
        Verify that conservation laws hold for all assets.

        Without expected_supplies, checks that every asset's total supply is
        zero. With expected_supplies, compares circulating supplies against
        the given figures.

        Returns:
            Dict with keys:
            - 'valid': bool - True if all conservation laws hold
            - 'supplies': Dict[str, int] - Circulating supply of each asset
            - 'discrepancies': List[Dict] - unit, expected, actual for each violation

        Example:
            result = ledger.verify_double_entry()
            assert result['valid'], f"Conservation violated: {result['discrepancies']}"
        """
        supplies = {}
        discrepancies = []

        for asset in sorted(self.assets):
            supplies[asset] = self.circulating_supply(asset)
            net = self.total_supply(asset)
            if net != 0:
                discrepancies.append({'asset': asset, 'expected': 0, 'actual': net})

            if expected_supplies and asset in expected_supplies:
                expected = expected_supplies[asset]
                if supplies[asset] != expected:
                    discrepancies.append({'asset': asset, 'expected': expected, 'actual': supplies[asset]})

        if expected_supplies:
            for asset, expected in expected_supplies.items():
                if asset not in self.assets:
                    discrepancies.append({
                        'asset': asset, 'expected': expected, 'actual': 0,
                        'error': 'asset not registered',
                    })

        return {
            'valid': len(discrepancies) == 0,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: int) -> None:
        """
        Advance the logical clock. Time can only move forward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(f"Cannot move time backwards: {new_time} < {self._current_time}")
        self._current_time = new_time

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a new wallet.

        Raises:
            ValueError: If wallet is already registered
        """
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = defaultdict(int)
        return wallet_id

    def register_asset(self, asset: Asset) -> None:
        """
        Register a new asset.

        Raises:
            ValueError: If the symbol is already registered
        """
        if asset.symbol in self.assets:
            raise ValueError(f"Asset {asset.symbol} already registered")
        self.assets[asset.symbol] = asset
        self._log(logging.INFO, "Registered: %s (%s), %d decimals", asset.symbol, asset.name, asset.decimals)

    def set_balance(self, wallet_id: str, asset: str, quantity: int) -> None:
        """
        Set a wallet's balance directly.

        WARNING: bypasses double-entry accounting. Only available in test mode;
        use issue() or execute() otherwise.

        Raises:
            TokenError: If called when test_mode is False
        """
        if not self._test_mode:
            raise TokenError(
                "set_balance() is disabled in production mode. "
                "Use issue() or execute() to modify balances. "
                "Set test_mode=True when creating TokenLedger for testing."
            )
        if wallet_id not in self.registered_wallets:
            raise TokenTransferFailed(f"Wallet {wallet_id} not registered")
        if asset not in self.assets:
            raise TokenNotConfigured(f"Asset {asset} not registered")
        self.balances[wallet_id][asset] = quantity

    # ========================================================================
    # EXECUTION (Mutating)
    # ========================================================================

    def execute(self, batch: TransferBatch) -> ExecuteResult:
        """
        Execute a TransferBatch atomically.

        Returns:
            ExecuteResult.APPLIED if every move was applied
            ExecuteResult.REJECTED if validation failed; the reason is kept
            in last_rejection and no balance changed
        """
        try:
            self.settle(batch)
        except TokenError as e:
            self.last_rejection = str(e)
            return ExecuteResult.REJECTED
        return ExecuteResult.APPLIED

    def settle(self, batch: TransferBatch) -> Optional[Transaction]:
        """
        Execute a TransferBatch atomically, raising on rejection.

        Returns:
            The logged Transaction, or None for an empty batch

        Raises:
            InsufficientBalance: A wallet would drop below the asset's minimum
            TokenNotConfigured: A move names an unregistered asset
            TokenTransferFailed: Any other validation failure
        """
        if batch.is_empty():
            return None

        try:
            self._validate_batch(batch)
        except TokenError as e:
            self._log(logging.WARNING, "REJECTED %r: %s", batch, e)
            raise

        sequence = self._next_sequence
        self._next_sequence += 1
        tx = Transaction(
            moves=batch.moves,
            origin=batch.origin,
            timestamp=batch.timestamp,
            exec_id=f"exec:{self.name}:{sequence:012d}:{self._current_time}",
            ledger_name=self.name,
            execution_time=self._current_time,
            sequence_number=sequence,
        )

        for move in tx.moves:
            self.balances[move.source][move.asset] -= move.quantity
            self.balances[move.dest][move.asset] += move.quantity

        self.transaction_log.append(tx)
        self._log(logging.INFO, "APPLIED %r", tx)
        return tx

    def transfer(self, asset: str, source: str, dest: str, quantity: int, memo: str = "transfer") -> Transaction:
        """Move a single quantity of one asset, raising on rejection."""
        batch = build_batch(self, [Move(quantity, asset, source, dest, memo)], memo)
        return self.settle(batch)

    def issue(self, wallet_id: str, asset: str, quantity: int) -> Transaction:
        """Mint an asset into a wallet from the SYSTEM_WALLET."""
        return self.transfer(asset, SYSTEM_WALLET, wallet_id, quantity, memo=f"issue:{asset}")

    def _validate_batch(self, batch: TransferBatch) -> None:
        """
        Validate a batch against all constraints.

        Checks performed:
        1. The batch is not from the future
        2. Assets and wallets are registered
        3. No ordinary wallet ends below the asset's minimum balance,
           netting all moves of the batch first
        """
        if batch.timestamp > self._current_time:
            raise TokenTransferFailed(f"future timestamp {batch.timestamp} > {self._current_time}")

        net: Dict[Tuple[str, str], int] = {}
        for move in batch.moves:
            if move.asset not in self.assets:
                raise TokenNotConfigured(f"asset not registered: {move.asset}")
            if not self.is_registered(move.source):
                raise TokenTransferFailed(f"wallet not registered: {move.source}")
            if not self.is_registered(move.dest):
                raise TokenTransferFailed(f"wallet not registered: {move.dest}")
            key_src = (move.source, move.asset)
            key_dst = (move.dest, move.asset)
            net[key_src] = net.get(key_src, 0) - move.quantity
            net[key_dst] = net.get(key_dst, 0) + move.quantity

        for (wallet, asset), delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            proposed = self.balances[wallet].get(asset, 0) + delta
            minimum = self.assets[asset].min_balance
            if proposed < minimum:
                raise InsufficientBalance(f"{wallet} {asset}: {proposed} < min {minimum}")

    def _log(self, level: int, msg: str, *args) -> None:
        logger.log(level if self.verbose else logging.DEBUG, msg, *args)

    def __repr__(self):
        return f"TokenLedger({self.name}, {len(self.assets)} assets, {len(self.registered_wallets)} wallets)"


# ============================================================================
# ADAPTERS
# ============================================================================

class LedgerToken:
    """
    One asset of a TokenLedger exposed as a single-asset token.

    Example:
        usdc = LedgerToken(ledger, "USDC")
        usdc.transfer("alice", "bob", 10_0000000)
    """

    def __init__(self, ledger: TokenLedger, asset: str):
        if asset not in ledger.assets:
            raise TokenNotConfigured(f"Asset {asset} not registered")
        self.ledger = ledger
        self.asset = asset

    def transfer(self, source: str, dest: str, amount: int) -> None:
        self.ledger.transfer(self.asset, source, dest, amount, memo=f"transfer:{self.asset}")

    def balance(self, wallet_id: str) -> int:
        return self.ledger.get_balance(wallet_id, self.asset)

    def __repr__(self):
        return f"LedgerToken({self.asset} on {self.ledger.name})"


class LedgerClock:
    """Clock reading a TokenLedger's logical time."""

    def __init__(self, ledger: TokenLedger):
        self.ledger = ledger

    def now(self) -> int:
        return self.ledger.current_time
