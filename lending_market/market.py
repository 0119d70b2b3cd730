"""
market.py - The lending market: offer and loan lifecycle orchestration

LendingMarket is the only entry point that changes market state. Each
mutating operation runs the same pipeline:

    1. Acquire the non-reentrant lock          -> Reentrant if already held
    2. Authenticate the acting principal       -> Unauthorized
    3. Load the configuration, check not paused -> NotInitialized / ContractPaused
    4. Run the guards (may read the oracle)
    5. Stage record and index writes in a StagedStore overlay
    6. Settle every token move of the operation as one atomic TransferBatch
    7. Commit the overlay, release the lock

A failure at any step raises before step 7, so the store is untouched and the
ledger is untouched unless step 6 itself succeeded, after which nothing can fail.

States per offer: Active -> Inactive (cancellation; terminal)
States per loan:  Active -> Inactive (full repayment or liquidation; terminal)

Queries read the committed store directly, take no lock and work while paused.
Health metrics are recomputed on every call from the live price and clock.
"""

from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterable, Iterator, List, Mapping, Optional

from .auth import Authorizer
from .core import (
    Address, Clock, EngineParameters, DEFAULT_MAX_INTEREST_RATE, BASIS_POINTS,
    LendingError, AlreadyInitialized, OnlyAdmin, OnlyLender, OnlyBorrower,
    OfferNotActive, InsufficientOfferFunds, LoanNotActive, InvalidInput,
    InvalidInterestRate, ContractPaused, Reentrant, OracleNotConfigured,
    TokenNotConfigured, NoOffersAvailable,
)
from .fixed_point import checked_add, checked_sub
from .interest import apply_repayment, loan_total_debt, pending_interest
from .ledger import Move, TokenLedger, LedgerClock, build_batch
from .liquidation import (
    LiquidationPlan, compute_health, plan_liquidation,
    is_liquidatable as loan_is_liquidatable,
    batch_check_liquidatable as check_loans,
)
from .oracle import PriceOracle
from .pricing_source import PriceFeed
from .storage import (
    MarketStorage, StagedStore, StateStore, LOCK_KEY,
    ACTIVE_OFFERS, ACTIVE_LOANS, USER_OFFERS, BORROWER_LOANS, LENDER_LOANS,
)
from .types import LendingOffer, Loan, LoanHealth, MarketConfig, PriceQuote, SortOption
from . import validation

logger = logging.getLogger(__name__)

DEFAULT_MARKET_ADDRESS = "lending_market"


class LendingMarket:
    """
    Peer-to-peer collateralized lending market.

    Lenders escrow debt-asset funds in offers; borrowers post collateral and
    draw from an offer; anyone may liquidate a loan whose collateralization
    ratio has fallen to its liquidation threshold.

    Every mutating method takes the acting principal first and requires the
    authorizer to confirm it.

    Example:
        market = LendingMarket(InMemoryStateStore(), ledger, authorizer, {"feed": feed})
        market.initialize("admin", "USDC", "XLM", "feed")
        offer_id = market.create_offer("lender", 1000_0000000, 500, 15000, 12000, 4)
        loan_id = market.borrow("borrower", offer_id, 10_000_0000000, 500_0000000)
    """

    def __init__(
        self,
        store: StateStore,
        ledger: TokenLedger,
        authorizer: Authorizer,
        price_feeds: Mapping[str, PriceFeed],
        clock: Optional[Clock] = None,
        params: Optional[EngineParameters] = None,
        address: Address = DEFAULT_MARKET_ADDRESS,
    ):
        """
        Args:
            store: Persistent state namespace
            ledger: Token ledger moving both assets
            authorizer: Confirms the acting principal of each operation
            price_feeds: Feeds by identifier; MarketConfig.oracle selects one
            clock: Time source (default: the ledger's logical clock)
            params: Engine limits (default: module constants)
            address: The market's own wallet on the ledger, holding escrow
        """
        self._store = store
        self.ledger = ledger
        self.authorizer = authorizer
        self.price_feeds = dict(price_feeds)
        self.clock = clock or LedgerClock(ledger)
        self.params = params or EngineParameters()
        self.address = address
        if not ledger.is_registered(address):
            ledger.register_wallet(address)

    # ========================================================================
    # EXECUTION PLUMBING
    # ========================================================================

    @contextmanager
    def _guard(self) -> Iterator[None]:
        """Hold the stored reentrancy flag for the enclosed block."""
        if self._store.get(LOCK_KEY):
            raise Reentrant("market operation already in progress")
        self._store.set(LOCK_KEY, True)
        try:
            yield
        finally:
            self._store.remove(LOCK_KEY)

    @contextmanager
    def _operation(self, name: str) -> Iterator[MarketStorage]:
        """
        Run a mutating operation under the lock against a staged store.

        Staged writes are committed only when the block completes.
        """
        with self._guard():
            staged = StagedStore(self._store)
            try:
                yield MarketStorage(staged)
            except LendingError as e:
                logger.debug("%s rejected: %s: %s", name, type(e).__name__, e)
                raise
            staged.commit()

    def _active_config(self, repo: MarketStorage) -> MarketConfig:
        config = repo.get_config()
        if config.paused:
            raise ContractPaused("market is paused")
        return config

    def _require_admin(self, repo: MarketStorage, admin: Address) -> MarketConfig:
        self.authorizer.require_caller_is(admin)
        config = repo.get_config()
        if admin != config.admin:
            raise OnlyAdmin(f"{admin} is not the market admin")
        return config

    def _oracle(self, config: MarketConfig) -> PriceOracle:
        feed = self.price_feeds.get(config.oracle)
        if feed is None:
            raise OracleNotConfigured(f"no price feed registered as {config.oracle!r}")
        return PriceOracle(
            feed,
            config.collateral_asset,
            self.clock,
            staleness_threshold=self.params.price_staleness_threshold,
            min_price_cents=self.params.min_price_cents,
            max_price_units=self.params.max_price_units,
        )

    def _settle(self, moves: List[Move], origin: str) -> None:
        """Apply the operation's token moves as one atomic batch."""
        self.ledger.settle(build_batch(self.ledger, moves, origin))

    def _committed(self) -> MarketStorage:
        return MarketStorage(self._store)

    # ========================================================================
    # ADMIN
    # ========================================================================

    def initialize(
        self,
        admin: Address,
        debt_asset: str,
        collateral_asset: str,
        oracle: str,
        max_interest_rate: Optional[int] = None,
    ) -> None:
        """
        Write the market configuration. Allowed exactly once.

        Args:
            admin: Principal allowed to run admin operations
            debt_asset: Ledger symbol of the lent asset
            collateral_asset: Ledger symbol of the collateral asset
            oracle: Identifier of the price feed quoting the collateral
            max_interest_rate: Weekly rate cap in bps (default 3000)

        Raises:
            AlreadyInitialized: A configuration already exists
            TokenNotConfigured: An asset is not registered on the ledger
            InvalidInterestRate: The cap is not in (0, 10000]
        """
        with self._operation("initialize") as repo:
            self.authorizer.require_caller_is(admin)
            if repo.has_config():
                raise AlreadyInitialized("market already initialized")
            for asset in (debt_asset, collateral_asset):
                if asset not in self.ledger.assets:
                    raise TokenNotConfigured(f"asset {asset} not registered on the ledger")
            rate = DEFAULT_MAX_INTEREST_RATE if max_interest_rate is None else max_interest_rate
            self._check_rate_cap(rate)
            repo.put_config(MarketConfig(
                admin=admin,
                debt_asset=debt_asset,
                collateral_asset=collateral_asset,
                oracle=oracle,
                max_interest_rate=rate,
            ))
        logger.info("market initialized: admin=%s debt=%s collateral=%s oracle=%s max_rate=%d",
                    admin, debt_asset, collateral_asset, oracle, rate)

    @staticmethod
    def _check_rate_cap(rate: int) -> None:
        if rate <= 0 or rate > BASIS_POINTS:
            raise InvalidInterestRate(f"max interest rate {rate} bps not in (0, {BASIS_POINTS}]")

    def set_max_interest_rate(self, admin: Address, rate: int) -> None:
        """Change the weekly rate cap for new offers. Existing offers keep their rate."""
        with self._operation("set_max_interest_rate") as repo:
            config = self._require_admin(repo, admin)
            self._check_rate_cap(rate)
            repo.put_config(replace(config, max_interest_rate=rate))
        logger.info("max interest rate set to %d bps", rate)

    def set_oracle(self, admin: Address, oracle: str) -> None:
        """Point the market at another price feed identifier."""
        with self._operation("set_oracle") as repo:
            config = self._require_admin(repo, admin)
            repo.put_config(replace(config, oracle=oracle))
        logger.info("oracle set to %s", oracle)

    def pause(self, admin: Address) -> None:
        with self._operation("pause") as repo:
            config = self._require_admin(repo, admin)
            repo.put_config(replace(config, paused=True))
        logger.info("market paused by %s", admin)

    def unpause(self, admin: Address) -> None:
        with self._operation("unpause") as repo:
            config = self._require_admin(repo, admin)
            repo.put_config(replace(config, paused=False))
        logger.info("market unpaused by %s", admin)

    # ========================================================================
    # LENDER OPERATIONS
    # ========================================================================

    def create_offer(
        self,
        lender: Address,
        usdc_amount: int,
        weekly_interest_rate: int,
        min_collateral_ratio: int,
        liquidation_threshold: int,
        max_duration_weeks: int,
    ) -> int:
        """
        Escrow funds in a new offer.

        Returns:
            The new offer_id

        Raises:
            InvalidInterestRate, InvalidCollateralRatio, InvalidLiquidationThreshold,
            InvalidOfferAmount, InvalidInput, TooManyOffers: Parameter guards
            InsufficientBalance: The lender cannot fund the offer
        """
        with self._operation("create_offer") as repo:
            self.authorizer.require_caller_is(lender)
            config = self._active_config(repo)

            validation.validate_interest_rate(weekly_interest_rate, config.max_interest_rate)
            validation.validate_collateral_ratio(min_collateral_ratio, self.params.max_collateral_ratio)
            validation.validate_liquidation_threshold(liquidation_threshold, min_collateral_ratio)
            validation.validate_offer_amount(usdc_amount)
            validation.validate_max_duration(max_duration_weeks)
            validation.validate_offer_limit(
                repo.index_count(USER_OFFERS, lender), self.params.max_offers_per_user
            )

            offer_id = repo.next_id("offer")
            offer = LendingOffer(
                offer_id=offer_id,
                lender=lender,
                usdc_amount=usdc_amount,
                weekly_interest_rate=weekly_interest_rate,
                min_collateral_ratio=min_collateral_ratio,
                liquidation_threshold=liquidation_threshold,
                max_duration_weeks=max_duration_weeks,
                is_active=True,
                created_at=self.clock.now(),
            )
            repo.put_offer(offer)
            repo.index_add(ACTIVE_OFFERS, offer_id)
            repo.index_add(USER_OFFERS, offer_id, owner=lender)

            self._settle(
                [Move(usdc_amount, config.debt_asset, lender, self.address, f"offer:{offer_id}")],
                f"create_offer:{offer_id}",
            )
        logger.info("offer %d created by %s: %d at %d bps/week", offer_id, lender, usdc_amount, weekly_interest_rate)
        return offer_id

    def cancel_offer(self, lender: Address, offer_id: int) -> int:
        """
        Deactivate an offer and refund what it has left.

        Funds already lent out were deducted from the offer when each loan was
        drawn, so the refund is exactly the remaining usdc_amount. Loans drawn
        from the offer are unaffected.

        Returns:
            The refunded amount
        """
        with self._operation("cancel_offer") as repo:
            self.authorizer.require_caller_is(lender)
            config = self._active_config(repo)
            offer = repo.get_offer(offer_id)
            if offer.lender != lender:
                raise OnlyLender(f"offer {offer_id} belongs to {offer.lender}")
            if not offer.is_active:
                raise OfferNotActive(f"offer {offer_id} is not active")

            repo.put_offer(replace(offer, is_active=False))
            repo.index_remove(ACTIVE_OFFERS, offer_id)
            repo.index_remove(USER_OFFERS, offer_id, owner=lender)

            refund = offer.usdc_amount
            if refund > 0:
                self._settle(
                    [Move(refund, config.debt_asset, self.address, lender, f"offer:{offer_id}")],
                    f"cancel_offer:{offer_id}",
                )
        logger.info("offer %d cancelled by %s, refunded %d", offer_id, lender, refund)
        return refund

    def withdraw_from_offer(self, lender: Address, offer_id: int, amount: int) -> None:
        """
        Take part of an active offer's remaining funds back.

        Withdrawing everything leaves the offer active with nothing to lend;
        only cancel_offer deactivates it.
        """
        with self._operation("withdraw_from_offer") as repo:
            self.authorizer.require_caller_is(lender)
            config = self._active_config(repo)
            offer = repo.get_offer(offer_id)
            if offer.lender != lender:
                raise OnlyLender(f"offer {offer_id} belongs to {offer.lender}")
            if not offer.is_active:
                raise OfferNotActive(f"offer {offer_id} is not active")
            if amount <= 0 or amount > offer.usdc_amount:
                raise InvalidInput(f"cannot withdraw {amount} from offer holding {offer.usdc_amount}")

            repo.put_offer(replace(offer, usdc_amount=checked_sub(offer.usdc_amount, amount)))
            self._settle(
                [Move(amount, config.debt_asset, self.address, lender, f"offer:{offer_id}")],
                f"withdraw_from_offer:{offer_id}",
            )
        logger.info("offer %d: %s withdrew %d", offer_id, lender, amount)

    # ========================================================================
    # BORROWER OPERATIONS
    # ========================================================================

    def borrow(
        self,
        borrower: Address,
        offer_id: int,
        collateral_amount: int,
        borrow_amount: int,
        duration_weeks: Optional[int] = None,
    ) -> int:
        """
        Open a loan against an offer.

        The loan copies the offer's lender, rate and liquidation threshold.
        Collateral moves into escrow and the borrowed funds move out of the
        offer in the same batch.

        Args:
            borrower: Principal opening the loan
            offer_id: Offer to draw from
            collateral_amount: Collateral to post
            borrow_amount: Debt-asset amount to draw
            duration_weeks: Intended duration, checked against the offer's maximum

        Returns:
            The new loan_id

        Raises:
            OfferNotActive, InsufficientOfferFunds: The offer cannot serve the loan
            InvalidCollateralAmount, InvalidBorrowAmount, TooManyLoans: Parameter guards
            InvalidInput, LoanDurationExceeded: Bad duration
            InsufficientCollateral: Collateral value below the offer's ratio
            OracleError: No valid price
            InsufficientBalance: The borrower cannot post the collateral
        """
        with self._operation("borrow") as repo:
            self.authorizer.require_caller_is(borrower)
            config = self._active_config(repo)
            offer = repo.get_offer(offer_id)
            if not offer.is_active:
                raise OfferNotActive(f"offer {offer_id} is not active")
            if borrow_amount > offer.usdc_amount:
                raise InsufficientOfferFunds(
                    f"offer {offer_id} has {offer.usdc_amount}, requested {borrow_amount}"
                )

            validation.validate_collateral_amount(collateral_amount)
            validation.validate_borrow_amount(borrow_amount)
            if duration_weeks is not None:
                validation.validate_loan_duration(duration_weeks, offer.max_duration_weeks)
            validation.validate_loan_limit(
                repo.index_count(BORROWER_LOANS, borrower), self.params.max_loans_per_user
            )
            collateral_value = self._oracle(config).convert_collateral_to_debt(collateral_amount)
            validation.validate_sufficient_collateral(collateral_value, borrow_amount, offer.min_collateral_ratio)

            now = self.clock.now()
            loan_id = repo.next_id("loan")
            loan = Loan(
                loan_id=loan_id,
                offer_id=offer_id,
                borrower=borrower,
                lender=offer.lender,
                collateral_amount=collateral_amount,
                borrowed_amount=borrow_amount,
                interest_rate=offer.weekly_interest_rate,
                start_time=now,
                last_interest_update=now,
                accumulated_interest=0,
                liquidation_threshold=offer.liquidation_threshold,
                is_active=True,
            )
            repo.put_loan(loan)
            repo.index_add(BORROWER_LOANS, loan_id, owner=borrower)
            repo.index_add(LENDER_LOANS, loan_id, owner=offer.lender)
            repo.index_add(ACTIVE_LOANS, loan_id)
            repo.put_offer(replace(offer, usdc_amount=checked_sub(offer.usdc_amount, borrow_amount)))

            memo = f"loan:{loan_id}"
            self._settle(
                [
                    Move(collateral_amount, config.collateral_asset, borrower, self.address, memo),
                    Move(borrow_amount, config.debt_asset, self.address, borrower, memo),
                ],
                f"borrow:{loan_id}",
            )
        logger.info("loan %d opened by %s on offer %d: borrowed %d against %d collateral",
                    loan_id, borrower, offer_id, borrow_amount, collateral_amount)
        return loan_id

    def _borrower_loan(self, repo: MarketStorage, borrower: Address, loan_id: int) -> Loan:
        loan = repo.get_loan(loan_id)
        if loan.borrower != borrower:
            raise OnlyBorrower(f"loan {loan_id} belongs to {loan.borrower}")
        if not loan.is_active:
            raise LoanNotActive(f"loan {loan_id} is not active")
        return loan

    def _close_loan(self, repo: MarketStorage, loan: Loan) -> None:
        """Write a loan as inactive and drop it from every index."""
        repo.put_loan(loan)
        repo.index_remove(ACTIVE_LOANS, loan.loan_id)
        repo.index_remove(BORROWER_LOANS, loan.loan_id, owner=loan.borrower)
        repo.index_remove(LENDER_LOANS, loan.loan_id, owner=loan.lender)

    def repay(self, borrower: Address, loan_id: int, amount: int) -> bool:
        """
        Pay down a loan, interest first.

        Pending interest is capitalised into accumulated_interest, the payment
        clears interest before principal, and the interest checkpoint moves to
        now. When nothing is owed any more the loan closes and the collateral
        goes back to the borrower in the same batch as the payment.

        Returns:
            True if the loan was closed by this payment
        """
        with self._operation("repay") as repo:
            self.authorizer.require_caller_is(borrower)
            config = self._active_config(repo)
            loan = self._borrower_loan(repo, borrower, loan_id)

            now = self.clock.now()
            debt = loan_total_debt(loan, now)
            validation.validate_repay_amount(amount, debt)

            total_interest = checked_add(loan.accumulated_interest, pending_interest(loan, now))
            principal, accumulated = apply_repayment(loan.borrowed_amount, total_interest, amount)
            closed = principal == 0 and accumulated == 0
            updated = replace(
                loan,
                borrowed_amount=principal,
                accumulated_interest=accumulated,
                last_interest_update=now,
                is_active=not closed,
            )

            memo = f"loan:{loan_id}"
            moves = [Move(amount, config.debt_asset, borrower, loan.lender, memo)] if borrower != loan.lender else []
            if closed:
                self._close_loan(repo, updated)
                moves.append(Move(loan.collateral_amount, config.collateral_asset, self.address, borrower, memo))
            else:
                repo.put_loan(updated)
            self._settle(moves, f"repay:{loan_id}")

        if closed:
            logger.info("loan %d repaid in full by %s; collateral %d released", loan_id, borrower, loan.collateral_amount)
        else:
            logger.info("loan %d: %s repaid %d, principal now %d, interest %d",
                        loan_id, borrower, amount, principal, accumulated)
        return closed

    def add_collateral(self, borrower: Address, loan_id: int, amount: int) -> None:
        with self._operation("add_collateral") as repo:
            self.authorizer.require_caller_is(borrower)
            config = self._active_config(repo)
            loan = self._borrower_loan(repo, borrower, loan_id)
            validation.validate_collateral_amount(amount)

            repo.put_loan(replace(loan, collateral_amount=checked_add(loan.collateral_amount, amount)))
            self._settle(
                [Move(amount, config.collateral_asset, borrower, self.address, f"loan:{loan_id}")],
                f"add_collateral:{loan_id}",
            )
        logger.info("loan %d: %s added %d collateral", loan_id, borrower, amount)

    def withdraw_collateral(self, borrower: Address, loan_id: int, amount: int) -> None:
        """
        Release part of a loan's collateral.

        The remaining collateral, valued at the live price, must keep the
        ratio at or above liquidation_threshold + the withdrawal safety margin
        against the live debt.
        """
        with self._operation("withdraw_collateral") as repo:
            self.authorizer.require_caller_is(borrower)
            config = self._active_config(repo)
            loan = self._borrower_loan(repo, borrower, loan_id)

            if amount <= 0 or amount > loan.collateral_amount:
                raise InvalidInput(f"cannot withdraw {amount} of {loan.collateral_amount} collateral")
            remaining = checked_sub(loan.collateral_amount, amount)
            debt = loan_total_debt(loan, self.clock.now())
            remaining_value = self._oracle(config).convert_collateral_to_debt(remaining) if debt else 0
            validation.validate_collateral_withdrawal(
                loan.collateral_amount,
                amount,
                remaining_value,
                debt,
                loan.liquidation_threshold,
                self.params.withdrawal_safety_margin_bps,
            )

            repo.put_loan(replace(loan, collateral_amount=remaining))
            self._settle(
                [Move(amount, config.collateral_asset, self.address, borrower, f"loan:{loan_id}")],
                f"withdraw_collateral:{loan_id}",
            )
        logger.info("loan %d: %s withdrew %d collateral", loan_id, borrower, amount)

    # ========================================================================
    # LIQUIDATION
    # ========================================================================

    def liquidate(self, liquidator: Address, loan_id: int) -> LiquidationPlan:
        """
        Liquidate an undercollateralized loan in full.

        The liquidator receives all of the collateral, pays the lender the
        total debt and pays the borrower anything the collateral is worth above
        debt plus the liquidator's bonus. The loan closes.

        Returns:
            The executed LiquidationPlan

        Raises:
            LoanNotActive, NotLiquidatable, InsufficientCollateralValue: Preconditions
            InsufficientBalance: The liquidator cannot pay the debt
        """
        with self._operation("liquidate") as repo:
            self.authorizer.require_caller_is(liquidator)
            config = self._active_config(repo)
            loan = repo.get_loan(loan_id)

            now = self.clock.now()
            plan = plan_liquidation(loan, liquidator, self._oracle(config), now, self.params.liquidation_bonus_bps)

            self._close_loan(repo, replace(loan, is_active=False))
            self._settle(
                plan.moves(self.address, config.debt_asset, config.collateral_asset),
                f"liquidate:{loan_id}",
            )
        logger.info("loan %d liquidated by %s: collateral value %d, debt %d, bonus %d, excess %d",
                    loan_id, liquidator, plan.collateral_value, plan.total_debt,
                    plan.liquidator_bonus, plan.excess_to_borrower)
        return plan

    def is_liquidatable(self, loan_id: int) -> bool:
        repo = self._committed()
        loan = repo.get_loan(loan_id)
        if not loan.is_active:
            return False
        return loan_is_liquidatable(loan, self._oracle(repo.get_config()), self.clock.now())

    def batch_check_liquidatable(self, loan_ids: Iterable[int]) -> List[int]:
        """Liquidatable subset of ``loan_ids`` in input order; unknown ids are skipped."""
        repo = self._committed()
        open_ids = []
        for loan_id in loan_ids:
            loan = repo.find_loan(loan_id)
            if loan is not None and loan.is_active:
                open_ids.append(loan_id)
        # Only a check over open loans needs a price feed
        if not open_ids:
            return []
        return check_loans(open_ids, repo.find_loan, self._oracle(repo.get_config()), self.clock.now())

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_offer(self, offer_id: int) -> LendingOffer:
        return self._committed().get_offer(offer_id)

    def get_loan(self, loan_id: int) -> Loan:
        return self._committed().get_loan(loan_id)

    def get_loan_health(self, loan_id: int) -> LoanHealth:
        repo = self._committed()
        loan = repo.get_loan(loan_id)
        return compute_health(loan, self._oracle(repo.get_config()), self.clock.now())

    def calculate_interest(self, loan_id: int) -> int:
        """All interest owed on a loan now: accumulated plus pending."""
        loan = self._committed().get_loan(loan_id)
        return checked_add(loan.accumulated_interest, pending_interest(loan, self.clock.now()))

    def get_price(self) -> PriceQuote:
        return self._oracle(self._committed().get_config()).get_price()

    def get_config(self) -> MarketConfig:
        return self._committed().get_config()

    def admin(self) -> Address:
        return self.get_config().admin

    def get_user_offers(self, user: Address) -> List[int]:
        return self._committed().index_members(USER_OFFERS, user)

    def get_user_loans_as_borrower(self, user: Address) -> List[int]:
        return self._committed().index_members(BORROWER_LOANS, user)

    def get_user_loans_as_lender(self, user: Address) -> List[int]:
        return self._committed().index_members(LENDER_LOANS, user)

    def get_active_offers(self) -> List[int]:
        return self._committed().index_members(ACTIVE_OFFERS)

    def get_active_loans(self) -> List[int]:
        return self._committed().index_members(ACTIVE_LOANS)

    def list_offers(self, sort=SortOption.BEST_RATE, limit: int = 20, offset: int = 0) -> List[LendingOffer]:
        """
        One page of active offers.

        Raises:
            InvalidSortOption: Unknown sort
            InvalidPagination: limit outside [1, 100] or negative offset
            NoOffersAvailable: There are no active offers at all
        """
        option = SortOption.parse(sort)
        validation.validate_pagination(limit, offset)
        repo = self._committed()
        offers = [repo.get_offer(offer_id) for offer_id in repo.index_members(ACTIVE_OFFERS)]
        if not offers:
            raise NoOffersAvailable("no active offers")

        if option is SortOption.BEST_RATE:
            offers.sort(key=lambda o: (o.weekly_interest_rate, o.offer_id))
        elif option is SortOption.HIGHEST_AMOUNT:
            offers.sort(key=lambda o: (-o.usdc_amount, o.offer_id))
        else:
            offers.sort(key=lambda o: (-o.created_at, -o.offer_id))
        return offers[offset:offset + limit]

    def __repr__(self):
        return f"LendingMarket({self.address} on {self.ledger.name})"
