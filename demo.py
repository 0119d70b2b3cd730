#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Lending Market Step by Step

A pedagogical walk through a peer-to-peer collateralized lending market.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation   - The token ledger, the market, a lender's offer
  4-6:  Borrowing    - Opening a loan, health metrics, interest and repayment
  7-8:  Risk         - Guarded withdrawals, a price crash and the keeper
  9-10: Reporting    - Price-shock stress report, conservation proof

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
    python demo.py --verbose # Also show the market's INFO log
"""

from dataclasses import dataclass
import logging
import sys

from lending_market import (
    LendingMarket, TokenLedger, Asset, InMemoryStateStore, MockAllAuthorizer,
    StaticPriceFeed, LiquidationKeeper, SortOption, SYSTEM_WALLET,
    WithdrawalBreachesHealth, shock_report,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

ONE = 10**7          # one unit of USDC or XLM
PRICE_ONE = 10**14   # $1.00 at feed precision
WEEK = 604_800


@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: int = 1_700_000_000

    # Initial funding
    alice_initial_usdc: int = 50_000 * ONE
    bob_initial_xlm: int = 100_000 * ONE
    keeper_initial_usdc: int = 20_000 * ONE

    # Offer terms
    offer_amount: int = 10_000 * ONE
    weekly_rate_bps: int = 500
    min_collateral_ratio: int = 15_000
    liquidation_threshold: int = 12_000
    max_duration_weeks: int = 4

    # Loan
    collateral: int = 10_000 * ONE
    borrow_amount: int = 1_000 * ONE

    # Prices
    initial_price: int = 15 * PRICE_ONE // 100   # $0.15
    crash_price: int = 11 * PRICE_ONE // 100     # $0.11


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv
VERBOSE = "--verbose" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def fmt(amount: int) -> str:
    """Render a 7-decimal amount."""
    return f"{amount / ONE:,.7f}".rstrip("0").rstrip(".")


def fmt_price(price: int) -> str:
    return f"${price / PRICE_ONE:.4f}"


def fmt_bps(bps: int) -> str:
    return f"{bps / 100:.2f}%"


# ============================================================================
# PHASE 1: FOUNDATION
# ============================================================================

def step_01_token_ledger() -> TokenLedger:
    """Create the token ledger holding USDC and XLM."""
    step_header(1, "The Token Ledger",
        "All value moves through a double-entry ledger of integer balances.")

    print("""
    The market never holds balances itself. It asks a token ledger to move
    USDC (the lent asset) and XLM (the collateral) between wallets, always
    as one atomic batch per operation.

    Both assets have 7 implied decimals: 1 USDC = 10_000_000 units.
    """)

    wait_for_enter()

    ledger = TokenLedger("demo", initial_time=CONFIG.start_time, verbose=VERBOSE)
    ledger.register_asset(Asset("USDC", "USD Coin"))
    ledger.register_asset(Asset("XLM", "Stellar Lumens"))
    for wallet in ("admin", "alice", "bob", "keeper"):
        ledger.register_wallet(wallet)

    ledger.issue("alice", "USDC", CONFIG.alice_initial_usdc)
    ledger.issue("bob", "XLM", CONFIG.bob_initial_xlm)
    ledger.issue("keeper", "USDC", CONFIG.keeper_initial_usdc)

    section_header("Balances")
    for wallet in ("alice", "bob", "keeper", SYSTEM_WALLET):
        print(f"{wallet:8s} USDC {fmt(ledger.get_balance(wallet, 'USDC')):>12s}   "
              f"XLM {fmt(ledger.get_balance(wallet, 'XLM')):>12s}")

    section_header("Key Insight")
    print("""
    The system wallet issued everything, so its balances are negative and
    every asset sums to zero across wallets. That is the conservation law
    the final step checks again.
    """)
    return ledger


def step_02_market(ledger: TokenLedger):
    """Wire up and initialize the market."""
    step_header(2, "The Market",
        "The market is configured exactly once by its admin.")

    feed = StaticPriceFeed({"XLM": (CONFIG.initial_price, CONFIG.start_time)})
    market = LendingMarket(InMemoryStateStore(), ledger, MockAllAuthorizer(), {"oracle": feed})

    print('>>> market.initialize("admin", "USDC", "XLM", "oracle")')
    market.initialize("admin", "USDC", "XLM", "oracle")

    config = market.get_config()
    section_header("Configuration")
    print(f"Admin:            {config.admin}")
    print(f"Debt asset:       {config.debt_asset}")
    print(f"Collateral asset: {config.collateral_asset}")
    print(f"Max weekly rate:  {fmt_bps(config.max_interest_rate)}")
    print(f"XLM price:        {fmt_price(market.get_price().price)}")
    return market, feed


def step_03_offer(market: LendingMarket) -> int:
    """Alice posts an offer."""
    step_header(3, "A Lender's Offer",
        "Offers escrow the lender's funds at a fixed weekly rate.")

    offer_id = market.create_offer(
        "alice", CONFIG.offer_amount, CONFIG.weekly_rate_bps,
        CONFIG.min_collateral_ratio, CONFIG.liquidation_threshold, CONFIG.max_duration_weeks,
    )
    market.create_offer("alice", 2_000 * ONE, 800, 20_000, 15_000, 2)

    section_header("Active offers, best rate first")
    for offer in market.list_offers(SortOption.BEST_RATE):
        print(f"#{offer.offer_id}: {fmt(offer.usdc_amount)} USDC at {fmt_bps(offer.weekly_interest_rate)}/week, "
              f"origination {fmt_bps(offer.min_collateral_ratio)}, "
              f"liquidation at {fmt_bps(offer.liquidation_threshold)}")

    print(f"\nEscrowed by the market: {fmt(market.ledger.get_balance(market.address, 'USDC'))} USDC")
    return offer_id


# ============================================================================
# PHASE 2: BORROWING
# ============================================================================

def print_health(market: LendingMarket, loan_id: int):
    health = market.get_loan_health(loan_id)
    print(f"Collateral value:   {fmt(health.collateral_value_usd)} USDC")
    print(f"Debt:               {fmt(health.debt_value_usd)} USDC")
    print(f"Collateral ratio:   {fmt_bps(health.collateralization_ratio)}")
    print(f"Health factor:      {fmt_bps(health.health_factor)}")
    print(f"Liquidation price:  {fmt_price(health.liquidation_price)}")
    print(f"Liquidatable:       {health.is_liquidatable}")


def step_04_borrow(market: LendingMarket, offer_id: int) -> int:
    step_header(4, "Opening a Loan",
        "Collateral goes in and funds come out in one atomic batch.")

    loan_id = market.borrow("bob", offer_id, CONFIG.collateral, CONFIG.borrow_amount)
    loan = market.get_loan(loan_id)
    print(f"Loan #{loan_id}: bob borrowed {fmt(loan.borrowed_amount)} USDC "
          f"against {fmt(loan.collateral_amount)} XLM")

    section_header("Stored record")
    for field, value in loan.to_dict().items():
        print(f"{field:22s} {value}")

    section_header("Health")
    print_health(market, loan_id)
    return loan_id


def step_05_interest(market: LendingMarket, feed: StaticPriceFeed, loan_id: int):
    step_header(5, "Interest",
        "Simple interest accrues every second at the offer's weekly rate.")

    market.ledger.advance_time(market.ledger.current_time + WEEK)
    feed.update_price("XLM", CONFIG.initial_price, market.ledger.current_time)

    interest = market.calculate_interest(loan_id)
    print(f"After one week bob owes {fmt(interest)} USDC of interest.")

    section_header("Partial repayment")
    print(">>> market.repay('bob', loan_id, 80 USDC)")
    market.repay("bob", loan_id, 80 * ONE)
    loan = market.get_loan(loan_id)
    print(f"Principal:          {fmt(loan.borrowed_amount)} USDC")
    print(f"Unpaid interest:    {fmt(loan.accumulated_interest)} USDC")

    section_header("Key Insight")
    print("""
    Payments clear interest first. Only the 30 USDC beyond the 50 USDC of
    interest reduced the principal.
    """)


def step_06_withdrawal(market: LendingMarket, loan_id: int):
    step_header(6, "Guarded Withdrawals",
        "Collateral can be withdrawn only while the ratio stays 2,500 bps above the threshold.")

    try:
        market.withdraw_collateral("bob", loan_id, 4_000 * ONE)
    except WithdrawalBreachesHealth as e:
        print(f"Withdrawing 4,000 XLM rejected: {e}")

    market.withdraw_collateral("bob", loan_id, 500 * ONE)
    print("Withdrawing 500 XLM accepted.")
    section_header("Health")
    print_health(market, loan_id)


# ============================================================================
# PHASE 3: RISK
# ============================================================================

def step_07_crash(market: LendingMarket, feed: StaticPriceFeed, loan_id: int):
    step_header(7, "A Price Crash",
        "When the ratio reaches the threshold, anyone can liquidate.")

    now = market.ledger.current_time + 60
    print(f"XLM falls from {fmt_price(CONFIG.initial_price)} to {fmt_price(CONFIG.crash_price)}.")

    keeper = LiquidationKeeper(market, "keeper", feed)
    liquidated = keeper.run([now], lambda t: CONFIG.crash_price)
    print(f"Keeper liquidated: {liquidated}")

    plan = keeper.history[0]
    section_header("Distribution")
    print(f"Collateral value:   {fmt(plan.collateral_value)} USDC")
    print(f"Paid to lender:     {fmt(plan.total_debt)} USDC")
    print(f"Liquidator bonus:   {fmt(plan.liquidator_bonus)} USDC")
    print(f"Returned to bob:    {fmt(plan.excess_to_borrower)} USDC")
    print(f"Keeper received:    {fmt(plan.collateral_amount)} XLM")
    print(f"\nLoan still active:  {market.get_loan(loan_id).is_active}")


def step_08_more_loans(market: LendingMarket, offer_id: int):
    step_header(8, "A Loan Book",
        "Several loans at different ratios react differently to the same move.")

    for collateral in (8_000, 12_000, 20_000):
        market.borrow("bob", offer_id, collateral * ONE, 600 * ONE)
    for loan_id in market.get_active_loans():
        health = market.get_loan_health(loan_id)
        print(f"Loan #{loan_id}: ratio {fmt_bps(health.collateralization_ratio)}, "
              f"liquidation price {fmt_price(health.liquidation_price)}")


# ============================================================================
# PHASE 4: REPORTING
# ============================================================================

def step_09_stress(market: LendingMarket):
    step_header(9, "Stress Report",
        "Which loans would become liquidatable under a range of price shocks?")

    shocks = [0.0, -0.1, -0.2, -0.3, -0.4, -0.5]
    report = shock_report(market, shocks)
    print(f"Base price {fmt_price(report.base_price)}")
    for column, shock in enumerate(shocks):
        print(f"  shock {shock:+.0%}: liquidatable {report.liquidatable_at(column)}")
    for loan_id, breakeven in zip(report.loan_ids, report.breakeven_shocks):
        print(f"  loan #{loan_id} reaches its threshold at {breakeven:+.1%}")


def step_10_conservation(ledger: TokenLedger):
    step_header(10, "Conservation Proof",
        "Nothing the market did created or destroyed a single unit.")

    result = ledger.verify_double_entry({
        "USDC": CONFIG.alice_initial_usdc + CONFIG.keeper_initial_usdc,
        "XLM": CONFIG.bob_initial_xlm,
    })
    print(f"Valid:        {result['valid']}")
    for asset, supply in result['supplies'].items():
        print(f"{asset} supply:  {fmt(supply)}")
    print(f"Transactions: {len(ledger.transaction_log)}")


def main():
    logging.basicConfig(
        level=logging.INFO if VERBOSE else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    ledger = step_01_token_ledger()
    wait_for_enter()

    market, feed = step_02_market(ledger)
    wait_for_enter()

    offer_id = step_03_offer(market)
    wait_for_enter()

    loan_id = step_04_borrow(market, offer_id)
    wait_for_enter()

    step_05_interest(market, feed, loan_id)
    wait_for_enter()

    step_06_withdrawal(market, loan_id)
    wait_for_enter()

    step_07_crash(market, feed, loan_id)
    wait_for_enter()

    feed.update_price("XLM", CONFIG.initial_price, market.ledger.current_time)
    step_08_more_loans(market, offer_id)
    wait_for_enter()

    step_09_stress(market)
    wait_for_enter()

    step_10_conservation(ledger)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See lending_market/market.py for the operation pipeline
      - See lending_market/liquidation.py for the payout algorithm
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
