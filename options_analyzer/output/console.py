"""Console output formatter for options chain analysis results."""

from datetime import date
from typing import List

from ..models.contract import EnrichedContract, OptimalContract
from ..models.quote import Quote


def format_number(value: float | int | None) -> str:
    """Thousands-separated number, or N/A for missing/zero values."""
    if not value:
        return "N/A"
    return f"{value:,}"


def format_price(value: float | None) -> str:
    """Dollar price with two decimals, or N/A."""
    if value is None:
        return "N/A"
    return f"${value:.2f}"


def format_date(value: date) -> str:
    """Short date such as 'Mar 21, 2025'."""
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def format_greek(value: float, digits: int = 3) -> str:
    """Greek value, N/A when zero (not supplied)."""
    if not value:
        return "N/A"
    return f"{value:.{digits}f}"


def format_iv(value: float) -> str:
    if not value:
        return "N/A"
    return f"{value * 100:.1f}%"


def print_quote_header(quote: Quote | None):
    """Print the underlying quote block.

    Args:
        quote: Underlying quote, or None when unavailable
    """
    print("\n" + "=" * 80)
    if quote is None:
        print("  Stock information unavailable")
        print("=" * 80)
        return

    print(f"  {quote.symbol} - {quote.description or 'N/A'}")
    change = quote.change_pct
    change_str = f"{change:+.2f}%" if change is not None else "N/A"
    print(f"  Price: {format_price(quote.last)}  Change: {change_str}  "
          f"Volume: {format_number(quote.volume)}  "
          f"Bid/Ask: {format_price(quote.bid)} / {format_price(quote.ask)}")
    print("=" * 80)


def print_volume_leaders(leaders: List[EnrichedContract]):
    """Print the most traded contracts."""
    if not leaders:
        return

    print("\nVolume Leaders:")
    for contract in leaders:
        price = contract.last or contract.bid
        print(f"  {contract.option_type.upper():<4} ${contract.strike:g} strike  "
              f"{format_date(contract.expiration)} ({contract.expiration.strftime('%a')})  "
              f"{format_price(price)}  vol {format_number(contract.volume)}")


def expiration_notice(expirations: List[date]) -> str | None:
    """Describe non-Friday expirations, or None when all are Fridays."""
    non_standard = [exp for exp in expirations if exp.weekday() != 4]
    if not non_standard:
        return None

    thursdays = sum(1 for exp in non_standard if exp.weekday() == 3)
    if thursdays == len(non_standard):
        return "Options expire on Thursdays due to market holiday adjustments."
    if thursdays > 0:
        return (f"Some options expire on non-standard days ({thursdays} on Thursdays, "
                f"likely due to holidays).")
    return "Some options have non-standard expiration days (not Fridays)."


def print_expiration_notice(expirations: List[date]):
    notice = expiration_notice(expirations)
    if notice:
        print(f"\nExpiration Date Notice: {notice}")


def print_optimal_contracts(optimal: List[OptimalContract]):
    """Print the recommended contracts with their details."""
    if not optimal:
        print("\nNo optimal contracts identified")
        return

    print("\nRecommended Contracts (Volume + Greeks Analysis):")
    print("-" * 80)

    for pick in optimal:
        c = pick.contract
        g = c.greeks
        score = f" (Score: {c.greeks_score:.1f})" if c.greeks_score else ""
        print(f"{pick.reason}{score}")
        print(f"  {c.symbol}  {c.option_type.upper()} ${c.strike:g}  exp {format_date(c.expiration)}")
        print(f"  Bid/Ask: {format_price(c.bid)} / {format_price(c.ask)}  "
              f"Break-Even: {format_price(c.break_even)}  Volume: {format_number(c.volume)}")
        print(f"  Delta: {format_greek(g.delta)}  Gamma: {format_greek(g.gamma, 4)}  "
              f"Theta: {format_greek(g.theta)}  Vega: {format_greek(g.vega)}  "
              f"IV: {format_iv(g.implied_vol)}")
        print(f"  Intrinsic: {format_price(c.intrinsic_value)}  Time Value: {format_price(c.time_value)}")
        print()


def print_chain_table(contracts: List[EnrichedContract], limit: int | None = None):
    """Print the filtered option chain as a compact table.

    Args:
        contracts: Contracts in display order
        limit: Optional maximum number of rows
    """
    if not contracts:
        print("\nNo options match the selected filters.")
        return

    rows = contracts[:limit] if limit is not None else contracts

    print(f"\nOption Chains ({len(contracts)} contracts):")
    print("-" * 140)

    header = (
        f"{'Symbol':<22} {'Type':<4} {'Strike':>8} {'Expiry':^13} {'Bid/Ask':^17} "
        f"{'Last':>7} {'Delta':>7} {'Gamma':>7} {'Theta':>7} {'Vega':>6} "
        f"{'IV':>6} {'Volume':>8} {'OI':>8} {'BE':>8} {'Score':>6}"
    )
    print(header)
    print("-" * 140)

    for c in rows:
        g = c.greeks
        bid_ask = f"{format_price(c.bid)}/{format_price(c.ask)}"
        score = f"{c.greeks_score:.1f}" if c.greeks_score is not None else "N/A"
        print(
            f"{c.symbol:<22} {c.option_type.upper():<4} {c.strike:>8g} "
            f"{format_date(c.expiration):^13} {bid_ask:^17} {format_price(c.last):>7} "
            f"{format_greek(g.delta):>7} {format_greek(g.gamma, 4):>7} "
            f"{format_greek(g.theta):>7} {format_greek(g.vega):>6} {format_iv(g.implied_vol):>6} "
            f"{format_number(c.volume):>8} {format_number(c.open_interest):>8} "
            f"{format_price(c.break_even):>8} {score:>6}"
        )

    if len(rows) < len(contracts):
        print(f"... {len(contracts) - len(rows)} more")
