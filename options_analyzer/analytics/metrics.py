"""Per-contract financial metrics.

Pure functions with no error paths: missing or zero inputs yield a neutral 0.
Moneyness is signed so that positive means in-the-money.
"""

import math
from datetime import date, datetime

SECONDS_PER_DAY = 86400.0


def days_to_expiry(expiration: date, now: datetime | date) -> int:
    """Calendar days until expiration, rounded up.

    Args:
        expiration: Expiration date, taken at midnight
        now: Reference time of the enrichment pass (a date means midnight)

    Returns:
        Ceiling of the day difference. Negative for expired contracts.
    """
    if not isinstance(now, datetime):
        now = datetime.combine(now, datetime.min.time())
    expiry = datetime.combine(expiration, datetime.min.time(), tzinfo=now.tzinfo)
    return math.ceil((expiry - now).total_seconds() / SECONDS_PER_DAY)


def moneyness(strike: float, spot: float | None, option_type: str) -> float:
    """Distance of the strike from spot as a fraction of spot."""
    if not spot:
        return 0.0

    if option_type == 'call':
        return (spot - strike) / spot
    return (strike - spot) / spot


def intrinsic_value(strike: float, spot: float | None, option_type: str) -> float:
    """Payoff if exercised immediately."""
    if not spot:
        return 0.0

    if option_type == 'call':
        return max(0.0, spot - strike)
    return max(0.0, strike - spot)


def time_value(price: float | None, strike: float, spot: float | None, option_type: str) -> float:
    """Portion of the option price above intrinsic value, never negative."""
    if not price or not spot:
        return 0.0

    return max(0.0, price - intrinsic_value(strike, spot, option_type))


def break_even(strike: float, price: float | None, option_type: str) -> float:
    """Underlying price at expiration where a long position breaks even."""
    if not price:
        return 0.0

    if option_type == 'call':
        return strike + price
    return strike - price


def observed_price(last: float | None, bid: float | None, ask: float | None) -> float:
    """Last trade price, else the bid/ask midpoint (absent sides read as zero)."""
    if last:
        return last
    return ((bid or 0.0) + (ask or 0.0)) / 2.0
