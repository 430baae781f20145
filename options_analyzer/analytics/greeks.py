"""Greeks estimation using the Black-Scholes model.

Provides fallback Greeks when the quote provider does not return a Greeks
block, and the source-selection rule that decides between provider data and
the estimate.

Limitations:
    The volatility input is a heuristic proxy derived from the contract's
    time value (see ``estimate_volatility_proxy``), not a converged implied
    volatility. The composite score is calibrated against this proxy, so it
    must not be swapped for a root-finding IV solver without re-tuning the
    scorer.
"""

import math
from typing import Tuple

from ..models.contract import Greeks, OptionContract, ProviderGreeks, ZERO_GREEKS
from ..utils.logging_config import get_logger
from .metrics import intrinsic_value, observed_price

logger = get_logger("greeks")

DEFAULT_RISK_FREE_RATE = 0.05
DAYS_PER_YEAR = 365.0

DEFAULT_VOL = 0.20
MIN_VOL = 0.10
MAX_VOL = 2.00

# Abramowitz & Stegun 7.1.26, |error| < 1.5e-7 on erf
_A1 = 0.254829592
_A2 = -0.284496736
_A3 = 1.421413741
_A4 = -1.453152027
_A5 = 1.061405429
_P = 0.3275911

_SQRT2 = math.sqrt(2.0)
_SQRT2PI = math.sqrt(2.0 * math.pi)


def norm_cdf(x: float) -> float:
    """Standard normal CDF via the Abramowitz-Stegun rational approximation."""
    sign = -1.0 if x < 0 else 1.0
    z = abs(x) / _SQRT2

    t = 1.0 / (1.0 + _P * z)
    y = 1.0 - (((((_A5 * t + _A4) * t) + _A3) * t + _A2) * t + _A1) * t * math.exp(-z * z)

    return 0.5 * (1.0 + sign * y)


def norm_pdf(x: float) -> float:
    """Standard normal probability density function."""
    return math.exp(-0.5 * x * x) / _SQRT2PI


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


class BlackScholesGreeks:
    """Calculate option Greeks using the Black-Scholes model.

    Assumes European-style options with no dividends.
    """

    @staticmethod
    def calculate_delta(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float,
        option_type: str
    ) -> float:
        """Calculate delta.

        Args:
            spot: Current underlying price
            strike: Strike price
            time_to_expiry: Time to expiration in years
            rate: Risk-free interest rate (annualized)
            vol: Volatility (annualized)
            option_type: 'call' or 'put'

        Returns:
            N(d1) for calls, N(d1) - 1 for puts

        Example:
            >>> BlackScholesGreeks.calculate_delta(100, 100, 0.25, 0.05, 0.20, 'call')
            0.5695...
        """
        if time_to_expiry <= 0:
            # At expiration
            if option_type == 'call':
                return 1.0 if spot > strike else 0.0
            return -1.0 if spot < strike else 0.0

        d1 = BlackScholesGreeks._d1(spot, strike, time_to_expiry, rate, vol)

        if option_type == 'call':
            return norm_cdf(d1)
        return norm_cdf(d1) - 1.0

    @staticmethod
    def calculate_gamma(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float
    ) -> float:
        """Calculate gamma (identical for calls and puts)."""
        if time_to_expiry <= 0:
            return 0.0

        d1 = BlackScholesGreeks._d1(spot, strike, time_to_expiry, rate, vol)
        return norm_pdf(d1) / (spot * vol * math.sqrt(time_to_expiry))

    @staticmethod
    def calculate_theta(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float,
        option_type: str
    ) -> float:
        """Calculate theta (time decay).

        Returns:
            Theta per calendar day (annual theta divided by 365)
        """
        if time_to_expiry <= 0:
            return 0.0

        sqrt_t = math.sqrt(time_to_expiry)
        d1 = BlackScholesGreeks._d1(spot, strike, time_to_expiry, rate, vol)
        d2 = d1 - vol * sqrt_t

        term1 = -(spot * norm_pdf(d1) * vol) / (2 * sqrt_t)
        discount = rate * strike * math.exp(-rate * time_to_expiry)

        if option_type == 'call':
            theta = term1 - discount * norm_cdf(d2)
        else:
            theta = term1 + discount * (1.0 - norm_cdf(d2))

        return theta / DAYS_PER_YEAR

    @staticmethod
    def calculate_vega(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float
    ) -> float:
        """Calculate vega per one percentage point change in volatility."""
        if time_to_expiry <= 0:
            return 0.0

        d1 = BlackScholesGreeks._d1(spot, strike, time_to_expiry, rate, vol)
        return spot * norm_pdf(d1) * math.sqrt(time_to_expiry) / 100

    @staticmethod
    def calculate_all_greeks(
        spot: float,
        strike: float,
        time_to_expiry: float,
        rate: float,
        vol: float,
        option_type: str
    ) -> Tuple[float, float, float, float]:
        """Calculate all Greeks at once.

        Returns:
            Tuple of (delta, gamma, theta, vega)
        """
        delta = BlackScholesGreeks.calculate_delta(
            spot, strike, time_to_expiry, rate, vol, option_type
        )
        gamma = BlackScholesGreeks.calculate_gamma(
            spot, strike, time_to_expiry, rate, vol
        )
        theta = BlackScholesGreeks.calculate_theta(
            spot, strike, time_to_expiry, rate, vol, option_type
        )
        vega = BlackScholesGreeks.calculate_vega(
            spot, strike, time_to_expiry, rate, vol
        )

        return delta, gamma, theta, vega

    @staticmethod
    def _d1(spot: float, strike: float, time_to_expiry: float, rate: float, vol: float) -> float:
        """Calculate d1 term in Black-Scholes formula."""
        return (math.log(spot / strike) + (rate + 0.5 * vol ** 2) * time_to_expiry) / \
               (vol * math.sqrt(time_to_expiry))


def estimate_volatility_proxy(
    price: float,
    spot: float,
    strike: float,
    time_to_expiry: float,
    option_type: str,
) -> float:
    """Rough volatility estimate from the option's time value.

    Starts at 20% and, when the option carries time value, rescales to
    ``time_value / (spot * sqrt(T)) * 2`` clamped to [10%, 200%].
    Single pass, no convergence to the market price.
    """
    vol = DEFAULT_VOL

    extrinsic = max(0.0, price - intrinsic_value(strike, spot, option_type))
    if extrinsic > 0 and time_to_expiry > 0:
        vol = min(MAX_VOL, max(MIN_VOL, extrinsic / (spot * math.sqrt(time_to_expiry)) * 2))

    return vol


def estimate_greeks(
    spot: float,
    strike: float,
    days_to_expiry: int,
    option_type: str,
    price: float,
    rate: float = DEFAULT_RISK_FREE_RATE,
) -> Greeks:
    """Estimate Greeks for a contract the provider did not cover.

    Args:
        spot: Current underlying price
        strike: Strike price
        days_to_expiry: Calendar days until expiration
        option_type: 'call' or 'put'
        price: Observed option price (last, else bid/ask mid)
        rate: Risk-free rate (default 5%)

    Returns:
        Greeks with ``source="estimated"``. All values are zero when price,
        time to expiry, spot or strike is not positive.
    """
    time_to_expiry = days_to_expiry / DAYS_PER_YEAR

    if not price or price <= 0 or time_to_expiry <= 0 or spot <= 0 or strike <= 0:
        return Greeks(source="estimated")

    vol = estimate_volatility_proxy(price, spot, strike, time_to_expiry, option_type)

    delta, gamma, theta, vega = BlackScholesGreeks.calculate_all_greeks(
        spot=spot,
        strike=strike,
        time_to_expiry=time_to_expiry,
        rate=rate,
        vol=vol,
        option_type=option_type,
    )

    return Greeks(
        delta=_finite_or_zero(delta),
        gamma=_finite_or_zero(gamma),
        theta=_finite_or_zero(theta),
        vega=_finite_or_zero(vega),
        implied_vol=vol,
        source="estimated",
    )


def greeks_from_provider(block: ProviderGreeks) -> Greeks:
    """Copy a provider Greeks block, defaulting missing fields to zero.

    Implied volatility prefers ``smv_vol``, then ``mid_iv``.
    """
    return Greeks(
        delta=block.delta or 0.0,
        gamma=block.gamma or 0.0,
        theta=block.theta or 0.0,
        vega=block.vega or 0.0,
        rho=block.rho or 0.0,
        implied_vol=block.smv_vol or block.mid_iv or 0.0,
        bid_iv=block.bid_iv or 0.0,
        ask_iv=block.ask_iv or 0.0,
        source="provider",
    )


def validate_greeks(greeks: Greeks, option_type: str, tolerance: float = 0.05) -> Tuple[bool, str]:
    """Check that Greeks are within their usual ranges.

    Used only to flag suspicious provider data in the logs; provider values
    are never replaced.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if abs(greeks.delta) > 1.0 + tolerance:
        return False, f"Delta {greeks.delta:.3f} outside valid range [-1, 1]"

    if option_type == 'call' and greeks.delta < -tolerance:
        return False, f"Call option has negative delta: {greeks.delta:.3f}"

    if option_type == 'put' and greeks.delta > tolerance:
        return False, f"Put option has positive delta: {greeks.delta:.3f}"

    if greeks.gamma < -tolerance:
        return False, f"Gamma should be non-negative, got: {greeks.gamma:.3f}"

    if greeks.vega < -tolerance:
        return False, f"Vega should be non-negative, got: {greeks.vega:.3f}"

    return True, ""


def resolve_greeks(
    contract: OptionContract,
    spot: float,
    days_to_expiry: int,
    rate: float = DEFAULT_RISK_FREE_RATE,
) -> Greeks:
    """Pick the Greeks for a contract.

    Provider block first, then the Black-Scholes estimate when spot, strike and
    remaining time allow it, else the all-zero placeholder.
    """
    if contract.greeks is not None:
        greeks = greeks_from_provider(contract.greeks)
        is_valid, error = validate_greeks(greeks, contract.option_type)
        if not is_valid:
            logger.warning("Provider Greeks for %s look suspicious: %s", contract.symbol, error)
        return greeks

    if spot > 0 and contract.strike and days_to_expiry > 0:
        price = observed_price(contract.last, contract.bid, contract.ask)
        greeks = estimate_greeks(
            spot=spot,
            strike=contract.strike,
            days_to_expiry=days_to_expiry,
            option_type=contract.option_type,
            price=price,
            rate=rate,
        )
        logger.debug(
            "Estimated Greeks for %s: delta=%.3f iv_proxy=%.2f",
            contract.symbol, greeks.delta, greeks.implied_vol
        )
        return greeks

    return ZERO_GREEKS
