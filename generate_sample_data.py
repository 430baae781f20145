"""Generate a realistic sample option chain for the analyzer.

Writes a CSV in the format read by ``load_contracts_from_csv``. The first
expiration carries provider-style Greeks; the second is left without Greeks
so the analyzer has to estimate them.

Usage:
    python3 generate_sample_data.py
    python3 analyze_chain.py --csv data/SPY_sample_options.csv --spot 560
"""

import os
from datetime import date, timedelta
from math import exp, log, sqrt

from scipy.stats import norm

from options_analyzer.data.loaders import save_contracts_to_csv
from options_analyzer.models.contract import OptionContract, ProviderGreeks

TICKER = "SPY"
SPOT_PRICE = 560.0
RISK_FREE_RATE = 0.045

TODAY = date.today()
EXPIRATIONS = [
    (TODAY + timedelta(days=21), True),   # with Greeks
    (TODAY + timedelta(days=42), False),  # Greeks left to the estimator
]


def black_scholes(spot, strike, time_to_expiry, rate, vol, option_type):
    """Black-Scholes price and Greeks (theta per day, vega per vol point)."""
    d1 = (log(spot / strike) + (rate + 0.5 * vol ** 2) * time_to_expiry) / (vol * sqrt(time_to_expiry))
    d2 = d1 - vol * sqrt(time_to_expiry)
    discount = strike * exp(-rate * time_to_expiry)

    if option_type == 'call':
        delta = norm.cdf(d1)
        price = spot * norm.cdf(d1) - discount * norm.cdf(d2)
        theta = -spot * norm.pdf(d1) * vol / (2 * sqrt(time_to_expiry)) - rate * discount * norm.cdf(d2)
    else:
        delta = norm.cdf(d1) - 1
        price = discount * norm.cdf(-d2) - spot * norm.cdf(-d1)
        theta = -spot * norm.pdf(d1) * vol / (2 * sqrt(time_to_expiry)) + rate * discount * norm.cdf(-d2)

    gamma = norm.pdf(d1) / (spot * vol * sqrt(time_to_expiry))
    vega = spot * norm.pdf(d1) * sqrt(time_to_expiry) / 100

    return price, delta, gamma, theta / 365, vega


def occ_symbol(ticker: str, expiration: date, option_type: str, strike: float) -> str:
    """OCC option symbol, e.g. SPY250321C00560000."""
    return f"{ticker}{expiration.strftime('%y%m%d')}{option_type[0].upper()}{int(strike * 1000):08d}"


def generate_option_chain(spot, expiration, with_greeks):
    """Generate contracts from -10% to +10% around spot, every $5."""
    contracts = []
    time_to_expiry = (expiration - TODAY).days / 365.0

    min_strike = int(spot * 0.90 / 5) * 5
    max_strike = int(spot * 1.10 / 5) * 5

    for strike in range(min_strike, max_strike + 1, 5):
        strike = float(strike)
        distance_pct = abs(strike - spot) / spot
        iv = 0.22 + distance_pct * 0.3  # smile

        base_volume = max(0, int(5000 * exp(-distance_pct * 25)) - 50)
        base_oi = max(100, int(50000 * exp(-distance_pct * 8)))

        for option_type in ('put', 'call'):
            price, delta, gamma, theta, vega = black_scholes(
                spot, strike, time_to_expiry, RISK_FREE_RATE, iv, option_type
            )

            spread_pct = 0.01 + distance_pct * 0.05
            bid = round(max(0.0, price * (1 - spread_pct)), 2)
            ask = round(max(0.01, price * (1 + spread_pct)), 2)
            multiplier = 1.2 if option_type == 'call' else 0.8
            volume = int(base_volume * multiplier)

            greeks = None
            if with_greeks:
                greeks = ProviderGreeks(
                    delta=round(delta, 4), gamma=round(gamma, 6), theta=round(theta, 4),
                    vega=round(vega, 4), rho=0.0, smv_vol=round(iv, 4), mid_iv=round(iv, 4),
                )

            contracts.append(OptionContract(
                symbol=occ_symbol(TICKER, expiration, option_type, strike),
                underlying=TICKER,
                strike=strike,
                option_type=option_type,
                expiration=expiration,
                bid=bid,
                ask=ask,
                last=round((bid + ask) / 2, 2) if volume > 0 else None,
                volume=volume,
                open_interest=int(base_oi * multiplier),
                greeks=greeks,
            ))

    return contracts


def main():
    """Generate sample data and save to CSV."""
    print(f"Generating sample option chain for {TICKER} (spot ${SPOT_PRICE:.2f})...")

    contracts = []
    for expiration, with_greeks in EXPIRATIONS:
        contracts.extend(generate_option_chain(SPOT_PRICE, expiration, with_greeks))

    os.makedirs("data", exist_ok=True)
    output_file = f"data/{TICKER}_sample_options.csv"
    save_contracts_to_csv(contracts, output_file)

    print(f"Generated {len(contracts)} contracts")
    print(f"Saved to: {output_file}")
    print(f"Run: python3 analyze_chain.py --csv {output_file} --spot {SPOT_PRICE:g}")


if __name__ == '__main__':
    main()
