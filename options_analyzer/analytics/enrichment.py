"""Enrichment pass: raw contracts to analysed contracts.

Entry point of the analytics engine. Stateless; the quote and the reference
time are parameters so concurrent runs never share data.
"""

from collections import Counter
from datetime import datetime
from typing import Iterable, List

from ..models.contract import EnrichedContract, OptionContract
from ..models.quote import Quote
from ..utils.logging_config import get_logger
from .greeks import DEFAULT_RISK_FREE_RATE, resolve_greeks
from .metrics import (
    break_even,
    days_to_expiry,
    intrinsic_value,
    moneyness,
    time_value,
)

logger = get_logger("enrichment")


def enrich_contract(
    contract: OptionContract,
    spot_price: float,
    now: datetime,
    rate: float = DEFAULT_RISK_FREE_RATE,
) -> EnrichedContract:
    """Compute derived metrics and Greeks for one contract.

    Args:
        contract: Raw contract from a data source
        spot_price: Underlying last price (0 when unavailable)
        now: Reference time shared by the whole batch
        rate: Risk-free rate for the Greeks estimator

    Returns:
        New EnrichedContract. Intrinsic/time value and break-even use the
        last trade price.
    """
    dte = days_to_expiry(contract.expiration, now)
    strike = contract.strike
    option_type = contract.option_type

    return EnrichedContract(
        contract=contract,
        days_to_expiry=dte,
        moneyness=moneyness(strike, spot_price, option_type),
        intrinsic_value=intrinsic_value(strike, spot_price, option_type),
        time_value=time_value(contract.last, strike, spot_price, option_type),
        break_even=break_even(strike, contract.last, option_type),
        greeks=resolve_greeks(contract, spot_price, dte, rate),
    )


def analyze_chain(
    quote: Quote | None,
    contracts: Iterable[OptionContract],
    now: datetime | None = None,
    rate: float = DEFAULT_RISK_FREE_RATE,
) -> List[EnrichedContract]:
    """Enrich a fully fetched batch of contracts against one underlying quote.

    Args:
        quote: Underlying quote (None degrades to spot 0)
        contracts: Raw contracts, any mix of expirations
        now: Reference time; defaults to the current time, read once
        rate: Risk-free rate for the Greeks estimator

    Returns:
        Enriched contracts in input order
    """
    if now is None:
        now = datetime.now()

    spot_price = quote.spot if quote is not None else 0.0

    enriched = [enrich_contract(c, spot_price, now, rate) for c in contracts]

    sources = Counter(c.greeks.source for c in enriched)
    logger.info(
        "Enriched %d contracts at spot %.2f (greeks: %d provider, %d estimated, %d none)",
        len(enriched), spot_price,
        sources["provider"], sources["estimated"], sources["none"]
    )
    if spot_price <= 0:
        logger.warning("No underlying price available; moneyness and intrinsic values are zero")

    return enriched
