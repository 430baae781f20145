"""User-facing filters and orderings over an enriched chain.

Filters are exact matches on expiration and option type; sorting is stable
and treats absent numeric fields as zero.
"""

from datetime import date, datetime
from typing import Any, Callable, Dict, List, Tuple

from ..models.contract import EnrichedContract
from ..scoring.scorer import ScoringConfig, with_score
from ..utils.error_handling import ConfigurationError
from ..utils.logging_config import get_logger

logger = get_logger("filters")

# sort key -> (key function, descending)
SORT_KEYS: Dict[str, Tuple[Callable[[EnrichedContract], float], bool]] = {
    'greeks_score': (lambda c: c.greeks_score or 0.0, True),
    'volume': (lambda c: c.volume, True),
    'open_interest': (lambda c: c.open_interest, True),
    'delta': (lambda c: abs(c.greeks.delta), True),
    'gamma': (lambda c: c.greeks.gamma, True),
    'theta': (lambda c: abs(c.greeks.theta), False),
    'vega': (lambda c: c.greeks.vega, True),
    'strike': (lambda c: c.strike, False),
    'bid': (lambda c: c.bid or 0.0, True),
}


class ChainFilter:
    """Filter and sort selection for an option chain view."""

    def __init__(
        self,
        expiration: date | None = None,
        option_type: str | None = None,
        sort_by: str = 'volume',
    ):
        """Initialize chain filter.

        Args:
            expiration: Only keep contracts expiring on this date
            option_type: Only keep 'call' or 'put' contracts
            sort_by: One of SORT_KEYS; unknown keys keep input order
        """
        if option_type is not None and option_type not in ('call', 'put'):
            raise ConfigurationError(f"Invalid option_type filter: {option_type!r}")

        self.expiration = expiration
        self.option_type = option_type
        self.sort_by = sort_by

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "ChainFilter":
        """Create ChainFilter from dictionary (e.g., from YAML or CLI flags).

        Empty strings mean "no filter", like the "All" entries of a UI.
        """
        expiration = config.get('expiration') or None
        if isinstance(expiration, str):
            try:
                expiration = datetime.strptime(expiration, '%Y-%m-%d').date()
            except ValueError as e:
                raise ConfigurationError(f"Invalid expiration filter: {expiration!r}") from e

        return cls(
            expiration=expiration,
            option_type=config.get('option_type') or None,
            sort_by=config.get('sort_by') or 'volume',
        )


def filter_and_sort(
    contracts: List[EnrichedContract],
    chain_filter: ChainFilter,
    spot_price: float,
    outlook: str = 'neutral',
    scoring_config: ScoringConfig | None = None,
) -> List[EnrichedContract]:
    """Apply filters and ordering to an enriched chain.

    Args:
        contracts: Enriched contracts of the run
        chain_filter: Filter and sort selection
        spot_price: Underlying price (used only for score sorting)
        outlook: Market outlook (used only for score sorting)
        scoring_config: Optional scoring weights

    Returns:
        New list. When sorting by ``greeks_score`` the entries are scored
        copies; otherwise the input contracts are returned unscored.
    """
    filtered = list(contracts)

    if chain_filter.expiration is not None:
        filtered = [c for c in filtered if c.expiration == chain_filter.expiration]

    if chain_filter.option_type is not None:
        filtered = [c for c in filtered if c.option_type == chain_filter.option_type]

    sort_by = chain_filter.sort_by
    if sort_by == 'greeks_score':
        filtered = [with_score(c, spot_price, outlook, scoring_config) for c in filtered]

    if sort_by not in SORT_KEYS:
        logger.debug("Unknown sort key %r, keeping input order", sort_by)
        return filtered

    key, descending = SORT_KEYS[sort_by]
    return sorted(filtered, key=key, reverse=descending)


def list_expirations(contracts: List[EnrichedContract]) -> List[date]:
    """Sorted unique expiration dates present in the chain."""
    return sorted({c.expiration for c in contracts})


def volume_leaders(contracts: List[EnrichedContract], limit: int = 5) -> List[EnrichedContract]:
    """Most traded contracts, highest volume first."""
    traded = [c for c in contracts if c.volume > 0]
    return sorted(traded, key=lambda c: c.volume, reverse=True)[:limit]
