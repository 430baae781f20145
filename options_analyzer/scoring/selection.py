"""Selection of a small set of "optimal" contracts.

Candidates are collected from several competing criteria in a fixed
precedence order, then deduplicated by symbol (earlier category wins) and
truncated. The result is never padded.
"""

from typing import Any, Dict, List

from ..models.contract import EnrichedContract, OptimalContract
from ..utils.error_handling import safe_divide
from ..utils.logging_config import get_logger
from .scorer import ScoringConfig, with_score

logger = get_logger("selection")


class SelectionConfig:
    """Configuration for the optimal-contract selection."""

    def __init__(
        self,
        max_results: int = 4,
        top_volume_count: int = 2,
        min_days_for_risk_reward: int = 7,
    ):
        """Initialize selection configuration.

        Args:
            max_results: Maximum number of contracts returned
            top_volume_count: Number of overall volume leaders considered
            min_days_for_risk_reward: Contracts must have more days than this
                to qualify for the risk/reward pick
        """
        self.max_results = max_results
        self.top_volume_count = top_volume_count
        self.min_days_for_risk_reward = min_days_for_risk_reward

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "SelectionConfig":
        """Create SelectionConfig from dictionary (e.g., from YAML)."""
        return cls(
            max_results=config.get('max_results', 4),
            top_volume_count=config.get('top_volume_count', 2),
            min_days_for_risk_reward=config.get('min_days_for_risk_reward', 7),
        )


def _highest_volume(contracts: List[EnrichedContract]) -> EnrichedContract:
    """First contract with the maximum volume."""
    best = contracts[0]
    for current in contracts[1:]:
        if current.volume > best.volume:
            best = current
    return best


def _decay_per_day(contract: EnrichedContract) -> float:
    return safe_divide(contract.time_value, contract.days_to_expiry)


def select_optimal(
    contracts: List[EnrichedContract],
    spot_price: float,
    outlook: str = "neutral",
    scoring_config: ScoringConfig | None = None,
    config: SelectionConfig | None = None,
) -> List[OptimalContract]:
    """Pick the recommended contracts of a chain.

    Args:
        contracts: Enriched contracts of the run
        spot_price: Underlying price of the run
        outlook: Market outlook used for the Greeks score
        scoring_config: Optional scoring weights
        config: Optional selection limits

    Returns:
        At most ``max_results`` OptimalContract entries, in category order:
        highest volume (#1, #2), best Greeks score, highest volume call,
        highest volume put, best risk/reward.

    Note:
        "Best Risk/Reward" favours the lowest time value per remaining day.
    """
    config = config or SelectionConfig()
    if not contracts:
        return []

    scored = [with_score(c, spot_price, outlook, scoring_config) for c in contracts]
    traded = [c for c in scored if c.volume > 0]

    candidates: List[OptimalContract] = []

    # Highest volume overall (stable sort keeps input order on ties)
    by_volume = sorted(traded, key=lambda c: c.volume, reverse=True)
    for rank, contract in enumerate(by_volume[:config.top_volume_count], start=1):
        candidates.append(OptimalContract(contract, f"Highest Volume (#{rank})"))

    # Best Greeks score among contracts with a bid
    quoted = [c for c in traded if (c.bid or 0) > 0]
    if quoted:
        best_score = sorted(quoted, key=lambda c: c.greeks_score or 0.0, reverse=True)[0]
        candidates.append(OptimalContract(best_score, "Best Greeks Score"))

    calls = [c for c in traded if c.option_type == "call"]
    if calls:
        candidates.append(OptimalContract(_highest_volume(calls), "Highest Volume Call"))

    puts = [c for c in traded if c.option_type == "put"]
    if puts:
        candidates.append(OptimalContract(_highest_volume(puts), "Highest Volume Put"))

    # Lowest time value per remaining day
    risk_reward = [
        c for c in traded
        if c.days_to_expiry > config.min_days_for_risk_reward and c.time_value > 0
    ]
    if risk_reward:
        best = risk_reward[0]
        for current in risk_reward[1:]:
            if _decay_per_day(current) < _decay_per_day(best):
                best = current
        candidates.append(OptimalContract(best, "Best Risk/Reward"))

    seen = set()
    unique: List[OptimalContract] = []
    for candidate in candidates:
        if candidate.contract.symbol in seen:
            continue
        seen.add(candidate.contract.symbol)
        unique.append(candidate)

    selected = unique[:config.max_results]
    logger.debug(
        "Selected %d optimal contracts from %d candidates (%d traded)",
        len(selected), len(candidates), len(traded)
    )
    return selected
