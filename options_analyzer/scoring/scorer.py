"""Greeks-based scoring of option contracts.

Implements a transparent, weighted score tuned to a directional market
outlook. Weights are tuning constants and need not sum to 1.
"""

from dataclasses import replace
from typing import Dict, Any, Literal

from ..models.contract import EnrichedContract
from ..utils.error_handling import ConfigurationError

MarketOutlook = Literal["bullish", "bearish", "neutral"]
MARKET_OUTLOOKS = ("bullish", "bearish", "neutral")


class ScoringConfig:
    """Configuration for scoring weights and component caps."""

    def __init__(
        self,
        weight_delta: float = 0.30,
        weight_gamma: float = 0.20,
        weight_theta: float = 0.25,
        weight_vega: float = 0.15,
        weight_volume: float = 0.10,
        aligned_delta_scale: float = 100.0,
        neutral_delta_scale: float = 50.0,
        gamma_cap: float = 50.0,
        theta_cap: float = 30.0,
        vega_cap: float = 20.0,
        volume_cap: float = 10.0,
        moneyness_bonus_weight: float = 0.1,
    ):
        """Initialize scoring configuration.

        Args:
            weight_delta: Weight for the delta component
            weight_gamma: Weight for the gamma component
            weight_theta: Weight for the theta penalty
            weight_vega: Weight for the vega component
            weight_volume: Weight for the volume component
            aligned_delta_scale: Delta multiplier when contract type matches the outlook
            neutral_delta_scale: Delta multiplier otherwise
            gamma_cap: Cap on gamma * 1000
            theta_cap: Cap on |theta| * 100
            vega_cap: Cap on vega * 10
            volume_cap: Cap on volume / 100
            moneyness_bonus_weight: Multiplier for the near-the-money bonus
        """
        self.weight_delta = weight_delta
        self.weight_gamma = weight_gamma
        self.weight_theta = weight_theta
        self.weight_vega = weight_vega
        self.weight_volume = weight_volume

        self.aligned_delta_scale = aligned_delta_scale
        self.neutral_delta_scale = neutral_delta_scale
        self.gamma_cap = gamma_cap
        self.theta_cap = theta_cap
        self.vega_cap = vega_cap
        self.volume_cap = volume_cap
        self.moneyness_bonus_weight = moneyness_bonus_weight

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "ScoringConfig":
        """Create ScoringConfig from dictionary (e.g., from YAML).

        Args:
            config: Dictionary with ``weights`` and ``caps`` sections

        Returns:
            ScoringConfig instance
        """
        weights = config.get('weights', {})
        caps = config.get('caps', {})

        return cls(
            weight_delta=weights.get('delta', 0.30),
            weight_gamma=weights.get('gamma', 0.20),
            weight_theta=weights.get('theta', 0.25),
            weight_vega=weights.get('vega', 0.15),
            weight_volume=weights.get('volume', 0.10),
            aligned_delta_scale=caps.get('aligned_delta_scale', 100.0),
            neutral_delta_scale=caps.get('neutral_delta_scale', 50.0),
            gamma_cap=caps.get('gamma', 50.0),
            theta_cap=caps.get('theta', 30.0),
            vega_cap=caps.get('vega', 20.0),
            volume_cap=caps.get('volume', 10.0),
            moneyness_bonus_weight=caps.get('moneyness_bonus_weight', 0.1),
        )


DEFAULT_SCORING = ScoringConfig()


def parse_outlook(value: str | None) -> MarketOutlook:
    """Validate a user-supplied market outlook.

    Args:
        value: 'bullish', 'bearish' or 'neutral' (case-insensitive); None means neutral

    Raises:
        ConfigurationError: For any other value
    """
    if value is None or value == '':
        return "neutral"

    outlook = value.strip().lower()
    if outlook not in MARKET_OUTLOOKS:
        raise ConfigurationError(
            f"Invalid market outlook {value!r}: expected one of {MARKET_OUTLOOKS}"
        )
    return outlook  # type: ignore[return-value]


def score_contract(
    contract: EnrichedContract,
    spot_price: float,
    outlook: str = "neutral",
    config: ScoringConfig | None = None,
) -> float:
    """Compute the composite Greeks score of a contract.

    Args:
        contract: Enriched contract to score
        spot_price: Underlying price of the run (moneyness already reflects it)
        outlook: 'bullish', 'bearish' or 'neutral'; anything else scores as neutral
        config: ScoringConfig with weights and caps

    Returns:
        Non-negative score; not normalized across runs

    Design:
        - Delta rewards directional alignment (full scale) over mismatch/neutral (half scale)
        - Gamma, vega and volume add capped contributions
        - Theta is a capped penalty
        - Near-the-money contracts get a small fixed bonus
        - Pure function: the contract is never modified
    """
    config = config or DEFAULT_SCORING
    greeks = contract.greeks
    score = 0.0

    # Component 1: Delta (directional exposure)
    aligned = (
        (outlook == "bullish" and contract.option_type == "call") or
        (outlook == "bearish" and contract.option_type == "put")
    )
    delta_scale = config.aligned_delta_scale if aligned else config.neutral_delta_scale
    score += abs(greeks.delta) * delta_scale * config.weight_delta

    # Component 2: Gamma (price sensitivity)
    score += min(greeks.gamma * 1000, config.gamma_cap) * config.weight_gamma

    # Component 3: Theta (time decay penalty)
    score -= min(abs(greeks.theta) * 100, config.theta_cap) * config.weight_theta

    # Component 4: Vega
    score += min(greeks.vega * 10, config.vega_cap) * config.weight_vega

    # Component 5: Volume (liquidity)
    score += min(contract.volume / 100, config.volume_cap) * config.weight_volume

    # Near-the-money bonus
    score += max(0.0, 10 - abs(contract.moneyness * 100)) * config.moneyness_bonus_weight

    return max(0.0, score)


def with_score(
    contract: EnrichedContract,
    spot_price: float,
    outlook: str = "neutral",
    config: ScoringConfig | None = None,
) -> EnrichedContract:
    """Return a copy of the contract with ``greeks_score`` set."""
    return replace(contract, greeks_score=score_contract(contract, spot_price, outlook, config))
