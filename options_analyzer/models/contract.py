"""Option contract data models."""

from dataclasses import dataclass
from datetime import date
from typing import Literal

from ..utils.error_handling import DataValidationError

OptionType = Literal["call", "put"]
GreeksSource = Literal["provider", "estimated", "none"]

OPTION_TYPES = ("call", "put")


@dataclass(frozen=True)
class ProviderGreeks:
    """Greeks block exactly as supplied by the quote provider.

    Every field is optional: providers routinely omit values for illiquid
    strikes. ``smv_vol`` is the primary implied volatility, ``mid_iv`` the
    secondary one.
    """

    delta: float | None = None
    gamma: float | None = None
    theta: float | None = None
    vega: float | None = None
    rho: float | None = None
    phi: float | None = None
    smv_vol: float | None = None
    mid_iv: float | None = None
    bid_iv: float | None = None
    ask_iv: float | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class OptionContract:
    """A single raw option contract from a data source.

    Immutable dataclass to prevent accidental mutations during processing.
    Market fields are ``None`` when the provider did not quote them.
    """

    symbol: str
    underlying: str
    strike: float
    option_type: OptionType
    expiration: date

    # Market data
    bid: float | None = None
    ask: float | None = None
    last: float | None = None
    volume: int | None = None
    open_interest: int | None = None

    # Provider Greeks, None when the provider sent no Greeks block
    greeks: ProviderGreeks | None = None

    description: str | None = None

    def __post_init__(self):
        if self.option_type not in OPTION_TYPES:
            raise DataValidationError(
                f"Invalid option_type {self.option_type!r} for {self.symbol}: "
                f"expected one of {OPTION_TYPES}"
            )
        if isinstance(self.strike, bool) or not isinstance(self.strike, (int, float)):
            raise DataValidationError(f"Invalid strike {self.strike!r} for {self.symbol}")

    @property
    def mid(self) -> float:
        """Mid price between bid and ask, absent sides read as zero."""
        return ((self.bid or 0.0) + (self.ask or 0.0)) / 2.0

    def __repr__(self) -> str:
        """Compact string representation for debugging."""
        return (f"OptionContract({self.symbol} {self.strike:g}{self.option_type[0].upper()} "
                f"{self.expiration.isoformat()})")


@dataclass(frozen=True)
class Greeks:
    """Resolved Greeks of one contract.

    All values come from a single ``source``: the provider block, the
    Black-Scholes estimator, or ``none`` (all-zero placeholder).
    Theta is per calendar day, vega per percentage point of volatility.
    """

    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0
    rho: float = 0.0
    implied_vol: float = 0.0
    bid_iv: float = 0.0
    ask_iv: float = 0.0
    source: GreeksSource = "none"


ZERO_GREEKS = Greeks()


@dataclass(frozen=True)
class EnrichedContract:
    """Raw contract plus the metrics derived by the analytics engine.

    Created once per enrichment pass. Scoring never mutates an instance;
    ``greeks_score`` is set only on copies made with ``dataclasses.replace``.
    """

    contract: OptionContract

    days_to_expiry: int
    moneyness: float
    intrinsic_value: float
    time_value: float
    break_even: float

    greeks: Greeks

    # Composite score (set by scorer)
    greeks_score: float | None = None

    @property
    def symbol(self) -> str:
        return self.contract.symbol

    @property
    def underlying(self) -> str:
        return self.contract.underlying

    @property
    def strike(self) -> float:
        return self.contract.strike

    @property
    def option_type(self) -> OptionType:
        return self.contract.option_type

    @property
    def expiration(self) -> date:
        return self.contract.expiration

    @property
    def bid(self) -> float | None:
        return self.contract.bid

    @property
    def ask(self) -> float | None:
        return self.contract.ask

    @property
    def last(self) -> float | None:
        return self.contract.last

    @property
    def volume(self) -> int:
        """Traded volume, zero when not quoted."""
        return self.contract.volume or 0

    @property
    def open_interest(self) -> int:
        """Open interest, zero when not quoted."""
        return self.contract.open_interest or 0

    def __repr__(self) -> str:
        score_str = f"{self.greeks_score:.1f}" if self.greeks_score is not None else "N/A"
        return (f"EnrichedContract({self.symbol} DTE={self.days_to_expiry} "
                f"Δ={self.greeks.delta:.3f} ({self.greeks.source}) Score={score_str})")


@dataclass(frozen=True)
class OptimalContract:
    """A contract surfaced by the selection engine, tagged with why it was picked."""

    contract: EnrichedContract
    reason: str
