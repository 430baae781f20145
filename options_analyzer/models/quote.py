"""Underlying quote data model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Quote:
    """Snapshot of the underlying, fetched once per analysis run.

    Missing provider fields stay ``None`` and are rendered as "N/A".
    """

    symbol: str
    description: str | None = None
    last: float | None = None
    prevclose: float | None = None
    bid: float | None = None
    ask: float | None = None
    volume: int | None = None

    @property
    def spot(self) -> float:
        """Spot price used by the engine, zero when no last trade is available."""
        return self.last or 0.0

    @property
    def change_pct(self) -> float | None:
        """Percent change from previous close, or None if it cannot be computed."""
        if self.last is None or not self.prevclose:
            return None
        return (self.last - self.prevclose) / self.prevclose * 100
