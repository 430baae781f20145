"""Core data models for options chain analysis."""

from .contract import (
    EnrichedContract,
    Greeks,
    OptimalContract,
    OptionContract,
    ProviderGreeks,
)
from .quote import Quote

__all__ = [
    "OptionContract",
    "ProviderGreeks",
    "Greeks",
    "EnrichedContract",
    "OptimalContract",
    "Quote",
]
