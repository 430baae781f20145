"""Options chain analytics: derived metrics, Greeks, scoring and selection."""

__version__ = "0.1.0"
