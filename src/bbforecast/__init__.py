"""BlackBox Forecast - confidential multi-option prediction ledger."""

__version__ = "0.1.0"
