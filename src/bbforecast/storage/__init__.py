"""DuckDB persistence for emitted ledger events."""
