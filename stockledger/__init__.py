"""Stock Ledger — inventory synchronization and movement ledger engine."""

__version__ = "1.0.0"
