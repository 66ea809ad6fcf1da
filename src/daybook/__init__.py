"""daybook: task ledger maintenance for markdown daily notes."""

__version__ = "0.3.0"
