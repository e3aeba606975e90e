"""Stock reconciliation and CSV import/export for marketplace inventory."""

__version__ = "0.1.0"
