"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.chart_selector import ChartSelector, ledger_to_info
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector

__all__ = [
    "ChartSelector",
    "JournalSelector",
    "LedgerSelector",
    "ledger_to_info",
]
