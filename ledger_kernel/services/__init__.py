"""Kernel services: the only code that writes ledger state."""

from ledger_kernel.services.balance_resolver import BalanceCache, BalanceResolver
from ledger_kernel.services.chart_service import ChartService
from ledger_kernel.services.posting_service import PostingListener, PostingService
from ledger_kernel.services.reversal_service import ReversalResult, ReversalService
from ledger_kernel.services.sequence_service import SequenceService

__all__ = [
    "BalanceCache",
    "BalanceResolver",
    "ChartService",
    "PostingListener",
    "PostingService",
    "ReversalResult",
    "ReversalService",
    "SequenceService",
]
