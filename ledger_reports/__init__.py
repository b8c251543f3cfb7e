"""
Ledger Reports (``ledger_reports``).

Read-only report aggregators over the ledger kernel: trial balance,
balance sheet, profit and loss, day book, journal register, ledger
statement, cash flow and tax/VAT summaries.

Reports do NOT post and hold no state.  Every ledger value comes from the
kernel's BalanceResolver; pure transformation functions in
``statements.py`` shape the results into frozen DTOs from ``models.py``.
"""

from ledger_reports.config import ReportingConfig
from ledger_reports.models import (
    BalanceSheetReport,
    CashFlowBucket,
    CashFlowReport,
    CategoryTotal,
    DayBookReport,
    Granularity,
    JournalRegisterReport,
    LedgerStatementLine,
    LedgerStatementReport,
    MonthlyProfit,
    PeriodBucket,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    StatementLine,
    StatementSection,
    TaxBucket,
    TaxCodeSummary,
    TaxSummaryReport,
    TrialBalanceLine,
    TrialBalanceReport,
)
from ledger_reports.service import ReportingService

__all__ = [
    "ReportingConfig",
    "ReportingService",
    "BalanceSheetReport",
    "CashFlowBucket",
    "CashFlowReport",
    "CategoryTotal",
    "DayBookReport",
    "Granularity",
    "JournalRegisterReport",
    "LedgerStatementLine",
    "LedgerStatementReport",
    "MonthlyProfit",
    "PeriodBucket",
    "ProfitAndLossReport",
    "ReportMetadata",
    "ReportType",
    "StatementLine",
    "StatementSection",
    "TaxBucket",
    "TaxCodeSummary",
    "TaxSummaryReport",
    "TrialBalanceLine",
    "TrialBalanceReport",
]
