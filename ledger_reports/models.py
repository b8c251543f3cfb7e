"""
Report Domain Models (``ledger_reports.models``).

Responsibility
--------------
Frozen dataclass value objects representing report outputs: trial
balance, balance sheet, profit and loss, day book, journal register,
ledger statement, cash flow and tax/VAT summaries.

Architecture position
---------------------
**Reports layer** -- pure data definitions with ZERO I/O.  Built by the
functions in ``statements.py`` and returned by ``ReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.dtos import JournalLineView, VoucherView
from ledger_kernel.domain.enums import GroupKind, NormalSide, VoucherType


# =========================================================================
# Enums
# =========================================================================


class ReportType(str, Enum):
    """Types of reports."""

    TRIAL_BALANCE = "trial_balance"
    BALANCE_SHEET = "balance_sheet"
    PROFIT_AND_LOSS = "profit_and_loss"
    DAY_BOOK = "day_book"
    JOURNAL_REGISTER = "journal_register"
    LEDGER_STATEMENT = "ledger_statement"
    CASH_FLOW = "cash_flow"
    TAX_SUMMARY = "tax_summary"
    VAT_SUMMARY = "vat_summary"


class Granularity(str, Enum):
    """Bucket size for period reports."""

    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"


# =========================================================================
# Report Metadata (common to all reports)
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every report."""

    report_type: ReportType
    company_id: str
    generated_at: str  # ISO format timestamp from injected clock
    as_of_date: date | None = None
    period_start: date | None = None
    period_end: date | None = None


@dataclass(frozen=True)
class PeriodBucket:
    """One month or quarter of a calendar year, both ends inclusive."""

    label: str
    start: date
    end: date


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLine:
    """
    One ledger on the trial balance.

    ``balance`` is signed toward the normal side.  ``is_flipped`` marks a
    balance that sits on the side opposite to the ledger's normal side;
    such a ledger appears in the other column, never hidden.
    """

    ledger_id: UUID
    ledger_name: str
    kind: GroupKind
    normal_side: NormalSide
    category: str
    balance: Decimal
    debit: Decimal
    credit: Decimal
    is_flipped: bool
    is_active: bool = True


@dataclass(frozen=True)
class TrialBalanceReport:
    """
    Complete trial balance.

    ``opening_difference`` is net opening debits minus net opening credits,
    the only legitimate source of a column difference.
    """

    metadata: ReportMetadata
    lines: tuple[TrialBalanceLine, ...]
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    opening_difference: Decimal
    is_balanced: bool


# =========================================================================
# Balance Sheet
# =========================================================================


@dataclass(frozen=True)
class StatementLine:
    """A named amount; ``ledger_id`` is None for computed lines (Net Profit)."""

    label: str
    amount: Decimal
    ledger_id: UUID | None = None


@dataclass(frozen=True)
class StatementSection:
    """A section of a statement (e.g. Current Assets)."""

    label: str
    lines: tuple[StatementLine, ...]
    total: Decimal


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Classified balance sheet.

    ``status`` is the configured balanced / discrepancy wording;
    ``difference`` is total assets minus liabilities and equity, never
    rounded away.
    """

    metadata: ReportMetadata

    current_assets: StatementSection
    fixed_assets: StatementSection
    total_assets: Decimal

    current_liabilities: StatementSection
    long_term_liabilities: StatementSection
    total_liabilities: Decimal

    equity: StatementSection
    net_profit: Decimal
    total_equity: Decimal

    total_liabilities_and_equity: Decimal
    difference: Decimal
    is_balanced: bool
    status: str


# =========================================================================
# Profit and Loss
# =========================================================================


@dataclass(frozen=True)
class MonthlyProfit:
    month: int
    label: str
    income: Decimal
    expenses: Decimal
    net: Decimal


@dataclass(frozen=True)
class CategoryTotal:
    """Total of one subgroup (or group, for direct ledgers)."""

    category: str
    kind: GroupKind
    total: Decimal


@dataclass(frozen=True)
class ProfitAndLossReport:
    metadata: ReportMetadata
    year: int
    months: tuple[MonthlyProfit, ...]
    income_by_category: tuple[CategoryTotal, ...]
    expenses_by_category: tuple[CategoryTotal, ...]
    total_income: Decimal
    total_expenses: Decimal
    net_profit: Decimal


# =========================================================================
# Day Book and Journal Register
# =========================================================================


@dataclass(frozen=True)
class DayBookReport:
    """Every line posted on one date, in posting order."""

    metadata: ReportMetadata
    day: date
    lines: tuple[JournalLineView, ...]
    total_debits: Decimal
    total_credits: Decimal


@dataclass(frozen=True)
class JournalRegisterReport:
    """
    JOURNAL vouchers of one month.

    Each voucher's lines are ordered debits first, then credits.
    """

    metadata: ReportMetadata
    year: int
    month: int
    voucher_type: VoucherType
    vouchers: tuple[VoucherView, ...]
    total_debits: Decimal
    total_credits: Decimal


# =========================================================================
# Ledger Statement
# =========================================================================


@dataclass(frozen=True)
class LedgerStatementLine:
    voucher_id: UUID
    voucher_number: str
    voucher_type: VoucherType
    voucher_date: date
    narration: str | None
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class LedgerStatementReport:
    """
    Activity of one ledger over a date range.

    ``opening_balance`` is the balance as of the day before
    ``metadata.period_start``; ``closing_balance`` equals the balance as of
    ``metadata.period_end``.
    """

    metadata: ReportMetadata
    ledger_id: UUID
    ledger_name: str
    normal_side: NormalSide
    opening_balance: Decimal
    lines: tuple[LedgerStatementLine, ...]
    total_debits: Decimal
    total_credits: Decimal
    closing_balance: Decimal


# =========================================================================
# Cash Flow
# =========================================================================


@dataclass(frozen=True)
class CashFlowBucket:
    """Cash movement of one period across all CASH and BANK ledgers."""

    label: str
    start: date
    end: date
    opening: Decimal
    inflow: Decimal
    outflow: Decimal
    net: Decimal
    closing: Decimal


@dataclass(frozen=True)
class CashFlowReport:
    metadata: ReportMetadata
    year: int
    granularity: Granularity
    buckets: tuple[CashFlowBucket, ...]
    opening_cash: Decimal
    total_inflow: Decimal
    total_outflow: Decimal
    net_change: Decimal
    closing_cash: Decimal


# =========================================================================
# Tax / VAT Summary
# =========================================================================


@dataclass(frozen=True)
class TaxBucket:
    """
    Tax movement of one code in one period.

    Output tax is credited to the tax ledger (collected on sales); input
    tax is debited (paid on purchases).
    """

    label: str
    start: date
    end: date
    output_tax: Decimal
    input_tax: Decimal
    net_payable: Decimal


@dataclass(frozen=True)
class TaxCodeSummary:
    tax_code: str
    buckets: tuple[TaxBucket, ...]
    total_output: Decimal
    total_input: Decimal
    net_payable: Decimal


@dataclass(frozen=True)
class TaxSummaryReport:
    metadata: ReportMetadata
    year: int
    granularity: Granularity
    codes: tuple[TaxCodeSummary, ...]
    total_output: Decimal
    total_input: Decimal
    net_payable: Decimal
