"""
Pure report transformation functions.

These functions turn ledger metadata, balances and movements into report
DTOs.  ZERO I/O. ZERO side effects.

Functions in this module follow the ledger_kernel/domain/ purity
convention:
- No database access
- No clock access
- Deterministic: same inputs always produce same outputs
"""

from __future__ import annotations

import calendar
import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.domain.balance import ZERO, signed_amount, trial_balance_columns, within_tolerance
from ledger_kernel.domain.dtos import (
    JournalLineView,
    LedgerBalance,
    LedgerInfo,
    Movement,
    VoucherView,
)
from ledger_kernel.domain.enums import (
    BalanceSheetSection,
    GroupKind,
    LineSide,
    NormalSide,
    VoucherType,
)
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
    StatementLine,
    StatementSection,
    TaxBucket,
    TaxCodeSummary,
    TaxSummaryReport,
    TrialBalanceLine,
    TrialBalanceReport,
)

# =========================================================================
# Helpers
# =========================================================================


def period_buckets(year: int, granularity: Granularity) -> tuple[PeriodBucket, ...]:
    """Calendar months or quarters of ``year``, each [start, end] inclusive."""
    granularity = Granularity(granularity)
    if granularity == Granularity.MONTHLY:
        return tuple(
            PeriodBucket(
                label=calendar.month_abbr[m],
                start=date(year, m, 1),
                end=date(year, m, calendar.monthrange(year, m)[1]),
            )
            for m in range(1, 13)
        )
    return tuple(
        PeriodBucket(
            label=f"Q{q}",
            start=date(year, 3 * q - 2, 1),
            end=date(year, 3 * q, calendar.monthrange(year, 3 * q)[1]),
        )
        for q in range(1, 5)
    )


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1..12, got {month}")
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def _section(label: str, lines: list[StatementLine]) -> StatementSection:
    ordered = tuple(sorted(lines, key=lambda l: l.label.casefold()))
    return StatementSection(label=label, lines=ordered, total=_sum(l.amount for l in ordered))


# =========================================================================
# Trial Balance
# =========================================================================


def opening_difference(ledgers: Iterable[LedgerInfo]) -> Decimal:
    """Net opening debits minus net opening credits."""
    total = ZERO
    for info in ledgers:
        if NormalSide(info.normal_side) == NormalSide.DEBIT:
            total += info.opening_balance
        else:
            total -= info.opening_balance
    return total


def build_trial_balance(
    ledgers: Mapping[UUID, LedgerInfo],
    balances: Mapping[UUID, LedgerBalance],
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> TrialBalanceReport:
    """
    Place each ledger's balance in the debit or credit column.

    A non-negative balance sits on the ledger's normal side; a negative
    one is shown, as a magnitude, on the opposite side.  Zero rows are
    dropped unless ``include_zero_balances``; inactive ledgers are dropped
    only when their balance is zero and ``include_inactive`` is off.
    """
    lines: list[TrialBalanceLine] = []
    for ledger_id, info in ledgers.items():
        balance = balances[ledger_id].balance if ledger_id in balances else info.opening_balance
        if balance == ZERO:
            if not config.include_zero_balances:
                continue
            if not info.is_active and not config.include_inactive:
                continue

        debit, credit = trial_balance_columns(balance, info.normal_side)
        lines.append(
            TrialBalanceLine(
                ledger_id=ledger_id,
                ledger_name=info.name,
                kind=info.kind,
                normal_side=info.normal_side,
                category=info.category_name,
                balance=balance,
                debit=debit,
                credit=credit,
                is_flipped=balance < ZERO,
                is_active=info.is_active,
            )
        )

    lines.sort(key=lambda l: (l.kind.value, l.category.casefold(), l.ledger_name.casefold()))
    total_debits = _sum(l.debit for l in lines)
    total_credits = _sum(l.credit for l in lines)
    return TrialBalanceReport(
        metadata=metadata,
        lines=tuple(lines),
        total_debits=total_debits,
        total_credits=total_credits,
        difference=total_debits - total_credits,
        opening_difference=opening_difference(ledgers.values()),
        is_balanced=within_tolerance(total_debits, total_credits, config.balance_tolerance),
    )


# =========================================================================
# Balance Sheet
# =========================================================================


def _effective_section(info: LedgerInfo, config: ReportingConfig) -> BalanceSheetSection:
    section = info.section
    if section is None or section == BalanceSheetSection.UNCLASSIFIED:
        if info.kind == GroupKind.ASSETS:
            return config.default_asset_section
        if info.kind == GroupKind.LIABILITIES:
            return config.default_liability_section
        return BalanceSheetSection.UNCLASSIFIED
    return section


def build_balance_sheet(
    trial_balance: TrialBalanceReport,
    ledgers: Mapping[UUID, LedgerInfo],
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> BalanceSheetReport:
    """
    Group trial balance rows into balance sheet sections.

    Equity carries a computed Net Profit line (income minus expenses), so
    balanced books satisfy assets == liabilities + equity.
    """
    buckets: dict[BalanceSheetSection, list[StatementLine]] = {
        BalanceSheetSection.CURRENT_ASSET: [],
        BalanceSheetSection.FIXED_ASSET: [],
        BalanceSheetSection.CURRENT_LIABILITY: [],
        BalanceSheetSection.LONG_TERM_LIABILITY: [],
    }
    equity_lines: list[StatementLine] = []
    income = expenses = ZERO

    for row in trial_balance.lines:
        info = ledgers[row.ledger_id]
        line = StatementLine(label=row.ledger_name, amount=row.balance, ledger_id=row.ledger_id)
        if row.kind in (GroupKind.ASSETS, GroupKind.LIABILITIES):
            buckets[_effective_section(info, config)].append(line)
        elif row.kind == GroupKind.EQUITY:
            equity_lines.append(line)
        elif row.kind == GroupKind.INCOME:
            income += row.balance
        else:
            expenses += row.balance

    net_profit = income - expenses
    current_assets = _section("Current Assets", buckets[BalanceSheetSection.CURRENT_ASSET])
    fixed_assets = _section("Fixed Assets", buckets[BalanceSheetSection.FIXED_ASSET])
    current_liabilities = _section(
        "Current Liabilities", buckets[BalanceSheetSection.CURRENT_LIABILITY]
    )
    long_term_liabilities = _section(
        "Long-term Liabilities", buckets[BalanceSheetSection.LONG_TERM_LIABILITY]
    )

    equity_section = _section("Equity", equity_lines)
    equity = StatementSection(
        label=equity_section.label,
        lines=equity_section.lines
        + (StatementLine(label=config.net_profit_label, amount=net_profit),),
        total=equity_section.total + net_profit,
    )

    total_assets = current_assets.total + fixed_assets.total
    total_liabilities = current_liabilities.total + long_term_liabilities.total
    total_l_and_e = total_liabilities + equity.total
    is_balanced = within_tolerance(total_assets, total_l_and_e, config.balance_tolerance)

    return BalanceSheetReport(
        metadata=metadata,
        current_assets=current_assets,
        fixed_assets=fixed_assets,
        total_assets=total_assets,
        current_liabilities=current_liabilities,
        long_term_liabilities=long_term_liabilities,
        total_liabilities=total_liabilities,
        equity=equity,
        net_profit=net_profit,
        total_equity=equity.total,
        total_liabilities_and_equity=total_l_and_e,
        difference=total_assets - total_l_and_e,
        is_balanced=is_balanced,
        status=config.balanced_status if is_balanced else config.discrepancy_status,
    )


# =========================================================================
# Profit and Loss
# =========================================================================


def build_profit_and_loss(
    year: int,
    buckets: Sequence[PeriodBucket],
    movements: Sequence[Mapping[UUID, Movement]],
    ledgers: Mapping[UUID, LedgerInfo],
    metadata: ReportMetadata,
) -> ProfitAndLossReport:
    """
    Monthly income, expenses and net, plus per-category totals.

    ``movements[i]`` holds the movement of every income and expense ledger
    in ``buckets[i]``.
    """
    months: list[MonthlyProfit] = []
    categories: dict[tuple[GroupKind, str], Decimal] = {}

    for index, (bucket, period) in enumerate(zip(buckets, movements)):
        income = expenses = ZERO
        for ledger_id, movement in period.items():
            info = ledgers[ledger_id]
            net = movement.net(info.normal_side)
            key = (info.kind, info.category_name)
            categories[key] = categories.get(key, ZERO) + net
            if info.kind == GroupKind.INCOME:
                income += net
            else:
                expenses += net
        months.append(
            MonthlyProfit(
                month=index + 1,
                label=bucket.label,
                income=income,
                expenses=expenses,
                net=income - expenses,
            )
        )

    def by_kind(kind: GroupKind) -> tuple[CategoryTotal, ...]:
        return tuple(
            CategoryTotal(category=name, kind=k, total=total)
            for (k, name), total in sorted(categories.items(), key=lambda i: i[0][1].casefold())
            if k == kind
        )

    total_income = _sum(m.income for m in months)
    total_expenses = _sum(m.expenses for m in months)
    return ProfitAndLossReport(
        metadata=metadata,
        year=year,
        months=tuple(months),
        income_by_category=by_kind(GroupKind.INCOME),
        expenses_by_category=by_kind(GroupKind.EXPENSES),
        total_income=total_income,
        total_expenses=total_expenses,
        net_profit=total_income - total_expenses,
    )


# =========================================================================
# Day Book and Journal Register
# =========================================================================


def build_day_book(
    day: date, lines: Sequence[JournalLineView], metadata: ReportMetadata
) -> DayBookReport:
    return DayBookReport(
        metadata=metadata,
        day=day,
        lines=tuple(lines),
        total_debits=_sum(l.debit for l in lines),
        total_credits=_sum(l.credit for l in lines),
    )


def debits_first(voucher: VoucherView) -> VoucherView:
    """The voucher with its debit lines before its credit lines, each in line order."""
    ordered = sorted(
        voucher.lines, key=lambda l: (l.side != LineSide.DEBIT, l.line_seq)
    )
    return dataclasses.replace(voucher, lines=tuple(ordered))


def build_journal_register(
    year: int,
    month: int,
    vouchers: Sequence[VoucherView],
    metadata: ReportMetadata,
) -> JournalRegisterReport:
    ordered = tuple(debits_first(v) for v in vouchers)
    return JournalRegisterReport(
        metadata=metadata,
        year=year,
        month=month,
        voucher_type=VoucherType.JOURNAL,
        vouchers=ordered,
        total_debits=_sum(v.total_debits for v in ordered),
        total_credits=_sum(v.total_credits for v in ordered),
    )


# =========================================================================
# Ledger Statement
# =========================================================================


def build_ledger_statement(
    info: LedgerInfo,
    opening_balance: Decimal,
    lines: Sequence[JournalLineView],
    metadata: ReportMetadata,
) -> LedgerStatementReport:
    """Running balance over ``lines``, which must be in posting order."""
    running = opening_balance
    statement_lines: list[LedgerStatementLine] = []
    for line in lines:
        running += signed_amount(line.side, line.amount, info.normal_side)
        statement_lines.append(
            LedgerStatementLine(
                voucher_id=line.voucher_id,
                voucher_number=line.voucher_number,
                voucher_type=line.voucher_type,
                voucher_date=line.voucher_date,
                narration=line.narration or line.voucher_narration,
                debit=line.debit,
                credit=line.credit,
                running_balance=running,
            )
        )

    return LedgerStatementReport(
        metadata=metadata,
        ledger_id=info.ledger_id,
        ledger_name=info.name,
        normal_side=info.normal_side,
        opening_balance=opening_balance,
        lines=tuple(statement_lines),
        total_debits=_sum(l.debit for l in statement_lines),
        total_credits=_sum(l.credit for l in statement_lines),
        closing_balance=running,
    )


# =========================================================================
# Cash Flow
# =========================================================================


def build_cash_flow(
    year: int,
    granularity: Granularity,
    buckets: Sequence[PeriodBucket],
    opening_cash: Decimal,
    movements: Sequence[Movement],
    metadata: ReportMetadata,
) -> CashFlowReport:
    """
    Inflow (debits) and outflow (credits) of cash and bank ledgers.

    ``movements[i]`` is the combined movement of all cash and bank ledgers
    in ``buckets[i]``.  Transfers between two such ledgers appear on both
    sides and net to zero.
    """
    rows: list[CashFlowBucket] = []
    running = opening_cash
    for bucket, movement in zip(buckets, movements):
        net = movement.debit_total - movement.credit_total
        rows.append(
            CashFlowBucket(
                label=bucket.label,
                start=bucket.start,
                end=bucket.end,
                opening=running,
                inflow=movement.debit_total,
                outflow=movement.credit_total,
                net=net,
                closing=running + net,
            )
        )
        running += net

    total_inflow = _sum(r.inflow for r in rows)
    total_outflow = _sum(r.outflow for r in rows)
    return CashFlowReport(
        metadata=metadata,
        year=year,
        granularity=Granularity(granularity),
        buckets=tuple(rows),
        opening_cash=opening_cash,
        total_inflow=total_inflow,
        total_outflow=total_outflow,
        net_change=total_inflow - total_outflow,
        closing_cash=running,
    )


# =========================================================================
# Tax / VAT Summary
# =========================================================================


def build_tax_summary(
    year: int,
    granularity: Granularity,
    buckets: Sequence[PeriodBucket],
    ledgers_by_code: Mapping[str, Sequence[UUID]],
    movements: Sequence[Mapping[UUID, Movement]],
    metadata: ReportMetadata,
) -> TaxSummaryReport:
    """
    Output tax, input tax and net payable per tax code per bucket.

    Codes appear in ``ledgers_by_code`` order; a code with no ledgers is
    reported with zero buckets.
    """
    codes: list[TaxCodeSummary] = []
    for code, ledger_ids in ledgers_by_code.items():
        rows: list[TaxBucket] = []
        for bucket, period in zip(buckets, movements):
            output_tax = _sum(period[lid].credit_total for lid in ledger_ids if lid in period)
            input_tax = _sum(period[lid].debit_total for lid in ledger_ids if lid in period)
            rows.append(
                TaxBucket(
                    label=bucket.label,
                    start=bucket.start,
                    end=bucket.end,
                    output_tax=output_tax,
                    input_tax=input_tax,
                    net_payable=output_tax - input_tax,
                )
            )
        total_output = _sum(r.output_tax for r in rows)
        total_input = _sum(r.input_tax for r in rows)
        codes.append(
            TaxCodeSummary(
                tax_code=code,
                buckets=tuple(rows),
                total_output=total_output,
                total_input=total_input,
                net_payable=total_output - total_input,
            )
        )

    total_output = _sum(c.total_output for c in codes)
    total_input = _sum(c.total_input for c in codes)
    return TaxSummaryReport(
        metadata=metadata,
        year=year,
        granularity=Granularity(granularity),
        codes=tuple(codes),
        total_output=total_output,
        total_input=total_input,
        net_payable=total_output - total_input,
    )
