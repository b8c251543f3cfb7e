"""
Reporting Service (``ledger_reports.service``).

Responsibility
--------------
Orchestrates report generation -- trial balance, balance sheet, profit
and loss, day book, journal register, ledger statement, cash flow and
tax/VAT summaries -- by bridging kernel selectors and the BalanceResolver
to the pure transformation functions in ``statements.py``.  This is a
**read-only** service: nothing is posted, nothing is written.

Architecture position
---------------------
**Reports layer** -- sits above ``ledger_kernel``.  Every ledger value
comes from ``BalanceResolver`` so that no two reports can disagree.
Constructor: ``session`` + ``clock`` + ``config``.

Invariants enforced
-------------------
* Read-only -- no mutations to the journal or chart.
* All monetary amounts use ``Decimal`` -- NEVER ``float``.
* Posting movements of a company always net to zero; the trial balance
  escalates a breach as an InconsistentLedgerError (CRITICAL alert).
* A ledger statement's closing balance equals ``balance_as_of(end)``.

Failure modes
-------------
* Invalid parameters (start after end, month out of range)  ->
  ``ValueError`` before any query.
* Unknown ledger  -> ``LedgerNotFoundError``.
* Cancellation or timeout  -> ``ReportCancelledError``.
* Invariant breach  -> ``InconsistentLedgerError``.

Audit relevance
---------------
Structured log events are emitted for every report generation, carrying
report type, company and parameters.
"""

from __future__ import annotations

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.balance import ZERO, within_tolerance
from ledger_kernel.domain.cancellation import CancellationToken
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import LedgerInfo, Movement
from ledger_kernel.domain.enums import GroupKind, LedgerRole, VoucherType
from ledger_kernel.exceptions import LedgerNotFoundError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.chart_selector import ChartSelector
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.alerts import escalate_inconsistency
from ledger_kernel.services.balance_resolver import BalanceResolver
from ledger_reports.config import ReportingConfig
from ledger_reports.models import (
    BalanceSheetReport,
    CashFlowReport,
    DayBookReport,
    Granularity,
    JournalRegisterReport,
    LedgerStatementReport,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    TaxSummaryReport,
    TrialBalanceReport,
)
from ledger_reports.statements import (
    build_balance_sheet,
    build_cash_flow,
    build_day_book,
    build_journal_register,
    build_ledger_statement,
    build_profit_and_loss,
    build_tax_summary,
    build_trial_balance,
    month_bounds,
    period_buckets,
)

logger = get_logger("reports.service")

_CASH_ROLES = (LedgerRole.CASH, LedgerRole.BANK)


class ReportingService:
    """
    Report generation service.

    Contract
    --------
    * Every public method returns a typed, frozen report DTO.
    * Every public method accepts an optional ``CancellationToken``; when
      none is given and ``config.default_timeout_seconds`` is set, a token
      with that deadline is used.
    * All methods are read-only.

    Non-goals
    ---------
    * No currency conversion; amounts are reported as posted.
    * No rendering or export.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
        resolver: BalanceResolver | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._resolver = resolver or BalanceResolver(session)
        self._chart = ChartSelector(session)
        self._ledger = LedgerSelector(session)
        self._journal = JournalSelector(session)

    @property
    def config(self) -> ReportingConfig:
        return self._config

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _token(self, token: CancellationToken | None) -> CancellationToken | None:
        if token is not None or self._config.default_timeout_seconds is None:
            return token
        return CancellationToken(
            timeout=timedelta(seconds=self._config.default_timeout_seconds),
            clock=self._clock,
        )

    @staticmethod
    def _check(token: CancellationToken | None, report_type: ReportType) -> None:
        if token is not None:
            token.check(report_type.value)

    def _metadata(
        self,
        report_type: ReportType,
        company_id: str,
        as_of_date: date | None = None,
        period_start: date | None = None,
        period_end: date | None = None,
    ) -> ReportMetadata:
        """Report metadata with injected clock timestamp."""
        return ReportMetadata(
            report_type=report_type,
            company_id=company_id,
            generated_at=self._clock.now().isoformat(),
            as_of_date=as_of_date,
            period_start=period_start,
            period_end=period_end,
        )

    def _period_movements(
        self,
        company_id: str,
        buckets,
        ledger_ids: list[UUID],
        token: CancellationToken | None,
        report_type: ReportType,
    ) -> list[dict[UUID, Movement]]:
        result = []
        for bucket in buckets:
            self._check(token, report_type)
            result.append(
                self._resolver.movements_between(
                    company_id,
                    bucket.start - timedelta(days=1),
                    bucket.end,
                    ledger_ids,
                )
            )
        return result

    def _verify_postings_net_to_zero(self, company_id: str, as_of_date: date) -> None:
        totals = self._ledger.company_totals(company_id, through=as_of_date)
        if not within_tolerance(
            totals.debit_total, totals.credit_total, self._config.balance_tolerance
        ):
            raise escalate_inconsistency(
                logger,
                "trial_balance_postings",
                company_id,
                "posted debits and credits do not net to zero",
                as_of=as_of_date.isoformat(),
                debit_total=str(totals.debit_total),
                credit_total=str(totals.credit_total),
            )

    # =========================================================================
    # Trial Balance and Balance Sheet
    # =========================================================================

    def trial_balance(
        self,
        company_id: str,
        as_of_date: date,
        token: CancellationToken | None = None,
    ) -> TrialBalanceReport:
        """
        Every ledger's balance as of ``as_of_date`` in debit/credit columns.

        Raises:
            InconsistentLedgerError: posted lines do not net to zero.
        """
        token = self._token(token)
        with LogContext.bind(company_id=company_id, report_type=ReportType.TRIAL_BALANCE.value):
            self._check(token, ReportType.TRIAL_BALANCE)
            report = self._trial_balance(company_id, as_of_date, token)
            logger.info(
                "trial_balance_generated",
                extra={
                    "as_of_date": as_of_date.isoformat(),
                    "line_count": len(report.lines),
                    "total_debits": str(report.total_debits),
                    "total_credits": str(report.total_credits),
                    "is_balanced": report.is_balanced,
                },
            )
        return report

    def _trial_balance(
        self,
        company_id: str,
        as_of_date: date,
        token: CancellationToken | None,
        report_type: ReportType = ReportType.TRIAL_BALANCE,
    ) -> TrialBalanceReport:
        self._verify_postings_net_to_zero(company_id, as_of_date)
        ledgers = self._chart.ledgers(company_id)
        self._check(token, report_type)
        balances = self._resolver.balances_as_of(company_id, as_of_date, ledgers)
        self._check(token, report_type)
        return build_trial_balance(
            ledgers,
            balances,
            self._config,
            self._metadata(ReportType.TRIAL_BALANCE, company_id, as_of_date=as_of_date),
        )

    def balance_sheet(
        self,
        company_id: str,
        as_of_date: date,
        token: CancellationToken | None = None,
    ) -> BalanceSheetReport:
        """
        Classified balance sheet built from the trial balance.

        The report is returned even when it does not balance; ``status``
        and ``difference`` carry the discrepancy.
        """
        token = self._token(token)
        with LogContext.bind(company_id=company_id, report_type=ReportType.BALANCE_SHEET.value):
            self._check(token, ReportType.BALANCE_SHEET)
            trial_balance = self._trial_balance(
                company_id, as_of_date, token, ReportType.BALANCE_SHEET
            )
            ledgers = self._chart.ledgers(company_id)
            report = build_balance_sheet(
                trial_balance,
                ledgers,
                self._config,
                self._metadata(ReportType.BALANCE_SHEET, company_id, as_of_date=as_of_date),
            )
            log = logger.info if report.is_balanced else logger.warning
            log(
                "balance_sheet_generated",
                extra={
                    "as_of_date": as_of_date.isoformat(),
                    "total_assets": str(report.total_assets),
                    "total_l_and_e": str(report.total_liabilities_and_equity),
                    "difference": str(report.difference),
                    "is_balanced": report.is_balanced,
                },
            )
        return report

    # =========================================================================
    # Profit and Loss
    # =========================================================================

    def profit_and_loss(
        self,
        company_id: str,
        year: int,
        token: CancellationToken | None = None,
    ) -> ProfitAndLossReport:
        """Monthly income and expenses of ``year`` with category totals."""
        token = self._token(token)
        with LogContext.bind(company_id=company_id, report_type=ReportType.PROFIT_AND_LOSS.value):
            ledgers = {
                lid: info
                for lid, info in self._chart.ledgers(company_id).items()
                if info.kind in (GroupKind.INCOME, GroupKind.EXPENSES)
            }
            buckets = period_buckets(year, Granularity.MONTHLY)
            movements = self._period_movements(
                company_id, buckets, list(ledgers), token, ReportType.PROFIT_AND_LOSS
            )
            report = build_profit_and_loss(
                year,
                buckets,
                movements,
                ledgers,
                self._metadata(
                    ReportType.PROFIT_AND_LOSS,
                    company_id,
                    period_start=buckets[0].start,
                    period_end=buckets[-1].end,
                ),
            )
            logger.info(
                "profit_and_loss_generated",
                extra={
                    "year": year,
                    "total_income": str(report.total_income),
                    "total_expenses": str(report.total_expenses),
                    "net_profit": str(report.net_profit),
                },
            )
        return report

    # =========================================================================
    # Day Book and Journal Register
    # =========================================================================

    def day_book(
        self,
        company_id: str,
        day: date,
        token: CancellationToken | None = None,
    ) -> DayBookReport:
        """Every line posted on ``day`` with its voucher and ledger."""
        token = self._token(token)
        with LogContext.bind(company_id=company_id, report_type=ReportType.DAY_BOOK.value):
            self._check(token, ReportType.DAY_BOOK)
            lines = self._journal.lines_on(company_id, day)
            report = build_day_book(
                day, lines, self._metadata(ReportType.DAY_BOOK, company_id, as_of_date=day)
            )
            logger.info(
                "day_book_generated",
                extra={"day": day.isoformat(), "line_count": len(report.lines)},
            )
        return report

    def journal_register(
        self,
        company_id: str,
        month: int,
        year: int,
        token: CancellationToken | None = None,
    ) -> JournalRegisterReport:
        """JOURNAL vouchers of one month, each with debit lines first."""
        start, end = month_bounds(year, month)
        token = self._token(token)
        with LogContext.bind(company_id=company_id, report_type=ReportType.JOURNAL_REGISTER.value):
            self._check(token, ReportType.JOURNAL_REGISTER)
            vouchers = self._journal.vouchers(company_id, start, end, VoucherType.JOURNAL)
            report = build_journal_register(
                year,
                month,
                vouchers,
                self._metadata(
                    ReportType.JOURNAL_REGISTER, company_id, period_start=start, period_end=end
                ),
            )
            logger.info(
                "journal_register_generated",
                extra={"year": year, "month": month, "voucher_count": len(report.vouchers)},
            )
        return report

    # =========================================================================
    # Ledger Statement
    # =========================================================================

    def ledger_statement(
        self,
        company_id: str,
        ledger_id: UUID,
        start_date: date,
        end_date: date,
        token: CancellationToken | None = None,
    ) -> LedgerStatementReport:
        """
        Opening balance, every line in [start_date, end_date] with a running
        balance, and the closing balance.
        """
        if start_date > end_date:
            raise ValueError(f"start_date {start_date} is after end_date {end_date}")
        token = self._token(token)
        with LogContext.bind(company_id=company_id, report_type=ReportType.LEDGER_STATEMENT.value):
            self._check(token, ReportType.LEDGER_STATEMENT)
            info = self._chart.ledger(company_id, ledger_id)
            if info is None:
                raise LedgerNotFoundError(str(ledger_id), company_id)

            day_before = start_date - timedelta(days=1)
            opening = self._resolver.balance_as_of(company_id, ledger_id, day_before)
            lines = self._journal.lines_for_ledger(
                company_id, ledger_id, after=day_before, through=end_date
            )
            self._check(token, ReportType.LEDGER_STATEMENT)
            report = build_ledger_statement(
                info,
                opening,
                lines,
                self._metadata(
                    ReportType.LEDGER_STATEMENT,
                    company_id,
                    period_start=start_date,
                    period_end=end_date,
                ),
            )

            expected = self._resolver.balance_as_of(company_id, ledger_id, end_date)
            if report.closing_balance != expected:
                raise escalate_inconsistency(
                    logger,
                    "ledger_statement_closing",
                    company_id,
                    "running balance does not reach balance_as_of(end)",
                    ledger_id=str(ledger_id),
                    closing=str(report.closing_balance),
                    expected=str(expected),
                )
            logger.info(
                "ledger_statement_generated",
                extra={
                    "ledger_id": str(ledger_id),
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                    "line_count": len(report.lines),
                },
            )
        return report

    # =========================================================================
    # Cash Flow
    # =========================================================================

    def _cash_ledgers(self, company_id: str) -> dict[UUID, LedgerInfo]:
        return self._chart.ledgers_by_role(company_id, _CASH_ROLES)

    def cash_flow(
        self,
        company_id: str,
        year: int,
        granularity: Granularity = Granularity.MONTHLY,
        token: CancellationToken | None = None,
    ) -> CashFlowReport:
        """Inflow, outflow and net of cash and bank ledgers per month or quarter."""
        granularity = Granularity(granularity)
        token = self._token(token)
        with LogContext.bind(company_id=company_id, report_type=ReportType.CASH_FLOW.value):
            self._check(token, ReportType.CASH_FLOW)
            ledgers = self._cash_ledgers(company_id)
            buckets = period_buckets(year, granularity)
            year_before = date(year, 1, 1) - timedelta(days=1)
            opening_balances = self._resolver.balances_as_of(company_id, year_before, ledgers)
            opening_cash = sum((b.balance for b in opening_balances.values()), ZERO)

            per_ledger = self._period_movements(
                company_id, buckets, list(ledgers), token, ReportType.CASH_FLOW
            )
            movements = [
                sum(period.values(), Movement()) for period in per_ledger
            ]
            report = build_cash_flow(
                year,
                granularity,
                buckets,
                opening_cash,
                movements,
                self._metadata(
                    ReportType.CASH_FLOW,
                    company_id,
                    period_start=buckets[0].start,
                    period_end=buckets[-1].end,
                ),
            )
            logger.info(
                "cash_flow_generated",
                extra={
                    "year": year,
                    "granularity": granularity.value,
                    "ledger_count": len(ledgers),
                    "net_change": str(report.net_change),
                },
            )
        return report

    # =========================================================================
    # Tax / VAT Summary
    # =========================================================================

    def _tax_summary(
        self,
        company_id: str,
        year: int,
        granularity: Granularity,
        codes: tuple[str, ...] | None,
        report_type: ReportType,
        token: CancellationToken | None,
    ) -> TaxSummaryReport:
        granularity = Granularity(granularity)
        token = self._token(token)
        with LogContext.bind(company_id=company_id, report_type=report_type.value):
            self._check(token, report_type)
            tax_ledgers = self._chart.ledgers_by_role(company_id, [LedgerRole.TAX])

            ordered_codes = list(codes if codes is not None else self._config.tax_codes)
            if codes is None:
                extra_codes = sorted(
                    {i.tax_code for i in tax_ledgers.values() if i.tax_code} - set(ordered_codes)
                )
                ordered_codes.extend(extra_codes)
            ledgers_by_code: dict[str, list[UUID]] = {code: [] for code in ordered_codes}
            for ledger_id, info in tax_ledgers.items():
                if info.tax_code in ledgers_by_code:
                    ledgers_by_code[info.tax_code].append(ledger_id)

            buckets = period_buckets(year, granularity)
            ledger_ids = [lid for ids in ledgers_by_code.values() for lid in ids]
            movements = self._period_movements(
                company_id, buckets, ledger_ids, token, report_type
            )
            report = build_tax_summary(
                year,
                granularity,
                buckets,
                ledgers_by_code,
                movements,
                self._metadata(
                    report_type,
                    company_id,
                    period_start=buckets[0].start,
                    period_end=buckets[-1].end,
                ),
            )
            logger.info(
                f"{report_type.value}_generated",
                extra={
                    "year": year,
                    "granularity": granularity.value,
                    "codes": list(ledgers_by_code),
                    "net_payable": str(report.net_payable),
                },
            )
        return report

    def tax_summary(
        self,
        company_id: str,
        year: int,
        granularity: Granularity = Granularity.MONTHLY,
        token: CancellationToken | None = None,
    ) -> TaxSummaryReport:
        """Output tax, input tax and net payable per tax code."""
        return self._tax_summary(
            company_id, year, granularity, None, ReportType.TAX_SUMMARY, token
        )

    def vat_summary(
        self,
        company_id: str,
        year: int,
        granularity: Granularity = Granularity.MONTHLY,
        token: CancellationToken | None = None,
    ) -> TaxSummaryReport:
        """The tax summary restricted to the configured VAT codes."""
        return self._tax_summary(
            company_id,
            year,
            granularity,
            tuple(self._config.vat_codes),
            ReportType.VAT_SUMMARY,
            token,
        )
