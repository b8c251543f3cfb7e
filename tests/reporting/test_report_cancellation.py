"""
Cooperative cancellation and deadlines for report generation.
"""

from datetime import date, timedelta

import pytest

from ledger_kernel.domain.cancellation import CancellationToken
from ledger_kernel.exceptions import ReportCancelledError
from ledger_reports.config import ReportingConfig
from ledger_reports.service import ReportingService

COMPANY = "acme"
AS_OF = date(2024, 12, 31)


class TestCancellation:
    def test_cancelled_token_stops_report(self, reporting_service, company_chart):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ReportCancelledError) as exc_info:
            reporting_service.trial_balance(COMPANY, AS_OF, token=token)

        assert exc_info.value.code == "REPORT_CANCELLED"
        assert exc_info.value.report_type == "trial_balance"
        assert exc_info.value.reason == "cancelled by caller"

    def test_deadline_exceeded(self, reporting_service, deterministic_clock, company_chart):
        token = CancellationToken(timeout=timedelta(seconds=5), clock=deterministic_clock)
        deterministic_clock.advance(10)

        with pytest.raises(ReportCancelledError) as exc_info:
            reporting_service.profit_and_loss(COMPANY, 2024, token=token)

        assert exc_info.value.reason == "deadline exceeded"
        assert exc_info.value.report_type == "profit_and_loss"

    def test_token_within_deadline_completes(self, reporting_service, deterministic_clock, company_chart):
        token = CancellationToken(timeout=timedelta(seconds=5), clock=deterministic_clock)
        deterministic_clock.advance(4)

        report = reporting_service.cash_flow(COMPANY, 2024, token=token)

        assert len(report.buckets) == 12

    def test_configured_default_timeout(self, session, deterministic_clock, company_chart):
        service = ReportingService(
            session, clock=deterministic_clock, config=ReportingConfig(default_timeout_seconds=0)
        )

        with pytest.raises(ReportCancelledError):
            service.balance_sheet(COMPANY, AS_OF)

    def test_no_timeout_by_default(self, session, deterministic_clock, company_chart):
        service = ReportingService(session, clock=deterministic_clock)

        report = service.tax_summary(COMPANY, 2024)

        assert service.config.default_timeout_seconds is None
        assert len(report.codes) == 4

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.day_book(COMPANY, AS_OF, token=_cancelled()),
            lambda s: s.journal_register(COMPANY, 1, 2024, token=_cancelled()),
            lambda s: s.vat_summary(COMPANY, 2024, token=_cancelled()),
        ],
        ids=["day_book", "journal_register", "vat_summary"],
    )
    def test_every_report_checks_token(self, reporting_service, company_chart, call):
        with pytest.raises(ReportCancelledError):
            call(reporting_service)


def _cancelled() -> CancellationToken:
    token = CancellationToken()
    token.cancel()
    return token
