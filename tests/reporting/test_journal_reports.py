"""
Day book, journal register and ledger statement.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import LineSpec, VoucherMetadata
from ledger_kernel.domain.enums import LineSide, VoucherType
from ledger_kernel.exceptions import InconsistentLedgerError, LedgerNotFoundError

COMPANY = "acme"


@pytest.fixture
def january(post, chart_service, company_chart):
    chart_service.update_ledger(COMPANY, company_chart["Cash"], opening_balance="1000")
    post(VoucherType.EXPENSE, date(2024, 1, 10), debits={"Rent": "200"}, credits={"Cash": "200"},
         narration="January rent")
    post(VoucherType.POS, date(2024, 1, 10), debits={"Cash": "60"}, credits={"Sales": "60"})
    post(VoucherType.POS, date(2024, 1, 20), debits={"Cash": "350"}, credits={"Sales": "350"})
    post(VoucherType.CONTRA, date(2024, 2, 5), debits={"Bank": "100"}, credits={"Cash": "100"})
    return company_chart


class TestDayBook:
    def test_lines_of_the_day_in_posting_order(self, reporting_service, january):
        report = reporting_service.day_book(COMPANY, date(2024, 1, 10))

        assert [(l.ledger_name, l.side) for l in report.lines] == [
            ("Rent", LineSide.DEBIT),
            ("Cash", LineSide.CREDIT),
            ("Cash", LineSide.DEBIT),
            ("Sales", LineSide.CREDIT),
        ]
        assert report.total_debits == report.total_credits == Decimal("260")

    def test_quiet_day(self, reporting_service, january):
        report = reporting_service.day_book(COMPANY, date(2024, 1, 11))

        assert report.lines == ()
        assert report.total_debits == Decimal("0")

    def test_other_company_lines_excluded(self, reporting_service, january, make_chart):
        make_chart("globex")

        report = reporting_service.day_book("globex", date(2024, 1, 10))

        assert report.lines == ()


class TestJournalRegister:
    @pytest.fixture
    def journals(self, posting_service, company_chart, post):
        # Credit line first; the register shows debits first.
        posting_service.post_voucher(
            COMPANY,
            VoucherType.JOURNAL,
            date(2024, 3, 4),
            [
                LineSpec.credit(company_chart["Capital Account"], "700"),
                LineSpec.debit(company_chart["Inventory"], "400"),
                LineSpec.debit(company_chart["Furniture and Fixtures"], "300"),
            ],
            VoucherMetadata(narration="Owner contribution in kind"),
        )
        post(VoucherType.EXPENSE, date(2024, 3, 9), debits={"Rent": "90"}, credits={"Cash": "90"})
        post(VoucherType.JOURNAL, date(2024, 4, 1), debits={"Inventory": "5"}, credits={"Purchases": "5"})

    def test_only_journal_vouchers_of_the_month(self, reporting_service, journals):
        report = reporting_service.journal_register(COMPANY, 3, 2024)

        assert len(report.vouchers) == 1
        assert report.voucher_type == VoucherType.JOURNAL
        assert report.vouchers[0].narration == "Owner contribution in kind"
        assert report.total_debits == report.total_credits == Decimal("700")

    def test_debit_lines_first(self, reporting_service, journals):
        voucher = reporting_service.journal_register(COMPANY, 3, 2024).vouchers[0]

        assert [l.side for l in voucher.lines] == [LineSide.DEBIT, LineSide.DEBIT, LineSide.CREDIT]
        assert [l.ledger_name for l in voucher.lines[:2]] == ["Inventory", "Furniture and Fixtures"]

    def test_month_bounds_in_metadata(self, reporting_service, journals):
        report = reporting_service.journal_register(COMPANY, 2, 2024)

        assert report.metadata.period_start == date(2024, 2, 1)
        assert report.metadata.period_end == date(2024, 2, 29)
        assert report.vouchers == ()

    @pytest.mark.parametrize("month", [0, 13])
    def test_month_out_of_range(self, reporting_service, month):
        with pytest.raises(ValueError):
            reporting_service.journal_register(COMPANY, month, 2024)


class TestLedgerStatement:
    def test_opening_running_and_closing(self, reporting_service, january):
        report = reporting_service.ledger_statement(
            COMPANY, january["Cash"], date(2024, 1, 1), date(2024, 2, 29)
        )

        assert report.opening_balance == Decimal("1000")
        assert [l.running_balance for l in report.lines] == [
            Decimal("800"),
            Decimal("860"),
            Decimal("1210"),
            Decimal("1110"),
        ]
        assert report.closing_balance == Decimal("1110")
        assert report.total_debits == Decimal("410")
        assert report.total_credits == Decimal("300")

    def test_window_opening_is_day_before_start(self, reporting_service, january):
        report = reporting_service.ledger_statement(
            COMPANY, january["Cash"], date(2024, 1, 15), date(2024, 1, 31)
        )

        assert report.opening_balance == Decimal("860")
        assert len(report.lines) == 1
        assert report.lines[0].debit == Decimal("350")
        assert report.closing_balance == Decimal("1210")

    def test_narration_falls_back_to_voucher(self, reporting_service, january):
        report = reporting_service.ledger_statement(
            COMPANY, january["Rent"], date(2024, 1, 1), date(2024, 1, 31)
        )

        assert report.lines[0].narration == "January rent"
        assert report.lines[0].voucher_type == VoucherType.EXPENSE

    def test_single_day_range(self, reporting_service, january):
        report = reporting_service.ledger_statement(
            COMPANY, january["Sales"], date(2024, 1, 20), date(2024, 1, 20)
        )

        assert report.opening_balance == Decimal("60")
        assert report.closing_balance == Decimal("410")

    def test_start_after_end(self, reporting_service, january):
        with pytest.raises(ValueError):
            reporting_service.ledger_statement(
                COMPANY, january["Cash"], date(2024, 2, 1), date(2024, 1, 1)
            )

    def test_unknown_ledger(self, reporting_service, january):
        with pytest.raises(LedgerNotFoundError):
            reporting_service.ledger_statement(COMPANY, uuid4(), date(2024, 1, 1), date(2024, 1, 31))

    def test_closing_mismatch_escalated(self, reporting_service, balance_resolver, january):
        end = date(2024, 1, 31)
        balance_resolver.cache.put(COMPANY, january["Cash"], end, Decimal("1"))

        with pytest.raises(InconsistentLedgerError) as exc_info:
            reporting_service.ledger_statement(COMPANY, january["Cash"], date(2024, 1, 1), end)

        assert exc_info.value.check == "ledger_statement_closing"
