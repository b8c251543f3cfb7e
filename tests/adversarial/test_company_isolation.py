"""
Adversarial test: reach across company boundaries.

Two companies share one database and may use identical ledger names.
Every read and write is scoped by company id; a ledger or voucher id
belonging to another company behaves exactly like an unknown id.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.domain.enums import VoucherType
from ledger_kernel.exceptions import LedgerNotFoundError, VoucherNotFoundError

ACME = "acme"
GLOBEX = "globex"
DAY = date(2024, 6, 1)


@pytest.fixture
def globex_chart(make_chart, company_chart):
    return make_chart(GLOBEX)


class TestIsolation:
    def test_same_names_distinct_ledgers(self, company_chart, globex_chart):
        assert set(company_chart) == set(globex_chart)
        assert not set(company_chart.values()) & set(globex_chart.values())

    def test_posting_affects_only_own_company(self, post, balance_resolver, company_chart, globex_chart):
        post(VoucherType.POS, DAY, debits={"Cash": "500"}, credits={"Sales": "500"})

        assert balance_resolver.balance_as_of(ACME, company_chart["Cash"], DAY) == Decimal("500")
        assert balance_resolver.balance_as_of(GLOBEX, globex_chart["Cash"], DAY) == Decimal("0")

    def test_mixed_company_voucher_rejected(self, posting_service, company_chart, globex_chart):
        with pytest.raises(LedgerNotFoundError):
            posting_service.post_voucher(
                ACME,
                VoucherType.POS,
                DAY,
                [LineSpec.debit(company_chart["Cash"], "10"), LineSpec.credit(globex_chart["Sales"], "10")],
            )

    def test_reports_scoped(self, post, reporting_service, company_chart, globex_chart):
        post(VoucherType.POS, DAY, debits={"Cash": "500"}, credits={"Sales": "500"})

        assert reporting_service.trial_balance(GLOBEX, DAY).lines == ()
        assert reporting_service.day_book(GLOBEX, DAY).lines == ()
        assert reporting_service.profit_and_loss(GLOBEX, 2024).total_income == Decimal("0")
        assert reporting_service.cash_flow(GLOBEX, 2024).net_change == Decimal("0")

    def test_statement_of_foreign_ledger(self, reporting_service, company_chart, globex_chart):
        with pytest.raises(LedgerNotFoundError):
            reporting_service.ledger_statement(GLOBEX, company_chart["Cash"], DAY, DAY)

    def test_foreign_voucher_invisible(self, post, journal_selector, reversal_service, globex_chart):
        posted = post(VoucherType.POS, DAY, debits={"Cash": "5"}, credits={"Sales": "5"})

        assert journal_selector.voucher(GLOBEX, posted.voucher_id) is None
        with pytest.raises(VoucherNotFoundError):
            reversal_service.reverse_voucher(GLOBEX, posted.voucher_id)

    def test_chart_changes_scoped(self, chart_service, company_chart, globex_chart, balance_resolver):
        chart_service.update_ledger(ACME, company_chart["Cash"], opening_balance="700")

        assert balance_resolver.balance_as_of(GLOBEX, globex_chart["Cash"], DAY) == Decimal("0")
        with pytest.raises(LedgerNotFoundError):
            chart_service.update_ledger(GLOBEX, company_chart["Cash"], opening_balance="1")

    def test_numbering_independent(self, post, company_chart, globex_chart):
        acme = post(VoucherType.POS, DAY, debits={"Cash": "5"}, credits={"Sales": "5"})
        globex = post(
            VoucherType.POS,
            DAY,
            debits={"Cash": "5"},
            credits={"Sales": "5"},
            chart=globex_chart,
            company=GLOBEX,
        )

        assert acme.voucher_number == globex.voucher_number == "POS-2024-000001"
        assert globex.seq > acme.seq
