"""
LedgerSelector: grouped debit/credit sums over posted lines.
"""

from datetime import date
from decimal import Decimal

from ledger_kernel.domain.dtos import Movement
from ledger_kernel.domain.enums import VoucherType

COMPANY = "acme"
JAN_10 = date(2024, 1, 10)
JAN_20 = date(2024, 1, 20)


class TestTotals:
    def test_totals_by_ledger_skips_idle_ledgers(self, post, ledger_selector, company_chart):
        post(VoucherType.POS, JAN_10, debits={"Cash": "0.10"}, credits={"Sales": "0.10"})
        post(VoucherType.POS, JAN_20, debits={"Cash": "0.20"}, credits={"Sales": "0.20"})

        totals = ledger_selector.totals_by_ledger(COMPANY)

        assert set(totals) == {company_chart["Cash"], company_chart["Sales"]}
        assert totals[company_chart["Cash"]] == Movement(
            debit_total=Decimal("0.30"), credit_total=Decimal("0")
        )
        assert totals[company_chart["Sales"]].credit_total == Decimal("0.30")

    def test_window_is_open_on_the_left(self, post, ledger_selector, company_chart):
        post(VoucherType.POS, JAN_10, debits={"Cash": "5"}, credits={"Sales": "5"})
        post(VoucherType.POS, JAN_20, debits={"Cash": "7"}, credits={"Sales": "7"})

        movement = ledger_selector.movement(
            COMPANY, company_chart["Cash"], after=JAN_10, through=JAN_20
        )

        assert movement.debit_total == Decimal("7")

    def test_company_totals_exact(self, post, ledger_selector, company_chart):
        post(VoucherType.POS, JAN_10, debits={"Cash": "0.1"}, credits={"Sales": "0.1"})
        post(VoucherType.POS, JAN_10, debits={"Cash": "0.2"}, credits={"Sales": "0.2"})

        totals = ledger_selector.company_totals(COMPANY)

        assert totals.debit_total == Decimal("0.3")
        assert totals.credit_total == Decimal("0.3")

    def test_company_totals_empty(self, ledger_selector, company_chart):
        assert ledger_selector.company_totals(COMPANY) == Movement()

    def test_has_postings(self, post, ledger_selector, company_chart):
        post(VoucherType.POS, JAN_10, debits={"Cash": "1"}, credits={"Sales": "1"})

        assert ledger_selector.has_postings(COMPANY, [company_chart["Cash"]])
        assert not ledger_selector.has_postings(COMPANY, [company_chart["Rent"]])
        assert not ledger_selector.has_postings("globex", [company_chart["Cash"]])
        assert not ledger_selector.has_postings(COMPANY, [])
