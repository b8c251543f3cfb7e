"""
Period reports: profit and loss, cash flow, and tax/VAT summaries.

Each bucket is a calendar month or quarter; bucket movements come from
BalanceResolver.movements_between so bucket totals always agree with
balances.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.enums import GroupKind, LedgerRole, PartyType, VoucherType
from ledger_reports.models import Granularity

COMPANY = "acme"
YEAR = 2024


@pytest.fixture
def trading_year(post, chart_service, company_chart):
    chart_service.update_ledger(COMPANY, company_chart["Cash"], opening_balance="1000")
    chart_service.update_ledger(COMPANY, company_chart["Capital Account"], opening_balance="1000")
    post(VoucherType.POS, date(2023, 12, 31), debits={"Cash": "100"}, credits={"Sales": "100"})
    post(VoucherType.POS, date(2024, 1, 20), debits={"Cash": "350"}, credits={"Sales": "350"})
    post(VoucherType.EXPENSE, date(2024, 1, 31), debits={"Rent": "200"}, credits={"Cash": "200"})
    post(VoucherType.CONTRA, date(2024, 2, 5), debits={"Bank": "100"}, credits={"Cash": "100"})
    post(VoucherType.INCOME, date(2024, 2, 29), debits={"Bank": "50"}, credits={"Interest Received": "50"})
    post(VoucherType.EXPENSE, date(2024, 5, 15), debits={"Salaries": "400"}, credits={"Bank": "400"})
    return company_chart


class TestProfitAndLoss:
    def test_monthly_rows(self, reporting_service, trading_year):
        report = reporting_service.profit_and_loss(COMPANY, YEAR)

        assert [m.label for m in report.months][:3] == ["Jan", "Feb", "Mar"]
        assert len(report.months) == 12
        jan, feb, may = report.months[0], report.months[1], report.months[4]
        assert (jan.income, jan.expenses, jan.net) == (Decimal("350"), Decimal("200"), Decimal("150"))
        assert (feb.income, feb.expenses) == (Decimal("50"), Decimal("0"))
        assert may.net == Decimal("-400")

    def test_totals_exclude_other_years(self, reporting_service, trading_year):
        report = reporting_service.profit_and_loss(COMPANY, YEAR)

        assert report.total_income == Decimal("400")
        assert report.total_expenses == Decimal("600")
        assert report.net_profit == Decimal("-200")

    def test_category_totals(self, reporting_service, trading_year):
        report = reporting_service.profit_and_loss(COMPANY, YEAR)

        income = {c.category: c.total for c in report.income_by_category}
        expenses = {c.category: c.total for c in report.expenses_by_category}
        assert income["Sales Accounts"] == Decimal("350")
        assert income["Indirect Income"] == Decimal("50")
        assert expenses["Indirect Expenses"] == Decimal("600")
        assert all(c.kind == GroupKind.INCOME for c in report.income_by_category)
        assert [c.category for c in report.income_by_category] == ["Indirect Income", "Sales Accounts"]

    def test_net_profit_matches_balance_sheet(self, reporting_service, post, company_chart):
        post(VoucherType.POS, date(2024, 3, 1), debits={"Cash": "900"}, credits={"Sales": "900"})
        post(VoucherType.EXPENSE, date(2024, 8, 1), debits={"Utilities": "120"}, credits={"Cash": "120"})

        pnl = reporting_service.profit_and_loss(COMPANY, YEAR)
        sheet = reporting_service.balance_sheet(COMPANY, date(YEAR, 12, 31))

        assert pnl.net_profit == sheet.net_profit == Decimal("780")

    def test_period_metadata(self, reporting_service, company_chart):
        report = reporting_service.profit_and_loss(COMPANY, YEAR)

        assert report.metadata.period_start == date(2024, 1, 1)
        assert report.metadata.period_end == date(2024, 12, 31)
        assert report.net_profit == Decimal("0")


class TestCashFlow:
    def test_opening_cash_is_prior_year_close(self, reporting_service, trading_year):
        report = reporting_service.cash_flow(COMPANY, YEAR)

        assert report.opening_cash == Decimal("1100")
        assert report.buckets[0].opening == Decimal("1100")

    def test_monthly_buckets(self, reporting_service, trading_year):
        report = reporting_service.cash_flow(COMPANY, YEAR)

        jan, feb, may = report.buckets[0], report.buckets[1], report.buckets[4]
        assert (jan.inflow, jan.outflow, jan.net) == (Decimal("350"), Decimal("200"), Decimal("150"))
        assert jan.closing == Decimal("1250")
        assert (feb.inflow, feb.outflow) == (Decimal("150"), Decimal("100"))
        assert feb.opening == jan.closing
        assert may.outflow == Decimal("400")

    def test_transfer_between_cash_and_bank_nets_to_zero(self, reporting_service, post, company_chart):
        post(VoucherType.CONTRA, date(2024, 7, 1), debits={"Bank": "250"}, credits={"Cash": "250"})

        july = reporting_service.cash_flow(COMPANY, YEAR).buckets[6]

        assert july.inflow == july.outflow == Decimal("250")
        assert july.net == Decimal("0")

    def test_quarterly_buckets(self, reporting_service, trading_year):
        report = reporting_service.cash_flow(COMPANY, YEAR, Granularity.QUARTERLY)

        assert [b.label for b in report.buckets] == ["Q1", "Q2", "Q3", "Q4"]
        q1 = report.buckets[0]
        assert q1.start == date(2024, 1, 1)
        assert q1.end == date(2024, 3, 31)
        assert (q1.inflow, q1.outflow) == (Decimal("500"), Decimal("300"))

    def test_closing_cash_matches_balances(self, reporting_service, balance_resolver, trading_year):
        report = reporting_service.cash_flow(COMPANY, YEAR)

        end = date(YEAR, 12, 31)
        expected = balance_resolver.balance_as_of(
            COMPANY, trading_year["Cash"], end
        ) + balance_resolver.balance_as_of(COMPANY, trading_year["Bank"], end)
        assert report.closing_cash == expected == Decimal("900")
        assert report.net_change == report.closing_cash - report.opening_cash

    def test_granularity_accepts_string(self, reporting_service, company_chart):
        report = reporting_service.cash_flow(COMPANY, YEAR, "QUARTERLY")

        assert report.granularity == Granularity.QUARTERLY


@pytest.fixture
def taxed_year(post, posting_service, company_chart):
    post(
        VoucherType.SALE,
        date(2024, 5, 10),
        debits={"Accounts Receivable": "1180"},
        credits={"Sales": "1000", "CGST Payable": "90", "SGST Payable": "90"},
        party_type=PartyType.CUSTOMER,
    )
    post(
        VoucherType.JOURNAL,
        date(2024, 6, 2),
        debits={"Purchases": "500", "CGST Payable": "45"},
        credits={"Accounts Payable": "545"},
    )
    post(
        VoucherType.SALE,
        date(2024, 11, 3),
        debits={"Accounts Receivable": "550"},
        credits={"Sales": "500", "VAT Payable": "50"},
        party_type=PartyType.CUSTOMER,
    )
    return company_chart


class TestTaxSummary:
    def test_codes_in_configured_order(self, reporting_service, taxed_year):
        report = reporting_service.tax_summary(COMPANY, YEAR)

        assert [c.tax_code for c in report.codes] == ["CGST", "SGST", "IGST", "VAT"]

    def test_output_and_input_tax(self, reporting_service, taxed_year):
        report = reporting_service.tax_summary(COMPANY, YEAR)

        cgst = report.codes[0]
        assert cgst.total_output == Decimal("90")
        assert cgst.total_input == Decimal("45")
        assert cgst.net_payable == Decimal("45")
        assert cgst.buckets[4].output_tax == Decimal("90")
        assert cgst.buckets[5].input_tax == Decimal("45")
        assert report.net_payable == Decimal("185")

    def test_code_without_activity_reports_zero(self, reporting_service, taxed_year):
        igst = reporting_service.tax_summary(COMPANY, YEAR).codes[2]

        assert igst.total_output == igst.total_input == Decimal("0")
        assert len(igst.buckets) == 12

    def test_quarterly(self, reporting_service, taxed_year):
        report = reporting_service.tax_summary(COMPANY, YEAR, Granularity.QUARTERLY)

        sgst = report.codes[1]
        assert [b.output_tax for b in sgst.buckets] == [
            Decimal("0"),
            Decimal("90"),
            Decimal("0"),
            Decimal("0"),
        ]

    def test_unconfigured_code_appended(self, reporting_service, chart_service, post, taxed_year):
        statutory = chart_service.create_group(COMPANY, "Statutory Dues", GroupKind.LIABILITIES)
        cess = chart_service.create_ledger(
            COMPANY, "Cess Payable", group_id=statutory, role=LedgerRole.TAX, tax_code="cess"
        )
        taxed_year["Cess Payable"] = cess
        post(
            VoucherType.SALE,
            date(2024, 12, 1),
            debits={"Accounts Receivable": "110"},
            credits={"Sales": "100", "Cess Payable": "10"},
            party_type=PartyType.CUSTOMER,
        )

        report = reporting_service.tax_summary(COMPANY, YEAR)

        assert [c.tax_code for c in report.codes] == ["CGST", "SGST", "IGST", "VAT", "CESS"]
        assert report.codes[-1].total_output == Decimal("10")

    def test_vat_summary_only_vat(self, reporting_service, taxed_year, captured_logs):
        report = reporting_service.vat_summary(COMPANY, YEAR)

        assert [c.tax_code for c in report.codes] == ["VAT"]
        assert report.net_payable == Decimal("50")
        assert report.metadata.report_type.value == "vat_summary"
        assert "vat_summary_generated" in [r["message"] for r in captured_logs()]
