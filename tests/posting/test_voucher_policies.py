"""
Voucher-type policies loaded from configuration.

Each voucher type carries declarative shape rules (which ledgers a CONTRA
voucher may touch, that a SALE names a customer, ...).  A voucher that
balances but breaks its type's policy is rejected with the rule name.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import LedgerInfo, LineSpec, VoucherMetadata
from ledger_kernel.domain.enums import GroupKind, LedgerRole, NormalSide, PartyType, VoucherType
from ledger_kernel.domain.voucher_policy import (
    LineSelector,
    PolicyRule,
    RuleType,
    VoucherPolicy,
    VoucherPolicyTable,
)
from ledger_kernel.exceptions import InvalidVoucherShapeError

DAY = date(2024, 2, 10)


def _shape_error(post, *args, **kwargs) -> InvalidVoucherShapeError:
    with pytest.raises(InvalidVoucherShapeError) as exc_info:
        post(*args, **kwargs)
    return exc_info.value


class TestConfiguredPolicies:
    def test_expense_paid_from_cash(self, post):
        post(VoucherType.EXPENSE, DAY, debits={"Rent": "500"}, credits={"Cash": "500"})

    def test_expense_needs_expense_debit(self, post):
        error = _shape_error(
            post, VoucherType.EXPENSE, DAY, debits={"Inventory": "500"}, credits={"Cash": "500"}
        )
        assert error.rule == "debit_expense"
        assert error.voucher_type == "EXPENSE"

    def test_expense_needs_settlement_credit(self, post):
        error = _shape_error(
            post, VoucherType.EXPENSE, DAY, debits={"Rent": "500"}, credits={"Sales": "500"}
        )
        assert error.rule == "credit_settlement"

    def test_income_received_into_bank(self, post):
        post(VoucherType.INCOME, DAY, debits={"Bank": "75"}, credits={"Interest Received": "75"})

    def test_income_needs_income_credit(self, post):
        error = _shape_error(
            post, VoucherType.INCOME, DAY, debits={"Bank": "75"}, credits={"Bank Loan": "75"}
        )
        assert error.rule == "credit_income"

    def test_contra_between_cash_and_bank(self, post):
        post(VoucherType.CONTRA, DAY, debits={"Bank": "300"}, credits={"Cash": "300"})

    def test_contra_rejects_other_ledgers(self, post):
        error = _shape_error(
            post, VoucherType.CONTRA, DAY, debits={"Rent": "300"}, credits={"Cash": "300"}
        )
        assert error.rule == "cash_or_bank_only"
        assert "Rent" in error.detail

    def test_journal_has_no_shape_rules(self, post):
        post(VoucherType.JOURNAL, DAY, debits={"Inventory": "40"}, credits={"Capital Account": "40"})

    def test_sale_to_customer(self, post):
        post(
            VoucherType.SALE,
            DAY,
            debits={"Accounts Receivable": "1180"},
            credits={"Sales": "1000", "CGST Payable": "90", "SGST Payable": "90"},
            party_type=PartyType.CUSTOMER,
            party_name="Wayne Enterprises",
        )

    def test_sale_requires_customer(self, post):
        error = _shape_error(
            post,
            VoucherType.SALE,
            DAY,
            debits={"Accounts Receivable": "100"},
            credits={"Sales": "100"},
        )
        assert error.rule == "customer_party"

    def test_sale_with_vendor_party_rejected(self, post):
        error = _shape_error(
            post,
            VoucherType.SALE,
            DAY,
            debits={"Accounts Receivable": "100"},
            credits={"Sales": "100"},
            party_type=PartyType.VENDOR,
        )
        assert error.rule == "customer_party"

    def test_sale_requires_exactly_one_receivable(self, post):
        error = _shape_error(
            post,
            VoucherType.SALE,
            DAY,
            debits={"Cash": "100"},
            credits={"Sales": "100"},
            party_type=PartyType.CUSTOMER,
        )
        assert error.rule == "single_receivable"
        assert "found 0" in error.detail

    def test_purchase_from_vendor(self, post):
        post(
            VoucherType.PURCHASE,
            DAY,
            debits={"Purchases": "800"},
            credits={"Accounts Payable": "800"},
            party_type=PartyType.VENDOR,
            party_name="Acme Supplies",
        )

    def test_purchase_of_fixed_asset(self, post):
        post(
            VoucherType.PURCHASE,
            DAY,
            debits={"Office Equipment": "2500"},
            credits={"Accounts Payable": "2500"},
            party_type=PartyType.VENDOR,
        )

    def test_purchase_needs_payable(self, post):
        error = _shape_error(
            post,
            VoucherType.PURCHASE,
            DAY,
            debits={"Purchases": "800"},
            credits={"Cash": "800"},
            party_type=PartyType.VENDOR,
        )
        assert error.rule == "single_payable"

    def test_pos_receipt(self, post):
        post(VoucherType.POS, DAY, debits={"Cash": "45"}, credits={"Sales": "45"})

    def test_pos_into_receivable_rejected(self, post):
        error = _shape_error(
            post, VoucherType.POS, DAY, debits={"Accounts Receivable": "45"}, credits={"Sales": "45"}
        )
        assert error.rule == "debit_cash_or_bank"


def _info(name: str, kind: GroupKind, role: LedgerRole = LedgerRole.GENERAL) -> LedgerInfo:
    return LedgerInfo(
        ledger_id=uuid4(),
        company_id="acme",
        name=name,
        kind=kind,
        normal_side=kind.normal_side,
        role=role,
        opening_balance=Decimal("0"),
        is_active=True,
        group_id=uuid4(),
        group_name=kind.value.title(),
    )


class TestPolicyTable:
    """The policy evaluator is pure and works on any rule set."""

    def test_unregistered_type_has_no_rules(self):
        table = VoucherPolicyTable()
        cash = _info("Cash", GroupKind.ASSETS, LedgerRole.CASH)

        lines = [(LineSpec.debit(cash.ledger_id, "1"), cash)]

        assert table.evaluate(VoucherType.SALE, lines, VoucherMetadata()) is None

    def test_first_violated_rule_reported(self):
        table = VoucherPolicyTable(
            [
                VoucherPolicy(
                    voucher_type=VoucherType.EXPENSE,
                    rules=(
                        PolicyRule("first", RuleType.DEBIT_REQUIRES, (LineSelector.parse("kind:EXPENSES"),)),
                        PolicyRule("second", RuleType.CREDIT_REQUIRES, (LineSelector.parse("role:CASH"),)),
                    ),
                )
            ]
        )
        sales = _info("Sales", GroupKind.INCOME)
        lines = [
            (LineSpec.debit(sales.ledger_id, "1"), sales),
            (LineSpec.credit(sales.ledger_id, "1"), sales),
        ]

        violation = table.evaluate(VoucherType.EXPENSE, lines, VoucherMetadata())

        assert violation.rule == "first"

    def test_selector_parsing(self):
        selector = LineSelector.parse(" Role : bank ")

        assert str(selector) == "role:BANK"
        assert selector.matches(_info("Bank", GroupKind.ASSETS, LedgerRole.BANK))
        assert not selector.matches(_info("Cash", GroupKind.ASSETS, LedgerRole.CASH))

    @pytest.mark.parametrize("text", ["CASH", "colour:RED", "kind:REVENUE", "role:BOSS"])
    def test_bad_selector_rejected(self, text):
        with pytest.raises(ValueError):
            LineSelector.parse(text)

    def test_party_rule_requires_party_type(self):
        with pytest.raises(ValueError):
            PolicyRule("party", RuleType.REQUIRES_PARTY)

    def test_selector_rule_requires_selectors(self):
        with pytest.raises(ValueError):
            PolicyRule("empty", RuleType.ALL_LINES_MATCH)

    def test_exactly_one_counts_all_lines(self):
        rule = PolicyRule("one_cash", RuleType.EXACTLY_ONE, (LineSelector.parse("role:CASH"),))
        cash = _info("Cash", GroupKind.ASSETS, LedgerRole.CASH)
        lines = [
            (LineSpec.debit(cash.ledger_id, "1"), cash),
            (LineSpec.credit(cash.ledger_id, "1"), cash),
        ]

        assert rule.check(lines, VoucherMetadata()) == "expected exactly one role:CASH line, found 2"
        assert rule.check(lines[:1], VoucherMetadata()) is None

    def test_normal_side_is_not_a_selector_attribute(self):
        assert _info("Cash", GroupKind.ASSETS).normal_side == NormalSide.DEBIT
        with pytest.raises(ValueError):
            LineSelector(attribute="normal_side", value="DEBIT")
