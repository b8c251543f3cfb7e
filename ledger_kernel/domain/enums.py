"""
Shared enumerations for the ledger kernel.

Pure values with no ORM dependency, so both models/ and the domain layer
can use them.  Stored in String columns by their value.
"""

from enum import Enum


class GroupKind(str, Enum):
    """Top-level classification of a group."""

    ASSETS = "ASSETS"
    LIABILITIES = "LIABILITIES"
    INCOME = "INCOME"
    EXPENSES = "EXPENSES"
    EQUITY = "EQUITY"

    @property
    def normal_side(self) -> "NormalSide":
        if self in (GroupKind.ASSETS, GroupKind.EXPENSES):
            return NormalSide.DEBIT
        return NormalSide.CREDIT


class NormalSide(str, Enum):
    """Side on which a ledger's balance naturally grows."""

    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class LedgerRole(str, Enum):
    """
    Functional role of a ledger, used by voucher policies and reports.

    CASH and BANK ledgers drive the cash flow report; TAX ledgers (with a
    tax_code) drive the tax and VAT summaries.
    """

    GENERAL = "GENERAL"
    CASH = "CASH"
    BANK = "BANK"
    RECEIVABLE = "RECEIVABLE"
    PAYABLE = "PAYABLE"
    TAX = "TAX"


class BalanceSheetSection(str, Enum):
    """Explicit balance-sheet classification of a subgroup."""

    CURRENT_ASSET = "CURRENT_ASSET"
    FIXED_ASSET = "FIXED_ASSET"
    CURRENT_LIABILITY = "CURRENT_LIABILITY"
    LONG_TERM_LIABILITY = "LONG_TERM_LIABILITY"
    UNCLASSIFIED = "UNCLASSIFIED"


class VoucherType(str, Enum):
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    CONTRA = "CONTRA"
    JOURNAL = "JOURNAL"
    SALE = "SALE"
    PURCHASE = "PURCHASE"
    POS = "POS"


class VoucherStatus(str, Enum):
    """Vouchers are append-only; POSTED is the only persisted status."""

    POSTED = "POSTED"


class LineSide(str, Enum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"

    def flipped(self) -> "LineSide":
        return LineSide.CREDIT if self is LineSide.DEBIT else LineSide.DEBIT


class PartyType(str, Enum):
    CUSTOMER = "CUSTOMER"
    VENDOR = "VENDOR"
