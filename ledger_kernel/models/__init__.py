"""Domain models for the ledger kernel."""

from ledger_kernel.domain.enums import (
    BalanceSheetSection,
    GroupKind,
    LedgerRole,
    LineSide,
    NormalSide,
    PartyType,
    VoucherStatus,
    VoucherType,
)
from ledger_kernel.models.chart import AccountGroup, AccountSubGroup, Ledger
from ledger_kernel.models.voucher import JournalLine, Voucher

__all__ = [
    "AccountGroup",
    "AccountSubGroup",
    "BalanceSheetSection",
    "GroupKind",
    "JournalLine",
    "Ledger",
    "LedgerRole",
    "LineSide",
    "NormalSide",
    "PartyType",
    "Voucher",
    "VoucherStatus",
    "VoucherType",
]
