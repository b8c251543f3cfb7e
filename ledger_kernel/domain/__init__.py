"""
Pure domain layer: enums, DTOs, balance arithmetic, voucher-type policies,
posting settings, clocks and cancellation.  Nothing here touches the
database.
"""

from ledger_kernel.domain.balance import (
    ZERO,
    balance_from_totals,
    quantize_amount,
    signed_amount,
    trial_balance_columns,
    within_tolerance,
)
from ledger_kernel.domain.cancellation import CancellationToken
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    ChartInitResult,
    GroupNode,
    GroupTemplate,
    JournalLineView,
    LedgerBalance,
    LedgerInfo,
    LedgerTemplate,
    LineSpec,
    Movement,
    PostedVoucher,
    SubGroupNode,
    SubGroupTemplate,
    VoucherMetadata,
    VoucherView,
)
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
from ledger_kernel.domain.settings import PostingSettings
from ledger_kernel.domain.voucher_policy import (
    LineSelector,
    PolicyRule,
    PolicyViolation,
    RuleType,
    VoucherPolicy,
    VoucherPolicyTable,
)

__all__ = [
    "ZERO",
    "balance_from_totals",
    "quantize_amount",
    "signed_amount",
    "trial_balance_columns",
    "within_tolerance",
    "CancellationToken",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ChartInitResult",
    "GroupNode",
    "GroupTemplate",
    "JournalLineView",
    "LedgerBalance",
    "LedgerInfo",
    "LedgerTemplate",
    "LineSpec",
    "Movement",
    "PostedVoucher",
    "SubGroupNode",
    "SubGroupTemplate",
    "VoucherMetadata",
    "VoucherView",
    "BalanceSheetSection",
    "GroupKind",
    "LedgerRole",
    "LineSide",
    "NormalSide",
    "PartyType",
    "VoucherStatus",
    "VoucherType",
    "PostingSettings",
    "LineSelector",
    "PolicyRule",
    "PolicyViolation",
    "RuleType",
    "VoucherPolicy",
    "VoucherPolicyTable",
]
