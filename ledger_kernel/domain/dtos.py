"""
Data transfer objects for the ledger kernel.

Frozen dataclasses passed between services, selectors and outer packages.
No ORM objects cross the kernel boundary; selectors convert rows into
these before returning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from ledger_kernel.domain.enums import (
    BalanceSheetSection,
    GroupKind,
    LedgerRole,
    LineSide,
    NormalSide,
    PartyType,
    VoucherType,
)


def _to_decimal(value: Decimal | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("Monetary amounts must not be floats")
    return Decimal(str(value))


# ---------------------------------------------------------------------------
# Posting input / output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LineSpec:
    """
    One requested journal line.

    Amount sign and magnitude are validated by PostingService, not here, so
    that the posting rules are reported in a fixed order.
    """

    ledger_id: UUID
    side: LineSide
    amount: Decimal
    narration: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "side", LineSide(self.side))
        object.__setattr__(self, "amount", _to_decimal(self.amount))

    @classmethod
    def debit(cls, ledger_id: UUID, amount: Decimal | int | str, narration: str | None = None) -> LineSpec:
        return cls(ledger_id=ledger_id, side=LineSide.DEBIT, amount=amount, narration=narration)

    @classmethod
    def credit(cls, ledger_id: UUID, amount: Decimal | int | str, narration: str | None = None) -> LineSpec:
        return cls(ledger_id=ledger_id, side=LineSide.CREDIT, amount=amount, narration=narration)


@dataclass(frozen=True)
class VoucherMetadata:
    """
    Optional voucher attributes supplied by the caller.

    voucher_number is generated from the company's numbering sequence when
    omitted.  ``extra`` is stored verbatim as JSON.
    """

    voucher_number: str | None = None
    narration: str | None = None
    party_type: PartyType | None = None
    party_name: str | None = None
    extra: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.party_type is not None:
            object.__setattr__(self, "party_type", PartyType(self.party_type))


@dataclass(frozen=True)
class PostedVoucher:
    """Result of a successful posting."""

    voucher_id: UUID
    voucher_number: str
    voucher_type: VoucherType
    voucher_date: date
    seq: int
    total_debits: Decimal
    total_credits: Decimal
    line_count: int
    reversal_of_id: UUID | None = None


# ---------------------------------------------------------------------------
# Chart of accounts views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerInfo:
    """
    Flattened ledger metadata with its effective classification.

    kind, normal_side and section are resolved through the parent chain at
    read time; they are never stored on the ledger row.
    """

    ledger_id: UUID
    company_id: str
    name: str
    kind: GroupKind
    normal_side: NormalSide
    role: LedgerRole
    opening_balance: Decimal
    is_active: bool
    group_id: UUID
    group_name: str
    subgroup_id: UUID | None = None
    subgroup_name: str | None = None
    section: BalanceSheetSection | None = None
    tax_code: str | None = None

    @property
    def category_name(self) -> str:
        """Subgroup name when present, else the group name."""
        return self.subgroup_name or self.group_name


@dataclass(frozen=True)
class SubGroupNode:
    subgroup_id: UUID
    name: str
    kind: GroupKind
    section: BalanceSheetSection
    ledgers: tuple[LedgerInfo, ...] = ()


@dataclass(frozen=True)
class GroupNode:
    """One group of the Group -> SubGroup -> Ledger tree."""

    group_id: UUID
    name: str
    kind: GroupKind
    normal_side: NormalSide
    subgroups: tuple[SubGroupNode, ...] = ()
    ledgers: tuple[LedgerInfo, ...] = ()

    def all_ledgers(self) -> tuple[LedgerInfo, ...]:
        nested = tuple(l for sg in self.subgroups for l in sg.ledgers)
        return self.ledgers + nested


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Movement:
    """Debit and credit totals of a ledger over a date range."""

    debit_total: Decimal = Decimal("0")
    credit_total: Decimal = Decimal("0")

    def net(self, normal_side: NormalSide) -> Decimal:
        """Net movement signed toward the ledger's normal side."""
        if NormalSide(normal_side) == NormalSide.DEBIT:
            return self.debit_total - self.credit_total
        return self.credit_total - self.debit_total

    def __add__(self, other: Movement) -> Movement:
        return Movement(
            debit_total=self.debit_total + other.debit_total,
            credit_total=self.credit_total + other.credit_total,
        )


@dataclass(frozen=True)
class LedgerBalance:
    """A ledger's signed balance and its posting totals as of a date."""

    ledger_id: UUID
    as_of: date
    opening_balance: Decimal
    movement: Movement = field(default_factory=Movement)
    balance: Decimal = Decimal("0")


# ---------------------------------------------------------------------------
# Journal views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JournalLineView:
    """A posted line joined to its voucher and ledger."""

    line_id: UUID
    voucher_id: UUID
    voucher_number: str
    voucher_type: VoucherType
    voucher_date: date
    ledger_id: UUID
    ledger_name: str
    side: LineSide
    amount: Decimal
    line_seq: int
    narration: str | None = None
    voucher_narration: str | None = None
    party_type: PartyType | None = None
    party_name: str | None = None

    @property
    def debit(self) -> Decimal:
        return self.amount if self.side == LineSide.DEBIT else Decimal("0")

    @property
    def credit(self) -> Decimal:
        return self.amount if self.side == LineSide.CREDIT else Decimal("0")


@dataclass(frozen=True)
class VoucherView:
    """A posted voucher with its lines."""

    voucher_id: UUID
    voucher_number: str
    voucher_type: VoucherType
    voucher_date: date
    seq: int
    narration: str | None
    party_type: PartyType | None
    party_name: str | None
    reversal_of_id: UUID | None
    lines: tuple[JournalLineView, ...]

    @property
    def total_debits(self) -> Decimal:
        return sum((l.debit for l in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((l.credit for l in self.lines), Decimal("0"))


# ---------------------------------------------------------------------------
# Chart templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerTemplate:
    name: str
    role: LedgerRole = LedgerRole.GENERAL
    tax_code: str | None = None
    opening_balance: Decimal = Decimal("0")


@dataclass(frozen=True)
class SubGroupTemplate:
    name: str
    section: BalanceSheetSection | None = None
    ledgers: tuple[LedgerTemplate, ...] = ()


@dataclass(frozen=True)
class GroupTemplate:
    """One group of a default chart, as supplied by configuration."""

    name: str
    kind: GroupKind
    subgroups: tuple[SubGroupTemplate, ...] = ()
    ledgers: tuple[LedgerTemplate, ...] = ()


@dataclass(frozen=True)
class ChartInitResult:
    groups_created: int
    subgroups_created: int
    ledgers_created: int

    @property
    def total_created(self) -> int:
        return self.groups_created + self.subgroups_created + self.ledgers_created
