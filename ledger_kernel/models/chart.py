"""
Module: ledger_kernel.models.chart
Responsibility: ORM persistence for the chart of accounts: account groups,
    subgroups and ledgers.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/enums.py only.

Invariants enforced:
    - A ledger has exactly one parent: group_id XOR subgroup_id
      (CHECK constraint, also validated by ChartService before flush).
    - Effective kind and normal side are never stored below the group; a
      subgroup or ledger always reads them through its parent group.
    - There is no stored current balance.  opening_balance is the only
      balance figure on a ledger; everything else derives from postings.
    - Nodes are soft-deleted via deleted_at, never hard-deleted while
      journal lines reference them (db/immutability.py).
    - name_key (trimmed, casefolded name) is unique per company among
      non-deleted nodes of one type (partial unique index).

Failure modes:
    - IntegrityError if the parent CHECK constraint is violated.
    - ImmutabilityViolationError on a kind change of a group with postings.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from ledger_kernel.db.base import CompanyScoped, TrackedBase, UUIDString
from ledger_kernel.domain.enums import (
    BalanceSheetSection,
    GroupKind,
    LedgerRole,
    NormalSide,
)

LIVE_ROWS = text("deleted_at IS NULL")


def chart_name_key(name: str) -> str:
    """Comparison key for chart node names: trimmed and Unicode casefolded."""
    return name.strip().casefold()


def _live_name_index(name: str) -> Index:
    return Index(
        name,
        "company_id",
        "name_key",
        unique=True,
        sqlite_where=LIVE_ROWS,
        postgresql_where=LIVE_ROWS,
    )


class AccountGroup(TrackedBase, CompanyScoped):
    """Top-level node of the chart of accounts."""

    __tablename__ = "account_groups"
    __table_args__ = (
        _live_name_index("uq_group_company_name_key"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_key: Mapped[str] = mapped_column(String(200), nullable=False)

    kind: Mapped[GroupKind] = mapped_column(String(20), nullable=False)

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    subgroups: Mapped[list["AccountSubGroup"]] = relationship(
        back_populates="group",
        lazy="selectin",
    )

    ledgers: Mapped[list["Ledger"]] = relationship(
        back_populates="group",
        foreign_keys="Ledger.group_id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<AccountGroup {self.name} kind={self.kind}>"

    @validates("name")
    def _set_name_key(self, key, name):
        self.name_key = chart_name_key(name)
        return name

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def normal_side(self) -> NormalSide:
        return GroupKind(self.kind).normal_side


class AccountSubGroup(TrackedBase, CompanyScoped):
    """
    Optional intermediate node under a group.

    The subgroup's kind is its parent group's kind.  ``section`` is its
    balance-sheet classification, fixed when the subgroup is created.
    """

    __tablename__ = "account_subgroups"
    __table_args__ = (
        _live_name_index("uq_subgroup_company_name_key"),
        Index("idx_subgroup_group", "group_id"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_key: Mapped[str] = mapped_column(String(200), nullable=False)

    group_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("account_groups.id"),
        nullable=False,
    )

    section: Mapped[BalanceSheetSection] = mapped_column(
        String(30),
        nullable=False,
        default=BalanceSheetSection.UNCLASSIFIED,
    )

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    group: Mapped[AccountGroup] = relationship(back_populates="subgroups")

    ledgers: Mapped[list["Ledger"]] = relationship(
        back_populates="subgroup",
        foreign_keys="Ledger.subgroup_id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<AccountSubGroup {self.name} section={self.section}>"

    @validates("name")
    def _set_name_key(self, key, name):
        self.name_key = chart_name_key(name)
        return name

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def kind(self) -> GroupKind:
        return GroupKind(self.group.kind)


class Ledger(TrackedBase, CompanyScoped):
    """
    A single account that accumulates a balance.

    Exactly one of group_id / subgroup_id is set.  normal_side is derived
    from the owning group's kind and is not a column.
    """

    __tablename__ = "ledgers"
    __table_args__ = (
        CheckConstraint(
            "(group_id IS NULL) <> (subgroup_id IS NULL)",
            name="ck_ledger_single_parent",
        ),
        _live_name_index("uq_ledger_company_name_key"),
        Index("idx_ledger_group", "group_id"),
        Index("idx_ledger_subgroup", "subgroup_id"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    name_key: Mapped[str] = mapped_column(String(200), nullable=False)

    group_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("account_groups.id"),
        nullable=True,
    )

    subgroup_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("account_subgroups.id"),
        nullable=True,
    )

    # Signed, in the ledger's normal-side orientation
    opening_balance: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    role: Mapped[LedgerRole] = mapped_column(
        String(20),
        nullable=False,
        default=LedgerRole.GENERAL,
    )

    # CGST / SGST / IGST / VAT ... only for TAX ledgers
    tax_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    group: Mapped[AccountGroup | None] = relationship(
        back_populates="ledgers",
        foreign_keys=[group_id],
    )

    subgroup: Mapped[AccountSubGroup | None] = relationship(
        back_populates="ledgers",
        foreign_keys=[subgroup_id],
    )

    def __repr__(self) -> str:
        return f"<Ledger {self.name} role={self.role}>"

    @validates("name")
    def _set_name_key(self, key, name):
        self.name_key = chart_name_key(name)
        return name

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def owning_group(self) -> AccountGroup:
        if self.subgroup is not None:
            return self.subgroup.group
        return self.group

    @property
    def kind(self) -> GroupKind:
        return GroupKind(self.owning_group.kind)

    @property
    def normal_side(self) -> NormalSide:
        return self.kind.normal_side

    @property
    def section(self) -> BalanceSheetSection | None:
        """Subgroup classification, or None for ledgers directly under a group."""
        if self.subgroup is None:
            return None
        return BalanceSheetSection(self.subgroup.section)
