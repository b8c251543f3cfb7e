"""
Module: ledger_kernel.models.voucher
Responsibility: ORM persistence for vouchers and journal lines, the single
    source of financial truth.
Architecture position: Kernel > Models.  May import from db/base.py,
    domain/enums.py and models/chart.py only.

Invariants enforced:
    - voucher_number is unique per company (UNIQUE constraint).
    - seq is globally unique and monotonic (assigned by SequenceService).
    - At most one reversal per voucher (UNIQUE on reversal_of_id).
    - Line amounts are positive; the side carries the sign (CHECK).
    - Append-only: ORM listeners in db/immutability.py block UPDATE and
      DELETE of vouchers and lines once flushed.

Failure modes:
    - IntegrityError on duplicate voucher number, seq or reversal.
    - ImmutabilityViolationError on UPDATE/DELETE.

Audit relevance:
    Every balance and every report derives from these rows.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import CompanyScoped, TrackedBase, UUIDString
from ledger_kernel.domain.enums import LineSide, PartyType, VoucherStatus, VoucherType
from ledger_kernel.models.chart import Ledger


class Voucher(TrackedBase, CompanyScoped):
    """
    Voucher header: one financial transaction.

    Contract:
        Written exactly once by PostingService together with all of its
        lines, inside one savepoint.  Never updated or deleted afterwards;
        corrections are reversing vouchers (reversal_of_id).
    """

    __tablename__ = "vouchers"
    __table_args__ = (
        UniqueConstraint("company_id", "voucher_number", name="uq_voucher_number"),
        UniqueConstraint("seq", name="uq_voucher_seq"),
        UniqueConstraint("reversal_of_id", name="uq_voucher_reversal"),
        Index("idx_voucher_company_date", "company_id", "voucher_date"),
        Index("idx_voucher_type", "voucher_type"),
    )

    voucher_number: Mapped[str] = mapped_column(String(50), nullable=False)

    voucher_type: Mapped[VoucherType] = mapped_column(String(20), nullable=False)

    voucher_date: Mapped[date] = mapped_column(Date, nullable=False)

    narration: Mapped[str | None] = mapped_column(String(500), nullable=True)

    party_type: Mapped[PartyType | None] = mapped_column(String(20), nullable=True)

    party_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[VoucherStatus] = mapped_column(
        String(10),
        nullable=False,
        default=VoucherStatus.POSTED,
    )

    seq: Mapped[int] = mapped_column(nullable=False)

    posted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("vouchers.id"),
        nullable=True,
    )

    # Named voucher_metadata: "metadata" is reserved by the declarative API
    voucher_metadata: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="voucher",
        order_by="JournalLine.line_seq",
        lazy="selectin",
    )

    reversal_of: Mapped["Voucher | None"] = relationship(
        remote_side="Voucher.id",
        foreign_keys=[reversal_of_id],
    )

    def __repr__(self) -> str:
        return f"<Voucher {self.voucher_number} type={self.voucher_type}>"


class JournalLine(TrackedBase, CompanyScoped):
    """
    One debit or credit against one ledger within a voucher.

    amount is always positive; side determines the sign convention.
    company_id is denormalized from the voucher so every aggregate can
    filter by tenant without a join.
    """

    __tablename__ = "journal_lines"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_journal_line_amount_positive"),
        UniqueConstraint("voucher_id", "line_seq", name="uq_journal_line_seq"),
        Index("idx_line_ledger", "ledger_id"),
        Index("idx_line_company_voucher", "company_id", "voucher_id"),
    )

    voucher_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vouchers.id"),
        nullable=False,
    )

    ledger_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("ledgers.id"),
        nullable=False,
    )

    side: Mapped[LineSide] = mapped_column(String(10), nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    narration: Mapped[str | None] = mapped_column(String(500), nullable=True)

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False)

    voucher: Mapped[Voucher] = relationship(back_populates="lines")

    ledger: Mapped[Ledger] = relationship()

    def __repr__(self) -> str:
        return f"<JournalLine {self.side} {self.amount} ledger={self.ledger_id}>"
