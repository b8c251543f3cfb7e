"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read access to posted vouchers and their lines, joined to
    ledger names, for day books, journal registers and ledger statements.
Architecture position: Kernel > Selectors.

Ordering:
    Lines come back by (voucher_date, voucher seq, line_seq), which is
    posting order within a date.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dtos import JournalLineView, VoucherView
from ledger_kernel.domain.enums import LineSide, PartyType, VoucherType
from ledger_kernel.models.chart import Ledger
from ledger_kernel.models.voucher import JournalLine, Voucher
from ledger_kernel.selectors.base import BaseSelector


def _line_view(line: JournalLine, voucher: Voucher, ledger_name: str) -> JournalLineView:
    return JournalLineView(
        line_id=line.id,
        voucher_id=voucher.id,
        voucher_number=voucher.voucher_number,
        voucher_type=VoucherType(voucher.voucher_type),
        voucher_date=voucher.voucher_date,
        ledger_id=line.ledger_id,
        ledger_name=ledger_name,
        side=LineSide(line.side),
        amount=line.amount,
        line_seq=line.line_seq,
        narration=line.narration,
        voucher_narration=voucher.narration,
        party_type=PartyType(voucher.party_type) if voucher.party_type else None,
        party_name=voucher.party_name,
    )


class JournalSelector(BaseSelector[Voucher]):
    """Posted voucher and line queries, always scoped by company."""

    def _line_rows(self, company_id: str):
        return (
            select(JournalLine, Voucher, Ledger.name)
            .join(Voucher, JournalLine.voucher_id == Voucher.id)
            .join(Ledger, JournalLine.ledger_id == Ledger.id)
            .where(JournalLine.company_id == company_id)
            .where(Voucher.company_id == company_id)
            .order_by(Voucher.voucher_date, Voucher.seq, JournalLine.line_seq)
        )

    def lines_on(self, company_id: str, day: date) -> list[JournalLineView]:
        """Every line of every voucher dated exactly ``day``."""
        query = self._line_rows(company_id).where(Voucher.voucher_date == day)
        return [_line_view(l, v, name) for l, v, name in self.session.execute(query)]

    def lines_for_ledger(
        self,
        company_id: str,
        ledger_id: UUID,
        *,
        after: date | None = None,
        through: date | None = None,
    ) -> list[JournalLineView]:
        """Lines on one ledger with ``after < voucher_date <= through``."""
        query = self._line_rows(company_id).where(JournalLine.ledger_id == ledger_id)
        if after is not None:
            query = query.where(Voucher.voucher_date > after)
        if through is not None:
            query = query.where(Voucher.voucher_date <= through)
        return [_line_view(l, v, name) for l, v, name in self.session.execute(query)]

    def vouchers(
        self,
        company_id: str,
        start: date,
        end: date,
        voucher_type: VoucherType | None = None,
    ) -> list[VoucherView]:
        """Vouchers dated within [start, end] inclusive, in posting order."""
        query = (
            self._line_rows(company_id)
            .where(Voucher.voucher_date >= start)
            .where(Voucher.voucher_date <= end)
        )
        if voucher_type is not None:
            query = query.where(Voucher.voucher_type == VoucherType(voucher_type).value)

        grouped: dict[UUID, tuple[Voucher, list[JournalLineView]]] = {}
        for line, voucher, name in self.session.execute(query):
            entry = grouped.setdefault(voucher.id, (voucher, []))
            entry[1].append(_line_view(line, voucher, name))

        return [self._voucher_view(v, lines) for v, lines in grouped.values()]

    def voucher(self, company_id: str, voucher_id: UUID) -> VoucherView | None:
        query = self._line_rows(company_id).where(Voucher.id == voucher_id)
        rows = self.session.execute(query).all()
        if not rows:
            return None
        voucher = rows[0][1]
        return self._voucher_view(voucher, [_line_view(l, v, n) for l, v, n in rows])

    def reversal_of(self, company_id: str, voucher_id: UUID) -> UUID | None:
        """Id of the voucher that reverses ``voucher_id``, if any."""
        return self.session.execute(
            select(Voucher.id)
            .where(Voucher.company_id == company_id)
            .where(Voucher.reversal_of_id == voucher_id)
        ).scalar_one_or_none()

    def voucher_number_exists(self, company_id: str, voucher_number: str) -> bool:
        return (
            self.session.execute(
                select(Voucher.id)
                .where(Voucher.company_id == company_id)
                .where(Voucher.voucher_number == voucher_number)
            ).first()
            is not None
        )

    @staticmethod
    def _voucher_view(voucher: Voucher, lines: list[JournalLineView]) -> VoucherView:
        return VoucherView(
            voucher_id=voucher.id,
            voucher_number=voucher.voucher_number,
            voucher_type=VoucherType(voucher.voucher_type),
            voucher_date=voucher.voucher_date,
            seq=voucher.seq,
            narration=voucher.narration,
            party_type=PartyType(voucher.party_type) if voucher.party_type else None,
            party_name=voucher.party_name,
            reversal_of_id=voucher.reversal_of_id,
            lines=tuple(lines),
        )
