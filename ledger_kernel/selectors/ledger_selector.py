"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Aggregate debit/credit totals over posted journal lines.
    This is the only place balances are summed in SQL; the Balance Resolver
    applies the signed-balance rule on top of these totals.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - No stored balances.  Every total is computed at query time from
      JournalLine rows joined to their voucher's date.
    - Date windows are half-open on the left: a line counts when
      ``after < voucher_date <= through``.  Either bound may be omitted.
    - All totals are exact Decimals.  PostgreSQL sums NUMERIC exactly.
      SQLite stores NUMERIC as binary floating point, so there each
      amount is split into its integer part and its fraction in units
      of 10**-9 (the column scale), and both parts are summed as
      integers.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, case, cast, func, select

from ledger_kernel.domain.dtos import Movement
from ledger_kernel.domain.enums import LineSide
from ledger_kernel.models.voucher import JournalLine, Voucher
from ledger_kernel.selectors.base import BaseSelector

ZERO = Decimal("0")

# Scale of the Numeric(38, 9) amount column
AMOUNT_SCALE = 9


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _side_amount(side: LineSide):
    return case((JournalLine.side == side.value, JournalLine.amount), else_=ZERO)


class LedgerSelector(BaseSelector[JournalLine]):
    """Grouped debit/credit sums, always scoped by company."""

    @property
    def _split_sums(self) -> bool:
        return self.session.get_bind().dialect.name == "sqlite"

    def _sum_columns(self) -> list:
        columns = []
        for side, label in ((LineSide.DEBIT, "debit"), (LineSide.CREDIT, "credit")):
            amount = _side_amount(side)
            if not self._split_sums:
                columns.append(func.sum(amount).label(f"{label}_total"))
                continue
            whole = cast(amount, BigInteger)
            fraction = cast(func.round((amount - whole) * 10**AMOUNT_SCALE), BigInteger)
            columns.append(func.sum(whole).label(f"{label}_whole"))
            columns.append(func.sum(fraction).label(f"{label}_fraction"))
        return columns

    def _movement(self, row) -> Movement:
        if not self._split_sums:
            return Movement(
                debit_total=_dec(row.debit_total),
                credit_total=_dec(row.credit_total),
            )
        return Movement(
            debit_total=self._joined(row.debit_whole, row.debit_fraction),
            credit_total=self._joined(row.credit_whole, row.credit_fraction),
        )

    @staticmethod
    def _joined(whole, fraction) -> Decimal:
        return Decimal(int(whole or 0)) + Decimal(int(fraction or 0)).scaleb(-AMOUNT_SCALE)

    def _windowed(self, query, company_id: str, after: date | None, through: date | None):
        query = (
            query.join(Voucher, JournalLine.voucher_id == Voucher.id)
            .where(JournalLine.company_id == company_id)
            .where(Voucher.company_id == company_id)
        )
        if after is not None:
            query = query.where(Voucher.voucher_date > after)
        if through is not None:
            query = query.where(Voucher.voucher_date <= through)
        return query

    def totals_by_ledger(
        self,
        company_id: str,
        *,
        after: date | None = None,
        through: date | None = None,
        ledger_ids: Iterable[UUID] | None = None,
    ) -> dict[UUID, Movement]:
        """Debit/credit totals per ledger.  Ledgers without lines are absent."""
        query = self._windowed(
            select(JournalLine.ledger_id, *self._sum_columns()),
            company_id,
            after,
            through,
        )
        if ledger_ids is not None:
            ids = list(set(ledger_ids))
            if not ids:
                return {}
            query = query.where(JournalLine.ledger_id.in_(ids))
        query = query.group_by(JournalLine.ledger_id)

        return {row.ledger_id: self._movement(row) for row in self.session.execute(query)}

    def movement(
        self,
        company_id: str,
        ledger_id: UUID,
        *,
        after: date | None = None,
        through: date | None = None,
    ) -> Movement:
        totals = self.totals_by_ledger(
            company_id, after=after, through=through, ledger_ids=[ledger_id]
        )
        return totals.get(ledger_id, Movement())

    def company_totals(
        self,
        company_id: str,
        *,
        after: date | None = None,
        through: date | None = None,
    ) -> Movement:
        """Debit and credit totals over every posted line of the company."""
        query = self._windowed(select(*self._sum_columns()), company_id, after, through)
        return self._movement(self.session.execute(query).one())

    def has_postings(self, company_id: str, ledger_ids: Iterable[UUID]) -> bool:
        """True if any journal line references one of the ledgers."""
        ids = list(set(ledger_ids))
        if not ids:
            return False
        count = self.session.execute(
            select(func.count(JournalLine.id))
            .where(JournalLine.company_id == company_id)
            .where(JournalLine.ledger_id.in_(ids))
        ).scalar_one()
        return count > 0
