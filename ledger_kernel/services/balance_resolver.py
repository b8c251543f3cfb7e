"""
BalanceResolver -- ledger balances derived from posting history.

Responsibility:
    Compute a ledger's signed balance as of any date, and its debit/credit
    movement over any date range, from its opening balance plus posted
    journal lines.  Every report goes through this class, so no two
    reports can disagree about a ledger's value.

Architecture position:
    Kernel > Services -- read-only; composes ChartSelector and
    LedgerSelector with the pure rule in domain/balance.py.

Invariants enforced:
    - balance_as_of is a pure function of stored data.  The optional memo
      (BalanceCache) is a projection that is invalidated on every write
      affecting a ledger and can be verified against full recomputation.
    - balance_as_of(d2) - balance_as_of(d1) == movement_between(d1, d2)
      normalized by the ledger's normal side, for d1 <= d2.

Failure modes:
    - LedgerNotFoundError for unknown, deleted or other-company ledgers.
    - InconsistentLedgerError from verify_cached() if a memoized balance no
      longer matches recomputation.
"""

import threading
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import event
from sqlalchemy.orm import Session

from ledger_kernel.domain.balance import balance_from_totals
from ledger_kernel.domain.dtos import LedgerBalance, LedgerInfo, Movement
from ledger_kernel.exceptions import LedgerNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.chart_selector import ChartSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.alerts import escalate_inconsistency

logger = get_logger("services.balance_resolver")

_SESSION_CACHE_KEY = "ledger_kernel.balance_cache"


class BalanceCache:
    """
    Invalidate-on-write memo of balances keyed by (company, ledger, as_of).

    One cache is attached to each Session (``for_session``) so every
    service sharing the session sees the same invalidations.  The memo
    lives no longer than the session's outermost transaction: any rollback
    and the end of that transaction (commit, rollback or close) clear it,
    so postings committed by other sessions are seen by the next read.
    """

    def __init__(self):
        self._entries: dict[tuple[str, UUID, date], Decimal] = {}
        self._lock = threading.Lock()

    @classmethod
    def for_session(cls, session: Session) -> "BalanceCache":
        cache = session.info.get(_SESSION_CACHE_KEY)
        if cache is None:
            cache = cls()
            session.info[_SESSION_CACHE_KEY] = cache
            event.listen(session, "after_soft_rollback", cache._on_rollback)
            event.listen(session, "after_transaction_end", cache._on_transaction_end)
        return cache

    def _on_rollback(self, session, previous_transaction) -> None:
        self.clear()

    def _on_transaction_end(self, session, transaction) -> None:
        if transaction.parent is None:
            self.clear()

    def get(self, company_id: str, ledger_id: UUID, as_of: date) -> Decimal | None:
        with self._lock:
            return self._entries.get((company_id, ledger_id, as_of))

    def put(self, company_id: str, ledger_id: UUID, as_of: date, balance: Decimal) -> None:
        with self._lock:
            self._entries[(company_id, ledger_id, as_of)] = balance

    def invalidate(self, company_id: str, ledger_ids: Iterable[UUID]) -> int:
        """Drop every cached date of the given ledgers.  Returns entries dropped."""
        targets = set(ledger_ids)
        with self._lock:
            stale = [k for k in self._entries if k[0] == company_id and k[1] in targets]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def invalidate_company(self, company_id: str) -> int:
        with self._lock:
            stale = [k for k in self._entries if k[0] == company_id]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def snapshot(self) -> dict[tuple[str, UUID, date], Decimal]:
        with self._lock:
            return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class BalanceResolver:
    """
    Balance and movement queries for one session.

    Pass ``use_cache=False`` to always recompute (the cache never changes
    results, only avoids repeated aggregation).
    """

    def __init__(self, session: Session, use_cache: bool = True):
        self.session = session
        self._chart = ChartSelector(session)
        self._ledger = LedgerSelector(session)
        self._cache = BalanceCache.for_session(session) if use_cache else None

    @property
    def cache(self) -> BalanceCache | None:
        return self._cache

    def _require_ledger(self, company_id: str, ledger_id: UUID) -> LedgerInfo:
        info = self._chart.ledger(company_id, ledger_id)
        if info is None:
            raise LedgerNotFoundError(str(ledger_id), company_id)
        return info

    def _compute(self, info: LedgerInfo, as_of: date) -> Decimal:
        totals = self._ledger.movement(info.company_id, info.ledger_id, through=as_of)
        return balance_from_totals(
            info.opening_balance, totals.debit_total, totals.credit_total, info.normal_side
        )

    def balance_as_of(self, company_id: str, ledger_id: UUID, as_of: date) -> Decimal:
        """
        Opening balance plus every line dated on or before ``as_of``: added
        when on the ledger's normal side, subtracted otherwise.
        """
        if self._cache is not None:
            cached = self._cache.get(company_id, ledger_id, as_of)
            if cached is not None:
                return cached

        info = self._require_ledger(company_id, ledger_id)
        balance = self._compute(info, as_of)
        if self._cache is not None:
            self._cache.put(company_id, ledger_id, as_of, balance)
        return balance

    def ledger_balance(self, company_id: str, ledger_id: UUID, as_of: date) -> LedgerBalance:
        info = self._require_ledger(company_id, ledger_id)
        totals = self._ledger.movement(company_id, ledger_id, through=as_of)
        return LedgerBalance(
            ledger_id=ledger_id,
            as_of=as_of,
            opening_balance=info.opening_balance,
            movement=totals,
            balance=balance_from_totals(
                info.opening_balance, totals.debit_total, totals.credit_total, info.normal_side
            ),
        )

    def balances_as_of(
        self,
        company_id: str,
        as_of: date,
        ledgers: dict[UUID, LedgerInfo] | None = None,
    ) -> dict[UUID, LedgerBalance]:
        """
        The signed balance of many ledgers in one grouped query.

        ``ledgers`` defaults to every non-deleted ledger of the company.
        Results are written through to the cache.
        """
        if ledgers is None:
            ledgers = self._chart.ledgers(company_id)
        totals = self._ledger.totals_by_ledger(
            company_id, through=as_of, ledger_ids=ledgers.keys()
        )

        result: dict[UUID, LedgerBalance] = {}
        for ledger_id, info in ledgers.items():
            movement = totals.get(ledger_id, Movement())
            balance = balance_from_totals(
                info.opening_balance,
                movement.debit_total,
                movement.credit_total,
                info.normal_side,
            )
            result[ledger_id] = LedgerBalance(
                ledger_id=ledger_id,
                as_of=as_of,
                opening_balance=info.opening_balance,
                movement=movement,
                balance=balance,
            )
            if self._cache is not None:
                self._cache.put(company_id, ledger_id, as_of, balance)
        return result

    def movement_between(
        self,
        company_id: str,
        ledger_id: UUID,
        start_date: date,
        end_date: date,
    ) -> Movement:
        """
        Debit and credit totals of lines dated after ``start_date`` and on or
        before ``end_date``, so that

            balance_as_of(end) - balance_as_of(start)
                == movement_between(start, end).net(normal_side)
        """
        if start_date > end_date:
            raise ValueError(f"start_date {start_date} is after end_date {end_date}")
        self._require_ledger(company_id, ledger_id)
        return self._ledger.movement(company_id, ledger_id, after=start_date, through=end_date)

    def movement_for_period(
        self,
        company_id: str,
        ledger_id: UUID,
        first_day: date,
        last_day: date,
    ) -> Movement:
        """Movement over the inclusive calendar range [first_day, last_day]."""
        return self.movement_between(
            company_id, ledger_id, first_day - timedelta(days=1), last_day
        )

    def movements_between(
        self,
        company_id: str,
        start_date: date,
        end_date: date,
        ledger_ids: Iterable[UUID],
    ) -> dict[UUID, Movement]:
        """
        ``movement_between`` for many ledgers in one grouped query.

        Every requested ledger is present in the result; ledgers without
        lines in the window get a zero Movement.
        """
        if start_date > end_date:
            raise ValueError(f"start_date {start_date} is after end_date {end_date}")
        ids = list(ledger_ids)
        totals = self._ledger.totals_by_ledger(
            company_id, after=start_date, through=end_date, ledger_ids=ids
        )
        return {ledger_id: totals.get(ledger_id, Movement()) for ledger_id in ids}

    def invalidate(self, company_id: str, ledger_ids: Iterable[UUID]) -> None:
        if self._cache is not None:
            dropped = self._cache.invalidate(company_id, ledger_ids)
            logger.debug(
                "balance_cache_invalidated",
                extra={"company_id": company_id, "entries_dropped": dropped},
            )

    def verify_cached(self, company_id: str | None = None) -> int:
        """
        Recompute every memoized balance and compare.

        Returns the number of entries verified.  Any mismatch is an
        inconsistency: logged as an operator alert and raised.
        """
        if self._cache is None:
            return 0

        checked = 0
        for (cid, ledger_id, as_of), cached in self._cache.snapshot().items():
            if company_id is not None and cid != company_id:
                continue
            info = self._chart.ledger(cid, ledger_id)
            if info is None:
                raise escalate_inconsistency(
                    logger,
                    "balance_cache",
                    cid,
                    "cached balance for a ledger that no longer resolves",
                    ledger_id=str(ledger_id),
                )
            actual = self._compute(info, as_of)
            if actual != cached:
                raise escalate_inconsistency(
                    logger,
                    "balance_cache",
                    cid,
                    "cached balance differs from recomputation",
                    ledger_id=str(ledger_id),
                    as_of=as_of.isoformat(),
                    cached=str(cached),
                    recomputed=str(actual),
                )
            checked += 1

        logger.info(
            "balance_cache_verified",
            extra={"company_id": company_id, "entries_checked": checked},
        )
        return checked
