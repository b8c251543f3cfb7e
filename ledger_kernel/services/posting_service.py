"""
PostingService -- the only writer of financial state.

Responsibility:
    Validate a voucher (a set of journal lines) and persist it atomically.
    Either the voucher and every one of its lines is written, or nothing
    is.

Architecture position:
    Kernel > Services.  Consumes ChartSelector (ledger metadata),
    JournalSelector (voucher number uniqueness, reversal linkage),
    SequenceService (posting order, generated numbers) and the
    VoucherPolicyTable (voucher-type shape rules).

Validation order (first failure wins, nothing written on failure):
    1. At least two lines                        -> TooFewLinesError
    2. Every ledger exists in the company        -> LedgerNotFoundError
       and is active                             -> LedgerInactiveError
    3. Debits == credits within tolerance, after
       quantizing to the amount precision        -> UnbalancedVoucherError
    4. Every amount > 0                          -> InvalidLineAmountError
    5. Voucher-type policy                       -> InvalidVoucherShapeError
    Voucher number uniqueness                    -> DuplicateVoucherNumberError

Invariants enforced:
    - Every persisted voucher balances.
    - The write happens inside a savepoint; a failure mid-write leaves no
      partial rows.  The service flushes, never commits.
    - Successful postings invalidate cached balances of touched ledgers.

Non-goals:
    - No automatic retry of a rejected voucher.
    - Inventory side effects of SALE / PURCHASE vouchers belong to
      subscribers registered with ``add_listener``.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.balance import ZERO, quantize_amount, within_tolerance
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import LedgerInfo, LineSpec, PostedVoucher, VoucherMetadata
from ledger_kernel.domain.enums import LineSide, VoucherStatus, VoucherType
from ledger_kernel.domain.settings import PostingSettings
from ledger_kernel.domain.voucher_policy import VoucherPolicyTable
from ledger_kernel.exceptions import (
    DuplicateVoucherNumberError,
    InvalidLineAmountError,
    InvalidVoucherShapeError,
    LedgerInactiveError,
    LedgerKernelError,
    LedgerNotFoundError,
    TooFewLinesError,
    UnbalancedVoucherError,
    VoucherAlreadyReversedError,
    VoucherNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.voucher import JournalLine, Voucher
from ledger_kernel.selectors.chart_selector import ChartSelector
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.balance_resolver import BalanceCache
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.posting")

PostingListener = Callable[[PostedVoucher], None]


@dataclass(frozen=True)
class _ValidatedVoucher:
    voucher_type: VoucherType
    voucher_date: date
    lines: tuple[tuple[LineSpec, LedgerInfo, Decimal], ...]
    metadata: VoucherMetadata
    total_debits: Decimal
    total_credits: Decimal


class PostingService(BaseService[Voucher]):
    """
    Validates and posts vouchers.

    Contract:
        ``post_voucher`` returns a PostedVoucher once the voucher and its
        lines are flushed, or raises a typed error without writing anything.
    """

    def __init__(
        self,
        session: Session,
        settings: PostingSettings | None = None,
        policies: VoucherPolicyTable | None = None,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
    ):
        super().__init__(session, actor_id)
        self._settings = settings or PostingSettings()
        self._policies = policies if policies is not None else VoucherPolicyTable()
        self._clock = clock or SystemClock()
        self._chart = ChartSelector(session)
        self._journal = JournalSelector(session)
        self._sequences = SequenceService(session)
        self._cache = BalanceCache.for_session(session)
        self._listeners: list[PostingListener] = []

    @property
    def settings(self) -> PostingSettings:
        return self._settings

    def add_listener(self, listener: PostingListener) -> None:
        """
        Subscribe to successful postings.

        Listeners run after the flush, inside the caller's transaction; an
        exception from a listener propagates and the caller's transaction
        should be rolled back.
        """
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def post_voucher(
        self,
        company_id: str,
        voucher_type: VoucherType,
        voucher_date: date,
        lines: Sequence[LineSpec],
        metadata: VoucherMetadata | None = None,
        *,
        reversal_of_id: UUID | None = None,
    ) -> PostedVoucher:
        """
        Validate and persist one voucher.

        ``reversal_of_id`` marks the voucher as the reversal of an existing
        voucher in the same company.  Reversals skip the voucher-type
        policy (they mirror an already-accepted voucher) but not the
        balance rules.
        """
        voucher_type = VoucherType(voucher_type)
        metadata = metadata or VoucherMetadata()

        with LogContext.bind(company_id=company_id, actor_id=self.actor_id):
            logger.info(
                "voucher_posting_started",
                extra={
                    "voucher_type": voucher_type.value,
                    "voucher_date": voucher_date.isoformat(),
                    "line_count": len(lines),
                },
            )
            try:
                if reversal_of_id is not None:
                    self._check_reversal_target(company_id, reversal_of_id)
                validated = self._validate(
                    company_id,
                    voucher_type,
                    voucher_date,
                    lines,
                    metadata,
                    apply_policy=reversal_of_id is None,
                )
                posted = self._write(company_id, validated, reversal_of_id)
            except LedgerKernelError as exc:
                logger.warning(
                    "voucher_rejected",
                    extra={
                        "voucher_type": voucher_type.value,
                        "error_code": exc.code,
                        "reason": str(exc),
                    },
                )
                raise

            with LogContext.bind(voucher_id=posted.voucher_id):
                logger.info(
                    "voucher_posted",
                    extra={
                        "voucher_number": posted.voucher_number,
                        "voucher_type": posted.voucher_type.value,
                        "seq": posted.seq,
                        "line_count": posted.line_count,
                        "total_debits": str(posted.total_debits),
                        "total_credits": str(posted.total_credits),
                        "reversal_of_id": str(reversal_of_id) if reversal_of_id else None,
                    },
                )

        for listener in self._listeners:
            listener(posted)
        return posted

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check_reversal_target(self, company_id: str, voucher_id: UUID) -> None:
        original = self._journal.voucher(company_id, voucher_id)
        if original is None:
            raise VoucherNotFoundError(str(voucher_id), company_id)
        existing = self._journal.reversal_of(company_id, voucher_id)
        if existing is not None:
            raise VoucherAlreadyReversedError(str(voucher_id), str(existing))

    def _validate(
        self,
        company_id: str,
        voucher_type: VoucherType,
        voucher_date: date,
        lines: Sequence[LineSpec],
        metadata: VoucherMetadata,
        apply_policy: bool = True,
    ) -> _ValidatedVoucher:
        # Rule 1
        if len(lines) < 2:
            raise TooFewLinesError(len(lines))

        # Rule 2
        infos = self._chart.ledgers(company_id, [spec.ledger_id for spec in lines])
        for spec in lines:
            info = infos.get(spec.ledger_id)
            if info is None:
                raise LedgerNotFoundError(str(spec.ledger_id), company_id)
            if not info.is_active:
                raise LedgerInactiveError(str(spec.ledger_id))

        # Rule 3
        precision = self._settings.amount_precision
        quantized = [quantize_amount(spec.amount, precision) for spec in lines]
        debits = sum(
            (q for spec, q in zip(lines, quantized) if spec.side == LineSide.DEBIT),
            ZERO,
        )
        credits = sum(
            (q for spec, q in zip(lines, quantized) if spec.side == LineSide.CREDIT),
            ZERO,
        )
        if not within_tolerance(debits, credits, self._settings.balance_tolerance):
            raise UnbalancedVoucherError(
                debits=str(debits),
                credits=str(credits),
                difference=str(debits - credits),
            )

        # Rule 4
        for index, q in enumerate(quantized):
            if q <= ZERO:
                raise InvalidLineAmountError(index, str(lines[index].amount))

        # Rule 5
        if apply_policy:
            violation = self._policies.evaluate(
                voucher_type,
                [(spec, infos[spec.ledger_id]) for spec in lines],
                metadata,
            )
            if violation is not None:
                raise InvalidVoucherShapeError(
                    voucher_type.value, violation.rule, violation.detail
                )

        if metadata.voucher_number is not None and self._journal.voucher_number_exists(
            company_id, metadata.voucher_number
        ):
            raise DuplicateVoucherNumberError(metadata.voucher_number, company_id)

        return _ValidatedVoucher(
            voucher_type=voucher_type,
            voucher_date=voucher_date,
            lines=tuple(
                (spec, infos[spec.ledger_id], q) for spec, q in zip(lines, quantized)
            ),
            metadata=metadata,
            total_debits=debits,
            total_credits=credits,
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def _next_voucher_number(self, company_id: str, voucher_type: VoucherType, year: int) -> str:
        prefix = self._settings.prefix_for(voucher_type)
        sequence = SequenceService.voucher_number_sequence(company_id, prefix, year)
        while True:
            number = self._settings.format_voucher_number(
                voucher_type, year, self._sequences.next_value(sequence)
            )
            # Skip numbers a caller already used explicitly
            if not self._journal.voucher_number_exists(company_id, number):
                return number

    def _write(
        self,
        company_id: str,
        validated: _ValidatedVoucher,
        reversal_of_id: UUID | None,
    ) -> PostedVoucher:
        metadata = validated.metadata
        savepoint = self.session.begin_nested()
        try:
            seq = self._sequences.next_value(SequenceService.VOUCHER)
            number = metadata.voucher_number or self._next_voucher_number(
                company_id, validated.voucher_type, validated.voucher_date.year
            )

            voucher = Voucher(
                id=uuid4(),
                company_id=company_id,
                voucher_number=number,
                voucher_type=validated.voucher_type.value,
                voucher_date=validated.voucher_date,
                narration=metadata.narration,
                party_type=metadata.party_type.value if metadata.party_type else None,
                party_name=metadata.party_name,
                status=VoucherStatus.POSTED.value,
                seq=seq,
                posted_at=self._clock.now(),
                reversal_of_id=reversal_of_id,
                voucher_metadata=metadata.extra,
                created_by_id=self.actor_id,
            )
            self.session.add(voucher)
            for line_seq, (spec, _info, amount) in enumerate(validated.lines):
                self.session.add(
                    JournalLine(
                        company_id=company_id,
                        voucher_id=voucher.id,
                        ledger_id=spec.ledger_id,
                        side=spec.side.value,
                        amount=amount,
                        narration=spec.narration,
                        line_seq=line_seq,
                        created_by_id=self.actor_id,
                    )
                )
            self.session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            savepoint.rollback()
            if metadata.voucher_number is not None:
                raise DuplicateVoucherNumberError(metadata.voucher_number, company_id) from exc
            raise
        except Exception:
            savepoint.rollback()
            raise

        touched = {spec.ledger_id for spec, _, _ in validated.lines}
        self._cache.invalidate(company_id, touched)

        return PostedVoucher(
            voucher_id=voucher.id,
            voucher_number=number,
            voucher_type=validated.voucher_type,
            voucher_date=validated.voucher_date,
            seq=seq,
            total_debits=validated.total_debits,
            total_credits=validated.total_credits,
            line_count=len(validated.lines),
            reversal_of_id=reversal_of_id,
        )
