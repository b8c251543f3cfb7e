"""
ReversalService -- corrections as new vouchers.

Responsibility:
    Posted vouchers are never edited.  A correction is a new voucher of the
    same type whose lines mirror the original with every side flipped,
    linked back through reversal_of_id.

Architecture position:
    Kernel > Services.  Builds the mirror lines and delegates the write to
    PostingService, so the reversal passes the same balance and ledger
    checks as any other voucher.

Failure modes:
    - VoucherNotFoundError: original absent or in another company.
    - VoucherAlreadyReversedError: a reversal already exists (also backed by
      the UNIQUE constraint on reversal_of_id).
    - LedgerInactiveError: a ledger of the original has since been
      deactivated.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from ledger_kernel.domain.dtos import LineSpec, PostedVoucher, VoucherMetadata
from ledger_kernel.exceptions import VoucherNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.posting_service import PostingService

logger = get_logger("services.reversal")


@dataclass(frozen=True)
class ReversalResult:
    original_voucher_id: UUID
    original_voucher_number: str
    reversal: PostedVoucher


class ReversalService:
    """Posts reversing vouchers through a PostingService."""

    def __init__(self, posting_service: PostingService):
        self._posting = posting_service
        self._journal = JournalSelector(posting_service.session)

    def reverse_voucher(
        self,
        company_id: str,
        voucher_id: UUID,
        reversal_date: date | None = None,
        reason: str | None = None,
    ) -> ReversalResult:
        """
        Post the mirror image of ``voucher_id``.

        ``reversal_date`` defaults to the original's date so that balances
        as of any later date return to their pre-posting values.
        """
        original = self._journal.voucher(company_id, voucher_id)
        if original is None:
            raise VoucherNotFoundError(str(voucher_id), company_id)

        lines = [
            LineSpec(
                ledger_id=line.ledger_id,
                side=line.side.flipped(),
                amount=line.amount,
                narration=line.narration,
            )
            for line in original.lines
        ]
        narration = reason or f"Reversal of {original.voucher_number}"
        posted = self._posting.post_voucher(
            company_id,
            original.voucher_type,
            reversal_date or original.voucher_date,
            lines,
            VoucherMetadata(
                narration=narration,
                party_type=original.party_type,
                party_name=original.party_name,
                extra={"reversal_reason": reason} if reason else None,
            ),
            reversal_of_id=original.voucher_id,
        )

        logger.info(
            "voucher_reversed",
            extra={
                "company_id": company_id,
                "original_voucher_id": str(original.voucher_id),
                "reversal_voucher_id": str(posted.voucher_id),
            },
        )
        return ReversalResult(
            original_voucher_id=original.voucher_id,
            original_voucher_number=original.voucher_number,
            reversal=posted,
        )
