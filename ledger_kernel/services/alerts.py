"""
Operator alerts for ledger invariant failures.

An inconsistency is never corrected silently.  It is logged once at
CRITICAL with ``alert: true`` (the hook log shippers route to paging) and
the exception is returned for the caller to raise.
"""

from logging import Logger

from ledger_kernel.exceptions import InconsistentLedgerError


def escalate_inconsistency(
    logger: Logger,
    check: str,
    company_id: str,
    detail: str,
    **values: str,
) -> InconsistentLedgerError:
    error = InconsistentLedgerError(check, company_id, detail, **values)
    logger.critical(
        "ledger_inconsistency_detected",
        extra={
            "alert": True,
            "check": check,
            "company_id": company_id,
            "detail": detail,
            **values,
        },
    )
    return error
