"""
Typed exception hierarchy for the ledger kernel.

Every error a caller can observe is a subclass of ``LedgerKernelError`` and
carries:

  1. a class-level ``code`` (machine-readable, stable across releases), and
  2. structured attributes describing the failure (ids, amounts, rule names).

Callers catch by type and read attributes; they never parse messages.

Hierarchy::

    LedgerKernelError
    |
    +-- NotFoundError
    |   +-- GroupNotFoundError
    |   +-- SubGroupNotFoundError
    |   +-- LedgerNotFoundError
    |   +-- VoucherNotFoundError
    |
    +-- ChartError
    |   +-- InvalidParentError
    |   +-- DuplicateNameError
    |   +-- HasPostingsError
    |   +-- InvalidLedgerError
    |   +-- LedgerInactiveError
    |
    +-- PostingError
    |   +-- InvalidVoucherError
    |   |   +-- TooFewLinesError
    |   |   +-- InvalidLineAmountError
    |   +-- UnbalancedVoucherError
    |   +-- InvalidVoucherShapeError
    |   +-- DuplicateVoucherNumberError
    |
    +-- ReversalError
    |   +-- VoucherAlreadyReversedError
    |
    +-- ImmutabilityViolationError
    +-- InconsistentLedgerError
    +-- ReportCancelledError

All validation errors (NotFound, Chart, Posting) are raised before anything
is written, so the caller can correct the input and resubmit.
``InconsistentLedgerError`` is different: it means an internal invariant no
longer holds (a storage failure or a code defect) and is logged at CRITICAL
before it propagates.
"""


class LedgerKernelError(Exception):
    """Base exception for all ledger kernel errors."""

    code: str = "LEDGER_KERNEL_ERROR"


# Lookup failures


class NotFoundError(LedgerKernelError):
    """Referenced entity is absent or belongs to another company."""

    code: str = "NOT_FOUND"
    entity_type: str = "Entity"

    def __init__(self, entity_id: str, company_id: str | None = None):
        self.entity_id = str(entity_id)
        self.company_id = company_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class GroupNotFoundError(NotFoundError):
    entity_type = "Group"


class SubGroupNotFoundError(NotFoundError):
    entity_type = "SubGroup"


class LedgerNotFoundError(NotFoundError):
    entity_type = "Ledger"


class VoucherNotFoundError(NotFoundError):
    entity_type = "Voucher"


# Chart-of-accounts exceptions


class ChartError(LedgerKernelError):
    """Base exception for chart-of-accounts errors."""

    code: str = "CHART_ERROR"


class InvalidParentError(ChartError):
    """Parent reference is unusable (a ledger with both parents or neither,
    or a subgroup section that does not fit its group's kind)."""

    code: str = "INVALID_PARENT"

    def __init__(self, entity_name: str, reason: str):
        self.entity_name = entity_name
        self.reason = reason
        super().__init__(f"Invalid parent for '{entity_name}': {reason}")


class DuplicateNameError(ChartError):
    """Name collides with an existing node of the same type in the company."""

    code: str = "DUPLICATE_NAME"

    def __init__(self, entity_type: str, name: str, company_id: str):
        self.entity_type = entity_type
        self.name = name
        self.company_id = company_id
        super().__init__(
            f"{entity_type} named '{name}' already exists in company {company_id}"
        )


class HasPostingsError(ChartError):
    """Operation blocked because journal lines reference the entity."""

    code: str = "HAS_POSTINGS"

    def __init__(self, entity_type: str, entity_id: str, operation: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.operation = operation
        super().__init__(
            f"Cannot {operation} {entity_type} {entity_id}: journal lines reference it"
        )


class InvalidLedgerError(ChartError):
    """Ledger attributes are inconsistent (e.g. a TAX ledger without a tax code)."""

    code: str = "INVALID_LEDGER"

    def __init__(self, ledger_name: str, reason: str):
        self.ledger_name = ledger_name
        self.reason = reason
        super().__init__(f"Invalid ledger '{ledger_name}': {reason}")


class LedgerInactiveError(ChartError):
    """Ledger exists but is not active for posting."""

    code: str = "LEDGER_INACTIVE"

    def __init__(self, ledger_id: str):
        self.ledger_id = str(ledger_id)
        super().__init__(f"Ledger is inactive: {ledger_id}")


# Posting exceptions


class PostingError(LedgerKernelError):
    """Base exception for voucher posting errors."""

    code: str = "POSTING_ERROR"


class InvalidVoucherError(PostingError):
    """Voucher is structurally invalid."""

    code: str = "INVALID_VOUCHER"


class TooFewLinesError(InvalidVoucherError):
    """A voucher needs at least two journal lines."""

    code: str = "TOO_FEW_LINES"

    def __init__(self, line_count: int, minimum: int = 2):
        self.line_count = line_count
        self.minimum = minimum
        super().__init__(
            f"Voucher has {line_count} line(s); at least {minimum} are required"
        )


class InvalidLineAmountError(InvalidVoucherError):
    """Line amount is zero or negative."""

    code: str = "INVALID_LINE_AMOUNT"

    def __init__(self, line_index: int, amount: str):
        self.line_index = line_index
        self.amount = amount
        super().__init__(
            f"Line {line_index} has amount {amount}; amounts must be greater than zero"
        )


class UnbalancedVoucherError(PostingError):
    """Voucher debits do not equal credits within tolerance."""

    code: str = "UNBALANCED_VOUCHER"

    def __init__(self, debits: str, credits: str, difference: str):
        self.debits = debits
        self.credits = credits
        self.difference = difference
        super().__init__(
            f"Unbalanced voucher: debits={debits}, credits={credits}, "
            f"difference={difference}"
        )


class InvalidVoucherShapeError(PostingError):
    """Voucher violates the policy registered for its voucher type."""

    code: str = "INVALID_VOUCHER_SHAPE"

    def __init__(self, voucher_type: str, rule: str, detail: str):
        self.voucher_type = voucher_type
        self.rule = rule
        self.detail = detail
        super().__init__(f"{voucher_type} voucher violates rule '{rule}': {detail}")


class DuplicateVoucherNumberError(PostingError):
    """Voucher number is already used in this company."""

    code: str = "DUPLICATE_VOUCHER_NUMBER"

    def __init__(self, voucher_number: str, company_id: str):
        self.voucher_number = voucher_number
        self.company_id = company_id
        super().__init__(
            f"Voucher number {voucher_number} already exists in company {company_id}"
        )


# Reversal exceptions


class ReversalError(LedgerKernelError):
    """Base exception for reversal errors."""

    code: str = "REVERSAL_ERROR"


class VoucherAlreadyReversedError(ReversalError):
    """Voucher already has a reversing voucher."""

    code: str = "VOUCHER_ALREADY_REVERSED"

    def __init__(self, voucher_id: str, reversal_id: str | None = None):
        self.voucher_id = str(voucher_id)
        self.reversal_id = str(reversal_id) if reversal_id else None
        super().__init__(f"Voucher {voucher_id} has already been reversed")


# Integrity exceptions


class ImmutabilityViolationError(LedgerKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class InconsistentLedgerError(LedgerKernelError):
    """
    An internal ledger invariant failed.

    This never happens in correct operation. It signals that the storage
    layer did not honor atomicity or that a code defect exists, and must be
    escalated to an operator rather than handled as a normal API error.
    """

    code: str = "INCONSISTENT"

    def __init__(self, check: str, company_id: str, detail: str, **values: str):
        self.check = check
        self.company_id = company_id
        self.detail = detail
        self.values = values
        super().__init__(f"Ledger inconsistency ({check}) in company {company_id}: {detail}")


class ReportCancelledError(LedgerKernelError):
    """Report computation was cancelled or exceeded its deadline."""

    code: str = "REPORT_CANCELLED"

    def __init__(self, report_type: str, reason: str):
        self.report_type = report_type
        self.reason = reason
        super().__init__(f"Report {report_type} cancelled: {reason}")
