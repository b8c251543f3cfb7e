"""
Balance -- the signed-balance rule and amount arithmetic.

Responsibility:
    The one place that decides how a posted amount moves a ledger's
    balance.  Every balance, movement and report column in the system is
    computed through these functions, so no two consumers can disagree.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Rule:
    balance = opening_balance
              + sum(amount for lines on the normal side)
              - sum(amount for lines on the opposite side)

    A debit-normal ledger (assets, expenses) therefore shows a natural
    positive debit balance and a credit-normal ledger (liabilities,
    income, equity) a natural positive credit balance.
"""

from decimal import ROUND_HALF_UP, Decimal

from ledger_kernel.domain.enums import LineSide, NormalSide

ZERO = Decimal("0")


def quantum(precision: int) -> Decimal:
    """Smallest representable unit for the given number of decimal places."""
    return Decimal(1).scaleb(-precision)


def quantize_amount(amount: Decimal, precision: int) -> Decimal:
    return Decimal(amount).quantize(quantum(precision), rounding=ROUND_HALF_UP)


def signed_amount(side: LineSide | str, amount: Decimal, normal_side: NormalSide | str) -> Decimal:
    """+amount when the line is on the ledger's normal side, else -amount."""
    if LineSide(side).value == NormalSide(normal_side).value:
        return amount
    return -amount


def balance_from_totals(
    opening_balance: Decimal,
    debit_total: Decimal,
    credit_total: Decimal,
    normal_side: NormalSide | str,
) -> Decimal:
    """Apply the signed-balance rule to aggregated debit/credit totals."""
    return (
        opening_balance
        + signed_amount(LineSide.DEBIT, debit_total, normal_side)
        + signed_amount(LineSide.CREDIT, credit_total, normal_side)
    )


def trial_balance_columns(balance: Decimal, normal_side: NormalSide | str) -> tuple[Decimal, Decimal]:
    """
    Place a signed balance into (debit, credit) columns.

    A non-negative balance goes on the normal side; a balance that has
    flipped sign goes on the opposite column as a positive magnitude.
    """
    side = NormalSide(normal_side)
    on_debit = (side == NormalSide.DEBIT) == (balance >= ZERO)
    if on_debit:
        return abs(balance), ZERO
    return ZERO, abs(balance)


def within_tolerance(left: Decimal, right: Decimal, tolerance: Decimal) -> bool:
    """True when |left - right| is strictly below the tolerance."""
    return abs(left - right) < tolerance
