"""Runtime settings the kernel needs, supplied by the configuration layer."""

from dataclasses import dataclass, field
from decimal import Decimal

from ledger_kernel.domain.enums import VoucherType

DEFAULT_VOUCHER_PREFIXES: dict[str, str] = {
    VoucherType.EXPENSE.value: "EXP",
    VoucherType.INCOME.value: "INC",
    VoucherType.CONTRA.value: "CON",
    VoucherType.JOURNAL.value: "JV",
    VoucherType.SALE.value: "SAL",
    VoucherType.PURCHASE.value: "PUR",
    VoucherType.POS.value: "POS",
}


@dataclass(frozen=True)
class PostingSettings:
    """
    Amount precision, balance tolerance and voucher numbering.

    voucher_number_format is a str.format template receiving ``prefix``,
    ``year`` and ``seq``.
    """

    amount_precision: int = 2
    balance_tolerance: Decimal = Decimal("0.01")
    voucher_number_format: str = "{prefix}-{year}-{seq:06d}"
    voucher_prefixes: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_VOUCHER_PREFIXES)
    )

    def __post_init__(self) -> None:
        if self.amount_precision < 0:
            raise ValueError("amount_precision must be >= 0")
        if self.balance_tolerance <= 0:
            raise ValueError("balance_tolerance must be positive")

    def prefix_for(self, voucher_type: VoucherType) -> str:
        vt = VoucherType(voucher_type)
        return self.voucher_prefixes.get(vt.value, vt.value[:3])

    def format_voucher_number(self, voucher_type: VoucherType, year: int, seq: int) -> str:
        return self.voucher_number_format.format(
            prefix=self.prefix_for(voucher_type), year=year, seq=seq
        )
