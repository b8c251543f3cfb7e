"""
Reporting Configuration Schema.

Report formatting options, balance-sheet section fallbacks and the tax
code sets used by the tax and VAT summaries.  Balance-sheet placement
uses the subgroup ``section`` attribute; the defaults here apply only to
ledgers without a classified subgroup.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Self

from ledger_kernel.domain.enums import BalanceSheetSection
from ledger_kernel.logging_config import get_logger

logger = get_logger("reports.config")


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting layer.

    Controls zero-row filtering, status wording, the balance tolerance
    used for "is balanced" checks, and tax code sets.
    """

    # Tolerance for balanced checks; matches the posting tolerance
    balance_tolerance: Decimal = Decimal("0.01")

    # Rounding precision for amounts
    display_precision: int = 2

    # Whether to include ledgers with zero balance in reports
    include_zero_balances: bool = False

    # Whether to include inactive ledgers
    include_inactive: bool = False

    # Balance sheet
    default_asset_section: BalanceSheetSection = BalanceSheetSection.CURRENT_ASSET
    default_liability_section: BalanceSheetSection = BalanceSheetSection.CURRENT_LIABILITY
    net_profit_label: str = "Net Profit"
    balanced_status: str = "Books are Balanced"
    discrepancy_status: str = "Discrepancy Detected"

    # Tax summaries
    tax_codes: tuple[str, ...] = ("CGST", "SGST", "IGST", "VAT")
    vat_codes: tuple[str, ...] = ("VAT",)

    # Timeout applied when a caller passes no cancellation token
    default_timeout_seconds: int | None = None

    def __post_init__(self):
        if self.display_precision < 0:
            raise ValueError("display_precision cannot be negative")
        if self.balance_tolerance <= 0:
            raise ValueError("balance_tolerance must be positive")
        self.default_asset_section = BalanceSheetSection(self.default_asset_section)
        self.default_liability_section = BalanceSheetSection(self.default_liability_section)
        if not set(self.vat_codes) <= set(self.tax_codes):
            raise ValueError("vat_codes must be a subset of tax_codes")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary."""
        data = dict(data)
        if "balance_tolerance" in data:
            data["balance_tolerance"] = Decimal(str(data["balance_tolerance"]))
        for key in ("tax_codes", "vat_codes"):
            if key in data:
                data[key] = tuple(data[key])
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
