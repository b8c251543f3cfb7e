"""
LedgerConfiguration schema.

Defines the human-authored, reviewable configuration artifact.  YAML is
parsed into these types by the loader, validated by the validator, and
translated into kernel and report inputs by the bridges.

All types are frozen; no executable logic lives here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Posting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PostingConfig:
    """Amount handling and voucher numbering."""

    currency: str = "INR"
    amount_precision: int = 2
    balance_tolerance: Decimal = Decimal("0.01")
    voucher_number_format: str = "{prefix}-{year}-{seq:06d}"
    voucher_prefixes: tuple[tuple[str, str], ...] = ()  # (voucher_type, prefix)


# ---------------------------------------------------------------------------
# Voucher policies (declarative data)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PolicyRuleDef:
    """One shape rule as written in YAML."""

    name: str
    rule: str  # ALL_LINES_MATCH, DEBIT_REQUIRES, CREDIT_REQUIRES, EXACTLY_ONE, REQUIRES_PARTY
    selectors: tuple[str, ...] = ()
    party_type: str | None = None


@dataclass(frozen=True)
class VoucherPolicyDef:
    voucher_type: str
    description: str = ""
    rules: tuple[PolicyRuleDef, ...] = ()


# ---------------------------------------------------------------------------
# Classification and tax
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClassificationDef:
    """Subgroup name to balance-sheet section, plus fallbacks for reports."""

    sections: tuple[tuple[str, str], ...] = ()  # (subgroup name, section)
    default_asset_section: str = "CURRENT_ASSET"
    default_liability_section: str = "CURRENT_LIABILITY"


@dataclass(frozen=True)
class TaxDef:
    tax_codes: tuple[str, ...] = ()
    vat_codes: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReportingDef:
    include_zero_balances: bool = False
    include_inactive: bool = False
    net_profit_label: str = "Net Profit"
    balanced_status: str = "Books are Balanced"
    discrepancy_status: str = "Discrepancy Detected"
    default_timeout_seconds: int | None = None


# ---------------------------------------------------------------------------
# Default chart of accounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerTemplateDef:
    name: str
    role: str = "GENERAL"
    tax_code: str | None = None
    opening_balance: Decimal = Decimal("0")


@dataclass(frozen=True)
class SubGroupTemplateDef:
    name: str
    section: str | None = None
    ledgers: tuple[LedgerTemplateDef, ...] = ()


@dataclass(frozen=True)
class GroupTemplateDef:
    name: str
    kind: str
    subgroups: tuple[SubGroupTemplateDef, ...] = ()
    ledgers: tuple[LedgerTemplateDef, ...] = ()


# ---------------------------------------------------------------------------
# Root artifact
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfiguration:
    """
    The complete, parsed configuration.

    ``checksum`` is the SHA-256 of the canonical JSON form of the source
    YAML and identifies the configuration version in logs.
    """

    config_id: str
    version: int
    posting: PostingConfig = field(default_factory=PostingConfig)
    voucher_policies: tuple[VoucherPolicyDef, ...] = ()
    classification: ClassificationDef = field(default_factory=ClassificationDef)
    tax: TaxDef = field(default_factory=TaxDef)
    reporting: ReportingDef = field(default_factory=ReportingDef)
    chart_template: tuple[GroupTemplateDef, ...] = ()
    checksum: str = ""
