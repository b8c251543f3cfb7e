"""
Configuration Validator (``ledger_config.validator``).

Responsibility
--------------
Validates a parsed ``LedgerConfiguration`` before it is handed to any
bridge, so that a bad YAML edit fails at load time rather than on the
first posting.

Invariants enforced
-------------------
* Enum-valued fields (voucher types, rule types, selectors, party types,
  sections, group kinds, ledger roles) name real enum members.
* At most one policy per voucher type.
* Amount precision is non-negative; tolerance is positive.
* Every TAX ledger in the chart template carries a configured tax code,
  and VAT codes are a subset of tax codes.
* Template names are unique per level.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``) -> the
  configuration MUST NOT be used.
* Warnings are reported but do not block.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ledger_config.schema import LedgerConfiguration
from ledger_kernel.domain.enums import (
    BalanceSheetSection,
    GroupKind,
    LedgerRole,
    PartyType,
    VoucherType,
)
from ledger_kernel.domain.voucher_policy import LineSelector, RuleType


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` is ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def _is_member(enum_cls, value) -> bool:
    try:
        enum_cls(value)
    except ValueError:
        return False
    return True


def validate_configuration(config: LedgerConfiguration) -> ConfigValidationResult:
    """Validate a configuration; a result with errors must not be used."""
    result = ConfigValidationResult()

    _validate_posting(config, result)
    _validate_policies(config, result)
    _validate_classification(config, result)
    _validate_tax(config, result)
    _validate_chart_template(config, result)

    return result


def _validate_posting(config: LedgerConfiguration, result: ConfigValidationResult) -> None:
    posting = config.posting
    if posting.amount_precision < 0:
        result.add_error("posting.amount_precision must be >= 0")
    if posting.balance_tolerance <= 0:
        result.add_error("posting.balance_tolerance must be positive")
    for voucher_type, _prefix in posting.voucher_prefixes:
        if not _is_member(VoucherType, voucher_type):
            result.add_error(f"posting.voucher_prefixes: unknown voucher type {voucher_type!r}")
    try:
        posting.voucher_number_format.format(prefix="X", year=2000, seq=1)
    except (KeyError, IndexError, ValueError) as exc:
        result.add_error(f"posting.voucher_number_format is invalid: {exc}")


def _validate_policies(config: LedgerConfiguration, result: ConfigValidationResult) -> None:
    seen: set[str] = set()
    for policy in config.voucher_policies:
        if not _is_member(VoucherType, policy.voucher_type):
            result.add_error(f"Unknown voucher type in policy: {policy.voucher_type!r}")
            continue
        if policy.voucher_type in seen:
            result.add_error(f"Duplicate policy for voucher type {policy.voucher_type}")
        seen.add(policy.voucher_type)

        for rule in policy.rules:
            where = f"Policy {policy.voucher_type} rule {rule.name!r}"
            if not _is_member(RuleType, rule.rule):
                result.add_error(f"{where}: unknown rule type {rule.rule!r}")
                continue
            if rule.rule == RuleType.REQUIRES_PARTY.value:
                if not _is_member(PartyType, rule.party_type):
                    result.add_error(f"{where}: party_type must be CUSTOMER or VENDOR")
                continue
            if not rule.selectors:
                result.add_error(f"{where}: at least one selector is required")
            for text in rule.selectors:
                try:
                    LineSelector.parse(text)
                except ValueError as exc:
                    result.add_error(f"{where}: {exc}")

    missing = [vt.value for vt in VoucherType if vt.value not in seen]
    if missing:
        result.add_warning(f"No policy for voucher types: {', '.join(missing)}")


def _validate_classification(
    config: LedgerConfiguration, result: ConfigValidationResult
) -> None:
    classification = config.classification
    names: set[str] = set()
    for name, section in classification.sections:
        key = name.strip().casefold()
        if key in names:
            result.add_error(f"classification.sections: duplicate subgroup name {name!r}")
        names.add(key)
        if not _is_member(BalanceSheetSection, section):
            result.add_error(f"classification.sections: unknown section {section!r} for {name!r}")

    if classification.default_asset_section not in (
        BalanceSheetSection.CURRENT_ASSET.value,
        BalanceSheetSection.FIXED_ASSET.value,
    ):
        result.add_error("classification.default_asset_section must be an asset section")
    if classification.default_liability_section not in (
        BalanceSheetSection.CURRENT_LIABILITY.value,
        BalanceSheetSection.LONG_TERM_LIABILITY.value,
    ):
        result.add_error("classification.default_liability_section must be a liability section")


def _validate_tax(config: LedgerConfiguration, result: ConfigValidationResult) -> None:
    unknown = set(config.tax.vat_codes) - set(config.tax.tax_codes)
    if unknown:
        result.add_error(f"tax.vat_codes not in tax.tax_codes: {', '.join(sorted(unknown))}")


def _validate_chart_template(
    config: LedgerConfiguration, result: ConfigValidationResult
) -> None:
    tax_codes = set(config.tax.tax_codes)
    group_names: set[str] = set()
    ledger_names: set[str] = set()

    def check_ledger(ledger, where: str) -> None:
        key = ledger.name.strip().casefold()
        if key in ledger_names:
            result.add_error(f"chart_template: duplicate ledger name {ledger.name!r}")
        ledger_names.add(key)
        if not _is_member(LedgerRole, ledger.role):
            result.add_error(f"{where}: unknown role {ledger.role!r}")
            return
        if ledger.role == LedgerRole.TAX.value:
            if not ledger.tax_code:
                result.add_error(f"{where}: TAX ledger requires a tax_code")
            elif ledger.tax_code not in tax_codes:
                result.add_error(f"{where}: tax_code {ledger.tax_code!r} is not configured")
        elif ledger.tax_code:
            result.add_error(f"{where}: only TAX ledgers carry a tax_code")

    subgroup_names: set[str] = set()
    for group in config.chart_template:
        key = group.name.strip().casefold()
        if key in group_names:
            result.add_error(f"chart_template: duplicate group name {group.name!r}")
        group_names.add(key)
        if not _is_member(GroupKind, group.kind):
            result.add_error(f"chart_template group {group.name!r}: unknown kind {group.kind!r}")

        for ledger in group.ledgers:
            check_ledger(ledger, f"chart_template ledger {ledger.name!r}")
        for subgroup in group.subgroups:
            sg_key = subgroup.name.strip().casefold()
            if sg_key in subgroup_names:
                result.add_error(f"chart_template: duplicate subgroup name {subgroup.name!r}")
            subgroup_names.add(sg_key)
            if subgroup.section is not None and not _is_member(
                BalanceSheetSection, subgroup.section
            ):
                result.add_error(
                    f"chart_template subgroup {subgroup.name!r}: unknown section {subgroup.section!r}"
                )
            for ledger in subgroup.ledgers:
                check_ledger(ledger, f"chart_template ledger {ledger.name!r}")
