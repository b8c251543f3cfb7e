"""
Config -> Kernel / Reports Bridges.

Functions that convert a LedgerConfiguration into the inputs kernel
services and the reporting layer take.  These live in ledger_config (the
producer) because the kernel must never import ledger_config.

Usage:
    from ledger_config import get_active_config
    from ledger_config.bridges import build_posting_settings, build_policy_table

    config = get_active_config()
    posting = PostingService(
        session,
        settings=build_posting_settings(config),
        policies=build_policy_table(config),
    )
"""

from __future__ import annotations

from ledger_config.schema import LedgerConfiguration
from ledger_kernel.domain.dtos import GroupTemplate, LedgerTemplate, SubGroupTemplate
from ledger_kernel.domain.enums import BalanceSheetSection, GroupKind, LedgerRole
from ledger_kernel.domain.settings import DEFAULT_VOUCHER_PREFIXES, PostingSettings
from ledger_kernel.domain.voucher_policy import (
    LineSelector,
    PolicyRule,
    VoucherPolicy,
    VoucherPolicyTable,
)
from ledger_reports.config import ReportingConfig


def build_posting_settings(config: LedgerConfiguration) -> PostingSettings:
    """Precision, tolerance and numbering for PostingService."""
    prefixes = dict(DEFAULT_VOUCHER_PREFIXES)
    prefixes.update(dict(config.posting.voucher_prefixes))
    return PostingSettings(
        amount_precision=config.posting.amount_precision,
        balance_tolerance=config.posting.balance_tolerance,
        voucher_number_format=config.posting.voucher_number_format,
        voucher_prefixes=prefixes,
    )


def build_policy_table(config: LedgerConfiguration) -> VoucherPolicyTable:
    """The voucher-type policy table, rules kept in declared order."""
    table = VoucherPolicyTable()
    for policy_def in config.voucher_policies:
        rules = tuple(
            PolicyRule(
                name=rule.name,
                rule_type=rule.rule,
                selectors=tuple(LineSelector.parse(s) for s in rule.selectors),
                party_type=rule.party_type,
            )
            for rule in policy_def.rules
        )
        table.register(
            VoucherPolicy(
                voucher_type=policy_def.voucher_type,
                rules=rules,
                description=policy_def.description,
            )
        )
    return table


def build_section_map(config: LedgerConfiguration) -> dict[str, BalanceSheetSection]:
    """Subgroup name -> section, for ChartService."""
    return {
        name: BalanceSheetSection(section)
        for name, section in config.classification.sections
    }


def build_chart_template(config: LedgerConfiguration) -> tuple[GroupTemplate, ...]:
    """The default chart of accounts, for ChartService.initialize_chart."""

    def ledger(defn) -> LedgerTemplate:
        return LedgerTemplate(
            name=defn.name,
            role=LedgerRole(defn.role),
            tax_code=defn.tax_code,
            opening_balance=defn.opening_balance,
        )

    return tuple(
        GroupTemplate(
            name=group.name,
            kind=GroupKind(group.kind),
            subgroups=tuple(
                SubGroupTemplate(
                    name=sg.name,
                    section=BalanceSheetSection(sg.section) if sg.section else None,
                    ledgers=tuple(ledger(l) for l in sg.ledgers),
                )
                for sg in group.subgroups
            ),
            ledgers=tuple(ledger(l) for l in group.ledgers),
        )
        for group in config.chart_template
    )


def build_reporting_config(config: LedgerConfiguration) -> ReportingConfig:
    """ReportingConfig for ReportingService."""
    reporting = config.reporting
    return ReportingConfig(
        balance_tolerance=config.posting.balance_tolerance,
        display_precision=config.posting.amount_precision,
        include_zero_balances=reporting.include_zero_balances,
        include_inactive=reporting.include_inactive,
        default_asset_section=BalanceSheetSection(
            config.classification.default_asset_section
        ),
        default_liability_section=BalanceSheetSection(
            config.classification.default_liability_section
        ),
        net_profit_label=reporting.net_profit_label,
        balanced_status=reporting.balanced_status,
        discrepancy_status=reporting.discrepancy_status,
        tax_codes=config.tax.tax_codes,
        vat_codes=config.tax.vat_codes,
        default_timeout_seconds=reporting.default_timeout_seconds,
    )
