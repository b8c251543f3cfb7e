"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into typed
``ledger_config.schema`` dataclass instances.  Runtime callers go through
``ledger_config.get_active_config()`` rather than calling this directly.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Monetary values are parsed as ``Decimal`` from their string form; YAML
  floats are rejected for tolerance and opening balances.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  source data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    ClassificationDef,
    GroupTemplateDef,
    LedgerConfiguration,
    LedgerTemplateDef,
    PolicyRuleDef,
    PostingConfig,
    ReportingDef,
    SubGroupTemplateDef,
    TaxDef,
    VoucherPolicyDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a monetary value; floats are refused to avoid binary rounding."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"{field_name} must be quoted or an integer, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field_name} is not a decimal: {value!r}") from exc


def _upper(value: str) -> str:
    return str(value).strip().upper()


def parse_posting(data: dict[str, Any]) -> PostingConfig:
    defaults = PostingConfig()
    prefixes = data.get("voucher_prefixes") or {}
    return PostingConfig(
        currency=data.get("currency", defaults.currency),
        amount_precision=int(data.get("amount_precision", defaults.amount_precision)),
        balance_tolerance=parse_decimal(
            data.get("balance_tolerance", str(defaults.balance_tolerance)),
            "posting.balance_tolerance",
        ),
        voucher_number_format=data.get(
            "voucher_number_format", defaults.voucher_number_format
        ),
        voucher_prefixes=tuple(
            (_upper(vt), str(prefix)) for vt, prefix in sorted(prefixes.items())
        ),
    )


def parse_policy_rule(data: dict[str, Any]) -> PolicyRuleDef:
    return PolicyRuleDef(
        name=data["name"],
        rule=_upper(data["rule"]),
        selectors=tuple(data.get("selectors", ())),
        party_type=_upper(data["party_type"]) if data.get("party_type") else None,
    )


def parse_voucher_policy(data: dict[str, Any]) -> VoucherPolicyDef:
    """Parse one ``voucher_policies`` entry."""
    return VoucherPolicyDef(
        voucher_type=_upper(data["voucher_type"]),
        description=data.get("description", ""),
        rules=tuple(parse_policy_rule(r) for r in data.get("rules") or ()),
    )


def parse_classification(data: dict[str, Any]) -> ClassificationDef:
    defaults = ClassificationDef()
    sections = data.get("sections") or {}
    return ClassificationDef(
        sections=tuple((str(name), _upper(section)) for name, section in sections.items()),
        default_asset_section=_upper(
            data.get("default_asset_section", defaults.default_asset_section)
        ),
        default_liability_section=_upper(
            data.get("default_liability_section", defaults.default_liability_section)
        ),
    )


def parse_tax(data: dict[str, Any]) -> TaxDef:
    return TaxDef(
        tax_codes=tuple(_upper(c) for c in data.get("tax_codes") or ()),
        vat_codes=tuple(_upper(c) for c in data.get("vat_codes") or ()),
    )


def parse_reporting(data: dict[str, Any]) -> ReportingDef:
    defaults = ReportingDef()
    timeout = data.get("default_timeout_seconds", defaults.default_timeout_seconds)
    return ReportingDef(
        include_zero_balances=bool(
            data.get("include_zero_balances", defaults.include_zero_balances)
        ),
        include_inactive=bool(data.get("include_inactive", defaults.include_inactive)),
        net_profit_label=data.get("net_profit_label", defaults.net_profit_label),
        balanced_status=data.get("balanced_status", defaults.balanced_status),
        discrepancy_status=data.get("discrepancy_status", defaults.discrepancy_status),
        default_timeout_seconds=int(timeout) if timeout is not None else None,
    )


def parse_ledger_template(data: dict[str, Any]) -> LedgerTemplateDef:
    return LedgerTemplateDef(
        name=data["name"],
        role=_upper(data.get("role", "GENERAL")),
        tax_code=_upper(data["tax_code"]) if data.get("tax_code") else None,
        opening_balance=parse_decimal(
            data.get("opening_balance", 0), f"ledger {data['name']!r} opening_balance"
        ),
    )


def parse_group_template(data: dict[str, Any]) -> GroupTemplateDef:
    """Parse one ``chart_template`` group with its subgroups and ledgers."""
    subgroups = tuple(
        SubGroupTemplateDef(
            name=sg["name"],
            section=_upper(sg["section"]) if sg.get("section") else None,
            ledgers=tuple(parse_ledger_template(l) for l in sg.get("ledgers") or ()),
        )
        for sg in data.get("subgroups") or ()
    )
    return GroupTemplateDef(
        name=data["name"],
        kind=_upper(data["kind"]),
        subgroups=subgroups,
        ledgers=tuple(parse_ledger_template(l) for l in data.get("ledgers") or ()),
    )


def parse_configuration(data: dict[str, Any]) -> LedgerConfiguration:
    """
    Parse a whole configuration document.

    The checksum is computed over ``data`` as given, so two documents that
    parse to the same values but differ in the source still hash apart.
    """
    return LedgerConfiguration(
        config_id=data["config_id"],
        version=int(data["version"]),
        posting=parse_posting(data.get("posting") or {}),
        voucher_policies=tuple(
            parse_voucher_policy(p) for p in data.get("voucher_policies") or ()
        ),
        classification=parse_classification(data.get("classification") or {}),
        tax=parse_tax(data.get("tax") or {}),
        reporting=parse_reporting(data.get("reporting") or {}),
        chart_template=tuple(
            parse_group_template(g) for g in data.get("chart_template") or ()
        ),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
