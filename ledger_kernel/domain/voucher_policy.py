"""
Voucher policies -- declarative shape rules keyed by voucher type.

Responsibility:
    Decide whether a balanced, well-formed voucher has the shape its type
    requires (a CONTRA voucher only moves money between cash and bank
    ledgers, a SALE voucher carries exactly one receivable line, ...).
    Rules are data, loaded from configuration, and evaluated here; no
    voucher type is special-cased in code.

Architecture position:
    Kernel > Domain -- pure functions over LedgerInfo DTOs, zero I/O.

Rule types:
    ALL_LINES_MATCH   every line's ledger matches one of the selectors
    DEBIT_REQUIRES    at least one debit line matches one of the selectors
    CREDIT_REQUIRES   at least one credit line matches one of the selectors
    EXACTLY_ONE       exactly one line matches one of the selectors
    REQUIRES_PARTY    the voucher names a counterparty of the given type

Selectors are ``kind:<GroupKind>`` or ``role:<LedgerRole>``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from ledger_kernel.domain.dtos import LedgerInfo, LineSpec, VoucherMetadata
from ledger_kernel.domain.enums import GroupKind, LedgerRole, LineSide, PartyType, VoucherType


class RuleType(str, Enum):
    ALL_LINES_MATCH = "ALL_LINES_MATCH"
    DEBIT_REQUIRES = "DEBIT_REQUIRES"
    CREDIT_REQUIRES = "CREDIT_REQUIRES"
    EXACTLY_ONE = "EXACTLY_ONE"
    REQUIRES_PARTY = "REQUIRES_PARTY"


@dataclass(frozen=True)
class LineSelector:
    """Matches a ledger by its group kind or its role."""

    attribute: str
    value: str

    _ATTRIBUTES = ("kind", "role")

    def __post_init__(self) -> None:
        if self.attribute not in self._ATTRIBUTES:
            raise ValueError(f"Unknown selector attribute: {self.attribute}")
        if self.attribute == "kind":
            GroupKind(self.value)
        else:
            LedgerRole(self.value)

    @classmethod
    def parse(cls, text: str) -> LineSelector:
        attribute, sep, value = text.partition(":")
        if not sep:
            raise ValueError(f"Selector must look like 'kind:ASSETS' or 'role:CASH', got {text!r}")
        return cls(attribute=attribute.strip().lower(), value=value.strip().upper())

    def matches(self, ledger: LedgerInfo) -> bool:
        if self.attribute == "kind":
            return GroupKind(ledger.kind).value == self.value
        return LedgerRole(ledger.role).value == self.value

    def __str__(self) -> str:
        return f"{self.attribute}:{self.value}"


@dataclass(frozen=True)
class PolicyRule:
    name: str
    rule_type: RuleType
    selectors: tuple[LineSelector, ...] = ()
    party_type: PartyType | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "rule_type", RuleType(self.rule_type))
        if self.rule_type == RuleType.REQUIRES_PARTY:
            if self.party_type is None:
                raise ValueError(f"Rule {self.name} requires a party_type")
            object.__setattr__(self, "party_type", PartyType(self.party_type))
        elif not self.selectors:
            raise ValueError(f"Rule {self.name} requires at least one selector")

    def _matches_any(self, ledger: LedgerInfo) -> bool:
        return any(s.matches(ledger) for s in self.selectors)

    def _selector_text(self) -> str:
        return " or ".join(str(s) for s in self.selectors)

    def check(
        self,
        lines: Sequence[tuple[LineSpec, LedgerInfo]],
        metadata: VoucherMetadata,
    ) -> str | None:
        """Return a violation detail, or None when the rule holds."""
        if self.rule_type == RuleType.REQUIRES_PARTY:
            if metadata.party_type != self.party_type:
                return f"a {self.party_type.value} counterparty is required"
            return None

        if self.rule_type == RuleType.ALL_LINES_MATCH:
            offending = [l.name for _, l in lines if not self._matches_any(l)]
            if offending:
                return f"ledgers {', '.join(offending)} are not {self._selector_text()}"
            return None

        if self.rule_type in (RuleType.DEBIT_REQUIRES, RuleType.CREDIT_REQUIRES):
            side = LineSide.DEBIT if self.rule_type == RuleType.DEBIT_REQUIRES else LineSide.CREDIT
            if not any(spec.side == side and self._matches_any(l) for spec, l in lines):
                return f"no {side.value.lower()} line on a {self._selector_text()} ledger"
            return None

        count = sum(1 for _, l in lines if self._matches_any(l))
        if count != 1:
            return f"expected exactly one {self._selector_text()} line, found {count}"
        return None


@dataclass(frozen=True)
class VoucherPolicy:
    voucher_type: VoucherType
    rules: tuple[PolicyRule, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "voucher_type", VoucherType(self.voucher_type))


@dataclass(frozen=True)
class PolicyViolation:
    voucher_type: VoucherType
    rule: str
    detail: str


class VoucherPolicyTable:
    """
    Registry of voucher policies by voucher type.

    A voucher type with no registered policy has no shape rules beyond the
    universal posting rules.
    """

    def __init__(self, policies: Iterable[VoucherPolicy] = ()):
        self._policies: dict[VoucherType, VoucherPolicy] = {}
        for policy in policies:
            self.register(policy)

    def register(self, policy: VoucherPolicy) -> None:
        self._policies[policy.voucher_type] = policy

    def policy_for(self, voucher_type: VoucherType) -> VoucherPolicy | None:
        return self._policies.get(VoucherType(voucher_type))

    def evaluate(
        self,
        voucher_type: VoucherType,
        lines: Sequence[tuple[LineSpec, LedgerInfo]],
        metadata: VoucherMetadata,
    ) -> PolicyViolation | None:
        """First violated rule of the voucher type's policy, in declared order."""
        policy = self.policy_for(voucher_type)
        if policy is None:
            return None
        for rule in policy.rules:
            detail = rule.check(lines, metadata)
            if detail is not None:
                return PolicyViolation(
                    voucher_type=policy.voucher_type,
                    rule=rule.name,
                    detail=detail,
                )
        return None
