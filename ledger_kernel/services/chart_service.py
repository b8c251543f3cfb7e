"""
ChartService -- write side of the chart of accounts.

Responsibility:
    Create, update, reclassify and soft-delete groups, subgroups and
    ledgers for a company, and seed a company's default chart.

Architecture position:
    Kernel > Services.  Reads through ChartSelector / LedgerSelector;
    flushes, never commits.

Invariants enforced:
    - Names are unique per node type within a company (trimmed,
      case-insensitive), among non-deleted nodes.
    - A ledger has exactly one parent (InvalidParentError otherwise).
    - A subgroup's balance-sheet section is fixed at creation: explicit, or
      looked up by exact name in the configured classification map.
    - A group's kind cannot change, and a ledger cannot move to a parent of
      another kind, once journal lines exist beneath it.
    - Nothing referenced by journal lines is deleted (HasPostingsError).
      Deletion is always soft (deleted_at).

Failure modes:
    - GroupNotFoundError / SubGroupNotFoundError / LedgerNotFoundError
      for absent, deleted or other-company references.
    - DuplicateNameError, InvalidParentError, InvalidLedgerError,
      HasPostingsError.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    ChartInitResult,
    GroupNode,
    GroupTemplate,
    LedgerInfo,
    LedgerTemplate,
)
from ledger_kernel.domain.enums import BalanceSheetSection, GroupKind, LedgerRole
from ledger_kernel.exceptions import (
    DuplicateNameError,
    GroupNotFoundError,
    HasPostingsError,
    InvalidLedgerError,
    InvalidParentError,
    LedgerNotFoundError,
    SubGroupNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.chart import AccountGroup, AccountSubGroup, Ledger, chart_name_key
from ledger_kernel.selectors.chart_selector import ChartSelector, ledger_to_info
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.balance_resolver import BalanceCache
from ledger_kernel.services.base import BaseService

logger = get_logger("services.chart")

_ASSET_SECTIONS = frozenset(
    {BalanceSheetSection.CURRENT_ASSET, BalanceSheetSection.FIXED_ASSET}
)
_LIABILITY_SECTIONS = frozenset(
    {BalanceSheetSection.CURRENT_LIABILITY, BalanceSheetSection.LONG_TERM_LIABILITY}
)


def _money(value: Decimal | int | str) -> Decimal:
    if isinstance(value, float):
        raise TypeError("Monetary amounts must not be floats")
    return value if isinstance(value, Decimal) else Decimal(str(value))


class ChartService(BaseService[Ledger]):
    """
    Chart-of-accounts mutations for one session.

    ``section_map`` maps subgroup names to balance-sheet sections; it is
    consulted only when a subgroup is created without an explicit section.
    """

    def __init__(
        self,
        session: Session,
        section_map: Mapping[str, BalanceSheetSection] | None = None,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
    ):
        super().__init__(session, actor_id)
        self._section_map = {
            chart_name_key(name): BalanceSheetSection(section)
            for name, section in (section_map or {}).items()
        }
        self._clock = clock or SystemClock()
        self._selector = ChartSelector(session)
        self._ledgers = LedgerSelector(session)
        self._cache = BalanceCache.for_session(session)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _group(self, company_id: str, group_id: UUID) -> AccountGroup:
        group = self.session.get(AccountGroup, group_id)
        if group is None or group.company_id != company_id or group.is_deleted:
            raise GroupNotFoundError(str(group_id), company_id)
        return group

    def _subgroup(self, company_id: str, subgroup_id: UUID) -> AccountSubGroup:
        subgroup = self.session.get(AccountSubGroup, subgroup_id)
        if subgroup is None or subgroup.company_id != company_id or subgroup.is_deleted:
            raise SubGroupNotFoundError(str(subgroup_id), company_id)
        return subgroup

    def _ledger(self, company_id: str, ledger_id: UUID) -> Ledger:
        ledger = self.session.get(Ledger, ledger_id)
        if ledger is None or ledger.company_id != company_id or ledger.is_deleted:
            raise LedgerNotFoundError(str(ledger_id), company_id)
        return ledger

    def _find_by_name(self, model, company_id: str, name: str):
        query = (
            select(model)
            .where(model.company_id == company_id)
            .where(model.deleted_at.is_(None))
            .where(model.name_key == chart_name_key(name))
        )
        return self.session.execute(query).scalars().first()

    def _ensure_unique(self, model, entity_type: str, company_id: str, name: str, exclude_id: UUID | None = None) -> None:
        existing = self._find_by_name(model, company_id, name)
        if existing is not None and existing.id != exclude_id:
            raise DuplicateNameError(entity_type, name.strip(), company_id)

    def _insert(self, node, entity_type: str, company_id: str) -> None:
        """Flush a new node; a concurrent insert of the same name surfaces as DuplicateNameError."""
        savepoint = self.session.begin_nested()
        try:
            self.session.add(node)
            self.session.flush()
        except IntegrityError as exc:
            savepoint.rollback()
            raise DuplicateNameError(entity_type, node.name, company_id) from exc
        savepoint.commit()

    @staticmethod
    def _clean_name(entity: str, name: str) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValueError(f"{entity} name must not be blank")
        return cleaned

    def _ledger_ids_under_group(self, company_id: str, group_id: UUID) -> list[UUID]:
        subgroup_ids = select(AccountSubGroup.id).where(AccountSubGroup.group_id == group_id)
        return list(
            self.session.execute(
                select(Ledger.id)
                .where(Ledger.company_id == company_id)
                .where(or_(Ledger.group_id == group_id, Ledger.subgroup_id.in_(subgroup_ids)))
            ).scalars()
        )

    def _live_subgroups(self, company_id: str, group_id: UUID) -> list[AccountSubGroup]:
        return list(
            self.session.execute(
                select(AccountSubGroup)
                .where(AccountSubGroup.company_id == company_id)
                .where(AccountSubGroup.group_id == group_id)
                .where(AccountSubGroup.deleted_at.is_(None))
            ).scalars()
        )

    def _live_ledgers(self, company_id: str, ledger_ids: list[UUID]) -> list[Ledger]:
        if not ledger_ids:
            return []
        return list(
            self.session.execute(
                select(Ledger)
                .where(Ledger.company_id == company_id)
                .where(Ledger.id.in_(ledger_ids))
                .where(Ledger.deleted_at.is_(None))
            ).scalars()
        )

    def _ledger_ids_under_subgroup(self, company_id: str, subgroup_id: UUID) -> list[UUID]:
        return list(
            self.session.execute(
                select(Ledger.id)
                .where(Ledger.company_id == company_id)
                .where(Ledger.subgroup_id == subgroup_id)
            ).scalars()
        )

    # ------------------------------------------------------------------
    # Groups and subgroups
    # ------------------------------------------------------------------

    def resolve_section(self, name: str, kind: GroupKind) -> BalanceSheetSection:
        """Configured section for a subgroup name, by exact (normalized) match."""
        section = self._section_map.get(chart_name_key(name), BalanceSheetSection.UNCLASSIFIED)
        if section in _ASSET_SECTIONS and kind != GroupKind.ASSETS:
            return BalanceSheetSection.UNCLASSIFIED
        if section in _LIABILITY_SECTIONS and kind != GroupKind.LIABILITIES:
            return BalanceSheetSection.UNCLASSIFIED
        return section

    def create_group(self, company_id: str, name: str, kind: GroupKind) -> UUID:
        name = self._clean_name("Group", name)
        kind = GroupKind(kind)
        self._ensure_unique(AccountGroup, "Group", company_id, name)

        group = AccountGroup(
            company_id=company_id,
            name=name,
            kind=kind.value,
            created_by_id=self.actor_id,
        )
        self._insert(group, "Group", company_id)
        logger.info(
            "group_created",
            extra={"company_id": company_id, "group_id": str(group.id), "kind": kind.value},
        )
        return group.id

    def create_subgroup(
        self,
        company_id: str,
        name: str,
        parent_group_id: UUID,
        section: BalanceSheetSection | None = None,
    ) -> UUID:
        name = self._clean_name("SubGroup", name)
        group = self._group(company_id, parent_group_id)
        kind = GroupKind(group.kind)
        self._ensure_unique(AccountSubGroup, "SubGroup", company_id, name)

        if section is None:
            resolved = self.resolve_section(name, kind)
        else:
            resolved = BalanceSheetSection(section)
            if resolved in _ASSET_SECTIONS and kind != GroupKind.ASSETS:
                raise InvalidParentError(name, f"section {resolved.value} requires an ASSETS group")
            if resolved in _LIABILITY_SECTIONS and kind != GroupKind.LIABILITIES:
                raise InvalidParentError(name, f"section {resolved.value} requires a LIABILITIES group")

        subgroup = AccountSubGroup(
            company_id=company_id,
            name=name,
            group_id=group.id,
            section=resolved.value,
            created_by_id=self.actor_id,
        )
        self._insert(subgroup, "SubGroup", company_id)
        logger.info(
            "subgroup_created",
            extra={
                "company_id": company_id,
                "subgroup_id": str(subgroup.id),
                "group_id": str(group.id),
                "section": resolved.value,
            },
        )
        return subgroup.id

    def change_group_kind(self, company_id: str, group_id: UUID, kind: GroupKind) -> None:
        """Reclassify a group.  Rejected once any ledger beneath it has postings."""
        group = self._group(company_id, group_id)
        kind = GroupKind(kind)
        if GroupKind(group.kind) == kind:
            return
        if self._ledgers.has_postings(company_id, self._ledger_ids_under_group(company_id, group_id)):
            raise HasPostingsError("Group", str(group_id), "change kind of")

        group.kind = kind.value
        group.updated_by_id = self.actor_id
        for subgroup in self._live_subgroups(company_id, group_id):
            if subgroup.section != BalanceSheetSection.UNCLASSIFIED.value:
                subgroup.section = self.resolve_section(subgroup.name, kind).value
        self.session.flush()
        self._cache.invalidate_company(company_id)
        logger.info(
            "group_kind_changed",
            extra={"company_id": company_id, "group_id": str(group_id), "kind": kind.value},
        )

    # ------------------------------------------------------------------
    # Ledgers
    # ------------------------------------------------------------------

    def _resolve_parent(
        self,
        company_id: str,
        name: str,
        group_id: UUID | None,
        subgroup_id: UUID | None,
    ) -> tuple[AccountGroup | None, AccountSubGroup | None, GroupKind]:
        if group_id is not None and subgroup_id is not None:
            raise InvalidParentError(name, "both a group and a subgroup were supplied")
        if group_id is None and subgroup_id is None:
            raise InvalidParentError(name, "neither a group nor a subgroup was supplied")
        if group_id is not None:
            group = self._group(company_id, group_id)
            return group, None, GroupKind(group.kind)
        subgroup = self._subgroup(company_id, subgroup_id)
        return None, subgroup, GroupKind(subgroup.group.kind)

    @staticmethod
    def _check_tax(name: str, role: LedgerRole, tax_code: str | None) -> None:
        if role == LedgerRole.TAX and not tax_code:
            raise InvalidLedgerError(name, "TAX ledgers require a tax_code")
        if role != LedgerRole.TAX and tax_code:
            raise InvalidLedgerError(name, "only TAX ledgers carry a tax_code")

    def create_ledger(
        self,
        company_id: str,
        name: str,
        *,
        group_id: UUID | None = None,
        subgroup_id: UUID | None = None,
        opening_balance: Decimal | int | str = Decimal("0"),
        role: LedgerRole = LedgerRole.GENERAL,
        tax_code: str | None = None,
        is_active: bool = True,
    ) -> UUID:
        """
        Create a ledger under exactly one parent.

        The normal side is not an input: it follows the parent group's kind.
        """
        name = self._clean_name("Ledger", name)
        group, subgroup, _kind = self._resolve_parent(company_id, name, group_id, subgroup_id)
        role = LedgerRole(role)
        tax_code = tax_code.strip().upper() if tax_code else None
        self._check_tax(name, role, tax_code)
        self._ensure_unique(Ledger, "Ledger", company_id, name)

        ledger = Ledger(
            company_id=company_id,
            name=name,
            group_id=group.id if group is not None else None,
            subgroup_id=subgroup.id if subgroup is not None else None,
            opening_balance=_money(opening_balance),
            role=role.value,
            tax_code=tax_code,
            is_active=is_active,
            created_by_id=self.actor_id,
        )
        self._insert(ledger, "Ledger", company_id)
        logger.info(
            "ledger_created",
            extra={
                "company_id": company_id,
                "ledger_id": str(ledger.id),
                "role": role.value,
                "opening_balance": str(ledger.opening_balance),
            },
        )
        return ledger.id

    def update_ledger(
        self,
        company_id: str,
        ledger_id: UUID,
        *,
        name: str | None = None,
        opening_balance: Decimal | int | str | None = None,
        is_active: bool | None = None,
        role: LedgerRole | None = None,
        tax_code: str | None = None,
        group_id: UUID | None = None,
        subgroup_id: UUID | None = None,
    ) -> LedgerInfo:
        """
        Change ledger attributes.  Arguments left as None are unchanged.

        Moving a ledger (group_id or subgroup_id) to a parent of a different
        kind is rejected once the ledger has postings.  Changing the opening
        balance invalidates cached balances of the ledger.
        """
        ledger = self._ledger(company_id, ledger_id)
        changed: list[str] = []

        with LogContext.bind(company_id=company_id):
            if name is not None and name.strip() != ledger.name:
                name = self._clean_name("Ledger", name)
                self._ensure_unique(Ledger, "Ledger", company_id, name, exclude_id=ledger.id)
                ledger.name = name
                changed.append("name")

            if group_id is not None or subgroup_id is not None:
                group, subgroup, new_kind = self._resolve_parent(
                    company_id, ledger.name, group_id, subgroup_id
                )
                if new_kind != ledger.kind and self._ledgers.has_postings(company_id, [ledger.id]):
                    raise HasPostingsError("Ledger", str(ledger_id), "reclassify")
                ledger.group_id = group.id if group is not None else None
                ledger.subgroup_id = subgroup.id if subgroup is not None else None
                ledger.group = group
                ledger.subgroup = subgroup
                changed.append("parent")

            new_role = LedgerRole(role) if role is not None else LedgerRole(ledger.role)
            new_tax = tax_code.strip().upper() if tax_code else ledger.tax_code
            if role is not None and new_role != LedgerRole.TAX and tax_code is None:
                new_tax = None
            if role is not None or tax_code is not None:
                self._check_tax(ledger.name, new_role, new_tax)
                ledger.role = new_role.value
                ledger.tax_code = new_tax
                changed.append("role")

            if opening_balance is not None:
                ledger.opening_balance = _money(opening_balance)
                changed.append("opening_balance")

            if is_active is not None and bool(is_active) != bool(ledger.is_active):
                ledger.is_active = bool(is_active)
                changed.append("is_active")

            if changed:
                ledger.updated_by_id = self.actor_id
                self.session.flush()
                self._cache.invalidate(company_id, [ledger.id])
                logger.info(
                    "ledger_updated",
                    extra={"ledger_id": str(ledger_id), "fields": changed},
                )

        return ledger_to_info(ledger)

    def deactivate_ledger(self, company_id: str, ledger_id: UUID) -> LedgerInfo:
        return self.update_ledger(company_id, ledger_id, is_active=False)

    def activate_ledger(self, company_id: str, ledger_id: UUID) -> LedgerInfo:
        return self.update_ledger(company_id, ledger_id, is_active=True)

    # ------------------------------------------------------------------
    # Deletion (always soft)
    # ------------------------------------------------------------------

    def delete_ledger(self, company_id: str, ledger_id: UUID) -> None:
        ledger = self._ledger(company_id, ledger_id)
        if self._ledgers.has_postings(company_id, [ledger.id]):
            logger.warning(
                "ledger_delete_blocked",
                extra={"company_id": company_id, "ledger_id": str(ledger_id)},
            )
            raise HasPostingsError("Ledger", str(ledger_id), "delete")

        ledger.deleted_at = self._clock.now()
        ledger.updated_by_id = self.actor_id
        self.session.flush()
        self._cache.invalidate(company_id, [ledger.id])
        logger.info("ledger_deleted", extra={"company_id": company_id, "ledger_id": str(ledger_id)})

    def delete_subgroup(self, company_id: str, subgroup_id: UUID) -> None:
        """Soft-delete a subgroup and its ledgers, unless any ledger has postings."""
        subgroup = self._subgroup(company_id, subgroup_id)
        ledger_ids = self._ledger_ids_under_subgroup(company_id, subgroup_id)
        if self._ledgers.has_postings(company_id, ledger_ids):
            raise HasPostingsError("SubGroup", str(subgroup_id), "delete")

        now = self._clock.now()
        for ledger in self._live_ledgers(company_id, ledger_ids):
            ledger.deleted_at = now
        subgroup.deleted_at = now
        self.session.flush()
        self._cache.invalidate(company_id, ledger_ids)
        logger.info(
            "subgroup_deleted",
            extra={"company_id": company_id, "subgroup_id": str(subgroup_id), "ledger_count": len(ledger_ids)},
        )

    def delete_group(self, company_id: str, group_id: UUID) -> None:
        """Soft-delete a group with its subgroups and ledgers, unless anything beneath has postings."""
        group = self._group(company_id, group_id)
        ledger_ids = self._ledger_ids_under_group(company_id, group_id)
        if self._ledgers.has_postings(company_id, ledger_ids):
            raise HasPostingsError("Group", str(group_id), "delete")

        now = self._clock.now()
        for ledger in self._live_ledgers(company_id, ledger_ids):
            ledger.deleted_at = now
        for subgroup in self._live_subgroups(company_id, group_id):
            subgroup.deleted_at = now
        group.deleted_at = now
        self.session.flush()
        self._cache.invalidate(company_id, ledger_ids)
        logger.info(
            "group_deleted",
            extra={"company_id": company_id, "group_id": str(group_id), "ledger_count": len(ledger_ids)},
        )

    # ------------------------------------------------------------------
    # Company setup and views
    # ------------------------------------------------------------------

    def _ensure_ledger(
        self,
        company_id: str,
        template: LedgerTemplate,
        *,
        group_id: UUID | None = None,
        subgroup_id: UUID | None = None,
    ) -> bool:
        if self._find_by_name(Ledger, company_id, template.name) is not None:
            return False
        self.create_ledger(
            company_id,
            template.name,
            group_id=group_id,
            subgroup_id=subgroup_id,
            opening_balance=template.opening_balance,
            role=template.role,
            tax_code=template.tax_code,
        )
        return True

    def initialize_chart(self, company_id: str, template: Sequence[GroupTemplate]) -> ChartInitResult:
        """
        Create the default chart for a company.

        Idempotent: nodes that already exist (by name) are left untouched,
        so re-running only fills in what is missing.
        """
        groups = subgroups = ledgers = 0
        with LogContext.bind(company_id=company_id):
            for group_tpl in template:
                group = self._find_by_name(AccountGroup, company_id, group_tpl.name)
                if group is None:
                    group_id = self.create_group(company_id, group_tpl.name, group_tpl.kind)
                    groups += 1
                else:
                    group_id = group.id

                for ledger_tpl in group_tpl.ledgers:
                    ledgers += self._ensure_ledger(company_id, ledger_tpl, group_id=group_id)

                for sub_tpl in group_tpl.subgroups:
                    subgroup = self._find_by_name(AccountSubGroup, company_id, sub_tpl.name)
                    if subgroup is None:
                        subgroup_id = self.create_subgroup(
                            company_id, sub_tpl.name, group_id, section=sub_tpl.section
                        )
                        subgroups += 1
                    else:
                        subgroup_id = subgroup.id
                    for ledger_tpl in sub_tpl.ledgers:
                        ledgers += self._ensure_ledger(company_id, ledger_tpl, subgroup_id=subgroup_id)

            result = ChartInitResult(
                groups_created=groups,
                subgroups_created=subgroups,
                ledgers_created=ledgers,
            )
            logger.info(
                "chart_initialized",
                extra={
                    "groups_created": groups,
                    "subgroups_created": subgroups,
                    "ledgers_created": ledgers,
                },
            )
        return result

    def list_hierarchy(self, company_id: str) -> tuple[GroupNode, ...]:
        return self._selector.hierarchy(company_id)
