"""
Module: ledger_kernel.selectors.chart_selector
Responsibility: Read access to the chart of accounts as DTOs: single ledger
    lookups, the flat ledger metadata map used by posting and reports, and
    the Group -> SubGroup -> Ledger tree.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Soft-deleted nodes are never returned.
    - Effective kind, normal side and section are resolved through the
      parent chain at read time.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from ledger_kernel.domain.dtos import GroupNode, LedgerInfo, SubGroupNode
from ledger_kernel.domain.enums import (
    BalanceSheetSection,
    GroupKind,
    LedgerRole,
    NormalSide,
)
from ledger_kernel.models.chart import AccountGroup, AccountSubGroup, Ledger
from ledger_kernel.selectors.base import BaseSelector


def ledger_to_info(ledger: Ledger) -> LedgerInfo:
    """Convert a Ledger row (with parents loaded) into a LedgerInfo DTO."""
    group = ledger.owning_group
    subgroup = ledger.subgroup
    kind = GroupKind(group.kind)
    return LedgerInfo(
        ledger_id=ledger.id,
        company_id=ledger.company_id,
        name=ledger.name,
        kind=kind,
        normal_side=NormalSide(kind.normal_side),
        role=LedgerRole(ledger.role),
        opening_balance=ledger.opening_balance,
        is_active=bool(ledger.is_active),
        group_id=group.id,
        group_name=group.name,
        subgroup_id=subgroup.id if subgroup is not None else None,
        subgroup_name=subgroup.name if subgroup is not None else None,
        section=BalanceSheetSection(subgroup.section) if subgroup is not None else None,
        tax_code=ledger.tax_code,
    )


class ChartSelector(BaseSelector[Ledger]):
    """Read-only chart-of-accounts queries, always scoped by company."""

    def _ledger_query(self, company_id: str):
        return (
            select(Ledger)
            .where(Ledger.company_id == company_id)
            .where(Ledger.deleted_at.is_(None))
            .options(
                selectinload(Ledger.group),
                selectinload(Ledger.subgroup).selectinload(AccountSubGroup.group),
            )
        )

    def ledger(self, company_id: str, ledger_id: UUID) -> LedgerInfo | None:
        row = self.session.execute(
            self._ledger_query(company_id).where(Ledger.id == ledger_id)
        ).scalar_one_or_none()
        return ledger_to_info(row) if row is not None else None

    def ledgers(
        self,
        company_id: str,
        ledger_ids: Iterable[UUID] | None = None,
        active_only: bool = False,
    ) -> dict[UUID, LedgerInfo]:
        """Ledger metadata keyed by id.  Unknown or deleted ids are absent."""
        query = self._ledger_query(company_id)
        if ledger_ids is not None:
            ids = list(set(ledger_ids))
            if not ids:
                return {}
            query = query.where(Ledger.id.in_(ids))
        if active_only:
            query = query.where(Ledger.is_active.is_(True))

        rows = self.session.execute(query).scalars().all()
        return {row.id: ledger_to_info(row) for row in rows}

    def ledgers_by_role(
        self, company_id: str, roles: Iterable[LedgerRole]
    ) -> dict[UUID, LedgerInfo]:
        wanted = {LedgerRole(r).value for r in roles}
        return {
            lid: info
            for lid, info in self.ledgers(company_id).items()
            if info.role.value in wanted
        }

    def find_ledger_by_name(self, company_id: str, name: str) -> LedgerInfo | None:
        key = name.strip().casefold()
        for info in self.ledgers(company_id).values():
            if info.name.strip().casefold() == key:
                return info
        return None

    def hierarchy(self, company_id: str) -> tuple[GroupNode, ...]:
        """
        The Group -> SubGroup -> Ledger tree, each level sorted by name.

        Inactive ledgers are included (flagged by is_active); soft-deleted
        nodes are not.
        """
        groups = self.session.execute(
            select(AccountGroup)
            .where(AccountGroup.company_id == company_id)
            .where(AccountGroup.deleted_at.is_(None))
            .order_by(AccountGroup.name)
        ).scalars().all()

        subgroup_rows = self.session.execute(
            select(AccountSubGroup)
            .where(AccountSubGroup.company_id == company_id)
            .where(AccountSubGroup.deleted_at.is_(None))
        ).scalars().all()
        subgroups_by_group: dict[UUID, list[AccountSubGroup]] = {}
        for sg in subgroup_rows:
            subgroups_by_group.setdefault(sg.group_id, []).append(sg)

        infos = self.ledgers(company_id)
        by_group: dict[UUID, list[LedgerInfo]] = {}
        by_subgroup: dict[UUID, list[LedgerInfo]] = {}
        for info in infos.values():
            if info.subgroup_id is not None:
                by_subgroup.setdefault(info.subgroup_id, []).append(info)
            else:
                by_group.setdefault(info.group_id, []).append(info)

        def _sorted(items: list[LedgerInfo]) -> tuple[LedgerInfo, ...]:
            return tuple(sorted(items, key=lambda i: i.name.casefold()))

        nodes = []
        for group in groups:
            kind = GroupKind(group.kind)
            subgroups = tuple(
                SubGroupNode(
                    subgroup_id=sg.id,
                    name=sg.name,
                    kind=kind,
                    section=BalanceSheetSection(sg.section),
                    ledgers=_sorted(by_subgroup.get(sg.id, [])),
                )
                for sg in sorted(
                    subgroups_by_group.get(group.id, []), key=lambda s: s.name.casefold()
                )
            )
            nodes.append(
                GroupNode(
                    group_id=group.id,
                    name=group.name,
                    kind=kind,
                    normal_side=kind.normal_side,
                    subgroups=subgroups,
                    ledgers=_sorted(by_group.get(group.id, [])),
                )
            )
        return tuple(nodes)
