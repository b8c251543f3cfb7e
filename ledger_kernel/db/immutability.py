"""
ORM-level immutability enforcement.

Posted vouchers and their journal lines are append-only: a correction is a
new (reversing) voucher, never an edit.  Chart nodes that journal lines
reference cannot be hard-deleted and their group kind cannot change, since
either would silently rewrite historical balances.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database; the listeners here inspect attribute history and raise before
any SQL is sent:

    session.flush()
         |
         v
    [before_flush]  --> hard delete of referenced chart node --> HasPostingsError
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
    [before_delete] --> _check_*_delete() -------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Protected entities:

Entity        | When immutable
--------------|----------------------------------------------
Voucher       | Always (vouchers are created POSTED)
JournalLine   | Always
AccountGroup  | ``kind`` once any descendant ledger has lines
AccountGroup, | Hard delete once any descendant ledger has
AccountSubGroup, Ledger | lines (soft delete goes through ChartService)

Usage:

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once, after models are imported

``unregister_immutability_listeners`` exists for tests that must bypass
enforcement to build corrupted fixtures.
"""

from sqlalchemy import event, exists, inspect, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.exceptions import HasPostingsError, ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _changed_fields(target) -> list[str]:
    insp = inspect(target)
    return [
        attr.key
        for attr in insp.attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


def _block(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type, entity_id=str(entity_id), reason=reason
    )


def _postings_under(connection, *, group_id=None, subgroup_id=None, ledger_id=None) -> bool:
    """True when any journal line references a ledger under the given node."""
    from ledger_kernel.models.chart import AccountSubGroup, Ledger
    from ledger_kernel.models.voucher import JournalLine

    if ledger_id is not None:
        ledger_filter = Ledger.id == ledger_id
    elif subgroup_id is not None:
        ledger_filter = Ledger.subgroup_id == subgroup_id
    else:
        ledger_filter = or_(
            Ledger.group_id == group_id,
            Ledger.subgroup_id.in_(
                select(AccountSubGroup.id).where(AccountSubGroup.group_id == group_id)
            ),
        )

    query = select(
        exists()
        .where(JournalLine.ledger_id == Ledger.id)
        .where(ledger_filter)
    )
    return bool(connection.execute(query).scalar())


# ---------------------------------------------------------------------------
# Vouchers and lines
# ---------------------------------------------------------------------------


def _check_voucher_immutability(mapper, connection, target):
    changed = _changed_fields(target)
    if changed:
        _block(
            "Voucher",
            target.id,
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on posted voucher",
            field=changed[0],
        )


def _check_voucher_delete(mapper, connection, target):
    _block("Voucher", target.id, "DELETE", "Posted vouchers cannot be deleted")


def _check_journal_line_immutability(mapper, connection, target):
    changed = _changed_fields(target)
    if changed:
        _block(
            "JournalLine",
            target.id,
            "UPDATE",
            f"Cannot modify field '{changed[0]}' on posted journal line",
            field=changed[0],
        )


def _check_journal_line_delete(mapper, connection, target):
    _block("JournalLine", target.id, "DELETE", "Posted journal lines cannot be deleted")


# ---------------------------------------------------------------------------
# Chart of accounts
# ---------------------------------------------------------------------------


def _check_group_kind_immutability(mapper, connection, target):
    """A group's kind is frozen once any ledger beneath it has postings."""
    history = get_history(target, "kind")
    if not history.deleted:
        return
    if _postings_under(connection, group_id=target.id):
        _block(
            "AccountGroup",
            target.id,
            "UPDATE",
            "Cannot change kind of a group whose ledgers have postings",
            field="kind",
        )


def _check_chart_deletion_before_flush(session, flush_context, instances):
    """
    Block hard deletes of chart nodes that journal lines reference.

    Runs in before_flush so the deletion is refused before the flush plan
    is finalized.
    """
    from ledger_kernel.models.chart import AccountGroup, AccountSubGroup, Ledger

    for obj in list(session.deleted):
        if isinstance(obj, Ledger):
            entity_type, kwargs = "ledger", {"ledger_id": obj.id}
        elif isinstance(obj, AccountSubGroup):
            entity_type, kwargs = "subgroup", {"subgroup_id": obj.id}
        elif isinstance(obj, AccountGroup):
            entity_type, kwargs = "group", {"group_id": obj.id}
        else:
            continue

        with session.no_autoflush:
            referenced = _postings_under(session.connection(), **kwargs)

        if referenced:
            logger.error(
                "immutability_violation_blocked",
                extra={
                    "entity_type": entity_type,
                    "entity_id": str(obj.id),
                    "operation": "DELETE",
                    "reason": "chart_node_has_postings",
                },
            )
            raise HasPostingsError(entity_type, str(obj.id), "delete")


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent; call after the models are imported and before any flush.
    """
    from ledger_kernel.models.chart import AccountGroup
    from ledger_kernel.models.voucher import JournalLine, Voucher

    listeners = (
        (Session, "before_flush", _check_chart_deletion_before_flush),
        (Voucher, "before_update", _check_voucher_immutability),
        (Voucher, "before_delete", _check_voucher_delete),
        (JournalLine, "before_update", _check_journal_line_immutability),
        (JournalLine, "before_delete", _check_journal_line_delete),
        (AccountGroup, "before_update", _check_group_kind_immutability),
    )
    for target, event_name, fn in listeners:
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)

    logger.info("immutability_listeners_registered")


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    Only for tests that must write rows enforcement would refuse.
    """
    from ledger_kernel.models.chart import AccountGroup
    from ledger_kernel.models.voucher import JournalLine, Voucher

    _safe_remove_listener(Session, "before_flush", _check_chart_deletion_before_flush)
    _safe_remove_listener(Voucher, "before_update", _check_voucher_immutability)
    _safe_remove_listener(Voucher, "before_delete", _check_voucher_delete)
    _safe_remove_listener(JournalLine, "before_update", _check_journal_line_immutability)
    _safe_remove_listener(JournalLine, "before_delete", _check_journal_line_delete)
    _safe_remove_listener(AccountGroup, "before_update", _check_group_kind_immutability)
