"""
BaseService -- abstract base for kernel write services.

Services receive a SQLAlchemy ``Session`` and persist through
``session.flush()``.  They never commit or roll back; the caller owns the
transaction (see db.engine.session_scope).
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Common constructor for write services.

    ``actor_id`` is recorded as created_by_id / updated_by_id on rows the
    service writes.
    """

    def __init__(self, session: Session, actor_id: UUID | None = None):
        self.session = session
        self.actor_id = actor_id
