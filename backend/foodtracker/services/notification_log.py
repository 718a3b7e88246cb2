"""
Notification Log: which (item, threshold kind) pairs have been notified.

``record`` is a single conditional insert backed by the
``uq_notification_log_item_kind`` constraint, so two overlapping runs can never
both claim the same pair.
"""

import enum
import logging
from uuid import UUID

from sqlalchemy import insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from foodtracker.models.notification_log import NotificationLogEntry

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class LogResult(str, enum.Enum):
    RECORDED = "recorded"
    ALREADY_EXISTS = "already_exists"


class NotificationLog:
    def __init__(self, db: Session):
        self.db = db

    def exists(self, item_id: UUID, kind: str) -> bool:
        return (
            self.db.query(NotificationLogEntry.id)
            .filter(
                NotificationLogEntry.food_item_id == item_id,
                NotificationLogEntry.kind == kind,
            )
            .first()
            is not None
        )

    def record(self, item_id: UUID, kind: str) -> LogResult:
        dialect = self.db.get_bind().dialect.name
        dialect_insert = _UPSERT_DIALECTS.get(dialect)

        try:
            if dialect_insert is not None:
                stmt = (
                    dialect_insert(NotificationLogEntry)
                    .values(food_item_id=item_id, kind=kind)
                    .on_conflict_do_nothing(index_elements=["food_item_id", "kind"])
                )
                result = self.db.execute(stmt)
                self.db.commit()
                inserted = result.rowcount == 1
            else:
                try:
                    self.db.execute(
                        insert(NotificationLogEntry).values(food_item_id=item_id, kind=kind)
                    )
                    self.db.commit()
                    inserted = True
                except IntegrityError:
                    self.db.rollback()
                    inserted = False
        except SQLAlchemyError:
            self.db.rollback()
            raise

        if not inserted:
            logger.info(f"Notification {kind} for item {item_id} was already recorded")
            return LogResult.ALREADY_EXISTS
        return LogResult.RECORDED
