import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Uuid, UniqueConstraint

from foodtracker.database import Base


class NotificationLogEntry(Base):
    """One row per (food item, threshold kind) that has been notified.

    ``food_item_id`` deliberately carries no foreign key: rows left behind by a
    deleted item are never read again.
    """

    __tablename__ = "notification_log"
    __table_args__ = (
        UniqueConstraint("food_item_id", "kind", name="uq_notification_log_item_kind"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    food_item_id = Column(Uuid(as_uuid=True), nullable=False)
    kind = Column(String, nullable=False)
    sent_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
