"""
Item Store: persistence for recipients and their food items.

Every call takes the recipient explicitly; the HTTP layer supplies the single
implicit tenant for now.
"""

import logging
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.orm import Session

from foodtracker.models.food_item import FoodItem
from foodtracker.models.notification_log import NotificationLogEntry
from foodtracker.models.recipient import Recipient
from foodtracker.utils.dates import add_days, start_of_day

logger = logging.getLogger(__name__)


class ItemStore:
    def __init__(self, db: Session, tz=None):
        self.db = db
        self.tz = tz

    # ── Recipients ───────────────────────────────────────────────────

    def ensure_recipient(self, recipient_id: str) -> Recipient:
        recipient = self.db.get(Recipient, recipient_id)
        if recipient is None:
            recipient = Recipient(id=recipient_id)
            self.db.add(recipient)
            self.db.flush()
        return recipient

    def register_push_token(self, recipient_id: str, push_token: str) -> Recipient:
        recipient = self.ensure_recipient(recipient_id)
        if recipient.push_token != push_token:
            recipient.push_token = push_token
            recipient.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(recipient)
        logger.info(f"Push token registered for recipient {recipient_id}")
        return recipient

    # ── Items ────────────────────────────────────────────────────────

    def find_eligible_items(
        self,
        today: date,
        window_days: int,
        recipient_id: str | None = None,
    ) -> list[tuple[FoodItem, str]]:
        """
        Items expiring between the start of ``today`` and the end of
        ``today + window_days``, paired with their recipient's push token.
        Recipients without a token are excluded.
        """
        window_start = start_of_day(today, self.tz)
        window_end = start_of_day(add_days(today, window_days + 1), self.tz)

        q = (
            self.db.query(FoodItem, Recipient.push_token)
            .join(Recipient, FoodItem.recipient_id == Recipient.id)
            .filter(
                Recipient.push_token.isnot(None),
                Recipient.push_token != "",
                FoodItem.expiration_date >= window_start,
                FoodItem.expiration_date < window_end,
            )
        )
        if recipient_id is not None:
            q = q.filter(FoodItem.recipient_id == recipient_id)
        return [(item, token) for item, token in q.order_by(FoodItem.expiration_date.asc()).all()]

    def existing_item_ids(self, item_ids: list[UUID]) -> set[UUID]:
        """The subset of ``item_ids`` that still exists in the store."""
        if not item_ids:
            return set()
        rows = self.db.query(FoodItem.id).filter(FoodItem.id.in_(item_ids)).all()
        return {row[0] for row in rows}

    def list_items(self, recipient_id: str) -> list[FoodItem]:
        return (
            self.db.query(FoodItem)
            .filter(FoodItem.recipient_id == recipient_id)
            .order_by(FoodItem.expiration_date.asc())
            .all()
        )

    def get_item(self, item_id: UUID, recipient_id: str) -> FoodItem | None:
        return self.db.query(FoodItem).filter(
            FoodItem.id == item_id, FoodItem.recipient_id == recipient_id
        ).first()

    def add_items(self, recipient_id: str, items: list[dict]) -> list[FoodItem]:
        """Insert one or more items in a single transaction."""
        self.ensure_recipient(recipient_id)
        created = [FoodItem(recipient_id=recipient_id, **data) for data in items]
        self.db.add_all(created)
        self.db.commit()
        for item in created:
            self.db.refresh(item)
        logger.info(f"Created {len(created)} food item(s) for recipient {recipient_id}")
        return created

    def update_item(self, item: FoodItem, changes: dict) -> FoodItem:
        for k, v in changes.items():
            setattr(item, k, v)
        item.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, item: FoodItem) -> None:
        """Delete an item together with its notification history."""
        self.db.execute(
            delete(NotificationLogEntry).where(NotificationLogEntry.food_item_id == item.id)
        )
        self.db.delete(item)
        self.db.commit()
