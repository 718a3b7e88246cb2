"""
Notification endpoints.

  POST /register store (or refresh) the device's push token
  POST /trigger  run one expiration check right now and report the outcome
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from foodtracker.config import get_settings
from foodtracker.database import get_db
from foodtracker.schemas.notification import (
    RegisterPushTokenRequest,
    RegisterPushTokenResponse,
    TriggerResponse,
)
from foodtracker.services.expiration_notifier import ExpirationNotifier
from foodtracker.services.item_store import ItemStore
from foodtracker.services.notification_log import NotificationLog
from foodtracker.services.push import PushDispatcher
from foodtracker.utils.recipient import get_recipient_id

router = APIRouter()


async def get_push_dispatcher():
    async with PushDispatcher() as dispatcher:
        yield dispatcher


@router.post("/register", response_model=RegisterPushTokenResponse)
def register_push_token(
    body: RegisterPushTokenRequest,
    db: Session = Depends(get_db),
    recipient_id: str = Depends(get_recipient_id),
):
    ItemStore(db).register_push_token(recipient_id, body.push_token.strip())
    return RegisterPushTokenResponse(success=True, message="Push token registered")


@router.post("/trigger", response_model=TriggerResponse)
async def trigger_expiration_check(
    db: Session = Depends(get_db),
    dispatcher: PushDispatcher = Depends(get_push_dispatcher),
):
    """Run one full pass over every recipient; NotificationRunError becomes a 503."""
    notifier = ExpirationNotifier(
        items=ItemStore(db),
        log=NotificationLog(db),
        dispatcher=dispatcher,
        concurrency=get_settings().NOTIFY_CONCURRENCY,
    )
    summary = await notifier.run()
    return TriggerResponse(
        success=True,
        message="Notification check completed",
        summary=summary.as_dict(),
    )
