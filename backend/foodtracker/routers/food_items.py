from datetime import date
from uuid import UUID

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from foodtracker.database import get_db
from foodtracker.errors import NotFoundError
from foodtracker.models.food_item import FoodItem
from foodtracker.schemas.food_item import FoodItemCreate, FoodItemUpdate, FoodItemResponse
from foodtracker.services.item_store import ItemStore
from foodtracker.utils.dates import (
    days_until, format_relative_expiration, local_today, notification_tz,
    start_of_day, traffic_light_status,
)
from foodtracker.utils.recipient import get_recipient_id

router = APIRouter()


def _to_response(item: FoodItem, today: date) -> FoodItemResponse:
    resp = FoodItemResponse.model_validate(item)
    days_left = days_until(item.expiration_date, today)
    resp.days_until_expiration = days_left
    resp.status = traffic_light_status(days_left)
    resp.relative_expiration = format_relative_expiration(days_left)
    return resp


def _get_item(store: ItemStore, item_id: UUID, recipient_id: str) -> FoodItem:
    item = store.get_item(item_id, recipient_id)
    if not item:
        raise NotFoundError("Food item")
    return item


@router.get("/", response_model=list[FoodItemResponse])
def list_items(
    db: Session = Depends(get_db),
    recipient_id: str = Depends(get_recipient_id),
):
    today = local_today()
    return [_to_response(i, today) for i in ItemStore(db).list_items(recipient_id)]


@router.post("/", response_model=FoodItemResponse | list[FoodItemResponse], status_code=201)
def create_items(
    body: FoodItemCreate | list[FoodItemCreate] = Body(...),
    db: Session = Depends(get_db),
    recipient_id: str = Depends(get_recipient_id),
):
    """Create one item, or a batch (e.g. everything from a scanned receipt)."""
    batch = body if isinstance(body, list) else [body]
    tz = notification_tz()
    created = ItemStore(db).add_items(
        recipient_id,
        [
            {
                "name": entry.name,
                "purchase_date": start_of_day(entry.purchase_date, tz),
                "expiration_date": start_of_day(entry.expiration_date, tz),
                "is_estimated": entry.is_estimated,
                "image_url": entry.image_url,
            }
            for entry in batch
        ],
    )
    today = local_today(tz)
    responses = [_to_response(i, today) for i in created]
    return responses if isinstance(body, list) else responses[0]


@router.get("/{item_id}", response_model=FoodItemResponse)
def get_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    recipient_id: str = Depends(get_recipient_id),
):
    return _to_response(_get_item(ItemStore(db), item_id, recipient_id), local_today())


@router.api_route("/{item_id}", methods=["PUT", "PATCH"], response_model=FoodItemResponse)
def update_item(
    item_id: UUID,
    body: FoodItemUpdate,
    db: Session = Depends(get_db),
    recipient_id: str = Depends(get_recipient_id),
):
    store = ItemStore(db)
    item = _get_item(store, item_id, recipient_id)
    data = body.model_dump(exclude_unset=True, exclude_none=True)
    if "expiration_date" in data:
        data["expiration_date"] = start_of_day(data["expiration_date"])
        # A date typed in by a person is no longer an estimate.
        data.setdefault("is_estimated", False)
    item = store.update_item(item, data)
    return _to_response(item, local_today())


@router.delete("/{item_id}", status_code=204)
def delete_item(
    item_id: UUID,
    db: Session = Depends(get_db),
    recipient_id: str = Depends(get_recipient_id),
):
    store = ItemStore(db)
    store.delete_item(_get_item(store, item_id, recipient_id))
