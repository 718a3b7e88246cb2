from datetime import date, datetime
from uuid import UUID
from pydantic import BaseModel, Field, field_validator


class FoodItemCreate(BaseModel):
    name: str = Field(min_length=1)
    purchase_date: date
    expiration_date: date
    is_estimated: bool = True
    image_url: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class FoodItemUpdate(BaseModel):
    name: str | None = None
    expiration_date: date | None = None
    is_estimated: bool | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v


class FoodItemResponse(BaseModel):
    id: UUID
    recipient_id: str
    name: str
    purchase_date: datetime
    expiration_date: datetime
    is_estimated: bool
    image_url: str | None
    created_at: datetime
    updated_at: datetime
    days_until_expiration: int | None = None
    status: str | None = None
    relative_expiration: str | None = None

    model_config = {"from_attributes": True}
