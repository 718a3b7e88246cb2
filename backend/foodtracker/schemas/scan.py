from datetime import date
from pydantic import BaseModel


class ScanImageRequest(BaseModel):
    # Base64-encoded PNG, JPEG, GIF or WebP, with or without a data: URI prefix
    image: str


class ExtractedFoodItem(BaseModel):
    name: str
    estimated_expiration_days: int
    confidence: float


class ScanReceiptResponse(BaseModel):
    items: list[ExtractedFoodItem]


class ScanLabelResponse(BaseModel):
    expiration_date: date | None
    confidence: float
