import logging

from fastapi import APIRouter, Depends

from foodtracker.schemas.scan import ScanImageRequest, ScanReceiptResponse, ScanLabelResponse
from foodtracker.services.vision import FoodVision, get_food_vision, validate_image

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/receipt", response_model=ScanReceiptResponse)
async def scan_receipt(
    body: ScanImageRequest,
    vision: FoodVision = Depends(get_food_vision),
):
    data, media_type = validate_image(body.image)
    logger.info(f"Receipt scan: {media_type}, {len(data)} base64 chars")
    items = await vision.extract_receipt_items(data, media_type)
    logger.info(f"Receipt scan found {len(items)} item(s)")
    return ScanReceiptResponse(items=items)


@router.post("/label", response_model=ScanLabelResponse)
async def scan_label(
    body: ScanImageRequest,
    vision: FoodVision = Depends(get_food_vision),
):
    data, media_type = validate_image(body.image)
    logger.info(f"Label scan: {media_type}, {len(data)} base64 chars")
    result = await vision.extract_label_date(data, media_type)
    return ScanLabelResponse(**result)
