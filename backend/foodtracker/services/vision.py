"""
FoodVision: Claude vision integration for receipt and label scanning.

Both calls can be slow and can fail; callers get ``ImageProcessingError`` for
anything that goes wrong after the image has been accepted.
"""

import base64
import binascii
import json
import logging
import re
from datetime import date
from functools import lru_cache

import anthropic

from foodtracker.config import get_settings
from foodtracker.errors import ErrorCodes, ImageProcessingError, ValidationError

logger = logging.getLogger(__name__)

# Base64 prefixes of the magic bytes for the formats we accept
IMAGE_SIGNATURES = {
    "iVBORw0KGgo": "image/png",
    "/9j/": "image/jpeg",
    "R0lGOD": "image/gif",
    "UklGR": "image/webp",
}

RECEIPT_PROMPT = """\
Analyze this shopping receipt image and extract all food items.
For each food item, provide:
1. The item name (normalized, e.g., "Milk" not "2% MILK 1GAL")
2. Estimated days until expiration based on typical shelf life

Return as JSON array:
[
  { "name": "string", "estimatedExpirationDays": number, "confidence": 0-1 }
]

Only include food items, not household products or non-perishables.
If no food items are found, return an empty array. Return ONLY the JSON."""

LABEL_PROMPT = """\
Analyze this product label/packaging image and extract the expiration date.
Look for: "Best By", "Use By", "Exp", "BB", or similar date indicators.

Return as JSON:
{
  "expirationDate": "YYYY-MM-DD" or null if not found,
  "confidence": 0-1
}
Return ONLY the JSON."""


def strip_data_uri(image: str) -> str:
    return re.sub(r"^data:image/\w+;base64,", "", image.strip())


def detect_media_type(image_base64: str) -> str | None:
    for prefix, media_type in IMAGE_SIGNATURES.items():
        if image_base64.startswith(prefix):
            return media_type
    return None


def validate_image(image: str, max_size_mb: float | None = None) -> tuple[str, str]:
    """
    Check a client-supplied image and return (base64 data, media type).
    Raises ValidationError with INVALID_IMAGE_DATA for anything unusable.
    """
    # "/9j/" is how base64 JPEG data starts, so only other leading slashes are paths
    if image.startswith(("file://", "content://")) or (image.startswith("/") and not image.startswith("/9j/")):
        raise ValidationError(
            "Received file path instead of base64-encoded image data. "
            "Please convert the image to base64 before sending.",
            code=ErrorCodes.INVALID_IMAGE_DATA,
        )

    data = strip_data_uri(image)
    if len(data) < 100:
        raise ValidationError("Image data is too short", code=ErrorCodes.INVALID_IMAGE_DATA)

    media_type = detect_media_type(data)
    if media_type is None:
        raise ValidationError(
            "Invalid image data. Expected base64-encoded PNG, JPEG, GIF, or WebP image.",
            code=ErrorCodes.INVALID_IMAGE_DATA,
        )

    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Image data is not valid base64", code=ErrorCodes.INVALID_IMAGE_DATA)

    max_size_mb = max_size_mb or get_settings().MAX_IMAGE_SIZE_MB
    if len(raw) > max_size_mb * 1024 * 1024:
        raise ValidationError(
            f"Image is larger than {max_size_mb} MB",
            code=ErrorCodes.INVALID_IMAGE_DATA,
        )
    return data, media_type


def _extract_json(text: str, opening: str, closing: str):
    """Pull the first JSON array/object out of a model reply; None if absent."""
    text = text.strip()
    m = re.search(r"```(?:json)?\s*([\s\S]*?)```", text)
    if m:
        text = m.group(1).strip()
    m = re.search(re.escape(opening) + r"[\s\S]*" + re.escape(closing), text)
    if not m:
        return None
    return json.loads(m.group(0))


def _confidence(value) -> float:
    try:
        return min(1.0, max(0.0, float(value)))
    except (TypeError, ValueError):
        return 0.0


class FoodVision:
    """Image extraction powered by the Anthropic Claude API."""

    def __init__(self):
        settings = get_settings()
        self.model = settings.CLAUDE_MODEL
        self.api_key = settings.ANTHROPIC_API_KEY
        self._client = None

    @property
    def client(self):
        if self._client is None and self.api_key:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def _call_claude_with_image(
        self, prompt: str, image_base64: str, media_type: str, max_tokens: int = 1000
    ) -> str:
        if not self.client:
            raise ImageProcessingError("Anthropic API key not configured")
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                messages=[{
                    "role": "user",
                    "content": [
                        {"type": "image", "source": {"type": "base64", "media_type": media_type, "data": image_base64}},
                        {"type": "text", "text": prompt},
                    ],
                }],
            )
        except anthropic.APIError as e:
            logger.error(f"Claude vision call failed: {e}")
            raise ImageProcessingError("Image extraction service failed") from e

        if not response.content:
            raise ImageProcessingError("No response from image extraction service")
        return response.content[0].text

    async def extract_receipt_items(self, image_base64: str, media_type: str) -> list[dict]:
        text = await self._call_claude_with_image(RECEIPT_PROMPT, image_base64, media_type)
        try:
            raw_items = _extract_json(text, "[", "]")
        except json.JSONDecodeError as e:
            raise ImageProcessingError("Failed to process receipt image") from e
        if raw_items is None:
            return []

        items = []
        for raw in raw_items:
            if not isinstance(raw, dict) or not str(raw.get("name") or "").strip():
                continue
            try:
                days = int(raw.get("estimatedExpirationDays"))
            except (TypeError, ValueError):
                logger.warning(f"Dropping receipt item without shelf life: {raw!r}")
                continue
            items.append({
                "name": str(raw["name"]).strip(),
                "estimated_expiration_days": max(0, days),
                "confidence": _confidence(raw.get("confidence")),
            })
        return items

    async def extract_label_date(self, image_base64: str, media_type: str) -> dict:
        text = await self._call_claude_with_image(LABEL_PROMPT, image_base64, media_type, max_tokens=500)
        try:
            result = _extract_json(text, "{", "}")
        except json.JSONDecodeError as e:
            raise ImageProcessingError("Failed to process label image") from e
        if not isinstance(result, dict):
            return {"expiration_date": None, "confidence": 0.0}

        expiration = None
        raw_date = result.get("expirationDate")
        if raw_date:
            try:
                expiration = date.fromisoformat(str(raw_date))
            except ValueError:
                logger.warning(f"Label extraction returned an unparseable date: {raw_date!r}")
        return {
            "expiration_date": expiration,
            "confidence": _confidence(result.get("confidence")) if expiration else 0.0,
        }


@lru_cache
def get_food_vision() -> FoodVision:
    return FoodVision()
