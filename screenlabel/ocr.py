"""OCR collaborator interface."""

import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass
class OcrResult:
    """Text recognized in a screenshot."""

    text: str
    confidence: float | None = None


class OcrEngine(Protocol):
    """Anything that can read text out of a base64 screenshot."""

    async def recognize(self, image_base64: str) -> OcrResult:
        """Recognize text in the image.

        Args:
            image_base64: Base64-encoded screenshot.

        Returns:
            Recognized text.
        """
        ...


async def recognize_text_safely(engine: OcrEngine | None, image_base64: str) -> str | None:
    """Run OCR, treating any failure as "no text".

    Args:
        engine: OCR engine, or None when OCR is not available.
        image_base64: Base64-encoded screenshot.

    Returns:
        The stripped text, or None if OCR is unavailable, failed or found nothing.
    """
    if engine is None:
        return None
    try:
        result = await engine.recognize(image_base64)
    except Exception as e:
        logger.warning(f"OCR failed, continuing without OCR: {e}")
        return None
    return result.text.strip() or None
