"""
Trash Detection Service
Counts and categorizes floating debris in a river frame with Gemini Vision

The vision model is a black box returning a count, categories and a short
environmental impact assessment. No configured model, or a reply that
cannot be interpreted, means "nothing detected"; a failed API call raises.
"""

import io
import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

import google.generativeai as genai
import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_MODEL = 'gemini-2.0-flash'

TRASH_PROMPT = """You are an environmental analyst inspecting a frame from a river monitoring video.

Count the visible pieces of trash or debris floating in or along the water, and
classify them into categories (plastic, metal, glass, organic, paper, other).

Return ONLY this JSON structure:
{
    "count": 3,
    "categories": ["plastic", "organic"],
    "analysis": "One or two sentences on the likely environmental impact."
}

If no trash is visible, return a count of 0 and an empty category list."""

KNOWN_CATEGORIES = ("plastic", "metal", "glass", "organic", "paper")


class TrashDetectionError(Exception):
    """Raised when the vision model call itself fails"""


@dataclass
class TrashDetectionResult:
    count: int = 0
    categories: List[str] = field(default_factory=list)
    analysis: str = ""
    text: str = ""


def encode_frame_jpeg(frame, quality: int = 90) -> bytes:
    """JPEG-encode the RGB channels of an RGBA river_ai Frame"""
    rgb = np.ascontiguousarray(frame.pixels[..., :3])
    buffer = io.BytesIO()
    Image.fromarray(rgb).save(buffer, format='JPEG', quality=quality)
    return buffer.getvalue()


def parse_detection_response(text: str) -> TrashDetectionResult:
    """
    Interpret the model reply.

    Prefers a fenced or bare JSON object; otherwise scrapes a count and
    known category words from free text.
    """
    text = (text or "").strip()
    if not text:
        return TrashDetectionResult(text=text)

    match = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL) or \
        re.search(r"\{.*\}", text, re.DOTALL)
    if match:
        payload = match.group(1) if match.re.groups else match.group(0)
        try:
            parsed = json.loads(payload)
            categories = parsed.get('categories') or []
            if isinstance(categories, str):
                categories = [categories]
            elif not isinstance(categories, (list, tuple)):
                categories = []
            return TrashDetectionResult(
                count=max(0, int(parsed.get('count') or 0)),
                categories=[str(c).lower() for c in categories],
                analysis=str(parsed.get('analysis') or ''),
                text=text
            )
        except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Could not parse trash detection JSON: {e}")

    count_match = re.search(r"(\d+)\s+(?:pieces? of\s+)?(trash|items?|debris)", text, re.IGNORECASE)
    found = re.findall("(" + "|".join(KNOWN_CATEGORIES) + ")", text, re.IGNORECASE)
    categories = list(dict.fromkeys(c.lower() for c in found))

    return TrashDetectionResult(
        count=int(count_match.group(1)) if count_match else 0,
        categories=categories,
        text=text
    )


class TrashDetector:
    """
    Gemini Vision wrapper for trash counting.
    Pass `model` to inject a preconfigured (or fake) generative model.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_MODEL,
        model=None
    ):
        self.model_name = model_name
        self.model = model
        if self.model is None:
            self._init_gemini(api_key)

    def _init_gemini(self, api_key: Optional[str]):
        """Initialize Gemini Vision model"""
        if not api_key:
            logger.warning("GOOGLE_API_KEY not set. Trash detection will report no detections.")
            return

        genai.configure(api_key=api_key)
        self.model = genai.GenerativeModel(self.model_name)
        logger.info(f"Trash detection initialized with {self.model_name}")

    @property
    def is_configured(self) -> bool:
        return self.model is not None

    def detect(self, frame) -> TrashDetectionResult:
        """
        Count trash in one frame.

        Raises:
            TrashDetectionError: if the model call fails
        """
        if self.model is None:
            return TrashDetectionResult()

        image_part = {'mime_type': 'image/jpeg', 'data': encode_frame_jpeg(frame)}
        try:
            response = self.model.generate_content(
                [TRASH_PROMPT, image_part],
                generation_config={'temperature': 0.4, 'max_output_tokens': 2048}
            )
        except Exception as e:
            logger.error(f"Gemini API Error: {e}")
            raise TrashDetectionError(f"Trash detection failed: {e}") from e

        try:
            text = response.text
        except ValueError:
            # Blocked or empty candidate
            text = ''

        result = parse_detection_response(text)
        logger.info(f"Trash detection: {result.count} items {result.categories}")
        return result
