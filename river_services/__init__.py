"""
External collaborators for river analysis: weather and trash detection.
"""

from .weather import fetch_weather_data, default_weather
from .trash_detection import (
    TrashDetector,
    TrashDetectionResult,
    TrashDetectionError,
    parse_detection_response
)
