"""
Shared fixtures: synthetic RGBA frames, a small seeded predictor and
fake external collaborators.
"""

from datetime import datetime
from unittest.mock import MagicMock

import numpy as np
import pytest

from pollution_ml.model_inference import PollutionPredictor
from pollution_ml.schemas import WeatherData
from river_ai.frames import Frame
from river_services.trash_detection import TrashDetectionResult


def make_frame(height=64, width=64, value=128, timestamp=0.0):
    """Solid gray opaque frame"""
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[..., :3] = value
    pixels[..., 3] = 255
    return Frame(pixels, timestamp)


def gray_frame(luma):
    """Frame whose R, G and B channels all equal the 2-D `luma` array"""
    luma = np.asarray(luma, dtype=np.uint8)
    pixels = np.empty(luma.shape + (4,), dtype=np.uint8)
    pixels[..., :3] = luma[..., None]
    pixels[..., 3] = 255
    return Frame(pixels)


@pytest.fixture
def solid_frame():
    return make_frame()


@pytest.fixture
def frame_factory():
    return make_frame


@pytest.fixture(scope="session")
def trained_predictor():
    predictor = PollutionPredictor(
        n_trees=8,
        max_depth=8,
        n_samples=200,
        random_state=42,
        rng=np.random.default_rng(0)
    )
    return predictor.initialize()


@pytest.fixture
def fake_weather():
    weather = WeatherData(
        temperature=28.0,
        rainfall=4.0,
        humidity=80.0,
        wind_speed=3.0,
        timestamp=datetime(2024, 1, 1)
    )
    return MagicMock(return_value=weather)


@pytest.fixture
def fake_detector():
    detector = MagicMock()
    detector.is_configured = True
    detector.detect.return_value = TrashDetectionResult(
        count=3,
        categories=["plastic", "organic"],
        analysis="Plastic bags near the bank."
    )
    return detector


@pytest.fixture
def unready_backend():
    backend = MagicMock()
    backend.is_ready = False
    backend.initialize.return_value = False
    return backend
