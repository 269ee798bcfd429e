"""
River Pollution Prediction
Water Quality Index and Random-Forest pollution spread forecasting
"""

__version__ = "1.0.0"

from .schemas import (
    FEATURE_NAMES,
    PredictionModelInput,
    PollutionPrediction,
    WaterChemistry,
    WaterQualityIndex,
    WaterQualityLabel,
    WeatherData
)
from .water_quality import calculate_water_quality_index, generate_state_water_quality
from .random_forest import RandomForestRegressor
from .model_inference import PollutionPredictor

__all__ = [
    'FEATURE_NAMES',
    'PredictionModelInput',
    'PollutionPrediction',
    'WaterChemistry',
    'WaterQualityIndex',
    'WaterQualityLabel',
    'WeatherData',
    'calculate_water_quality_index',
    'generate_state_water_quality',
    'RandomForestRegressor',
    'PollutionPredictor'
]
