"""
River Pollution Prediction - Synthetic Data Pipeline
Generates the training set the spread model is bootstrapped from
"""

import logging
from typing import Dict, Optional, Tuple

import numpy as np

from .schemas import FEATURE_NAMES

logger = logging.getLogger(__name__)

# Uniform sampling range per feature, in FEATURE_NAMES order
FEATURE_RANGES = {
    "water_quality_index": (0.0, 10.0),
    "flow_velocity": (0.0, 5.0),
    "trash_count": (0.0, 100.0),
    "temperature": (15.0, 40.0),
    "rainfall": (0.0, 50.0),
    "ph_value": (6.0, 9.0),
    "bod_level": (0.0, 5.0),
    "ammoniacal_nitrogen": (0.0, 1.0),
    "suspended_solids": (20.0, 120.0),
}

MIN_SPREAD_RADIUS = 10.0


def raw_spread_radius(X: np.ndarray) -> np.ndarray:
    """Linear spread relationship before the 10 m floor"""
    wqi, flow, trash, temp, rain = X[:, 0], X[:, 1], X[:, 2], X[:, 3], X[:, 4]
    return flow * 100 + trash * 0.8 + temp * 2 + rain * 1.5 - wqi * 10


def spread_intensity(ph_value, bod_level, ammoniacal_nitrogen, suspended_solids):
    """Pollution intensity on a 1-10 scale"""
    intensity = (
        5
        + np.abs(ph_value - 7) * 0.8
        + bod_level * 1.2
        + ammoniacal_nitrogen * 3
        + suspended_solids * 0.03
    )
    return np.clip(intensity, 1, 10)


def time_to_spread(spread_radius, flow_velocity, water_quality_index):
    """Hours until the plume reaches spread_radius, at least 1"""
    # Negative velocities are treated as still water
    hours = spread_radius / (np.maximum(flow_velocity, 0) + 0.1) / np.maximum(1, (10 - water_quality_index) / 2)
    return np.maximum(1, hours)


def generate_training_data(
    n_samples: int = 1000,
    rng: Optional[np.random.Generator] = None
) -> Tuple[np.ndarray, Dict[str, np.ndarray]]:
    """
    Generate uniformly sampled feature rows and their targets.

    Args:
        n_samples: Number of rows
        rng: Random generator (default: fresh unseeded generator)

    Returns:
        (X, targets) where X has one column per FEATURE_NAMES entry and
        targets maps spread_radius / intensity / time_to_spread to arrays
    """
    rng = rng if rng is not None else np.random.default_rng()

    columns = []
    for name in FEATURE_NAMES:
        low, high = FEATURE_RANGES[name]
        columns.append(low + rng.random(n_samples) * (high - low))
    X = np.column_stack(columns)

    spread = raw_spread_radius(X)
    targets = {
        "spread_radius": np.maximum(MIN_SPREAD_RADIUS, spread),
        "intensity": spread_intensity(X[:, 5], X[:, 6], X[:, 7], X[:, 8]),
        # Time uses the unfloored radius
        "time_to_spread": time_to_spread(spread, X[:, 1], X[:, 0]),
    }

    logger.info(f"Generated {n_samples} synthetic training rows")
    return X, targets
