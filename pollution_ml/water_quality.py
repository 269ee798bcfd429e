"""
River Pollution Prediction - Water Quality Index
Weighted scoring of four water chemistry parameters
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from .schemas import WaterQualityIndex, WaterQualityLabel, WATER_QUALITY_COLORS

logger = logging.getLogger(__name__)

# Weight factors for each parameter (sum to 1.0)
PH_WEIGHT = 0.25
BOD_WEIGHT = 0.35
NITROGEN_WEIGHT = 0.25
SOLIDS_WEIGHT = 0.15

# Lower bounds on the 0-100 scale, checked in order
LABEL_THRESHOLDS = [
    (80, WaterQualityLabel.EXCELLENT),
    (60, WaterQualityLabel.GOOD),
    (40, WaterQualityLabel.MODERATE),
    (20, WaterQualityLabel.POOR),
]

MONITORED_STATES = [
    "Johor",
    "Kedah",
    "Kelantan",
    "Melaka",
    "Negeri Sembilan",
    "Pahang",
    "Perak",
    "Perlis",
    "Pulau Pinang",
    "Sabah",
    "Sarawak",
    "Selangor",
    "Terengganu",
    "Kuala Lumpur",
    "Labuan",
    "Putrajaya"
]

# Multipliers applied to (bod, nh3n, ss) per regional profile
STATE_ADJUSTMENTS = {
    # Urban areas
    "Selangor": (1.2, 1.3, 1.2),
    "Kuala Lumpur": (1.2, 1.3, 1.2),
    "Putrajaya": (1.2, 1.3, 1.2),
    # East coast, monsoon runoff
    "Pahang": (0.9, 1.0, 1.4),
    "Kelantan": (0.9, 1.0, 1.4),
    "Terengganu": (0.9, 1.0, 1.4),
    # Less developed catchments
    "Sabah": (0.8, 0.7, 0.9),
    "Sarawak": (0.8, 0.7, 0.9),
    # Coastal urban
    "Pulau Pinang": (1.1, 1.2, 1.0),
    "Melaka": (1.1, 1.2, 1.0),
}


def ph_sub_index(ph_value: float) -> float:
    if 6.5 <= ph_value <= 8.5:
        return 100.0
    if 6.0 <= ph_value <= 9.0:
        return 70.0
    if 5.0 <= ph_value <= 10.0:
        return 40.0
    return 10.0


def calculate_water_quality_index(
    ph_value: float,
    bod_level: float,
    ammoniacal_nitrogen: float,
    suspended_solids: float
) -> WaterQualityIndex:
    """
    Calculate the Water Quality Index from chemistry readings.

    Args:
        ph_value: pH
        bod_level: Biochemical oxygen demand (mg/L)
        ammoniacal_nitrogen: NH3-N (mg/L)
        suspended_solids: Suspended solids (mg/L)

    Returns:
        WaterQualityIndex with a 0-10 index, label and color tag
    """
    # Sub-indices on a 0-100 scale, higher is better
    ph_index = ph_sub_index(ph_value)
    bod_index = max(0.0, 100 - bod_level * 20)
    nitrogen_index = max(0.0, 100 - ammoniacal_nitrogen * 80)
    solids_index = max(0.0, 100 - suspended_solids * 0.5)

    wqi = (
        ph_index * PH_WEIGHT
        + bod_index * BOD_WEIGHT
        + nitrogen_index * NITROGEN_WEIGHT
        + solids_index * SOLIDS_WEIGHT
    )

    label = WaterQualityLabel.VERY_POOR
    for lower_bound, candidate in LABEL_THRESHOLDS:
        if wqi >= lower_bound:
            label = candidate
            break

    return WaterQualityIndex(
        index=round(wqi / 10, 1),
        label=label,
        color=WATER_QUALITY_COLORS[label]
    )


def generate_state_water_quality(rng: Optional[np.random.Generator] = None) -> List[Dict]:
    """
    Generate mock regional water chemistry with its WQI.
    Used to populate dashboards before real sampling data is available.
    """
    rng = rng if rng is not None else np.random.default_rng()
    rows = []

    for state in MONITORED_STATES:
        bod_factor, nitrogen_factor, solids_factor = STATE_ADJUSTMENTS.get(state, (1.0, 1.0, 1.0))

        ph_value = 6.5 + rng.random() * 2
        bod_level = (1 + rng.random() * 3) * bod_factor
        ammoniacal_nitrogen = (0.1 + rng.random() * 0.4) * nitrogen_factor
        suspended_solids = (25 + rng.random() * 75) * solids_factor

        # Keep within realistic ranges
        ph_value = min(max(ph_value, 6.0), 9.0)
        bod_level = min(max(bod_level, 0.5), 6.0)
        ammoniacal_nitrogen = min(max(ammoniacal_nitrogen, 0.1), 1.0)
        suspended_solids = min(max(suspended_solids, 20.0), 150.0)

        wqi = calculate_water_quality_index(
            ph_value, bod_level, ammoniacal_nitrogen, suspended_solids
        )
        rows.append({
            "state": state,
            "ph_value": round(ph_value, 2),
            "bod_level": round(bod_level, 2),
            "ammoniacal_nitrogen": round(ammoniacal_nitrogen, 3),
            "suspended_solids": round(suspended_solids, 1),
            "water_quality_index": wqi.to_dict()
        })

    logger.debug(f"Generated water quality for {len(rows)} states")
    return rows
