"""
River Pollution Prediction - Data Schemas
Dataclasses for model inputs/outputs
"""

from dataclasses import asdict, dataclass, field
from typing import List, Dict, Any, Union
from datetime import datetime
from enum import Enum


class WaterQualityLabel(str, Enum):
    """Water quality categories on the 0-100 WQI scale"""
    EXCELLENT = "Excellent"
    GOOD = "Good"
    MODERATE = "Moderate"
    POOR = "Poor"
    VERY_POOR = "Very Poor"


# Display color tag per category
WATER_QUALITY_COLORS = {
    WaterQualityLabel.EXCELLENT: "green",
    WaterQualityLabel.GOOD: "emerald",
    WaterQualityLabel.MODERATE: "yellow",
    WaterQualityLabel.POOR: "orange",
    WaterQualityLabel.VERY_POOR: "red"
}


FEATURE_NAMES = [
    "water_quality_index",
    "flow_velocity",
    "trash_count",
    "temperature",
    "rainfall",
    "ph_value",
    "bod_level",
    "ammoniacal_nitrogen",
    "suspended_solids"
]

# Physical quantities that cannot be below zero
NON_NEGATIVE_FEATURES = (
    "water_quality_index",
    "flow_velocity",
    "trash_count",
    "rainfall",
    "bod_level",
    "ammoniacal_nitrogen",
    "suspended_solids",
)


@dataclass(frozen=True)
class WaterQualityIndex:
    """Composite 0-10 water quality score"""
    index: float
    label: WaterQualityLabel
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "label": self.label.value,
            "color": self.color
        }


@dataclass
class WaterChemistry:
    """Water chemistry readings used for WQI and pollution prediction"""
    ph_value: float = 7.0
    bod_level: float = 1.0  # mg/L
    ammoniacal_nitrogen: float = 0.1  # mg/L
    suspended_solids: float = 25.0  # mg/L

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "WaterChemistry":
        """Build from a request payload, keeping defaults for missing keys"""
        defaults = asdict(cls())
        values = {}
        for name, default in defaults.items():
            value = data.get(name)
            # Blank form fields count as missing
            values[name] = default if value is None or value == "" else float(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class WeatherData:
    """Weather snapshot at the monitoring location"""
    temperature: float  # Celsius
    rainfall: float  # mm
    humidity: float  # %
    wind_speed: float  # m/s
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "rainfall": self.rainfall,
            "humidity": self.humidity,
            "wind_speed": self.wind_speed,
            "timestamp": self.timestamp.isoformat()
        }


@dataclass
class PredictionModelInput:
    """The nine features consumed by the pollution spread model"""
    water_quality_index: float
    flow_velocity: float
    trash_count: float
    temperature: float
    rainfall: float
    ph_value: float
    bod_level: float
    ammoniacal_nitrogen: float
    suspended_solids: float

    def to_feature_vector(self) -> List[float]:
        """Convert to feature vector in FEATURE_NAMES order"""
        return [float(getattr(self, name)) for name in FEATURE_NAMES]

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "PredictionModelInput":
        """Build from a request payload; every feature is required"""
        missing = [name for name in FEATURE_NAMES if name not in data]
        if missing:
            raise ValueError(f"Missing prediction features: {', '.join(missing)}")
        values = {name: float(data[name]) for name in FEATURE_NAMES}
        negative = [name for name in NON_NEGATIVE_FEATURES if values[name] < 0]
        if negative:
            raise ValueError(f"Features must not be negative: {', '.join(negative)}")
        return cls(**values)


@dataclass
class PollutionPrediction:
    """Forecast of how a pollution plume spreads"""
    spread_radius: float  # meters, >= 10
    intensity: float  # 1-10
    direction_vector: Dict[str, float]  # {"x": ..., "y": ...}
    time_to_spread: float  # hours, >= 1
    confidence: float  # 0-1
    feature_importance: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spread_radius": self.spread_radius,
            "intensity": self.intensity,
            "direction_vector": dict(self.direction_vector),
            "time_to_spread": self.time_to_spread,
            "confidence": self.confidence,
            "feature_importance": {k: round(v, 4) for k, v in self.feature_importance.items()}
        }


# Regression tree nodes: a closed two-variant union

@dataclass(frozen=True)
class Leaf:
    """Terminal node holding the mean target of its branch"""
    prediction: float


@dataclass(frozen=True)
class Split:
    """Decision node: rows with feature <= threshold go left"""
    feature_index: int
    threshold: float
    left: "TreeNode"
    right: "TreeNode"


TreeNode = Union[Leaf, Split]
