"""
River Flow AI - Main Pipeline
Orchestrates one end-to-end analysis of a river monitoring clip

This module coordinates:
1. Frame extraction (up to 5 evenly spaced frames)
2. Depth estimation (brightness per region, every frame)
3. Trash detection (middle frame only)
4. Optical flow and flow metrics (consecutive frame pairs)
5. Water quality index and weather snapshot
6. Pollution spread prediction
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pollution_ml.model_inference import PollutionPredictor
from pollution_ml.schemas import (
    PollutionPrediction,
    PredictionModelInput,
    WaterChemistry,
    WaterQualityIndex,
    WeatherData
)
from pollution_ml.water_quality import calculate_water_quality_index
from river_services.trash_detection import TrashDetectionError, TrashDetector
from river_services.weather import default_weather, fetch_weather_data

from .depth_estimation import build_depth_profile, calculate_flow_metrics
from .flow_backend import FlowBackend, get_backend
from .frames import Frame
from .optical_flow import (
    DEFAULT_WATER_ROI,
    FlowMethod,
    FlowResult,
    RegionOfInterest,
    calculate_optical_flow
)
from .video_frames import DEFAULT_MAX_FRAMES, FrameExtractionError, extract_frames

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Raised when a run cannot complete; no partial result is produced"""


@dataclass
class AnalysisResult:
    """Everything the application renders for one analyzed clip"""
    depth_profile: List[float]
    average_depth: float
    max_depth: float
    average_velocity: float
    flow_magnitude: float
    trash_count: int
    trash_categories: List[str]
    environmental_impact: str
    water_quality: WaterQualityIndex
    weather: WeatherData
    pollution_prediction: PollutionPrediction
    flow_vectors: List[FlowResult] = field(default_factory=list)
    frames_analyzed: int = 0
    river_category: Optional[Dict[str, str]] = None
    analyzed_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict:
        return {
            "depth_profile": list(self.depth_profile),
            "average_depth": self.average_depth,
            "max_depth": self.max_depth,
            "average_velocity": self.average_velocity,
            "flow_magnitude": self.flow_magnitude,
            "flow_vectors": [v.to_dict() for v in self.flow_vectors],
            "trash_count": self.trash_count,
            "trash_categories": list(self.trash_categories),
            "environmental_impact": self.environmental_impact,
            "water_quality": self.water_quality.to_dict(),
            "weather": self.weather.to_dict(),
            "pollution_prediction": self.pollution_prediction.to_dict(),
            "frames_analyzed": self.frames_analyzed,
            "river_category": self.river_category,
            "analyzed_at": self.analyzed_at.isoformat()
        }


def parse_river_category(filename: Optional[str]) -> Optional[Dict[str, str]]:
    """Read '<State>_<River>_...' style upload names"""
    if not filename:
        return None
    parts = Path(filename).stem.split("_")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    return {"state": parts[0], "river": parts[1]}


class RiverVideoAnalyzer:
    """
    Main pipeline for river clip analysis.
    Collaborators are injected so runs can be reproduced under test.
    """

    def __init__(
        self,
        predictor: PollutionPredictor,
        trash_detector: Optional[TrashDetector] = None,
        weather_fetcher: Callable[[Optional[float], Optional[float]], WeatherData] = fetch_weather_data,
        frame_extractor: Callable[[str, int], List[Frame]] = extract_frames,
        backend: Optional[FlowBackend] = None,
        max_frames: int = DEFAULT_MAX_FRAMES,
        flow_method=FlowMethod.DENSE,
        roi: Optional[RegionOfInterest] = DEFAULT_WATER_ROI
    ):
        """
        Initialize the pipeline.

        Args:
            predictor: Pollution spread predictor (trained on first run if needed)
            trash_detector: Vision collaborator (default: unconfigured detector)
            weather_fetcher: Callable(lat, lon) -> WeatherData
            frame_extractor: Callable(video_path, max_frames) -> frames
            backend: Dense flow backend (default: process-wide backend)
            max_frames: Frames sampled per clip
            flow_method: Requested optical flow method
            roi: Water region used by dense flow
        """
        self.predictor = predictor
        self.trash_detector = trash_detector or TrashDetector()
        self.weather_fetcher = weather_fetcher
        self.frame_extractor = frame_extractor
        self.backend = backend or get_backend()
        self.max_frames = max_frames
        self.flow_method = FlowMethod(flow_method)
        self.roi = roi

    def analyze_video(
        self,
        video_path: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        chemistry: Optional[WaterChemistry] = None,
        filename: Optional[str] = None
    ) -> AnalysisResult:
        """
        Analyze a river clip end to end.

        Raises:
            AnalysisError: if frames cannot be extracted or trash detection fails
        """
        logger.info(f"Starting video analysis for {video_path}")
        try:
            frames = self.frame_extractor(video_path, self.max_frames)
        except FrameExtractionError as e:
            logger.error(f"Error analyzing video: {e}")
            raise AnalysisError("Video analysis failed") from e

        return self.analyze_frames(
            frames,
            latitude=latitude,
            longitude=longitude,
            chemistry=chemistry,
            river_category=parse_river_category(filename or video_path)
        )

    def analyze_frames(
        self,
        frames: List[Frame],
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        chemistry: Optional[WaterChemistry] = None,
        river_category: Optional[Dict[str, str]] = None
    ) -> AnalysisResult:
        """Run the analysis stages over already extracted frames"""
        if not frames:
            raise AnalysisError("Video analysis failed: no frames extracted")

        # ========== 1. Depth ==========
        depth_profile = build_depth_profile(frames)
        average_depth = round(sum(depth_profile) / len(depth_profile), 2)
        max_depth = max(depth_profile)

        # ========== 2. Trash Detection ==========
        middle_frame = frames[len(frames) // 2]
        try:
            detection = self.trash_detector.detect(middle_frame)
        except TrashDetectionError as e:
            logger.error(f"Error analyzing video: {e}")
            raise AnalysisError("Video analysis failed") from e

        # ========== 3. Optical Flow ==========
        if self.flow_method is FlowMethod.DENSE and not self.backend.initialize():
            logger.warning("Dense flow backend not available - using block matching")

        flow_vectors = []
        for previous, current in zip(frames, frames[1:]):
            if previous.shape != current.shape:
                logger.warning(f"Skipping flow for mismatched frames {previous.shape} vs {current.shape}")
                continue
            flow_vectors.append(calculate_optical_flow(
                previous, current, self.flow_method, self.roi, self.backend
            ))

        flow_metrics = calculate_flow_metrics(frames)
        logger.info(
            f"Flow: velocity {flow_metrics.average_velocity} m/s, "
            f"magnitude {flow_metrics.flow_magnitude} over {flow_metrics.pairs_analyzed} pairs"
        )

        # ========== 4. Water Quality & Weather ==========
        chemistry = chemistry or WaterChemistry()
        water_quality = calculate_water_quality_index(
            chemistry.ph_value,
            chemistry.bod_level,
            chemistry.ammoniacal_nitrogen,
            chemistry.suspended_solids
        )
        weather = self._fetch_weather(latitude, longitude)

        # ========== 5. Pollution Prediction ==========
        if not self.predictor.is_ready:
            self.predictor.initialize()

        prediction = self.predictor.predict_pollution_spread(PredictionModelInput(
            water_quality_index=water_quality.index,
            flow_velocity=flow_metrics.average_velocity,
            trash_count=detection.count,
            temperature=weather.temperature,
            rainfall=weather.rainfall,
            ph_value=chemistry.ph_value,
            bod_level=chemistry.bod_level,
            ammoniacal_nitrogen=chemistry.ammoniacal_nitrogen,
            suspended_solids=chemistry.suspended_solids
        ))

        result = AnalysisResult(
            depth_profile=depth_profile,
            average_depth=average_depth,
            max_depth=max_depth,
            average_velocity=flow_metrics.average_velocity,
            flow_magnitude=flow_metrics.flow_magnitude,
            trash_count=detection.count,
            trash_categories=detection.categories,
            environmental_impact=self._environmental_impact(detection),
            water_quality=water_quality,
            weather=weather,
            pollution_prediction=prediction,
            flow_vectors=flow_vectors,
            frames_analyzed=len(frames),
            river_category=river_category
        )
        logger.info(
            f"Analysis complete: {result.trash_count} trash items, "
            f"avg depth {result.average_depth} m, spread radius {prediction.spread_radius} m"
        )
        return result

    def _fetch_weather(self, latitude, longitude) -> WeatherData:
        try:
            return self.weather_fetcher(latitude, longitude)
        except Exception as e:
            logger.warning(f"Weather lookup failed, using defaults: {e}")
            return default_weather()

    def _environmental_impact(self, detection) -> str:
        if detection.analysis:
            return detection.analysis
        if not self.trash_detector.is_configured:
            return "Trash detection unavailable - no vision model configured"
        if detection.count > 0:
            return "Trash detected - environmental impact assessment needed"
        return "No significant environmental impact detected"
