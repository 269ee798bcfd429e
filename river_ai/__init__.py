"""
River Flow AI - Computer Vision Package
Optical flow, depth and trash analysis for river monitoring clips
"""

__version__ = "1.0.0"

from .frames import Frame
from .flow_backend import FlowBackend, get_backend
from .optical_flow import (
    FlowMethod,
    FlowResult,
    RegionOfInterest,
    VelocityPoint,
    calculate_optical_flow
)
from .depth_estimation import (
    FlowMetrics,
    build_depth_profile,
    calculate_flow_metrics,
    estimate_depth
)
from .video_frames import FrameExtractionError, extract_frames
from .pipeline import (
    AnalysisError,
    AnalysisResult,
    RiverVideoAnalyzer,
    parse_river_category
)
