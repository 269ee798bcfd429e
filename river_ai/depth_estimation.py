"""
Depth & Flow Aggregation Module
Brightness-based depth per frame region and inter-frame flow statistics

Depth model: darker water reads as deeper.
    depth_m = 10 - (mean_luminance / 255) * 9      -> bounded to [1, 10]

Flow model: mean absolute per-channel change between consecutive frames.
    average_velocity = diff / 255 * 5 + 0.5         -> 0.5 - 5.5 m/s
    flow_magnitude   = diff / 255 * 8 + 1           -> 1 - 9
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence

from .frames import Frame
from .pixel_sampler import channel_difference, region_mean_luminance

logger = logging.getLogger(__name__)

DEPTH_REGIONS = 10
DEPTH_SAMPLE_STEP = 10
FLOW_BYTE_STRIDE = 16

# Returned when fewer than two usable frames are available
DEFAULT_AVERAGE_VELOCITY = 1.5
DEFAULT_FLOW_MAGNITUDE = 3.2


@dataclass
class FlowMetrics:
    """Summary of surface motion across a frame sequence"""
    average_velocity: float
    flow_magnitude: float
    pairs_analyzed: int = 0

    def to_dict(self):
        return {
            "average_velocity": self.average_velocity,
            "flow_magnitude": self.flow_magnitude,
            "pairs_analyzed": self.pairs_analyzed
        }


def luminance_to_depth(mean_luminance: float) -> float:
    return 10 - (mean_luminance / 255) * 9


def estimate_depth(frame: Frame) -> List[float]:
    """
    Estimate depth across the frame width.

    Args:
        frame: RGBA frame

    Returns:
        One depth (meters, 2 dp) per vertical region, left to right
    """
    width = frame.width
    depths = []

    for region in range(DEPTH_REGIONS):
        x_start = (region * width) // DEPTH_REGIONS
        # Frames narrower than the region count still get one column each
        x_end = max(x_start + 1, ((region + 1) * width) // DEPTH_REGIONS)
        mean_luma = region_mean_luminance(frame, x_start, x_end, DEPTH_SAMPLE_STEP)
        depths.append(round(luminance_to_depth(mean_luma), 2))

    return depths


def build_depth_profile(frames: Sequence[Frame]) -> List[float]:
    """Concatenate per-frame depth estimates in frame order"""
    profile = []
    for frame in frames:
        profile.extend(estimate_depth(frame))
    return profile


def calculate_flow_metrics(frames: Sequence[Frame]) -> FlowMetrics:
    """
    Derive velocity and flow magnitude from consecutive frame differences.

    Pairs with mismatched dimensions are skipped. With no usable pair the
    fixed defaults are returned.
    """
    if len(frames) < 2:
        return FlowMetrics(DEFAULT_AVERAGE_VELOCITY, DEFAULT_FLOW_MAGNITUDE, 0)

    total_diff = 0.0
    total_samples = 0
    pairs = 0

    for previous, current in zip(frames, frames[1:]):
        try:
            diff, samples = channel_difference(previous, current, FLOW_BYTE_STRIDE)
        except ValueError as e:
            logger.warning(f"Skipping frame pair: {e}")
            continue
        if samples == 0:
            continue
        total_diff += diff
        total_samples += samples
        pairs += 1

    if pairs == 0:
        return FlowMetrics(DEFAULT_AVERAGE_VELOCITY, DEFAULT_FLOW_MAGNITUDE, 0)

    mean_diff = total_diff / (total_samples * 3)

    return FlowMetrics(
        average_velocity=round(mean_diff / 255 * 5 + 0.5, 2),
        flow_magnitude=round(mean_diff / 255 * 8 + 1, 2),
        pairs_analyzed=pairs
    )
