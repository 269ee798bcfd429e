"""
Optical Flow Estimation Module
Estimates a surface velocity field between two frames

Methods:
- dense: Farneback dense flow via the native OpenCV backend
- block-matching: brute-force luminance search, used whenever the dense
  backend is not ready or fails mid-computation

Both methods reduce their samples onto a fixed 8x8 grid of per-cell
velocities (scaled to a nominal m/s range) and directions (radians).
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from .flow_backend import FlowBackend, get_backend
from .frames import Frame
from .pixel_sampler import luminance_map

logger = logging.getLogger(__name__)

GRID_SIZE = 8

# Farneback parameters
PYRAMID_SCALE = 0.5
PYRAMID_LEVELS = 3
WINDOW_SIZE = 15
ITERATIONS = 3
POLY_N = 5
POLY_SIGMA = 1.2

FIELD_SAMPLE_STEP = 16
NOISE_MAGNITUDE = 0.5

# Block matching parameters
BLOCK_SAMPLE_STEP = 8
SEARCH_RADIUS = 6
SEARCH_STEP = 2
MATCH_THRESHOLD = 30


class FlowMethod(str, Enum):
    DENSE = "dense"
    BLOCK_MATCHING = "block-matching"


@dataclass(frozen=True)
class VelocityPoint:
    """Displacement sample at a full-frame pixel coordinate"""
    x: float
    y: float
    vx: float
    vy: float
    magnitude: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "x": self.x,
            "y": self.y,
            "vx": round(self.vx, 3),
            "vy": round(self.vy, 3),
            "magnitude": round(self.magnitude, 3)
        }


@dataclass
class FlowResult:
    """Per-cell velocities/directions (row-major 8x8) plus the raw field"""
    grid_velocities: List[float]
    grid_directions: List[float]
    velocity_field: List[VelocityPoint] = field(default_factory=list)
    method: FlowMethod = FlowMethod.BLOCK_MATCHING

    def to_dict(self) -> Dict:
        return {
            "grid_velocities": list(self.grid_velocities),
            "grid_directions": list(self.grid_directions),
            "velocity_field": [p.to_dict() for p in self.velocity_field],
            "method": self.method.value
        }


@dataclass(frozen=True)
class RegionOfInterest:
    """Rectangle expressed in percent of the frame extent"""
    x: float = 0.0
    y: float = 0.0
    width: float = 100.0
    height: float = 100.0

    def to_pixels(self, frame_width: int, frame_height: int) -> Tuple[int, int, int, int]:
        """(x, y, width, height) in pixels, clipped to the frame"""
        x = min(frame_width, max(0, int(self.x * frame_width / 100)))
        y = min(frame_height, max(0, int(self.y * frame_height / 100)))
        width = min(frame_width - x, max(0, int(self.width * frame_width / 100)))
        height = min(frame_height - y, max(0, int(self.height * frame_height / 100)))
        return x, y, width, height


# Middle band of the frame, where the water surface usually is
DEFAULT_WATER_ROI = RegionOfInterest(x=0, y=20, width=100, height=60)


def calculate_optical_flow(
    previous: Frame,
    current: Frame,
    method=FlowMethod.DENSE,
    roi: Optional[RegionOfInterest] = None,
    backend: Optional[FlowBackend] = None
) -> FlowResult:
    """
    Estimate the velocity field between two equally sized frames.

    Dense flow is attempted only when requested and the backend is ready;
    any failure there falls back to block matching. The `method` tag on the
    result reports what actually ran.

    Args:
        previous: Earlier frame
        current: Later frame
        method: Requested FlowMethod (or its string value)
        roi: Optional region for dense flow, in percent of frame extent
        backend: Backend to use (default: process-wide backend)

    Returns:
        FlowResult with 64 grid velocities and directions
    """
    method = FlowMethod(method)
    if previous.shape != current.shape:
        raise ValueError(f"Frame size mismatch: {previous.shape} vs {current.shape}")

    backend = backend or get_backend()
    if method is FlowMethod.DENSE and backend.is_ready:
        try:
            return _dense_flow(backend.cv, previous, current, roi)
        except Exception as e:
            logger.warning(f"Dense flow failed, falling back to block matching: {e}")

    return _block_matching_flow(previous, current)


def _dense_flow(
    cv,
    previous: Frame,
    current: Frame,
    roi: Optional[RegionOfInterest]
) -> FlowResult:
    """Farneback flow over the (optional) ROI of both frames"""
    prev_gray = cv.cvtColor(previous.pixels, cv.COLOR_RGBA2GRAY)
    curr_gray = cv.cvtColor(current.pixels, cv.COLOR_RGBA2GRAY)

    offset_x, offset_y = 0, 0
    if roi is not None:
        offset_x, offset_y, roi_width, roi_height = roi.to_pixels(previous.width, previous.height)
        prev_gray = prev_gray[offset_y:offset_y + roi_height, offset_x:offset_x + roi_width]
        curr_gray = curr_gray[offset_y:offset_y + roi_height, offset_x:offset_x + roi_width]
        if prev_gray.size == 0:
            raise ValueError(f"Region of interest {roi} is empty for this frame size")

    flow = cv.calcOpticalFlowFarneback(
        prev_gray, curr_gray, None,
        PYRAMID_SCALE, PYRAMID_LEVELS, WINDOW_SIZE,
        ITERATIONS, POLY_N, POLY_SIGMA, 0
    )

    velocity_field = sample_flow_field(flow, offset_x, offset_y)
    velocities, directions = reduce_to_grid(velocity_field, previous.width, previous.height)

    return FlowResult(
        grid_velocities=velocities,
        grid_directions=directions,
        velocity_field=velocity_field,
        method=FlowMethod.DENSE
    )


def sample_flow_field(
    flow: np.ndarray,
    offset_x: int = 0,
    offset_y: int = 0,
    step: int = FIELD_SAMPLE_STEP
) -> List[VelocityPoint]:
    """
    Sample an (H, W, 2) flow array every `step` pixels, dropping noise
    (magnitude <= 0.5) and non-finite vectors. Coordinates are shifted by
    the ROI origin back into full-frame space.
    """
    sampled = flow[::step, ::step].astype(np.float64)
    vx = sampled[..., 0]
    vy = sampled[..., 1]
    with np.errstate(invalid="ignore", over="ignore"):
        magnitude = np.hypot(vx, vy)
        keep = np.isfinite(magnitude) & (magnitude > NOISE_MAGNITUDE)

    rows, cols = np.nonzero(keep)
    return [
        VelocityPoint(
            x=float(col * step + offset_x),
            y=float(row * step + offset_y),
            vx=float(vx[row, col]),
            vy=float(vy[row, col]),
            magnitude=float(magnitude[row, col])
        )
        for row, col in zip(rows, cols)
    ]


def reduce_to_grid(
    velocity_field: List[VelocityPoint],
    frame_width: int,
    frame_height: int,
    grid_size: int = GRID_SIZE
) -> Tuple[List[float], List[float]]:
    """
    Average field samples per grid cell.

    Returns:
        (velocities, directions), each grid_size**2 long in row-major
        order. Empty cells get 0 for both.
    """
    region_width = frame_width // grid_size
    region_height = frame_height // grid_size
    n_cells = grid_size * grid_size

    sums = np.zeros((n_cells, 3))
    counts = np.zeros(n_cells, dtype=int)

    if region_width > 0 and region_height > 0:
        for point in velocity_field:
            grid_x = math.floor(point.x / region_width)
            grid_y = math.floor(point.y / region_height)
            if 0 <= grid_x < grid_size and 0 <= grid_y < grid_size:
                cell = grid_y * grid_size + grid_x
                sums[cell] += (point.vx, point.vy, point.magnitude)
                counts[cell] += 1

    velocities = []
    directions = []
    for cell in range(n_cells):
        if counts[cell] == 0:
            velocities.append(0.0)
            directions.append(0.0)
            continue

        avg_vx, avg_vy, avg_magnitude = sums[cell] / counts[cell]
        direction = math.atan2(avg_vy, avg_vx)
        if direction <= -math.pi:
            direction += 2 * math.pi

        velocities.append(round(avg_magnitude * 0.05 + 0.5, 2))
        directions.append(round(direction, 2))

    return velocities, directions


def _block_matching_flow(previous: Frame, current: Frame) -> FlowResult:
    """Coarse per-cell displacement from luminance patch search"""
    prev_luma = luminance_map(previous)
    curr_luma = luminance_map(current)

    width, height = previous.width, previous.height
    region_width = width // GRID_SIZE
    region_height = height // GRID_SIZE

    velocity_field = []
    for cell in range(GRID_SIZE * GRID_SIZE):
        start_x = (cell % GRID_SIZE) * region_width
        start_y = (cell // GRID_SIZE) * region_height

        vx, vy = _cell_motion_vector(
            prev_luma, curr_luma, start_x, start_y, region_width, region_height
        )
        magnitude = math.hypot(vx, vy)
        if magnitude > NOISE_MAGNITUDE:
            velocity_field.append(VelocityPoint(
                x=start_x + region_width / 2,
                y=start_y + region_height / 2,
                vx=vx,
                vy=vy,
                magnitude=magnitude
            ))

    velocities, directions = reduce_to_grid(velocity_field, width, height)
    return FlowResult(
        grid_velocities=velocities,
        grid_directions=directions,
        velocity_field=velocity_field,
        method=FlowMethod.BLOCK_MATCHING
    )


def _cell_motion_vector(
    prev_luma: np.ndarray,
    curr_luma: np.ndarray,
    start_x: int,
    start_y: int,
    region_width: int,
    region_height: int
) -> Tuple[float, float]:
    """
    Average displacement of the accepted matches inside one cell.
    A cell without accepted matches has no motion.
    """
    height, width = prev_luma.shape
    offsets = np.arange(-SEARCH_RADIUS, SEARCH_RADIUS + 1, SEARCH_STEP)

    sum_dx = 0.0
    sum_dy = 0.0
    count = 0

    for y in range(start_y, min(start_y + region_height, height), BLOCK_SAMPLE_STEP):
        rows = y + offsets
        rows = rows[(rows >= 0) & (rows < height)]

        for x in range(start_x, min(start_x + region_width, width), BLOCK_SAMPLE_STEP):
            cols = x + offsets
            cols = cols[(cols >= 0) & (cols < width)]

            source = prev_luma[y, x]
            diffs = np.abs(curr_luma[np.ix_(rows, cols)] - source)
            best_row, best_col = np.unravel_index(np.argmin(diffs), diffs.shape)
            best_diff = diffs[best_row, best_col]

            # Ties resolve to "no motion"
            stay_diff = abs(curr_luma[y, x] - source)
            if stay_diff <= best_diff:
                dx, dy, best_diff = 0, 0, stay_diff
            else:
                dx = int(cols[best_col]) - x
                dy = int(rows[best_row]) - y

            if best_diff < MATCH_THRESHOLD:
                sum_dx += dx
                sum_dy += dy
                count += 1

    if count == 0:
        return 0.0, 0.0
    return sum_dx / count, sum_dy / count
