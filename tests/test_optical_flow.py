import math
from unittest.mock import MagicMock

import numpy as np
import pytest

from river_ai.flow_backend import FlowBackend
from river_ai.optical_flow import (
    FlowMethod,
    RegionOfInterest,
    VelocityPoint,
    calculate_optical_flow,
    reduce_to_grid,
    sample_flow_field
)
from tests.conftest import gray_frame, make_frame


def textured_pair(shift=2, size=32):
    """Two frames where the second is the first moved `shift` px to the right"""
    ys, xs = np.mgrid[0:size, 0:size]
    texture = xs + 5 * ys
    moved = np.full_like(texture, 255)
    moved[:, shift:] = texture[:, :-shift]
    return gray_frame(texture), gray_frame(moved)


def fake_cv_backend(flow_value=(3.0, 4.0), error=None):
    cv = MagicMock()
    cv.cvtColor.side_effect = lambda pixels, code: pixels[..., 0].astype(np.uint8)
    if error is not None:
        cv.calcOpticalFlowFarneback.side_effect = error
    else:
        cv.calcOpticalFlowFarneback.side_effect = lambda prev, curr, *args: np.dstack([
            np.full(prev.shape, flow_value[0], dtype=np.float32),
            np.full(prev.shape, flow_value[1], dtype=np.float32)
        ])
    backend = FlowBackend(loader=lambda: cv, timeout=5)
    assert backend.initialize()
    return backend, cv


def test_block_matching_identical_frames_detects_no_motion(unready_backend):
    frame = make_frame()
    result = calculate_optical_flow(frame, frame, backend=unready_backend)

    assert result.method is FlowMethod.BLOCK_MATCHING
    assert result.grid_velocities == [0.0] * 64
    assert result.grid_directions == [0.0] * 64
    assert result.velocity_field == []


def test_block_matching_tracks_horizontal_shift(unready_backend):
    previous, current = textured_pair(shift=2)
    result = calculate_optical_flow(
        previous, current, method=FlowMethod.BLOCK_MATCHING, backend=unready_backend
    )

    assert len(result.grid_velocities) == 64
    assert result.grid_velocities == [0.6] * 64
    assert result.grid_directions == [0.0] * 64
    assert all(p.vx == 2 and p.vy == 0 for p in result.velocity_field)


def test_grid_invariants_hold_for_random_frames(unready_backend):
    rng = np.random.default_rng(3)
    previous = gray_frame(rng.integers(0, 256, size=(48, 48)))
    current = gray_frame(rng.integers(0, 256, size=(48, 48)))

    result = calculate_optical_flow(previous, current, backend=unready_backend)

    assert len(result.grid_velocities) == len(result.grid_directions) == 64
    assert all(v >= 0 for v in result.grid_velocities)
    assert all(-math.pi < d <= math.pi + 0.01 for d in result.grid_directions)


def test_dense_flow_used_when_backend_ready():
    backend, cv = fake_cv_backend(flow_value=(3.0, 4.0))
    frame = make_frame()

    result = calculate_optical_flow(frame, frame, backend=backend)

    assert result.method is FlowMethod.DENSE
    cv.calcOpticalFlowFarneback.assert_called_once()
    # 64x64 sampled every 16 px: 16 points, each in its own cell
    assert len(result.velocity_field) == 16
    assert result.grid_velocities.count(0.75) == 16
    assert result.grid_velocities.count(0.0) == 48
    assert result.grid_directions[0] == round(math.atan2(4, 3), 2)


def test_dense_flow_offsets_samples_by_roi_origin():
    backend, _ = fake_cv_backend()
    frame = make_frame()
    roi = RegionOfInterest(x=0, y=50, width=100, height=50)

    result = calculate_optical_flow(frame, frame, roi=roi, backend=backend)

    assert min(p.y for p in result.velocity_field) == 32
    # Top half of the grid has no samples
    assert result.grid_velocities[:32] == [0.0] * 32
    assert result.grid_velocities[32] == 0.75


def test_dense_failure_falls_back_to_block_matching():
    backend, _ = fake_cv_backend(error=RuntimeError("native backend crashed"))
    frame = make_frame()

    result = calculate_optical_flow(frame, frame, backend=backend)

    assert result.method is FlowMethod.BLOCK_MATCHING
    assert result.grid_velocities == [0.0] * 64


def test_mismatched_frames_raise():
    with pytest.raises(ValueError):
        calculate_optical_flow(make_frame(32, 32), make_frame(64, 64))


def test_unknown_method_raises():
    frame = make_frame()
    with pytest.raises(ValueError):
        calculate_optical_flow(frame, frame, method="lucas-kanade")


def test_sample_flow_field_drops_noise_and_non_finite():
    flow = np.zeros((32, 32, 2), dtype=np.float32)
    flow[0, 0] = (0.3, 0.3)  # below noise threshold
    flow[0, 16] = (np.nan, 1.0)
    flow[16, 0] = (0.0, -2.0)

    points = sample_flow_field(flow, offset_x=5, offset_y=10)

    assert points == [VelocityPoint(x=5.0, y=26.0, vx=0.0, vy=-2.0, magnitude=2.0)]


def test_reduce_to_grid_averages_and_normalizes_direction():
    field = [
        VelocityPoint(x=1, y=1, vx=-2.0, vy=0.0, magnitude=2.0),
        VelocityPoint(x=2, y=2, vx=-2.0, vy=0.0, magnitude=2.0),
        VelocityPoint(x=70, y=70, vx=0.0, vy=10.0, magnitude=10.0),
    ]

    velocities, directions = reduce_to_grid(field, 80, 80)

    assert velocities[0] == 0.6
    assert directions[0] == round(math.pi, 2)
    assert velocities[63] == 1.0
    assert directions[63] == round(math.pi / 2, 2)
    assert velocities[1:63] == [0.0] * 62


def test_reduce_to_grid_tiny_frame_is_all_zero():
    field = [VelocityPoint(x=1, y=1, vx=1.0, vy=1.0, magnitude=1.4)]
    velocities, directions = reduce_to_grid(field, 4, 4)

    assert velocities == [0.0] * 64
    assert directions == [0.0] * 64


def test_roi_to_pixels_clips_to_frame():
    roi = RegionOfInterest(x=90, y=-10, width=50, height=200)
    assert roi.to_pixels(100, 50) == (90, 0, 10, 50)
