"""
Pixel Sampler
Brightness and channel statistics over regions of an RGBA frame
"""

from typing import Tuple

import numpy as np

from .frames import Frame

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


def luminance(pixels: np.ndarray) -> np.ndarray:
    """Luminance of an (..., >=3) RGB(A) array as float64"""
    return pixels[..., :3].astype(np.float64) @ LUMA_WEIGHTS


def luminance_map(frame: Frame) -> np.ndarray:
    """Full-resolution luminance plane (height x width)"""
    return luminance(frame.pixels)


def region_mean_luminance(
    frame: Frame,
    x_start: int,
    x_end: int,
    step: int = 10
) -> float:
    """
    Mean luminance of a vertical strip, sampling every `step`-th row and
    column starting from the strip origin.
    """
    samples = frame.pixels[::step, x_start:x_end:step]
    if samples.size == 0:
        return 0.0
    return float(np.mean(luminance(samples)))


def channel_difference(
    previous: Frame,
    current: Frame,
    byte_stride: int = 16
) -> Tuple[float, int]:
    """
    Sum of absolute R, G, B differences at every `byte_stride`-th byte
    offset of the flat RGBA buffers.

    Returns:
        (total absolute difference, number of sampled pixels)
    """
    if previous.shape != current.shape:
        raise ValueError(
            f"Frame size mismatch: {previous.shape} vs {current.shape}"
        )

    pixel_stride = max(1, byte_stride // 4)
    prev_rgb = previous.pixels.reshape(-1, 4)[::pixel_stride, :3].astype(np.int32)
    curr_rgb = current.pixels.reshape(-1, 4)[::pixel_stride, :3].astype(np.int32)

    total = float(np.abs(prev_rgb - curr_rgb).sum())
    return total, len(prev_rgb)
