"""
Frame container shared by the vision modules.
"""

from dataclasses import dataclass

import cv2
import numpy as np


@dataclass(frozen=True)
class Frame:
    """
    Immutable RGBA pixel buffer (height x width x 4, uint8).

    The underlying array is marked read-only on construction.
    """
    pixels: np.ndarray
    timestamp: float = 0.0

    def __post_init__(self):
        pixels = np.array(self.pixels, dtype=np.uint8, order="C")
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Frame must be HxWx4 RGBA, got shape {pixels.shape}")
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def shape(self):
        return self.pixels.shape[:2]

    @property
    def data(self) -> np.ndarray:
        """Flat RGBA byte view (row-major, 4 bytes per pixel)"""
        return self.pixels.reshape(-1)

    @classmethod
    def from_bgr(cls, image: np.ndarray, timestamp: float = 0.0) -> "Frame":
        """Build from an OpenCV BGR image"""
        return cls(cv2.cvtColor(image, cv2.COLOR_BGR2RGBA), timestamp)

    def to_bgr(self) -> np.ndarray:
        return cv2.cvtColor(self.pixels, cv2.COLOR_RGBA2BGR)
