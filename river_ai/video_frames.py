"""
Video frame extraction.
Samples evenly spaced frames from a clip with OpenCV.
"""

import logging
import os
from typing import List

import cv2

from .frames import Frame

logger = logging.getLogger(__name__)

DEFAULT_MAX_FRAMES = 5


class FrameExtractionError(Exception):
    """Raised when a video cannot be opened, seeked or decoded"""


def sample_timestamps(duration: float, count: int) -> List[float]:
    """Evenly spaced timestamps i * duration / count, in seconds"""
    if count <= 0 or duration <= 0:
        return [0.0] if count > 0 else []
    interval = duration / count
    return [i * interval for i in range(count)]


def extract_frames(video_path: str, max_frames: int = DEFAULT_MAX_FRAMES) -> List[Frame]:
    """
    Extract up to `max_frames` evenly spaced frames.

    Args:
        video_path: Path to the video file
        max_frames: Upper bound on frames returned

    Returns:
        RGBA frames in timestamp order

    Raises:
        FrameExtractionError: if the video cannot be read
    """
    if not os.path.exists(video_path):
        raise FrameExtractionError(f"Video not found: {video_path}")

    capture = cv2.VideoCapture(video_path)
    try:
        if not capture.isOpened():
            raise FrameExtractionError(f"Could not open video: {video_path}")

        fps = capture.get(cv2.CAP_PROP_FPS) or 0.0
        frame_count = int(capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        if fps <= 0 or frame_count <= 0:
            raise FrameExtractionError(f"Video has no readable frames: {video_path}")

        duration = frame_count / fps
        count = min(max_frames, frame_count)
        logger.info(f"Video loaded. Duration: {duration:.2f}s, sampling {count} frames")

        frames = []
        for timestamp in sample_timestamps(duration, count):
            index = min(frame_count - 1, int(round(timestamp * fps)))
            capture.set(cv2.CAP_PROP_POS_FRAMES, index)
            ok, image = capture.read()
            if not ok or image is None:
                raise FrameExtractionError(
                    f"Could not decode frame at {timestamp:.2f}s of {video_path}"
                )
            logger.debug(f"Extracted frame at {timestamp:.2f}s")
            frames.append(Frame.from_bgr(image, timestamp))

        return frames
    finally:
        capture.release()
