import cv2
import numpy as np
import pytest

from river_ai.video_frames import FrameExtractionError, extract_frames, sample_timestamps


def test_sample_timestamps_are_evenly_spaced():
    assert sample_timestamps(10.0, 5) == [0.0, 2.0, 4.0, 6.0, 8.0]


def test_sample_timestamps_zero_count():
    assert sample_timestamps(10.0, 0) == []


def test_missing_video_raises(tmp_path):
    with pytest.raises(FrameExtractionError):
        extract_frames(str(tmp_path / "missing.mp4"))


def test_unreadable_video_raises(tmp_path):
    path = tmp_path / "broken.mp4"
    path.write_bytes(b"not a video")

    with pytest.raises(FrameExtractionError):
        extract_frames(str(path))


def test_extracts_frames_from_written_clip(tmp_path):
    path = str(tmp_path / "clip.avi")
    writer = cv2.VideoWriter(path, cv2.VideoWriter_fourcc(*"MJPG"), 10, (32, 24))
    if not writer.isOpened():
        pytest.skip("OpenCV build cannot write MJPG video")
    for i in range(20):
        writer.write(np.full((24, 32, 3), i * 10, dtype=np.uint8))
    writer.release()

    frames = extract_frames(path, max_frames=5)

    assert len(frames) == 5
    assert all(f.shape == (24, 32) for f in frames)
    assert [f.timestamp for f in frames] == pytest.approx([0.0, 0.4, 0.8, 1.2, 1.6])
