import numpy as np
import pytest

from river_ai.frames import Frame
from river_ai.pixel_sampler import channel_difference, luminance, region_mean_luminance
from tests.conftest import make_frame


def test_frame_is_read_only_copy():
    pixels = np.zeros((4, 6, 4), dtype=np.uint8)
    frame = Frame(pixels)
    pixels[0, 0, 0] = 99

    assert frame.pixels[0, 0, 0] == 0
    assert frame.width == 6 and frame.height == 4
    assert frame.data.size == 4 * 6 * 4
    with pytest.raises(ValueError):
        frame.pixels[0, 0, 0] = 1


def test_frame_rejects_non_rgba():
    with pytest.raises(ValueError):
        Frame(np.zeros((4, 4, 3), dtype=np.uint8))


def test_frame_bgr_round_trip_keeps_channel_order():
    bgr = np.zeros((2, 2, 3), dtype=np.uint8)
    bgr[..., 0] = 255  # blue

    frame = Frame.from_bgr(bgr)

    assert frame.pixels[0, 0].tolist() == [0, 0, 255, 255]
    assert np.array_equal(frame.to_bgr(), bgr)


def test_luminance_weights():
    pixel = np.array([[255, 0, 0, 255]], dtype=np.uint8)
    assert luminance(pixel)[0] == pytest.approx(0.299 * 255)


def test_region_mean_luminance_of_solid_frame():
    frame = make_frame(value=200)
    assert region_mean_luminance(frame, 0, 10) == pytest.approx(200)


def test_region_mean_luminance_empty_strip_is_zero():
    frame = make_frame()
    assert region_mean_luminance(frame, 10, 10) == 0.0


def test_channel_difference_counts_strided_pixels():
    previous = make_frame(height=8, width=8, value=10)
    current = make_frame(height=8, width=8, value=20)

    total, count = channel_difference(previous, current, byte_stride=16)

    assert count == 16  # every 4th of 64 pixels
    assert total == 16 * 3 * 10


def test_channel_difference_rejects_mismatched_frames():
    with pytest.raises(ValueError):
        channel_difference(make_frame(8, 8), make_frame(8, 16))
