# -*- coding: utf-8 -*-
"""
延时导出测试：帧选择、几何、时长和编码
"""

import io
import math

import numpy as np
import pytest
from PIL import Image

from config.settings import Config
from core.capture import (
    CapturedFrame, CropRect, ExportSettings, PillowGifEncoder, TimelapseExporter,
    estimate_size_mb, frame_delays, frame_stride, output_geometry, round_half_up,
    select_frames, select_indices
)
from core.collaborators import ExportError


def make_frames(count, size=(40, 20)):
    frames = []
    for i in range(count):
        image = np.zeros((size[1], size[0], 3), dtype=np.uint8)
        image[..., 0] = (i * 37) % 256
        image[..., 1] = np.arange(size[0], dtype=np.uint8)[None, :] * 3
        frames.append(CapturedFrame(image, (i + 1) / count))
    return frames


class RecordingEncoder:
    def __init__(self):
        self.frames = None
        self.delays = None

    def encode(self, frames, delays_ms):
        self.frames = frames
        self.delays = delays_ms
        return b"encoded"


class BrokenEncoder:
    def encode(self, frames, delays_ms):
        raise RuntimeError("disk full")


# ============================================================================
# SELECTION
# ============================================================================

def test_full_density_is_identity():
    assert select_indices(10, 0, None, 100) == list(range(10))
    frames = make_frames(6)
    assert select_frames(frames) == frames


def test_quarter_density_keeps_every_fourth_and_last():
    assert select_indices(10, 0, None, 25) == [0, 4, 8, 9]
    assert select_indices(9, 0, None, 25) == [0, 4, 8]


def test_selection_within_range():
    assert select_indices(20, 5, 12, 50) == [5, 7, 9, 11, 12]


def test_range_is_clamped_and_swapped():
    assert select_indices(10, 7, 2, 100) == [2, 3, 4, 5, 6, 7]
    assert select_indices(10, -5, 50, 100) == list(range(10))


@pytest.mark.parametrize("density, stride", [
    (100, 1), (50, 2), (40, 3), (33, 3), (25, 4), (10, 10), (1, 100)
])
def test_frame_stride_rounds_half_up(density, stride):
    assert frame_stride(density) == stride


@pytest.mark.parametrize("density", [0, -10, 101])
def test_frame_stride_rejects_invalid_density(density):
    with pytest.raises(ValueError):
        frame_stride(density)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2


# ============================================================================
# GEOMETRY AND TIMING
# ============================================================================

def test_output_geometry_without_crop_scales_to_height():
    src, size = output_geometry(400, 200, None, 100)
    assert src == (0, 0, 400, 200)
    assert size == (200, 100)


def test_output_geometry_with_crop_is_native():
    src, size = output_geometry(400, 200, CropRect(25, 50, 50, 50), 1080)
    assert src == (100, 100, 200, 100)
    assert size == (200, 100)


def test_empty_crop_is_ignored():
    src, size = output_geometry(400, 200, CropRect(10, 10, 0, 30), 50)
    assert src == (0, 0, 400, 200)
    assert size == (100, 50)


def test_crop_from_drag_normalises_corners():
    crop = CropRect.from_drag((80, 60), (20, 10))
    assert (crop.x, crop.y, crop.w, crop.h) == (20, 10, 60, 50)


def test_frame_delays():
    assert frame_delays(5, 10.0) == [2500, 2500, 2500, 2500, 3000]
    assert frame_delays(2, 10.0) == [10000, 3000]
    assert frame_delays(1, 10.0) == [3000]
    assert frame_delays(0, 10.0) == []


def test_frame_delays_respect_minimum():
    delays = frame_delays(1000, 10.0)
    assert set(delays[:-1]) == {40}
    assert delays[-1] == 3000


def test_estimate_size_without_crop():
    expected = 200 * 100 * 10 * 0.9 / 1024 / 1024
    assert estimate_size_mb(400, 200, 11, 0, None, 100, None, 100) == pytest.approx(expected)


def test_estimate_size_with_crop_and_density():
    used = math.ceil(10 * 0.25)
    expected = (400 * 0.5) * (200 * 0.5) * used * 0.9 / 1024 / 1024
    crop = CropRect(0, 0, 50, 50)
    assert estimate_size_mb(400, 200, 11, 0, 10, 25, crop, 1080) == pytest.approx(expected)


# ============================================================================
# EXPORT
# ============================================================================

def test_plan_scales_frames_to_target_height():
    exporter = TimelapseExporter(ExportSettings(target_height=10, frame_density=50))
    plan = exporter.plan(make_frames(5))

    assert plan.source_indices == [0, 2, 4]
    assert plan.size == (20, 10)
    assert all(frame.shape == (10, 20, 3) for frame in plan.frames)
    assert plan.delays_ms == [5000, 5000, 3000]
    assert plan.total_duration_ms == 13000


def test_plan_crops_at_native_resolution():
    frames = make_frames(3)
    exporter = TimelapseExporter(ExportSettings(crop=CropRect(50, 0, 50, 50)))
    plan = exporter.plan(frames)

    assert plan.size == (20, 10)
    assert np.array_equal(plan.frames[0], frames[0].image[0:10, 20:40])


def test_export_hands_plan_to_encoder():
    encoder = RecordingEncoder()
    data = TimelapseExporter(ExportSettings(target_height=20)).export(make_frames(4), encoder)
    assert data == b"encoded"
    assert len(encoder.frames) == 4
    assert encoder.delays[-1] == 3000


def test_export_without_frames_fails():
    with pytest.raises(ExportError):
        TimelapseExporter().export([], RecordingEncoder())


def test_encoder_failure_becomes_export_error():
    with pytest.raises(ExportError):
        TimelapseExporter(ExportSettings(target_height=20)).export(make_frames(2), BrokenEncoder())


def test_write_saves_file(tmp_path):
    path = TimelapseExporter(ExportSettings(target_height=20)).write(
        make_frames(2), RecordingEncoder(), str(tmp_path / "out" / "a.gif")
    )
    assert path.read_bytes() == b"encoded"


def test_pillow_gif_encoder_produces_animated_gif():
    plan = TimelapseExporter(ExportSettings(target_height=20)).plan(make_frames(3))
    data = PillowGifEncoder().encode(plan.frames, plan.delays_ms)

    assert data[:6] == b"GIF89a"
    with Image.open(io.BytesIO(data)) as image:
        assert image.n_frames == 3
        assert image.size == (40, 20)


def test_pillow_gif_encoder_rejects_mismatched_delays():
    with pytest.raises(ValueError):
        PillowGifEncoder().encode([np.zeros((2, 2, 3), dtype=np.uint8)], [])


def test_settings_from_config():
    config = Config()
    config.set('export', 'frame_density', 50)
    settings = ExportSettings.from_config(config, start=3)
    assert settings.frame_density == 50.0
    assert settings.start == 3
    assert settings.min_delay_ms == 40
    assert settings.final_pause_ms == 3000
