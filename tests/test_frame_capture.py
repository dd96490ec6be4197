# -*- coding: utf-8 -*-
"""
进度帧捕获测试
"""

import numpy as np
import pytest

from config.settings import Config
from core.capture import FrameCapture, fit_to_budget
from core.rendering import EventKind, RenderEvent


def event(fraction, kind=EventKind.PROGRESS, size=(40, 20)):
    frame = np.full((size[1], size[0], 3), int(fraction * 255), dtype=np.uint8)
    return RenderEvent(kind=kind, fraction=fraction, frame=frame,
                       strokes_done=int(fraction * 1000), total_strokes=1000)


def test_retains_frames_on_one_percent_steps():
    capture = FrameCapture(threshold=0.01)
    kept = [capture.observe(event(f)) for f in (0.005, 0.012, 0.016, 0.02, 0.5)]
    assert kept == [True, False, True, False, True]
    assert [frame.progress for frame in capture.frames] == [0.005, 0.016, 0.5]


def test_terminal_event_is_always_retained():
    capture = FrameCapture(threshold=0.01)
    capture.observe(event(0.5))
    assert capture.observe(event(0.501, kind=EventKind.FINISHED))
    assert len(capture) == 2
    assert capture.latest().progress == 0.501


def test_reset_discards_frames():
    capture = FrameCapture()
    capture.observe(event(0.1))
    capture.reset()
    assert len(capture) == 0
    assert capture.last_progress == -1.0
    assert capture.latest() is None


def test_frames_are_downscaled_to_budget():
    capture = FrameCapture(max_height=10, max_pixels=10 ** 6)
    capture.observe(event(0.2, size=(40, 20)))
    assert capture[0].size == (20, 10)
    assert capture[0].image.shape == (10, 20, 3)


def test_frames_within_budget_are_copied():
    capture = FrameCapture()
    source = event(0.3)
    capture.observe(source)
    source.frame[:] = 0
    assert capture[0].image[0, 0, 0] == int(0.3 * 255)


def test_fit_to_budget_height_then_pixels():
    assert fit_to_budget(800, 600, 1080, 2000000) == 1.0
    assert fit_to_budget(1000, 2160, 1080, 2000000) == pytest.approx(0.5)

    scale = fit_to_budget(3000, 1500, 1080, 2000000)
    assert scale == pytest.approx((2000000 / (3000 * 1500)) ** 0.5)
    assert 1500 * scale <= 1080
    assert (3000 * scale) * (1500 * scale) <= 2000000 + 1e-6


def test_memory_bytes_counts_retained_frames():
    capture = FrameCapture()
    capture.observe(event(0.1))
    capture.observe(event(0.2))
    assert capture.memory_bytes() == 2 * 40 * 20 * 3


def test_from_config():
    config = Config()
    config.set('capture', 'threshold', 0.05)
    capture = FrameCapture.from_config(config)
    assert capture.threshold == 0.05
    assert capture.max_height == 1080
    assert capture.max_pixels == 2000000
