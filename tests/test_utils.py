# -*- coding: utf-8 -*-
"""
图像读写、日志配置和计时工具测试
"""

import json
import logging

import numpy as np
import pytest

from utils.image_utils import ImageProcessor
from utils.logging_utils import ColoredFormatter, JsonFormatter, LogManager, PerformanceFilter
from utils.performance import MemoryMonitor, Timer, measure_memory, measure_time


# ============================================================================
# IMAGE IO
# ============================================================================

def test_png_round_trip_keeps_rgba(tmp_path):
    rgba = np.zeros((6, 8, 4), dtype=np.uint8)
    rgba[..., 0] = 255
    rgba[..., 3] = 128
    path = ImageProcessor.save_image(rgba, str(tmp_path / "img.png"))

    loaded = ImageProcessor.load_image(str(path))
    assert loaded.shape == (6, 8, 4)
    assert np.array_equal(loaded, rgba)


def test_rgb_image_loads_opaque(tmp_path):
    rgb = np.full((4, 4, 3), (10, 20, 30), dtype=np.uint8)
    path = ImageProcessor.save_image(rgb, str(tmp_path / "rgb.png"))
    loaded = ImageProcessor.load_image(str(path))
    assert tuple(loaded[0, 0]) == (10, 20, 30, 255)


def test_missing_image_raises_value_error(tmp_path):
    with pytest.raises(ValueError):
        ImageProcessor.load_image(str(tmp_path / "missing.png"))


def test_undecodable_image_raises_value_error(tmp_path):
    path = tmp_path / "junk.png"
    path.write_bytes(b"not an image")
    with pytest.raises(ValueError):
        ImageProcessor.load_image(str(path))


def test_limit_resolution():
    image = np.zeros((300, 600, 3), dtype=np.uint8)
    assert ImageProcessor.limit_resolution(image, 200).shape == (100, 200, 3)
    assert ImageProcessor.limit_resolution(image, 1000) is image


def test_load_mask_uses_gray_when_opaque(tmp_path):
    gray = np.zeros((10, 10), dtype=np.uint8)
    gray[:, 5:] = 255
    path = ImageProcessor.save_image(gray, str(tmp_path / "mask.png"))

    alpha = ImageProcessor.load_mask(str(path), (20, 20))
    assert alpha.shape == (20, 20)
    assert alpha[0, 0] == 0
    assert alpha[0, 19] == 255


def test_encode_png_signature():
    data = ImageProcessor.encode_png(np.zeros((3, 3, 3), dtype=np.uint8))
    assert data[:8] == b"\x89PNG\r\n\x1a\n"


# ============================================================================
# LOGGING
# ============================================================================

def _record(msg="hello", **extra):
    record = logging.LogRecord("core.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    data = json.loads(JsonFormatter().format(_record(strokes=42)))
    assert data['message'] == "hello"
    assert data['level'] == "INFO"
    assert data['logger'] == "core.test"
    assert data['strokes'] == 42


def test_colored_formatter_plain_when_not_a_tty():
    class Stream:
        def isatty(self):
            return False

    formatter = ColoredFormatter('%(levelname)s %(message)s', stream=Stream())
    assert formatter.format(_record()) == "INFO hello"


def test_performance_filter_adds_fields():
    record = _record()
    assert PerformanceFilter().filter(record)
    assert record.runtime >= 0
    assert record.memory_mb > 0


def test_log_manager_writes_files(tmp_path):
    manager = LogManager()
    logger = manager.setup_default_logging(str(tmp_path), app_name='studio_test',
                                           console_level='ERROR', use_colors=False)
    try:
        logger.info("file message")
        logging.getLogger("core.rendering").error("module failure")
        for handler in manager.handlers.values():
            handler.flush()

        main_log = (tmp_path / "studio_test.log").read_text(encoding='utf-8')
        error_log = (tmp_path / "studio_test_error.log").read_text(encoding='utf-8')
        assert "file message" in main_log
        assert "module failure" in error_log
        assert "file message" not in error_log
    finally:
        manager.close_all_handlers(logging.getLogger())


# ============================================================================
# PERFORMANCE
# ============================================================================

def test_timer_measures_and_rejects_misuse():
    timer = Timer("t")
    with pytest.raises(RuntimeError):
        timer.stop()
    with timer:
        pass
    assert timer.elapsed_time >= 0
    timer.start()
    with pytest.raises(RuntimeError):
        timer.start()


def test_measure_time_logs_debug(caplog):
    logger = logging.getLogger("tests.timing")
    with caplog.at_level(logging.DEBUG, logger="tests.timing"):
        with measure_time("Step", logger):
            pass
    assert any("Step took" in message for message in caplog.messages)


def test_measure_memory_yields_monitor():
    with measure_memory("Block") as monitor:
        assert isinstance(monitor, MemoryMonitor)
    stats = monitor.get_memory_stats()
    assert stats['peak'] >= stats['baseline'] > 0
