# -*- coding: utf-8 -*-
"""
测试公共夹具

- config: 不写日志文件的默认配置
- rng: 固定种子的随机数生成器
- gradient_image / black_image / white_image: 小尺寸源图
- masks: 100x100 空蒙版集合
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# 扁平布局，测试时把项目根目录放到路径最前面
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import Config
from core.masking import MaskStack
from core.pixel_buffer import PixelBuffer


@pytest.fixture
def config(tmp_path):
    """默认配置，日志写到临时目录"""
    cfg = Config()
    cfg.set('logging', 'log_dir', str(tmp_path / 'logs'))
    return cfg


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def black_image():
    return PixelBuffer.blank(100, 100, (0, 0, 0, 255))


@pytest.fixture
def white_image():
    return PixelBuffer.blank(100, 100, (255, 255, 255, 255))


@pytest.fixture
def gradient_image():
    """从左到右由黑到白的 RGB 渐变"""
    row = np.linspace(0, 255, 64).astype(np.uint8)
    gray = np.tile(row, (48, 1))
    rgb = np.stack([gray, gray // 2, 255 - gray], axis=2)
    return PixelBuffer.from_array(rgb)


@pytest.fixture
def masks():
    return MaskStack(100, 100)
