# -*- coding: utf-8 -*-
"""
工具模块

提供图像读写、日志配置和性能测量等辅助工具
"""

from .image_utils import ImageProcessor
from .logging_utils import (
    setup_logging, setup_logging_from_config, shutdown_logging, LogManager, ColoredFormatter,
    JsonFormatter, PerformanceFilter
)
from .performance import Timer, MemoryMonitor, measure_time, measure_memory

__all__ = [
    # 图像工具
    'ImageProcessor',

    # 日志工具
    'setup_logging',
    'setup_logging_from_config',
    'shutdown_logging',
    'LogManager',
    'ColoredFormatter',
    'JsonFormatter',
    'PerformanceFilter',

    # 性能工具
    'Timer',
    'MemoryMonitor',
    'measure_time',
    'measure_memory'
]
