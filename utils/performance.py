# -*- coding: utf-8 -*-
"""
性能监控工具

提供渲染与导出过程的时间测量和内存监控
"""

import time
import logging
from contextlib import contextmanager
from typing import Dict, Optional

import psutil


class Timer:
    """
    计时器类

    提供高精度时间测量功能
    """

    def __init__(self, name: str = "Timer"):
        """
        初始化计时器

        Args:
            name (str): 计时器名称
        """
        self.name = name
        self.start_time = None
        self.end_time = None
        self.elapsed_time = 0.0
        self.is_running = False

    def start(self):
        """
        开始计时
        """
        if self.is_running:
            raise RuntimeError(f"Timer '{self.name}' is already running")

        self.start_time = time.perf_counter()
        self.is_running = True

    def stop(self) -> float:
        """
        停止计时

        Returns:
            float: 经过的时间（秒）
        """
        if not self.is_running:
            raise RuntimeError(f"Timer '{self.name}' is not running")

        self.end_time = time.perf_counter()
        self.elapsed_time = self.end_time - self.start_time
        self.is_running = False

        return self.elapsed_time

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()


class MemoryMonitor:
    """
    内存监控器

    记录进程常驻内存的基线与峰值
    """

    def __init__(self):
        self.process = psutil.Process()
        self.baseline_memory = self.get_memory_usage()
        self.peak_memory = self.baseline_memory

    def get_memory_usage(self) -> float:
        """
        获取当前内存使用量（MB）
        """
        memory = self.process.memory_info().rss / 1024 / 1024
        if memory > getattr(self, 'peak_memory', 0.0):
            self.peak_memory = memory
        return memory

    def get_memory_stats(self) -> Dict[str, float]:
        """
        获取内存统计信息
        """
        current_memory = self.get_memory_usage()
        return {
            'current': current_memory,
            'baseline': self.baseline_memory,
            'peak': self.peak_memory,
            'delta': current_memory - self.baseline_memory,
        }


@contextmanager
def measure_time(name: str = "Operation", logger: Optional[logging.Logger] = None):
    """
    时间测量上下文管理器

    Args:
        name (str): 操作名称
        logger (logging.Logger): 日志记录器，默认使用本模块记录器
    """
    logger = logger or logging.getLogger(__name__)
    start_time = time.perf_counter()
    try:
        yield
    finally:
        elapsed_time = time.perf_counter() - start_time
        logger.debug(f"{name} took {elapsed_time:.4f} seconds")


@contextmanager
def measure_memory(name: str = "Operation", logger: Optional[logging.Logger] = None):
    """
    内存测量上下文管理器

    Args:
        name (str): 操作名称
        logger (logging.Logger): 日志记录器
    """
    logger = logger or logging.getLogger(__name__)
    monitor = MemoryMonitor()
    try:
        yield monitor
    finally:
        stats = monitor.get_memory_stats()
        logger.info(f"{name} memory delta: {stats['delta']:.2f} MB (peak {stats['peak']:.2f} MB)")
