# -*- coding: utf-8 -*-
"""
外部协作者接口

定义核心与外部协作者（主体分离 AI、GIF/视频编码器）之间的边界
以及在边界处抛出的可恢复错误
"""

from typing import List, Protocol

import numpy as np


class StudioError(Exception):
    """可恢复错误基类"""


class IsolationError(StudioError):
    """主体分离失败"""


class ExportError(StudioError):
    """延时动画导出失败"""


class RenderError(StudioError):
    """渲染线程异常"""


class SubjectIsolator(Protocol):
    """
    主体分离协作者

    输入 (H, W, 4) RGBA 源图，返回相同尺寸的 alpha 蒙版
    ((H, W) 或 (H, W, 4)，后者取第 4 通道)
    """

    def __call__(self, rgba: np.ndarray) -> np.ndarray:
        ...


class FrameEncoder(Protocol):
    """
    帧序列编码协作者

    输入尺寸一致的 RGB 帧序列和逐帧延迟（毫秒），返回编码后的字节流
    """

    def encode(self, frames: List[np.ndarray], delays_ms: List[int]) -> bytes:
        ...
