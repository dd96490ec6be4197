# -*- coding: utf-8 -*-
"""
帧捕获

观察渲染进度事件，按进度阈值保留缩小后的预览帧，用于之后导出延时动画
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2
import numpy as np

from ..rendering.stroke_renderer import RenderEvent


@dataclass
class CapturedFrame:
    """
    捕获帧

    Attributes:
        image (np.ndarray): (H, W, 3) uint8 RGB，可能已缩小
        progress (float): 渲染进度
    """
    image: np.ndarray
    progress: float

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.shape[1], self.image.shape[0]


def fit_to_budget(width: int, height: int, max_height: int, max_pixels: int) -> float:
    """
    计算把帧缩放到高度和像素总量预算内的比例

    Returns:
        float: 缩放比例 (<= 1)
    """
    scale = 1.0
    if height > max_height:
        scale = max_height / height
    if (width * scale) * (height * scale) > max_pixels:
        scale = math.sqrt(max_pixels / (width * height))
    return scale


class FrameCapture:
    """
    帧捕获器

    进度比上次保留帧前进至少阈值时保留，终止事件总是保留
    """

    def __init__(self, threshold: float = 0.01, max_height: int = 1080,
                 max_pixels: int = 2000000):
        """
        初始化帧捕获器

        Args:
            threshold (float): 进度阈值
            max_height (int): 保存帧的最大高度
            max_pixels (int): 保存帧的最大像素数
        """
        self.threshold = threshold
        self.max_height = max_height
        self.max_pixels = max_pixels
        self.logger = logging.getLogger(__name__)
        self._frames: List[CapturedFrame] = []

    @classmethod
    def from_config(cls, config) -> 'FrameCapture':
        capture = config.get('capture')
        return cls(
            threshold=float(capture.get('threshold', 0.01)),
            max_height=int(capture.get('max_height', 1080)),
            max_pixels=int(capture.get('max_pixels', 2000000)),
        )

    @property
    def frames(self) -> Tuple[CapturedFrame, ...]:
        return tuple(self._frames)

    @property
    def last_progress(self) -> float:
        return self._frames[-1].progress if self._frames else -1.0

    def __len__(self) -> int:
        return len(self._frames)

    def __getitem__(self, index: int) -> CapturedFrame:
        return self._frames[index]

    def reset(self):
        """清空已捕获帧（每次新渲染开始时调用）"""
        self._frames.clear()

    def observe(self, event: RenderEvent) -> bool:
        """
        观察一个渲染事件

        Returns:
            bool: 是否保留了该帧
        """
        if event.fraction - self.last_progress < self.threshold and not event.is_terminal:
            return False

        self._frames.append(CapturedFrame(self._downscale(event.frame), event.fraction))
        return True

    def _downscale(self, frame: np.ndarray) -> np.ndarray:
        height, width = frame.shape[:2]
        scale = fit_to_budget(width, height, self.max_height, self.max_pixels)
        if scale >= 1.0:
            return frame.copy()

        size = (max(1, int(width * scale)), max(1, int(height * scale)))
        return cv2.resize(frame, size, interpolation=cv2.INTER_AREA)

    def memory_bytes(self) -> int:
        """已捕获帧占用的字节数"""
        return sum(frame.image.nbytes for frame in self._frames)

    def latest(self) -> Optional[CapturedFrame]:
        return self._frames[-1] if self._frames else None
