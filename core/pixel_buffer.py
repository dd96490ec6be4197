#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
像素缓冲模块
提供行优先 RGBA 像素缓冲的创建、拷贝和子矩形读写功能
"""

import numpy as np
from typing import Tuple, Optional


class PixelBuffer:
    """RGBA 像素缓冲类 (height, width, 4) uint8"""

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected (height, width, 4) pixels, got shape {pixels.shape}")
        self.pixels = np.ascontiguousarray(pixels, dtype=np.uint8)

    @classmethod
    def blank(cls, width: int, height: int,
              color: Tuple[int, int, int, int] = (0, 0, 0, 0)) -> 'PixelBuffer':
        """创建纯色缓冲"""
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid buffer size: {width}x{height}")
        return cls(np.full((height, width, 4), color, dtype=np.uint8))

    @classmethod
    def from_array(cls, image: np.ndarray) -> 'PixelBuffer':
        """从灰度、RGB 或 RGBA 数组创建缓冲（拷贝）"""
        if image.ndim == 2:
            rgba = np.empty(image.shape + (4,), dtype=np.uint8)
            rgba[:, :, :3] = image[:, :, None]
            rgba[:, :, 3] = 255
            return cls(rgba)

        if image.ndim == 3 and image.shape[2] == 3:
            rgba = np.empty(image.shape[:2] + (4,), dtype=np.uint8)
            rgba[:, :, :3] = image
            rgba[:, :, 3] = 255
            return cls(rgba)

        return cls(np.array(image, dtype=np.uint8, copy=True))

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def rgb(self) -> np.ndarray:
        """RGB 通道视图"""
        return self.pixels[:, :, :3]

    @property
    def alpha(self) -> np.ndarray:
        """Alpha 通道视图"""
        return self.pixels[:, :, 3]

    def copy(self) -> 'PixelBuffer':
        return PixelBuffer(self.pixels.copy())

    def _clip_rect(self, x: int, y: int, w: int, h: int) -> Optional[Tuple[int, int, int, int]]:
        """将矩形裁剪到缓冲范围内，完全在外部时返回 None"""
        x0 = max(0, x)
        y0 = max(0, y)
        x1 = min(self.width, x + w)
        y1 = min(self.height, y + h)
        if x1 <= x0 or y1 <= y0:
            return None
        return x0, y0, x1, y1

    def read_rect(self, x: int, y: int, w: int, h: int) -> np.ndarray:
        """读取子矩形（拷贝），超出范围部分被裁掉"""
        clipped = self._clip_rect(x, y, w, h)
        if clipped is None:
            return np.zeros((0, 0, 4), dtype=np.uint8)
        x0, y0, x1, y1 = clipped
        return self.pixels[y0:y1, x0:x1].copy()

    def write_rect(self, x: int, y: int, pixels: np.ndarray):
        """将像素块写入 (x, y) 处，超出范围部分被裁掉"""
        h, w = pixels.shape[:2]
        clipped = self._clip_rect(x, y, w, h)
        if clipped is None:
            return
        x0, y0, x1, y1 = clipped
        self.pixels[y0:y1, x0:x1] = pixels[y0 - y:y1 - y, x0 - x:x1 - x]

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and np.array_equal(self.pixels, other.pixels)

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"
