# -*- coding: utf-8 -*-
"""
蒙版图层模块

管理四个命名蒙版图层（密度、细节、颜色、原图）
每个图层为独立的 RGBA 缓冲，alpha 表示影响强度
"""

import logging
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

import numpy as np

from ..pixel_buffer import PixelBuffer
from ..collaborators import IsolationError


class MaskLayer(Enum):
    """蒙版图层"""
    DENSITY = "density"
    DETAIL = "detail"
    COLOR = "color"
    ORIGINAL = "original"

    @property
    def tint(self) -> Tuple[int, int, int]:
        """图层在屏幕上叠加显示时使用的固定色调"""
        return LAYER_TINTS[self]


LAYER_TINTS = {
    MaskLayer.DENSITY: (255, 0, 0),
    MaskLayer.DETAIL: (0, 150, 255),
    MaskLayer.COLOR: (255, 200, 0),
    MaskLayer.ORIGINAL: (0, 255, 100),
}


class MaskStack:
    """
    蒙版图层集合

    图层在第一次绘制时惰性创建，清除后变为不存在 (None)
    """

    def __init__(self, width: int, height: int):
        """
        初始化蒙版集合

        Args:
            width (int): 图像宽度
            height (int): 图像高度
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid mask size: {width}x{height}")
        self.width = width
        self.height = height
        self.logger = logging.getLogger(__name__)
        self._layers: Dict[MaskLayer, Optional[PixelBuffer]] = {layer: None for layer in MaskLayer}

    def get(self, layer: MaskLayer) -> Optional[PixelBuffer]:
        """获取图层缓冲，不存在时返回 None"""
        return self._layers[MaskLayer(layer)]

    def exists(self, layer: MaskLayer) -> bool:
        return self._layers[MaskLayer(layer)] is not None

    def ensure(self, layer: MaskLayer) -> PixelBuffer:
        """获取图层缓冲，不存在时创建全透明图层"""
        layer = MaskLayer(layer)
        buffer = self._layers[layer]
        if buffer is None:
            buffer = PixelBuffer.blank(self.width, self.height)
            self._layers[layer] = buffer
            self.logger.debug(f"Created mask layer '{layer.value}'")
        return buffer

    def clear(self, layer: MaskLayer):
        """清除图层（变为不存在）"""
        self._layers[MaskLayer(layer)] = None

    def invert(self, layer: MaskLayer):
        """
        反转图层：覆盖与未覆盖互换，颜色替换为图层色调

        不存在的图层反转为完全覆盖
        """
        layer = MaskLayer(layer)
        buffer = self._layers[layer]
        inverted = PixelBuffer.blank(self.width, self.height, layer.tint + (255,))
        if buffer is not None:
            inverted.alpha[:] = 255 - buffer.alpha
        self._layers[layer] = inverted

    def apply_isolation(self, layer: MaskLayer, mask: np.ndarray):
        """
        用主体分离结果填充图层

        Args:
            layer (MaskLayer): 目标图层
            mask (np.ndarray): (H, W) alpha 或 (H, W, 4) RGBA 蒙版
        """
        layer = MaskLayer(layer)
        mask = np.asarray(mask)
        if mask.ndim == 3 and mask.shape[2] == 4:
            alpha = mask[:, :, 3]
        elif mask.ndim == 2:
            alpha = mask
        else:
            raise IsolationError(f"Unsupported isolation mask shape {mask.shape}")

        if alpha.shape != (self.height, self.width):
            raise IsolationError(
                f"Isolation mask is {alpha.shape[1]}x{alpha.shape[0]}, "
                f"expected {self.width}x{self.height}"
            )

        if alpha.dtype != np.uint8:
            alpha = np.clip(np.rint(alpha), 0, 255).astype(np.uint8)

        filled = PixelBuffer.blank(self.width, self.height, layer.tint + (0,))
        filled.alpha[:] = alpha
        self._layers[layer] = filled

    def alpha_field(self, layer: MaskLayer) -> Optional[np.ndarray]:
        """
        获取图层 alpha 场（拷贝）

        Returns:
            Optional[np.ndarray]: [0,1] float32 数组，图层不存在时返回 None
        """
        buffer = self._layers[MaskLayer(layer)]
        if buffer is None:
            return None
        return buffer.alpha.astype(np.float32) / 255.0

    def snapshot(self, layer: MaskLayer) -> Optional[np.ndarray]:
        """拷贝图层像素，不存在时返回 None"""
        buffer = self._layers[MaskLayer(layer)]
        return None if buffer is None else buffer.pixels.copy()

    def restore(self, layer: MaskLayer, pixels: Optional[np.ndarray]):
        """恢复图层像素，None 表示删除图层"""
        self._layers[MaskLayer(layer)] = None if pixels is None else PixelBuffer(pixels.copy())

    def overlay(self, source: PixelBuffer, layers: Optional[Iterable[MaskLayer]] = None,
                opacity: float = 0.4) -> np.ndarray:
        """
        将蒙版色调叠加在源图上用于显示

        Args:
            source (PixelBuffer): 源图
            layers: 要显示的图层，默认全部
            opacity (float): 叠加不透明度

        Returns:
            np.ndarray: (H, W, 3) uint8 RGB 图像
        """
        result = source.rgb.astype(np.float32)
        for layer in (layers or list(MaskLayer)):
            buffer = self._layers[MaskLayer(layer)]
            if buffer is None:
                continue
            a = buffer.alpha.astype(np.float32)[:, :, None] / 255.0 * opacity
            result = result * (1.0 - a) + buffer.rgb.astype(np.float32) * a
        return np.clip(result + 0.5, 0, 255).astype(np.uint8)

    def __repr__(self) -> str:
        present = [layer.value for layer, buffer in self._layers.items() if buffer is not None]
        return f"MaskStack({self.width}x{self.height}, layers={present})"
