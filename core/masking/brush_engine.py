# -*- coding: utf-8 -*-
"""
软笔刷引擎

在蒙版图层上绘制软边线段笔触
包括线段距离衰减、最大值混合和擦除
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np

from ..pixel_buffer import PixelBuffer
from .mask_layers import MaskLayer, MaskStack


Point = Tuple[float, float]


@dataclass
class BrushSettings:
    """
    笔刷设置

    Attributes:
        radius (float): 半径（像素）
        hardness (float): 硬度 [0,1]，半径*硬度以内为满强度
        opacity (float): 不透明度 [0,1]
        margin (int): 包围盒额外边距
    """
    radius: float = 40.0
    hardness: float = 1.0
    opacity: float = 1.0
    margin: int = 1

    @classmethod
    def from_config(cls, config) -> 'BrushSettings':
        brush = config.get('brush')
        return cls(
            radius=float(brush.get('size', 40)),
            hardness=float(brush.get('hardness', 1.0)),
            opacity=float(brush.get('opacity', 1.0)),
            margin=int(brush.get('margin', 1)),
        )


def segment_distance(xs: np.ndarray, ys: np.ndarray, p0: Point, p1: Point) -> np.ndarray:
    """
    计算像素到线段的距离

    Args:
        xs, ys (np.ndarray): 像素坐标网格
        p0, p1 (Point): 线段端点

    Returns:
        np.ndarray: 距离数组
    """
    x0, y0 = p0
    dx = p1[0] - x0
    dy = p1[1] - y0
    length_sq = dx * dx + dy * dy

    if length_sq == 0.0:
        return np.hypot(xs - x0, ys - y0)

    # 参数投影并夹紧到 [0,1]
    t = np.clip(((xs - x0) * dx + (ys - y0) * dy) / length_sq, 0.0, 1.0)
    return np.hypot(xs - (x0 + t * dx), ys - (y0 + t * dy))


def falloff(distance: np.ndarray, radius: float, hardness: float) -> np.ndarray:
    """
    软边衰减：radius*hardness 以内为 1，之后线性衰减到 radius 处为 0
    """
    core = radius * hardness
    strength = np.zeros_like(distance, dtype=np.float64)
    strength[distance <= core] = 1.0

    if core < radius:
        ramp = (distance > core) & (distance <= radius)
        strength[ramp] = (radius - distance[ramp]) / (radius - core)

    return strength


class SoftBrush:
    """
    软笔刷

    每次调用只对线段包围盒做一次读-改-写
    """

    def __init__(self, settings: Optional[BrushSettings] = None):
        """
        初始化软笔刷

        Args:
            settings (BrushSettings): 笔刷设置
        """
        self.settings = settings or BrushSettings()
        self.logger = logging.getLogger(__name__)
        self.paint_calls = 0

    def paint(self, masks: MaskStack, layer: MaskLayer, point_from: Point, point_to: Point,
              radius: Optional[float] = None, hardness: Optional[float] = None,
              opacity: Optional[float] = None, erase: bool = False) -> PixelBuffer:
        """
        在图层上绘制一段线段笔触

        Args:
            masks (MaskStack): 蒙版集合
            layer (MaskLayer): 目标图层，不存在时惰性创建
            point_from (Point): 上一个指针位置
            point_to (Point): 当前指针位置
            radius, hardness, opacity: 覆盖默认笔刷设置
            erase (bool): 是否擦除

        Returns:
            PixelBuffer: 修改后的图层缓冲
        """
        layer = MaskLayer(layer)
        radius = self.settings.radius if radius is None else float(radius)
        hardness = self.settings.hardness if hardness is None else float(hardness)
        opacity = self.settings.opacity if opacity is None else float(opacity)

        if radius <= 0:
            raise ValueError(f"Brush radius must be positive, got {radius}")
        hardness = min(max(hardness, 0.0), 1.0)
        opacity = min(max(opacity, 0.0), 1.0)

        buffer = masks.ensure(layer)
        self.paint_calls += 1

        reach = radius + self.settings.margin
        x_min = max(0, int(math.floor(min(point_from[0], point_to[0]) - reach)))
        y_min = max(0, int(math.floor(min(point_from[1], point_to[1]) - reach)))
        x_max = min(buffer.width - 1, int(math.ceil(max(point_from[0], point_to[0]) + reach)))
        y_max = min(buffer.height - 1, int(math.ceil(max(point_from[1], point_to[1]) + reach)))

        if x_max < x_min or y_max < y_min:
            return buffer

        # 包围盒内的像素网格
        ys, xs = np.mgrid[y_min:y_max + 1, x_min:x_max + 1].astype(np.float64)
        distance = segment_distance(xs, ys, point_from, point_to)
        strength = falloff(distance, radius, hardness) * opacity
        computed = np.rint(strength * 255.0).astype(np.int16)
        inside = distance <= radius

        region = buffer.read_rect(x_min, y_min, x_max - x_min + 1, y_max - y_min + 1)
        current = region[:, :, 3].astype(np.int16)

        if erase:
            new_alpha = np.where(inside, np.maximum(current - computed, 0), current)
            region[:, :, 3] = new_alpha.astype(np.uint8)
        else:
            # 最大值混合：只在新值更大处更新 alpha 和色调
            raise_mask = inside & (computed > current)
            region[raise_mask, 3] = computed[raise_mask].astype(np.uint8)
            region[raise_mask, :3] = layer.tint

        buffer.write_rect(x_min, y_min, region)
        return buffer

    def get_brush_statistics(self) -> Dict[str, Any]:
        """
        获取笔刷统计信息
        """
        return {
            'radius': self.settings.radius,
            'hardness': self.settings.hardness,
            'opacity': self.settings.opacity,
            'paint_calls': self.paint_calls,
        }
