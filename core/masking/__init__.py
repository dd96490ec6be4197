# -*- coding: utf-8 -*-
"""
蒙版绘制模块

实现蒙版图层的绘制与历史：
1. 四个命名蒙版图层
2. 软笔刷线段绘制
3. 撤销/重做
"""

from .mask_layers import MaskLayer, MaskStack, LAYER_TINTS
from .brush_engine import SoftBrush, BrushSettings, segment_distance, falloff
from .history import HistoryManager, HistoryEntry

__all__ = [
    'MaskLayer',
    'MaskStack',
    'LAYER_TINTS',
    'SoftBrush',
    'BrushSettings',
    'segment_distance',
    'falloff',
    'HistoryManager',
    'HistoryEntry'
]
