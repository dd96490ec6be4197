# -*- coding: utf-8 -*-
"""
核心算法模块

包含打字机艺术渲染的核心实现：蒙版绘制、笔触渲染、帧捕获与导出
"""

__version__ = '1.0.0'

from .pixel_buffer import PixelBuffer
from .collaborators import (
    StudioError, IsolationError, ExportError, RenderError, SubjectIsolator, FrameEncoder
)
from .masking import MaskLayer, MaskStack, SoftBrush, HistoryManager
from .rendering import StrokeRenderer, RenderParams, RenderWorker, ColorMode
from .capture import FrameCapture, TimelapseExporter, PillowGifEncoder
from .studio import TypewriterStudio, ToolMode

__all__ = [
    'PixelBuffer',
    'StudioError',
    'IsolationError',
    'ExportError',
    'RenderError',
    'SubjectIsolator',
    'FrameEncoder',
    'MaskLayer',
    'MaskStack',
    'SoftBrush',
    'HistoryManager',
    'StrokeRenderer',
    'RenderParams',
    'RenderWorker',
    'ColorMode',
    'FrameCapture',
    'TimelapseExporter',
    'PillowGifEncoder',
    'TypewriterStudio',
    'ToolMode'
]
