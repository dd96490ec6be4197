# -*- coding: utf-8 -*-
"""
打字机笔触渲染模块

实现随机字形放置渲染：
1. 字形密度梯度
2. 分块可取消的笔触渲染
3. 渲染工作线程与控制消息
"""

from .glyph_ramp import GlyphRamp, build_ramp, load_font, DEFAULT_RAMP
from .stroke_renderer import (
    StrokeRenderer, RenderParams, RenderSession, RenderEvent, RenderState,
    EventKind, ColorMode, compute_luminance, density_multiplier,
    strike_probability, mask_fields_from
)
from .render_worker import RenderWorker, StartMessage, StopMessage

__all__ = [
    'GlyphRamp',
    'build_ramp',
    'load_font',
    'DEFAULT_RAMP',
    'StrokeRenderer',
    'RenderParams',
    'RenderSession',
    'RenderEvent',
    'RenderState',
    'EventKind',
    'ColorMode',
    'compute_luminance',
    'density_multiplier',
    'strike_probability',
    'mask_fields_from',
    'RenderWorker',
    'StartMessage',
    'StopMessage'
]
