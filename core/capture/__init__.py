# -*- coding: utf-8 -*-
"""
帧捕获与延时动画模块

1. 渲染进度帧捕获
2. 区间、帧密度抽样与裁切
3. 逐帧延迟与编码器交接
"""

from .frame_capture import FrameCapture, CapturedFrame, fit_to_budget
from .timelapse_export import (
    TimelapseExporter, TimelapsePlan, ExportSettings, CropRect, PillowGifEncoder,
    select_frames, select_indices, frame_stride, output_geometry, frame_delays,
    estimate_size_mb, round_half_up
)

__all__ = [
    'FrameCapture',
    'CapturedFrame',
    'fit_to_budget',
    'TimelapseExporter',
    'TimelapsePlan',
    'ExportSettings',
    'CropRect',
    'PillowGifEncoder',
    'select_frames',
    'select_indices',
    'frame_stride',
    'output_geometry',
    'frame_delays',
    'estimate_size_mb',
    'round_half_up'
]
