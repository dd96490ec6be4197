# -*- coding: utf-8 -*-
"""
延时动画导出

对捕获帧进行区间裁剪、按帧密度抽样、统一裁切或缩放并计算逐帧延迟，
然后交给编码器协作者生成字节流
"""

import io
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image

from utils.performance import measure_time
from ..collaborators import ExportError, FrameEncoder
from .frame_capture import CapturedFrame


def round_half_up(value: float) -> int:
    """四舍五入（0.5 向上）"""
    return int(math.floor(value + 0.5))


@dataclass
class CropRect:
    """
    归一化裁切矩形，单位为帧尺寸的百分比

    Attributes:
        x, y (float): 左上角
        w, h (float): 宽高
    """
    x: float
    y: float
    w: float
    h: float

    @classmethod
    def from_drag(cls, start: Tuple[float, float], end: Tuple[float, float]) -> 'CropRect':
        """由拖拽起止点（百分比）构造矩形"""
        return cls(
            x=min(start[0], end[0]),
            y=min(start[1], end[1]),
            w=abs(end[0] - start[0]),
            h=abs(end[1] - start[1]),
        )

    @property
    def is_empty(self) -> bool:
        return self.w <= 0 or self.h <= 0

    def to_pixels(self, width: int, height: int) -> Tuple[int, int, int, int]:
        """换算为像素矩形 (x, y, w, h)，至少 1 像素且不超出帧"""
        x = min(width - 1, max(0, int(math.floor(self.x / 100.0 * width))))
        y = min(height - 1, max(0, int(math.floor(self.y / 100.0 * height))))
        w = max(1, min(width - x, int(math.floor(self.w / 100.0 * width))))
        h = max(1, min(height - y, int(math.floor(self.h / 100.0 * height))))
        return x, y, w, h


@dataclass
class ExportSettings:
    """
    导出设置

    Attributes:
        start (int): 起始帧索引
        end (Optional[int]): 结束帧索引（含），None 表示最后一帧
        frame_density (float): 帧使用百分比 (0, 100]
        duration (float): 目标时长（秒）
        target_height (int): 不裁切时的输出高度
        crop (Optional[CropRect]): 裁切矩形
        min_delay_ms (int): 最小帧延迟
        final_pause_ms (int): 最后一帧停顿
    """
    start: int = 0
    end: Optional[int] = None
    frame_density: float = 100.0
    duration: float = 10.0
    target_height: int = 1080
    crop: Optional[CropRect] = None
    min_delay_ms: int = 40
    final_pause_ms: int = 3000

    @classmethod
    def from_config(cls, config, **overrides) -> 'ExportSettings':
        export = config.get('export')
        settings = cls(
            frame_density=float(export.get('frame_density', 100)),
            duration=float(export.get('duration', 10.0)),
            target_height=int(export.get('target_height', 1080)),
            min_delay_ms=int(export.get('min_delay_ms', 40)),
            final_pause_ms=int(export.get('final_pause_ms', 3000)),
        )
        for key, value in overrides.items():
            setattr(settings, key, value)
        return settings


@dataclass
class TimelapsePlan:
    """
    可直接编码的帧序列

    Attributes:
        frames (List[np.ndarray]): 尺寸一致的 RGB 帧
        delays_ms (List[int]): 逐帧延迟
        size (Tuple[int, int]): 输出尺寸 (宽, 高)
        source_indices (List[int]): 所选帧在捕获序列中的索引
    """
    frames: List[np.ndarray]
    delays_ms: List[int]
    size: Tuple[int, int]
    source_indices: List[int] = field(default_factory=list)

    @property
    def total_duration_ms(self) -> int:
        return sum(self.delays_ms)

    def __len__(self) -> int:
        return len(self.frames)


def frame_stride(frame_density: float) -> int:
    """帧密度 p 对应的抽样步长 round(100/p)"""
    if not 0 < frame_density <= 100:
        raise ValueError(f"frame_density must be in (0, 100], got {frame_density}")
    return max(1, round_half_up(100.0 / frame_density))


def clamp_range(count: int, start: int, end: Optional[int]) -> Tuple[int, int]:
    """把区间夹紧到 [0, count-1]，起止颠倒时交换"""
    if count <= 0:
        raise ValueError("No frames to select from")
    last = count - 1
    end = last if end is None else end
    start = min(max(start, 0), last)
    end = min(max(end, 0), last)
    if start > end:
        start, end = end, start
    return start, end


def select_indices(count: int, start: int, end: Optional[int], frame_density: float) -> List[int]:
    """
    区间内按步长抽样，区间最后一帧总是保留

    Returns:
        List[int]: 所选帧在完整序列中的索引
    """
    start, end = clamp_range(count, start, end)
    step = frame_stride(frame_density)
    span = end - start + 1
    return [start + i for i in range(span) if i % step == 0 or i == span - 1]


def select_frames(frames: Sequence[CapturedFrame], start: int = 0, end: Optional[int] = None,
                  frame_density: float = 100.0) -> List[CapturedFrame]:
    """按区间和帧密度选择帧"""
    return [frames[i] for i in select_indices(len(frames), start, end, frame_density)]


def output_geometry(frame_width: int, frame_height: int, crop: Optional[CropRect],
                    target_height: int) -> Tuple[Tuple[int, int, int, int], Tuple[int, int]]:
    """
    计算源矩形和输出尺寸

    有裁切时按原始分辨率输出裁切区域；否则整帧缩放到目标高度并保持宽高比

    Returns:
        ((src_x, src_y, src_w, src_h), (out_w, out_h))
    """
    if crop is not None and not crop.is_empty:
        src = crop.to_pixels(frame_width, frame_height)
        return src, (src[2], src[3])

    if target_height <= 0:
        raise ValueError(f"target_height must be positive, got {target_height}")
    scale = target_height / frame_height
    return (0, 0, frame_width, frame_height), (max(1, int(frame_width * scale)), target_height)


def frame_delays(count: int, duration: float, min_delay_ms: int = 40,
                 final_pause_ms: int = 3000) -> List[int]:
    """
    逐帧延迟：max(min_delay, duration_ms / (count - 1))，最后一帧停顿更久
    """
    if count <= 0:
        return []
    active = max(1, count - 1)
    delay = max(min_delay_ms, duration * 1000.0 / active)
    delays = [round_half_up(delay)] * count
    delays[-1] = final_pause_ms
    return delays


def estimate_size_mb(frame_width: int, frame_height: int, count: int, start: int,
                     end: Optional[int], frame_density: float, crop: Optional[CropRect],
                     target_height: int) -> float:
    """
    估算导出文件大小（MB）
    """
    if count <= 0:
        return 0.0
    if crop is not None and not crop.is_empty:
        w = frame_width * (crop.w / 100.0)
        h = frame_height * (crop.h / 100.0)
    else:
        h = target_height
        w = h * (frame_width / frame_height)

    start, end = clamp_range(count, start, end)
    frames_in_range = max(1, end - start)
    used_frames = math.ceil(frames_in_range * (frame_density / 100.0))
    return (w * h * used_frames) * 0.9 / 1024 / 1024


class TimelapseExporter:
    """
    延时动画导出器
    """

    def __init__(self, settings: Optional[ExportSettings] = None):
        """
        初始化导出器

        Args:
            settings (ExportSettings): 导出设置
        """
        self.settings = settings or ExportSettings()
        self.logger = logging.getLogger(__name__)

    def plan(self, frames: Sequence[CapturedFrame]) -> TimelapsePlan:
        """
        生成可编码的帧序列

        Raises:
            ExportError: 没有可导出的帧
        """
        if not frames:
            raise ExportError("No captured frames to export")

        s = self.settings
        indices = select_indices(len(frames), s.start, s.end, s.frame_density)
        first = frames[indices[0]].image
        (src_x, src_y, src_w, src_h), size = output_geometry(
            first.shape[1], first.shape[0], s.crop, s.target_height
        )

        out = []
        for i in indices:
            image = frames[i].image
            if image.shape[:2] != first.shape[:2]:
                # 帧尺寸不一致时先对齐到第一帧
                image = cv2.resize(image, (first.shape[1], first.shape[0]),
                                   interpolation=cv2.INTER_AREA)
            region = image[src_y:src_y + src_h, src_x:src_x + src_w]
            if (src_w, src_h) != size:
                interpolation = cv2.INTER_AREA if size[1] < src_h else cv2.INTER_LINEAR
                region = cv2.resize(region, size, interpolation=interpolation)
            out.append(np.ascontiguousarray(region))

        delays = frame_delays(len(out), s.duration, s.min_delay_ms, s.final_pause_ms)
        return TimelapsePlan(frames=out, delays_ms=delays, size=size, source_indices=indices)

    def export(self, frames: Sequence[CapturedFrame], encoder: FrameEncoder) -> bytes:
        """
        生成帧序列并交给编码器

        Raises:
            ExportError: 无帧可导出或编码器失败
        """
        plan = self.plan(frames)
        self.logger.info(
            f"Exporting timelapse: {len(plan)} frames at {plan.size[0]}x{plan.size[1]}, "
            f"{plan.total_duration_ms / 1000.0:.1f}s"
        )
        with measure_time("Timelapse encoding", self.logger):
            try:
                return encoder.encode(plan.frames, plan.delays_ms)
            except Exception as e:
                self.logger.error(f"Timelapse encoding failed: {str(e)}")
                raise ExportError(f"Encoding failed: {e}") from e

    def write(self, frames: Sequence[CapturedFrame], encoder: FrameEncoder,
              output_path: str) -> Path:
        """导出并写入文件"""
        data = self.export(frames, encoder)
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        self.logger.info(f"Timelapse saved to: {path}")
        return path


class PillowGifEncoder:
    """
    基于 Pillow 的 GIF 编码器

    容器编码完全由 Pillow 完成
    """

    def __init__(self, colors: int = 256, loop: int = 0, optimize: bool = True):
        self.colors = colors
        self.loop = loop
        self.optimize = optimize

    def encode(self, frames: List[np.ndarray], delays_ms: List[int]) -> bytes:
        if not frames:
            raise ValueError("Cannot encode an empty frame sequence")
        if len(frames) != len(delays_ms):
            raise ValueError("Frame and delay counts differ")

        images = [Image.fromarray(frame).quantize(colors=self.colors) for frame in frames]
        buffer = io.BytesIO()
        images[0].save(
            buffer,
            format="GIF",
            save_all=True,
            append_images=images[1:],
            duration=list(delays_ms),
            loop=self.loop,
            optimize=self.optimize,
        )
        return buffer.getvalue()
