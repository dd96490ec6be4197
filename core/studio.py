# -*- coding: utf-8 -*-
"""
打字机工作室会话

把源图、蒙版图层、历史、笔刷、渲染工作线程、帧捕获和导出组合成一个会话对象
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional, Tuple

import numpy as np

from config.settings import Config
from utils.image_utils import ImageProcessor
from .collaborators import FrameEncoder, IsolationError, SubjectIsolator
from .pixel_buffer import PixelBuffer
from .masking import BrushSettings, HistoryManager, MaskLayer, MaskStack, SoftBrush
from .rendering import RenderEvent, RenderParams, RenderWorker, StartMessage, StrokeRenderer
from .capture import (
    CapturedFrame, ExportSettings, FrameCapture, PillowGifEncoder, TimelapseExporter,
    estimate_size_mb
)


Point = Tuple[float, float]


class ToolMode(Enum):
    """指针工具"""
    VIEW = "view"
    BRUSH = "brush"
    ERASER = "eraser"


class TypewriterStudio:
    """
    打字机工作室

    一个会话对应一张源图；加载新图会重建蒙版、清空历史和已捕获帧
    """

    def __init__(self, config: Optional[Config] = None,
                 renderer: Optional[StrokeRenderer] = None):
        """
        初始化会话

        Args:
            config (Config): 配置对象
            renderer (StrokeRenderer): 渲染器，默认按配置创建
        """
        self.config = config or Config()
        self.logger = logging.getLogger(__name__)

        self.brush = SoftBrush(BrushSettings.from_config(self.config))
        self.active_layer = MaskLayer(self.config.get('brush', 'active_layer', 'density'))
        self.tool_mode = ToolMode.VIEW
        self.render_params = RenderParams.from_config(self.config)
        self.export_settings = ExportSettings.from_config(self.config)

        self.worker = RenderWorker(renderer or StrokeRenderer(self.config))
        self.capture = FrameCapture.from_config(self.config)

        self.source: Optional[PixelBuffer] = None
        self.masks: Optional[MaskStack] = None
        self.history: Optional[HistoryManager] = None
        self.rendered_image: Optional[np.ndarray] = None
        self.progress = 0.0
        self.is_rendering = False
        self._last_point: Optional[Point] = None
        self._erasing = False

    # ------------------------------------------------------------------
    # 源图

    def load_image(self, image: np.ndarray) -> PixelBuffer:
        """
        加载源图（按 image.resolution 限制最长边）

        Args:
            image (np.ndarray): 灰度、RGB 或 RGBA 图像

        Returns:
            PixelBuffer: 会话使用的源图
        """
        if self.is_rendering:
            self.stop_render()

        limit = int(self.config.get('image', 'resolution', 2000))
        image = ImageProcessor.limit_resolution(np.asarray(image), limit)
        self.source = PixelBuffer.from_array(image)
        self.masks = MaskStack(self.source.width, self.source.height)
        self.history = HistoryManager(self.masks, int(self.config.get('history', 'max_depth', 15)))
        self.capture.reset()
        self.rendered_image = None
        self.progress = 0.0
        self._last_point = None

        self.logger.info(f"Loaded source image {self.source.width}x{self.source.height}")
        return self.source

    def load_image_file(self, image_path: str) -> PixelBuffer:
        """从文件加载源图"""
        return self.load_image(ImageProcessor.load_image(image_path))

    def _require_image(self):
        if self.source is None:
            raise ValueError("No source image loaded")

    # ------------------------------------------------------------------
    # 蒙版绘制

    def set_active_layer(self, layer):
        self.active_layer = MaskLayer(layer)

    def set_brush(self, radius: Optional[float] = None, hardness: Optional[float] = None,
                  opacity: Optional[float] = None):
        """更新笔刷设置"""
        settings = self.brush.settings
        if radius is not None:
            if radius <= 0:
                raise ValueError(f"Brush radius must be positive, got {radius}")
            settings.radius = float(radius)
        if hardness is not None:
            settings.hardness = min(max(float(hardness), 0.0), 1.0)
        if opacity is not None:
            settings.opacity = min(max(float(opacity), 0.0), 1.0)

    def begin_stroke(self, point: Point, erase: Optional[bool] = None):
        """
        开始一笔：先保存一次历史快照，再在落点绘制圆点

        Args:
            point (Point): 指针位置（源图像素坐标）
            erase (bool, optional): 是否擦除，默认由工具模式决定
        """
        self._require_image()
        if erase is None:
            erase = self.tool_mode == ToolMode.ERASER
        self._erasing = erase

        self.history.snapshot(self.active_layer)
        self.brush.paint(self.masks, self.active_layer, point, point, erase=erase)
        self._last_point = point

    def continue_stroke(self, point: Point):
        """沿上一个指针位置到当前位置绘制线段"""
        if self._last_point is None:
            self.begin_stroke(point)
            return
        self.brush.paint(self.masks, self.active_layer, self._last_point, point,
                         erase=self._erasing)
        self._last_point = point

    def end_stroke(self):
        self._last_point = None

    def paint_path(self, points: Iterable[Point], erase: Optional[bool] = None):
        """把一串指针位置作为一笔绘制"""
        points = list(points)
        if not points:
            return
        self.begin_stroke(points[0], erase=erase)
        for point in points[1:]:
            self.continue_stroke(point)
        self.end_stroke()

    def invert_active(self):
        self._require_image()
        self.history.snapshot(self.active_layer)
        self.masks.invert(self.active_layer)

    def clear_active(self):
        self._require_image()
        self.history.snapshot(self.active_layer)
        self.masks.clear(self.active_layer)

    def set_mask(self, layer, alpha: np.ndarray):
        """
        用外部 alpha 蒙版替换图层（可撤销）
        """
        self._require_image()
        layer = MaskLayer(layer)
        self.history.snapshot(layer)
        self.masks.apply_isolation(layer, alpha)

    def undo(self) -> Optional[MaskLayer]:
        self._require_image()
        return self.history.undo()

    def redo(self) -> Optional[MaskLayer]:
        self._require_image()
        return self.history.redo()

    def isolate_subject(self, isolator: SubjectIsolator, layer=None) -> MaskLayer:
        """
        调用主体分离协作者并用结果填充图层

        协作者失败或结果尺寸不符时蒙版和历史保持不变

        Args:
            isolator (SubjectIsolator): 主体分离协作者
            layer (MaskLayer, optional): 目标图层，默认当前图层

        Returns:
            MaskLayer: 被填充的图层

        Raises:
            IsolationError: 协作者失败
        """
        self._require_image()
        layer = self.active_layer if layer is None else MaskLayer(layer)

        try:
            mask = np.asarray(isolator(self.source.pixels.copy()))
        except Exception as e:
            self.logger.error(f"Subject isolation failed: {str(e)}")
            raise IsolationError(f"Subject isolation failed: {e}") from e

        expected = (self.source.height, self.source.width)
        if mask.shape[:2] != expected or mask.ndim not in (2, 3):
            self.logger.error(f"Subject isolation returned mask of shape {mask.shape}")
            raise IsolationError(
                f"Isolation mask shape {mask.shape} does not match image {expected}"
            )

        self.history.snapshot(layer)
        self.masks.apply_isolation(layer, mask)
        self.logger.info(f"Applied subject isolation to layer '{layer.value}'")
        return layer

    def mask_overlay(self, layers: Optional[Iterable[MaskLayer]] = None,
                     opacity: float = 0.4) -> np.ndarray:
        """源图叠加蒙版色调的预览图"""
        self._require_image()
        return self.masks.overlay(self.source, layers, opacity)

    # ------------------------------------------------------------------
    # 渲染

    def update_setting(self, key: str, value) -> RenderParams:
        """
        更新单个渲染参数

        Raises:
            ValueError: 未知参数或取值越界
        """
        if not hasattr(self.render_params, key):
            raise ValueError(f"Unknown render setting: {key}")
        self.render_params = replace(self.render_params, **{key: value}).validate()
        return self.render_params

    def reset_controls(self):
        """恢复渲染参数、笔刷和工具模式为配置默认值"""
        defaults = Config()
        self.render_params = RenderParams.from_config(defaults)
        self.brush.settings = BrushSettings.from_config(defaults)
        self.tool_mode = ToolMode.VIEW
        self.logger.debug("Controls reset to defaults")

    def start_render(self):
        """
        开始新的渲染会话，之前捕获的帧被丢弃
        """
        self._require_image()
        params = self.render_params.validate()
        self.capture.reset()
        self.progress = 0.0
        self.worker.post(StartMessage(self.source, self.masks, params))
        self.is_rendering = True
        self.logger.info(f"Render started: {params.total_strokes} strokes")

    def stop_render(self):
        """请求停止当前渲染"""
        self.worker.stop()
        self.logger.info("Render stop requested")

    def iter_render_events(self, timeout: Optional[float] = None) -> Iterator[RenderEvent]:
        """
        读取当前渲染的事件，同时更新捕获帧、进度和当前画面

        Raises:
            RenderError: 渲染线程失败
        """
        try:
            for event in self.worker.events(timeout):
                self.capture.observe(event)
                self.rendered_image = event.frame
                self.progress = event.fraction
                if event.is_terminal:
                    self.is_rendering = False
                yield event
        finally:
            if not self.worker.is_active:
                self.is_rendering = False

    def render_blocking(self, callback: Optional[Callable[[RenderEvent], None]] = None) -> np.ndarray:
        """
        渲染并等待结束

        Args:
            callback: 每个事件调用一次

        Returns:
            np.ndarray: 最终画面
        """
        self.start_render()
        for event in self.iter_render_events():
            if callback is not None:
                callback(event)
        self.worker.join()
        self.is_rendering = False
        return self.rendered_image

    def save_render(self, output_path: str):
        """保存当前画面"""
        if self.rendered_image is None:
            raise ValueError("Nothing has been rendered yet")
        path = ImageProcessor.save_image(self.rendered_image, output_path)
        self.logger.info(f"Rendered image saved to: {path}")
        return path

    # ------------------------------------------------------------------
    # 延时动画

    @property
    def frames(self) -> Tuple[CapturedFrame, ...]:
        return self.capture.frames

    def export_timelapse(self, encoder: Optional[FrameEncoder] = None, **overrides) -> bytes:
        """
        导出延时动画

        Args:
            encoder (FrameEncoder): 编码器，默认 Pillow GIF
            **overrides: 覆盖 ExportSettings 字段

        Raises:
            ExportError: 无帧或编码失败
        """
        settings = replace(self.export_settings, **overrides)
        exporter = TimelapseExporter(settings)
        return exporter.export(self.capture.frames, encoder or PillowGifEncoder())

    def estimate_export_size(self, **overrides) -> float:
        """估算导出大小（MB），没有帧时为 0"""
        frames = self.capture.frames
        if not frames:
            return 0.0
        s = replace(self.export_settings, **overrides)
        width, height = frames[0].size
        return estimate_size_mb(width, height, len(frames), s.start, s.end,
                                s.frame_density, s.crop, s.target_height)
