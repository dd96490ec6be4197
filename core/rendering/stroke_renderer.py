# -*- coding: utf-8 -*-
"""
笔触渲染器

实现打字机艺术的随机笔触放置渲染：
1. 亮度计算与字形梯度准备
2. 分块随机采样与击键概率
3. 蒙版驱动的密度、细节和颜色
4. 色带磨损、字形旋转与脏墨效果
5. 可取消的渐进式进度事件
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, Mapping, Optional, Union

import cv2
import numpy as np

from config.settings import DEFAULT_CHARACTER_SET
from utils.performance import Timer, measure_time
from ..pixel_buffer import PixelBuffer
from ..masking.mask_layers import MaskLayer, MaskStack
from .glyph_ramp import GlyphRamp, build_ramp


# 击键概率的暗度指数
DARKNESS_EXPONENT = 2.2
# 脏墨概率系数与副本透明度
DIRTY_INK_FACTOR = 0.2
DIRTY_INK_ALPHA = 0.6

MaskFields = Mapping[MaskLayer, Optional[np.ndarray]]


class ColorMode(Enum):
    """颜色模式"""
    COLOR = "color"
    BW = "bw"
    MASKED_COLOR = "masked_color"

    @classmethod
    def parse(cls, value: Union[str, 'ColorMode']) -> 'ColorMode':
        """解析颜色模式，兼容界面名称 (Color / B&W / Masked Color)"""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace('&', '').replace(' ', '_')
        aliases = {
            'color': cls.COLOR,
            'bw': cls.BW,
            'b_w': cls.BW,
            'masked_color': cls.MASKED_COLOR,
        }
        if key not in aliases:
            raise ValueError(f"Unknown color mode: {value}")
        return aliases[key]


class RenderState(Enum):
    """渲染会话状态"""
    IDLE = "idle"
    PREPARING = "preparing"
    RUNNING = "running"
    CANCELLING = "cancelling"
    FINISHED = "finished"


class EventKind(Enum):
    """进度事件类型"""
    PROGRESS = "progress"
    FINISHED = "finished"


@dataclass
class RenderParams:
    """
    渲染参数（由调用方提供并校验）

    Attributes:
        total_strokes (int): 总笔触数
        font_size (int): 基础字号
        gamma (float): 伽马
        output_scale (float): 输出缩放
        ink_opacity (float): 墨水不透明度 (0-255)
        ribbon_wear (float): 色带磨损 [0,1]
        dirty_ink (float): 脏墨概率 [0,1]
        density_weight (float): 密度权重 (>=1)
        character_set (str): 字符调色板
        color_mode (ColorMode): 颜色模式
    """
    total_strokes: int = 300000
    font_size: int = 14
    gamma: float = 1.4
    output_scale: float = 2.0
    ink_opacity: float = 140.0
    ribbon_wear: float = 0.2
    dirty_ink: float = 0.1
    density_weight: float = 2.0
    character_set: str = DEFAULT_CHARACTER_SET
    color_mode: ColorMode = ColorMode.COLOR

    def __post_init__(self):
        self.color_mode = ColorMode.parse(self.color_mode)

    @classmethod
    def from_config(cls, config, **overrides) -> 'RenderParams':
        """从配置的 render 段创建参数"""
        render = config.get('render')
        params = cls(
            total_strokes=int(render.get('total_strokes', 300000)),
            font_size=int(render.get('font_size', 14)),
            gamma=float(render.get('gamma', 1.4)),
            output_scale=float(render.get('output_scale', 2.0)),
            ink_opacity=float(render.get('ink_opacity', 140)),
            ribbon_wear=float(render.get('ribbon_wear', 0.2)),
            dirty_ink=float(render.get('dirty_ink', 0.1)),
            density_weight=float(render.get('density_weight', 2.0)),
            character_set=render.get('character_set', DEFAULT_CHARACTER_SET),
            color_mode=render.get('color_mode', 'color'),
        )
        return replace(params, **overrides) if overrides else params

    def validate(self) -> 'RenderParams':
        """
        校验参数范围

        Raises:
            ValueError: 参数超出范围
        """
        if self.total_strokes < 0:
            raise ValueError(f"total_strokes must be >= 0, got {self.total_strokes}")
        if self.font_size < 1:
            raise ValueError(f"font_size must be >= 1, got {self.font_size}")
        if self.gamma <= 0:
            raise ValueError(f"gamma must be positive, got {self.gamma}")
        if self.output_scale <= 0:
            raise ValueError(f"output_scale must be positive, got {self.output_scale}")
        if not 0 <= self.ink_opacity <= 255:
            raise ValueError(f"ink_opacity must be in [0, 255], got {self.ink_opacity}")
        if not 0.0 <= self.ribbon_wear <= 1.0:
            raise ValueError(f"ribbon_wear must be in [0, 1], got {self.ribbon_wear}")
        if not 0.0 <= self.dirty_ink <= 1.0:
            raise ValueError(f"dirty_ink must be in [0, 1], got {self.dirty_ink}")
        if self.density_weight < 1.0:
            raise ValueError(f"density_weight must be >= 1, got {self.density_weight}")
        return self


@dataclass
class RenderEvent:
    """
    渲染进度事件

    Attributes:
        kind (EventKind): PROGRESS 或 FINISHED
        fraction (float): 已完成笔触 / 总笔触
        frame (np.ndarray): (H, W, 3) uint8 RGB 画面
        strokes_done (int): 已完成笔触数
        total_strokes (int): 总笔触数
    """
    kind: EventKind
    fraction: float
    frame: np.ndarray
    strokes_done: int
    total_strokes: int

    @property
    def is_terminal(self) -> bool:
        return self.kind == EventKind.FINISHED


@dataclass
class RenderSession:
    """
    渲染会话状态，由渲染器在会话期间独占
    """
    params: RenderParams
    total_strokes: int
    canvas: Optional[np.ndarray]
    luminance: Optional[np.ndarray]
    source_rgb: Optional[np.ndarray]
    ramp: Optional[GlyphRamp]
    detail_ramp: Optional[GlyphRamp]
    density_field: Optional[np.ndarray] = None
    detail_field: Optional[np.ndarray] = None
    color_field: Optional[np.ndarray] = None
    original_rgb: Optional[np.ndarray] = None
    original_alpha: Optional[np.ndarray] = None
    detail_jitter: float = 1.0
    current_stroke: int = 0
    glyphs_stamped: int = 0
    smudges: int = 0
    state: RenderState = RenderState.IDLE
    _cancel: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self):
        """请求取消（在下一个块边界生效）"""
        self._cancel.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.is_set()

    @property
    def fraction(self) -> float:
        if self.total_strokes <= 0:
            return 1.0
        return self.current_stroke / self.total_strokes

    @property
    def output_size(self):
        return self.canvas.shape[1], self.canvas.shape[0]

    def release(self):
        """释放会话持有的缓冲"""
        self.canvas = None
        self.luminance = None
        self.source_rgb = None
        self.density_field = None
        self.detail_field = None
        self.color_field = None
        self.original_rgb = None
        self.original_alpha = None


def compute_luminance(rgba: np.ndarray, gamma: float) -> np.ndarray:
    """
    伽马校正灰度

    lum = 255 * ((0.299R + 0.587G + 0.114B) / 255) ^ (1 / gamma)

    Returns:
        np.ndarray: (H, W) float32，取值 [0, 255]
    """
    rgb = rgba[:, :, :3].astype(np.float32)
    lum = 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]
    return (255.0 * np.power(lum / 255.0, 1.0 / gamma)).astype(np.float32)


def density_multiplier(alpha, density_weight: float):
    """密度蒙版 alpha 在 1/weight 与 weight 之间线性插值"""
    low = 1.0 / density_weight
    return low + (density_weight - low) * np.asarray(alpha, dtype=np.float64)


def strike_probability(darkness, multiplier=1.0):
    """击键概率 min(darkness^2.2 * multiplier, 1)，夹紧到 [0,1]"""
    darkness = np.clip(np.asarray(darkness, dtype=np.float64), 0.0, 1.0)
    probability = np.power(darkness, DARKNESS_EXPONENT) * multiplier
    return np.clip(probability, 0.0, 1.0)


def mask_fields_from(masks: Optional[MaskStack]) -> Dict[MaskLayer, Optional[np.ndarray]]:
    """拷贝蒙版集合的 alpha 场，供渲染线程只读使用"""
    if masks is None:
        return {layer: None for layer in MaskLayer}
    return {layer: masks.alpha_field(layer) for layer in MaskLayer}


class StrokeRenderer:
    """
    笔触渲染器

    以生成器方式分块执行渲染，每块之后产出一个进度事件
    """

    def __init__(self, config: Optional[Any] = None, rng: Optional[np.random.Generator] = None):
        """
        初始化笔触渲染器

        Args:
            config: 配置对象（使用 render 段）
            rng: 随机数生成器，默认不设种子
        """
        self.logger = logging.getLogger(__name__)
        self.rng = rng if rng is not None else np.random.default_rng()

        render = config.get('render') if config is not None else {}
        self.min_chunk_strokes = int(render.get('min_chunk_strokes', 5000))
        self.chunk_divisor = int(render.get('chunk_divisor', 100))
        self.rotation_jitter = float(render.get('rotation_jitter', 5.0))
        self.detail_substrokes = int(render.get('detail_substrokes', 3))
        self.font_path = render.get('font_path')

    def chunk_size(self, total_strokes: int) -> int:
        """每块笔触数 max(5000, total/100)"""
        return max(self.min_chunk_strokes, total_strokes // self.chunk_divisor)

    def create_session(self, source: PixelBuffer,
                       masks: Union[MaskStack, MaskFields, None],
                       params: RenderParams,
                       cancel: Optional[threading.Event] = None) -> RenderSession:
        """
        准备阶段：计算亮度、构建字形梯度、预计算原图蒙版合成

        Args:
            source (PixelBuffer): 源图
            masks: 蒙版集合或各图层 alpha 场
            params (RenderParams): 渲染参数
            cancel (threading.Event, optional): 外部持有的取消标志

        Returns:
            RenderSession: 新会话
        """
        if isinstance(masks, MaskStack) or masks is None:
            fields = mask_fields_from(masks)
        else:
            fields = {layer: masks.get(layer) for layer in MaskLayer}

        for layer, alpha in fields.items():
            if alpha is not None and alpha.shape != (source.height, source.width):
                raise ValueError(
                    f"Mask layer '{layer.value}' is {alpha.shape[1]}x{alpha.shape[0]}, "
                    f"source is {source.width}x{source.height}"
                )

        density = fields[MaskLayer.DENSITY]
        if density is not None and not density.any():
            # 没有任何覆盖的密度图层与不存在的图层等价（中性倍率）
            self.logger.debug("Density layer has no coverage, treating it as absent")
            density = None

        with measure_time("Render preparation", self.logger):
            scale = params.output_scale
            out_w = max(1, int(source.width * scale))
            out_h = max(1, int(source.height * scale))
            glyph_size = max(1, int(params.font_size * scale))

            ramp = build_ramp(params.character_set, glyph_size, self.font_path)
            detail_ramp = build_ramp(params.character_set, max(1, glyph_size // 2), self.font_path)

            session = RenderSession(
                params=params,
                total_strokes=int(params.total_strokes),
                canvas=np.full((out_h, out_w, 3), 255.0, dtype=np.float32),
                luminance=compute_luminance(source.pixels, params.gamma),
                source_rgb=source.rgb.copy(),
                ramp=ramp,
                detail_ramp=detail_ramp,
                density_field=density,
                detail_field=fields[MaskLayer.DETAIL],
                color_field=fields[MaskLayer.COLOR],
                detail_jitter=max(1.0, detail_ramp.font_size / scale),
                state=RenderState.PREPARING,
            )
            if cancel is not None:
                session._cancel = cancel

            original = fields[MaskLayer.ORIGINAL]
            if original is not None:
                # 预先把源图按原图蒙版 alpha 门控并缩放到输出尺寸
                session.original_rgb = cv2.resize(session.source_rgb, (out_w, out_h),
                                                  interpolation=cv2.INTER_LINEAR).astype(np.float32)
                alpha = cv2.resize(original, (out_w, out_h), interpolation=cv2.INTER_LINEAR)
                session.original_alpha = np.clip(alpha, 0.0, 1.0)[:, :, None]

        self.logger.info(
            f"Prepared render session: {source.width}x{source.height} -> {out_w}x{out_h}, "
            f"{session.total_strokes} strokes, ramp of {len(ramp)} glyphs, "
            f"mode={params.color_mode.value}"
        )
        return session

    def run(self, session: RenderSession) -> Iterator[RenderEvent]:
        """
        运行阶段：分块执行笔触，块之间检查取消

        Yields:
            RenderEvent: 零个或多个 PROGRESS 事件，最后恰好一个 FINISHED 事件
        """
        timer = Timer("render")
        timer.start()
        session.state = RenderState.RUNNING
        total = session.total_strokes
        chunk = self.chunk_size(total)

        while session.current_stroke < total:
            if session.cancel_requested:
                session.state = RenderState.CANCELLING
                self.logger.info(f"Render cancelled at {session.current_stroke}/{total} strokes")
                break

            count = min(chunk, total - session.current_stroke)
            self._run_chunk(session, count)
            yield self._event(session, EventKind.PROGRESS)

        final = self._event(session, EventKind.FINISHED)
        session.state = RenderState.FINISHED
        elapsed = timer.stop()
        self.logger.info(
            f"Render finished: {session.current_stroke}/{total} strokes, "
            f"{session.glyphs_stamped} glyphs ({session.smudges} smudged) in {elapsed:.2f}s"
        )
        session.release()
        yield final

    def render(self, source: PixelBuffer, masks: Union[MaskStack, MaskFields, None],
               params: RenderParams) -> Iterator[RenderEvent]:
        """准备并运行一个会话"""
        session = self.create_session(source, masks, params)
        return self.run(session)

    def _event(self, session: RenderSession, kind: EventKind) -> RenderEvent:
        return RenderEvent(
            kind=kind,
            fraction=session.fraction,
            frame=self.snapshot(session),
            strokes_done=session.current_stroke,
            total_strokes=session.total_strokes,
        )

    def snapshot(self, session: RenderSession) -> np.ndarray:
        """
        当前画面：字形画布，存在原图蒙版时在其上合成原图区域

        Returns:
            np.ndarray: (H, W, 3) uint8 RGB
        """
        frame = session.canvas
        if session.original_alpha is not None:
            a = session.original_alpha
            frame = frame * (1.0 - a) + session.original_rgb * a
        return np.clip(np.rint(frame), 0, 255).astype(np.uint8)

    def _run_chunk(self, session: RenderSession, count: int):
        """
        执行一块笔触

        采样、击键判定和细节判定按块向量化，盖印逐个进行
        """
        luminance = session.luminance
        height, width = luminance.shape

        rx = self.rng.random(count) * (width - 1)
        ry = self.rng.random(count) * (height - 1)
        ix = rx.astype(np.intp)
        iy = ry.astype(np.intp)

        darkness = (255.0 - luminance[iy, ix]) / 255.0
        if session.density_field is not None:
            multiplier = density_multiplier(session.density_field[iy, ix],
                                            session.params.density_weight)
        else:
            multiplier = 1.0

        probability = strike_probability(darkness, multiplier)
        hits = np.flatnonzero(self.rng.random(count) < probability)

        if session.detail_field is not None and hits.size:
            detail = self.rng.random(hits.size) < session.detail_field[iy[hits], ix[hits]]
        else:
            detail = np.zeros(hits.size, dtype=bool)

        for i, is_detail in zip(hits, detail):
            if is_detail:
                self._emit_detail(session, rx[i], ry[i])
            else:
                self._emit_glyph(session, session.ramp, rx[i], ry[i])

        session.current_stroke += count

    def _emit_detail(self, session: RenderSession, x: float, y: float):
        """细节模式：半字号梯度，多个抖动子笔触"""
        height, width = session.luminance.shape
        jitter = session.detail_jitter
        for _ in range(self.detail_substrokes):
            sx = x + self.rng.uniform(-jitter, jitter)
            sy = y + self.rng.uniform(-jitter, jitter)
            # 越界的子笔触直接跳过
            if sx < 0 or sy < 0 or sx > width - 1 or sy > height - 1:
                continue
            self._emit_glyph(session, session.detail_ramp, sx, sy)

    def _emit_glyph(self, session: RenderSession, ramp: GlyphRamp, x: float, y: float):
        params = session.params
        ix, iy = int(x), int(y)
        lum = float(session.luminance[iy, ix])
        darkness = (255.0 - lum) / 255.0

        index = ramp.index_for(darkness, int(self.rng.integers(-1, 2)))
        color = self._pick_color(session, ix, iy, lum)
        alpha = (params.ink_opacity / 255.0) * (1.0 - self.rng.random() * params.ribbon_wear)
        angle = self.rng.uniform(-self.rotation_jitter, self.rotation_jitter)
        mask = ramp.rotated_mask(index, angle)

        cx = x * params.output_scale
        cy = y * params.output_scale
        stamp_glyph(session.canvas, mask, cx, cy, color, alpha)

        if params.dirty_ink > 0 and self.rng.random() < params.dirty_ink * DIRTY_INK_FACTOR:
            ox, oy = self.rng.choice((-1, 1), size=2)
            stamp_glyph(session.canvas, mask, cx + ox, cy + oy, color, alpha * DIRTY_INK_ALPHA)
            session.smudges += 1

        session.glyphs_stamped += 1

    def _pick_color(self, session: RenderSession, ix: int, iy: int, lum: float) -> np.ndarray:
        mode = session.params.color_mode
        if mode == ColorMode.COLOR:
            return session.source_rgb[iy, ix].astype(np.float32)
        if mode == ColorMode.MASKED_COLOR and session.color_field is not None:
            if self.rng.random() < session.color_field[iy, ix]:
                return session.source_rgb[iy, ix].astype(np.float32)
        return np.array([lum, lum, lum], dtype=np.float32)


def stamp_glyph(canvas: np.ndarray, mask: np.ndarray, cx: float, cy: float,
                color: np.ndarray, alpha: float):
    """
    以 (cx, cy) 为中心把字形掩码按 alpha 混合到画布

    Args:
        canvas (np.ndarray): (H, W, 3) float32 画布
        mask (np.ndarray): (S, S) 墨水强度 [0,1]
        cx, cy (float): 中心
        color (np.ndarray): RGB
        alpha (float): 墨水不透明度
    """
    cell_h, cell_w = mask.shape
    x0 = int(round(cx - cell_w / 2.0))
    y0 = int(round(cy - cell_h / 2.0))
    height, width = canvas.shape[:2]

    cx0, cy0 = max(0, x0), max(0, y0)
    cx1, cy1 = min(width, x0 + cell_w), min(height, y0 + cell_h)
    if cx1 <= cx0 or cy1 <= cy0:
        return

    weight = mask[cy0 - y0:cy1 - y0, cx0 - x0:cx1 - x0, None] * alpha
    region = canvas[cy0:cy1, cx0:cx1]
    region *= (1.0 - weight)
    region += color * weight
