# -*- coding: utf-8 -*-
"""
字形密度梯度

将字符调色板按字号栅格化，统计每个字形的墨水覆盖像素，
按覆盖率降序排列，并缓存用于盖印的字形掩码
"""

import logging
import os
from collections import OrderedDict
from functools import lru_cache
from typing import List, Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from config.settings import DEFAULT_CHARACTER_SET


DEFAULT_RAMP: Tuple[str, ...] = tuple(DEFAULT_CHARACTER_SET)

FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationMono-Bold.ttf",
    "/usr/share/fonts/truetype/freefont/FreeMonoBold.ttf",
    "/usr/share/fonts/truetype/ubuntu/UbuntuMono-B.ttf",
    "/usr/share/fonts/dejavu/DejaVuSansMono-Bold.ttf",
    # macOS
    "/System/Library/Fonts/Menlo.ttc",
    "/Library/Fonts/Courier New Bold.ttf",
    # Windows
    "C:/Windows/Fonts/courbd.ttf",
    "C:/Windows/Fonts/consolab.ttf",
]

# 旋转角度量化步长（度）
ANGLE_STEP = 0.5

# 每个梯度的旋转掩码缓存上限（字节）
ROTATED_CACHE_BYTES = 16 * 1024 * 1024

logger = logging.getLogger(__name__)


def load_font(font_size: int, font_path: Optional[str] = None):
    """
    加载粗体等宽字体，找不到时退回 Pillow 默认字体

    Args:
        font_size (int): 字号（像素）
        font_path (str, optional): 自定义字体路径

    Returns:
        ImageFont: 字体对象
    """
    candidates = ([font_path] if font_path else []) + FONT_CANDIDATES
    for path in candidates:
        if path and os.path.exists(path):
            try:
                return ImageFont.truetype(path, font_size)
            except OSError as e:
                logger.debug(f"Cannot load font {path}: {str(e)}")
    logger.debug("No monospace TrueType font found, using Pillow default font")
    return ImageFont.load_default(size=font_size)


def rasterize_glyph(char: str, font, cell: int) -> np.ndarray:
    """
    在 cell x cell 的白底上居中绘制黑色字形

    Returns:
        np.ndarray: 墨水强度 [0,1] float32，1 为全黑
    """
    image = Image.new("L", (cell, cell), 255)
    draw = ImageDraw.Draw(image)
    left, top, right, bottom = draw.textbbox((0, 0), char, font=font)
    x = (cell - (right - left)) / 2.0 - left
    y = (cell - (bottom - top)) / 2.0 - top
    draw.text((x, y), char, fill=0, font=font)
    return (255.0 - np.asarray(image, dtype=np.float32)) / 255.0


class GlyphRamp:
    """
    字形密度梯度

    chars[0] 墨水覆盖最多，chars[-1] 最少
    """

    def __init__(self, chars: List[str], coverage: List[int], masks: List[np.ndarray],
                 font_size: int, max_rotated_bytes: int = ROTATED_CACHE_BYTES):
        self.chars = tuple(chars)
        self.coverage = tuple(coverage)
        self.font_size = font_size
        self._masks = tuple(masks)
        self.max_rotated_bytes = max_rotated_bytes
        self._rotated: "OrderedDict[Tuple[int, int], np.ndarray]" = OrderedDict()
        self._rotated_bytes = 0

    def __len__(self) -> int:
        return len(self.chars)

    @property
    def cell(self) -> int:
        """字形掩码边长"""
        return self._masks[0].shape[0]

    def index_for(self, darkness: float, jitter: int = 0) -> int:
        """
        根据暗度选择梯度索引

        Args:
            darkness (float): 暗度 [0,1]
            jitter (int): 索引抖动 (-1, 0, 1)
        """
        last = len(self.chars) - 1
        target = int((1.0 - darkness) * last + 0.5)
        return min(max(target + jitter, 0), last)

    def mask(self, index: int) -> np.ndarray:
        return self._masks[index]

    def rotated_mask(self, index: int, angle: float) -> np.ndarray:
        """
        获取旋转后的字形掩码

        角度按 ANGLE_STEP 量化；旋转结果按最近使用顺序缓存，
        总字节数超过 max_rotated_bytes 时淘汰最久未用的掩码

        Args:
            index (int): 梯度索引
            angle (float): 旋转角度（度）

        Returns:
            np.ndarray: 与原掩码同尺寸的墨水强度
        """
        step = int(round(angle / ANGLE_STEP))
        base = self._masks[index]
        if step == 0:
            return base

        key = (index, step)
        cached = self._rotated.get(key)
        if cached is not None:
            self._rotated.move_to_end(key)
            return cached

        center = (base.shape[1] / 2.0, base.shape[0] / 2.0)
        matrix = cv2.getRotationMatrix2D(center, step * ANGLE_STEP, 1.0)
        rotated = cv2.warpAffine(base, matrix, (base.shape[1], base.shape[0]),
                                 flags=cv2.INTER_LINEAR, borderValue=0)

        self._rotated[key] = rotated
        self._rotated_bytes += rotated.nbytes
        while self._rotated_bytes > self.max_rotated_bytes and len(self._rotated) > 1:
            _, evicted = self._rotated.popitem(last=False)
            self._rotated_bytes -= evicted.nbytes
        return rotated

    @property
    def rotated_cache_bytes(self) -> int:
        """旋转缓存当前占用字节数"""
        return self._rotated_bytes

    def __repr__(self) -> str:
        return f"GlyphRamp(size={self.font_size}, chars={''.join(self.chars)!r})"


@lru_cache(maxsize=4)
def build_ramp(character_set: str, font_size: int, font_path: Optional[str] = None) -> GlyphRamp:
    """
    构建字形密度梯度

    去重后的调色板为空时使用内置梯度（保持其固定顺序）

    Args:
        character_set (str): 字符调色板
        font_size (int): 字号（像素）
        font_path (str, optional): 字体路径

    Returns:
        GlyphRamp: 按墨水覆盖率降序排列的梯度
    """
    font_size = max(1, int(font_size))
    chars = list(dict.fromkeys(character_set or ""))
    fallback = not chars
    if fallback:
        chars = list(DEFAULT_RAMP)

    font = load_font(font_size, font_path)
    cell = max(2, font_size * 2)

    glyphs = []
    for char in chars:
        ink = rasterize_glyph(char, font, cell)
        covered = int(np.count_nonzero(ink > 0.5))
        glyphs.append((char, covered, ink))

    if not fallback:
        # 稳定排序，覆盖率相同的字符保持调色板顺序
        glyphs.sort(key=lambda g: g[1], reverse=True)

    ramp = GlyphRamp([g[0] for g in glyphs], [g[1] for g in glyphs],
                     [g[2] for g in glyphs], font_size)
    logger.debug(f"Built glyph ramp: {ramp}")
    return ramp
