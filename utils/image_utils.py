# -*- coding: utf-8 -*-
"""
图像处理工具

提供图像读写、分辨率限制和蒙版文件读取
内部统一使用 RGB / RGBA 通道顺序
"""

import logging
from pathlib import Path
from typing import Tuple

import cv2
import numpy as np


logger = logging.getLogger(__name__)


class ImageProcessor:
    """
    图像处理器

    OpenCV 读写的薄封装，负责 BGR 与 RGB 之间的转换
    """

    @staticmethod
    def load_image(image_path: str) -> np.ndarray:
        """
        加载图像为 RGBA

        Args:
            image_path (str): 图像路径

        Returns:
            np.ndarray: (H, W, 4) uint8 RGBA 图像

        Raises:
            ValueError: 文件不存在或无法解码
        """
        path = Path(image_path)
        if not path.is_file():
            raise ValueError(f"Image not found: {image_path}")

        # 用 imdecode 读取以支持非 ASCII 路径
        data = np.fromfile(str(path), dtype=np.uint8)
        image = cv2.imdecode(data, cv2.IMREAD_UNCHANGED)
        if image is None:
            raise ValueError(f"Could not decode image: {image_path}")

        if image.dtype != np.uint8:
            image = cv2.convertScaleAbs(image, alpha=255.0 / max(1, int(image.max())))

        if image.ndim == 2:
            rgba = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
        elif image.shape[2] == 3:
            rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
        else:
            rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)

        logger.debug(f"Loaded image {path.name}: {rgba.shape[1]}x{rgba.shape[0]}")
        return rgba

    @staticmethod
    def save_image(image: np.ndarray, output_path: str) -> Path:
        """
        保存 RGB / RGBA / 灰度图像，格式由扩展名决定

        Raises:
            IOError: 写入失败
        """
        if image.dtype != np.uint8:
            image = np.clip(image, 0, 255).astype(np.uint8)

        if image.ndim == 3 and image.shape[2] == 3:
            image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
        elif image.ndim == 3 and image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_RGBA2BGRA)

        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        ok, encoded = cv2.imencode(path.suffix or '.png', image)
        if not ok:
            raise IOError(f"Could not encode image for {output_path}")
        encoded.tofile(str(path))
        return path

    @staticmethod
    def encode_png(image: np.ndarray) -> bytes:
        """把 RGB 图像编码为 PNG 字节"""
        if image.ndim == 3 and image.shape[2] == 3:
            image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
        ok, encoded = cv2.imencode('.png', image)
        if not ok:
            raise IOError("Could not encode PNG")
        return encoded.tobytes()

    @staticmethod
    def limit_resolution(image: np.ndarray, max_dimension: int) -> np.ndarray:
        """
        限制图像最长边

        Args:
            image (np.ndarray): 输入图像
            max_dimension (int): 最长边上限

        Returns:
            np.ndarray: 不超过上限的图像（未缩放时为原数组）
        """
        height, width = image.shape[:2]
        longest = max(width, height)
        if max_dimension <= 0 or longest <= max_dimension:
            return image

        scale = max_dimension / longest
        size = (max(1, int(round(width * scale))), max(1, int(round(height * scale))))
        logger.info(f"Downscaling image from {width}x{height} to {size[0]}x{size[1]}")
        return cv2.resize(image, size, interpolation=cv2.INTER_AREA)

    @staticmethod
    def load_mask(mask_path: str, size: Tuple[int, int]) -> np.ndarray:
        """
        读取蒙版文件为 alpha 场

        有 alpha 通道时使用 alpha，否则使用灰度亮度；尺寸不符时缩放到目标尺寸

        Args:
            mask_path (str): 蒙版路径
            size (Tuple[int, int]): 目标尺寸 (宽, 高)

        Returns:
            np.ndarray: (H, W) uint8 alpha
        """
        rgba = ImageProcessor.load_image(mask_path)
        alpha = rgba[:, :, 3]
        if alpha.min() == 255:
            alpha = cv2.cvtColor(rgba, cv2.COLOR_RGBA2GRAY)

        if (alpha.shape[1], alpha.shape[0]) != tuple(size):
            alpha = cv2.resize(alpha, tuple(size), interpolation=cv2.INTER_LINEAR)
        return np.ascontiguousarray(alpha)
