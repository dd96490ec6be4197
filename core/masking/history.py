# -*- coding: utf-8 -*-
"""
蒙版历史管理

为单个蒙版图层的像素缓冲提供撤销/重做快照
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Tuple

import numpy as np

from .mask_layers import MaskLayer, MaskStack


@dataclass
class HistoryEntry:
    """
    历史记录

    Attributes:
        layer (MaskLayer): 图层
        pixels (Optional[np.ndarray]): 像素快照，None 表示图层当时不存在
    """
    layer: MaskLayer
    pixels: Optional[np.ndarray]


class HistoryManager:
    """
    历史管理器

    撤销栈有上限（溢出时丢弃最旧记录），重做栈在下一次快照前不设上限
    """

    def __init__(self, masks: MaskStack, max_depth: int = 15):
        """
        初始化历史管理器

        Args:
            masks (MaskStack): 蒙版集合
            max_depth (int): 撤销栈最大深度
        """
        if max_depth <= 0:
            raise ValueError(f"max_depth must be positive, got {max_depth}")
        self.masks = masks
        self.max_depth = max_depth
        self.logger = logging.getLogger(__name__)
        self._undo: Deque[HistoryEntry] = deque(maxlen=max_depth)
        self._redo: List[HistoryEntry] = []

    def snapshot(self, layer: MaskLayer):
        """
        在修改图层之前保存当前状态，并清空重做栈
        """
        layer = MaskLayer(layer)
        self._undo.append(HistoryEntry(layer, self.masks.snapshot(layer)))
        self._redo.clear()
        self.logger.debug(f"Snapshot of '{layer.value}' (undo depth {len(self._undo)})")

    def undo(self) -> Optional[MaskLayer]:
        """
        撤销

        Returns:
            Optional[MaskLayer]: 被恢复的图层，撤销栈为空时返回 None
        """
        if not self._undo:
            return None

        entry = self._undo.pop()
        self._redo.append(HistoryEntry(entry.layer, self.masks.snapshot(entry.layer)))
        self.masks.restore(entry.layer, entry.pixels)
        self.logger.debug(f"Undo on '{entry.layer.value}'")
        return entry.layer

    def redo(self) -> Optional[MaskLayer]:
        """
        重做

        Returns:
            Optional[MaskLayer]: 被恢复的图层，重做栈为空时返回 None
        """
        if not self._redo:
            return None

        entry = self._redo.pop()
        self._undo.append(HistoryEntry(entry.layer, self.masks.snapshot(entry.layer)))
        self.masks.restore(entry.layer, entry.pixels)
        self.logger.debug(f"Redo on '{entry.layer.value}'")
        return entry.layer

    def reset(self):
        """清空撤销和重做栈"""
        self._undo.clear()
        self._redo.clear()

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def undo_entries(self) -> Tuple[HistoryEntry, ...]:
        """按从旧到新的顺序返回撤销栈"""
        return tuple(self._undo)
