# -*- coding: utf-8 -*-
"""
蒙版撤销与重做历史测试
"""

import numpy as np
import pytest

from core.masking import BrushSettings, HistoryManager, MaskLayer, SoftBrush


@pytest.fixture
def history(masks):
    return HistoryManager(masks, max_depth=15)


@pytest.fixture
def brush():
    return SoftBrush(BrushSettings(radius=8, hardness=0.5))


def test_undo_redo_restore_exact_buffers(masks, history, brush):
    brush.paint(masks, MaskLayer.DENSITY, (20, 20), (30, 30))
    before = masks.snapshot(MaskLayer.DENSITY)

    history.snapshot(MaskLayer.DENSITY)
    brush.paint(masks, MaskLayer.DENSITY, (60, 20), (80, 70))
    after = masks.snapshot(MaskLayer.DENSITY)

    assert history.undo() == MaskLayer.DENSITY
    assert np.array_equal(masks.snapshot(MaskLayer.DENSITY), before)

    assert history.redo() == MaskLayer.DENSITY
    assert np.array_equal(masks.snapshot(MaskLayer.DENSITY), after)


def test_undo_of_first_paint_removes_layer(masks, history, brush):
    history.snapshot(MaskLayer.COLOR)
    brush.paint(masks, MaskLayer.COLOR, (50, 50), (50, 50))

    history.undo()
    assert not masks.exists(MaskLayer.COLOR)

    history.redo()
    assert masks.exists(MaskLayer.COLOR)


def test_empty_stacks_are_noops(masks, history):
    assert history.undo() is None
    assert history.redo() is None
    assert not history.can_undo
    assert not history.can_redo


def test_snapshot_clears_redo(masks, history, brush):
    history.snapshot(MaskLayer.DENSITY)
    brush.paint(masks, MaskLayer.DENSITY, (10, 10), (20, 20))
    history.undo()
    assert history.redo_depth == 1

    history.snapshot(MaskLayer.DENSITY)
    assert history.redo_depth == 0


def test_undo_depth_is_capped(masks, history):
    for i in range(20):
        history.snapshot(MaskLayer.DENSITY)
        masks.ensure(MaskLayer.DENSITY).alpha[0, 0] = i + 1

    assert history.undo_depth == 15
    # 保留最近的 15 个快照：它们保存的是第 5..19 次写入前的状态
    saved = [entry.pixels[0, 0, 3] for entry in history.undo_entries()]
    assert saved == list(range(5, 20))


def test_undo_restores_the_right_layer(masks, history, brush):
    history.snapshot(MaskLayer.DENSITY)
    brush.paint(masks, MaskLayer.DENSITY, (10, 10), (10, 10))
    history.snapshot(MaskLayer.DETAIL)
    brush.paint(masks, MaskLayer.DETAIL, (80, 80), (80, 80))

    assert history.undo() == MaskLayer.DETAIL
    assert not masks.exists(MaskLayer.DETAIL)
    assert masks.exists(MaskLayer.DENSITY)

    assert history.undo() == MaskLayer.DENSITY
    assert not masks.exists(MaskLayer.DENSITY)


def test_invert_and_clear_are_undoable(masks, history, brush):
    brush.paint(masks, MaskLayer.ORIGINAL, (40, 40), (60, 60))
    painted = masks.snapshot(MaskLayer.ORIGINAL)

    history.snapshot(MaskLayer.ORIGINAL)
    masks.invert(MaskLayer.ORIGINAL)
    history.snapshot(MaskLayer.ORIGINAL)
    masks.clear(MaskLayer.ORIGINAL)

    history.undo()
    history.undo()
    assert np.array_equal(masks.snapshot(MaskLayer.ORIGINAL), painted)


def test_reset_empties_stacks(masks, history):
    history.snapshot(MaskLayer.DENSITY)
    history.reset()
    assert history.undo_depth == 0
    assert history.redo_depth == 0


def test_invalid_depth(masks):
    with pytest.raises(ValueError):
        HistoryManager(masks, max_depth=0)
