# -*- coding: utf-8 -*-
"""
渲染工作线程

在单独的线程中运行渲染会话，通过 START/STOP 控制消息驱动，
经由队列把进度事件单向传给观察者
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from ..collaborators import RenderError
from ..masking.mask_layers import MaskStack
from ..pixel_buffer import PixelBuffer
from .stroke_renderer import (
    MaskFields, RenderEvent, RenderParams, StrokeRenderer, mask_fields_from
)


@dataclass
class StartMessage:
    """START{sourceImage, maskLayers, renderParams}"""
    source: PixelBuffer
    masks: Union[MaskStack, MaskFields, None]
    params: RenderParams


@dataclass
class StopMessage:
    """STOP{}"""


@dataclass
class _WorkerFailure:
    error: BaseException


class RenderWorker:
    """
    渲染工作线程

    同一时刻只有一个会话；新的 START 会先停止并等待上一个会话
    """

    def __init__(self, renderer: Optional[StrokeRenderer] = None):
        """
        初始化工作线程

        Args:
            renderer (StrokeRenderer): 渲染器
        """
        self.renderer = renderer or StrokeRenderer()
        self.logger = logging.getLogger(__name__)
        self._thread: Optional[threading.Thread] = None
        self._cancel: Optional[threading.Event] = None
        self._events: Optional[queue.Queue] = None

    @property
    def is_active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def post(self, message: Union[StartMessage, StopMessage]):
        """
        投递控制消息
        """
        if isinstance(message, StartMessage):
            self.start(message)
        elif isinstance(message, StopMessage):
            self.stop()
        else:
            raise ValueError(f"Unknown control message: {message!r}")

    def start(self, message: StartMessage):
        """
        启动新的渲染会话

        蒙版 alpha 场在调用线程上拷贝，渲染线程只读这些拷贝
        """
        if self.is_active:
            self.logger.info("Stopping previous render session before starting a new one")
            self.stop()
            self.join()

        if isinstance(message.masks, MaskStack) or message.masks is None:
            fields = mask_fields_from(message.masks)
        else:
            fields = dict(message.masks)

        self._cancel = threading.Event()
        self._events = queue.Queue()
        self._thread = threading.Thread(
            target=self._work,
            args=(message.source, fields, message.params, self._cancel, self._events),
            name="render-worker",
            daemon=True,
        )
        self._thread.start()

    def stop(self):
        """请求取消当前会话，在下一个块边界生效"""
        if self._cancel is not None:
            self._cancel.set()

    def join(self, timeout: Optional[float] = None):
        """等待渲染线程结束"""
        if self._thread is not None:
            self._thread.join(timeout)

    def events(self, timeout: Optional[float] = None) -> Iterator[RenderEvent]:
        """
        按顺序读取当前会话的事件，直到 FINISHED

        Args:
            timeout (float, optional): 单个事件的等待超时

        Raises:
            RenderError: 渲染线程抛出异常
            queue.Empty: 等待超时
        """
        events = self._events
        if events is None:
            return

        while True:
            item = events.get(timeout=timeout)
            if isinstance(item, _WorkerFailure):
                raise RenderError(f"Render failed: {item.error}") from item.error
            yield item
            if item.is_terminal:
                return

    def _work(self, source: PixelBuffer, fields, params: RenderParams,
              cancel: threading.Event, events: queue.Queue):
        """
        工作线程主循环
        """
        try:
            session = self.renderer.create_session(source, fields, params, cancel=cancel)
            for event in self.renderer.run(session):
                events.put(event)
        except Exception as e:
            self.logger.error(f"Render worker failed: {str(e)}", exc_info=True)
            events.put(_WorkerFailure(e))
