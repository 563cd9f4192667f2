"""可取消的定时任务调度：实时线程版本与虚拟时钟版本"""

import heapq
import itertools
import logging
import threading
import time
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class TaskHandle:
    """定时任务句柄，cancel() 之后回调不再执行"""

    def __init__(self, name: str = ""):
        self.name = name
        self._cancelled = threading.Event()
        self._timer: Optional[threading.Timer] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        self._cancelled.set()
        if self._timer is not None:
            self._timer.cancel()


class Scheduler:
    """调度器接口"""

    def now(self) -> float:
        raise NotImplementedError

    def call_later(self, delay: float, callback: Callable[[], None], name: str = "") -> TaskHandle:
        raise NotImplementedError

    def call_every(self, period: float, callback: Callable[[], None], name: str = "") -> TaskHandle:
        raise NotImplementedError


class ThreadingScheduler(Scheduler):
    """基于 threading.Timer 的实时调度器，周期任务每次触发后重新挂起"""

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay, callback, name=""):
        handle = TaskHandle(name)

        def fire():
            if not handle.cancelled:
                callback()

        self._arm(handle, delay, fire)
        return handle

    def call_every(self, period, callback, name=""):
        handle = TaskHandle(name)

        def fire():
            if handle.cancelled:
                return
            callback()
            if not handle.cancelled:
                self._arm(handle, period, fire)

        self._arm(handle, period, fire)
        return handle

    @staticmethod
    def _arm(handle: TaskHandle, delay: float, fire: Callable[[], None]):
        timer = threading.Timer(max(0.0, delay), fire)
        timer.daemon = True
        handle._timer = timer
        timer.start()


class ManualScheduler(Scheduler):
    """
    虚拟时钟调度器，用于离线回放和确定性测试。

    advance_to()/advance() 推进时钟，并按到期时间顺序执行到期任务。
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[tuple] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay, callback, name=""):
        handle = TaskHandle(name)
        self._push(self._now + max(0.0, delay), handle, callback, None)
        return handle

    def call_every(self, period, callback, name=""):
        handle = TaskHandle(name)
        self._push(self._now + period, handle, callback, period)
        return handle

    def pending(self) -> int:
        """尚未取消的待执行任务数"""
        return sum(1 for entry in self._queue if not entry[2].cancelled)

    def advance(self, delta: float):
        self.advance_to(self._now + delta)

    def advance_to(self, target: float):
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback, period = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            callback()
            if period is not None and not handle.cancelled:
                self._push(due + period, handle, callback, period)
        self._now = max(self._now, target)

    def _push(self, due, handle, callback, period):
        heapq.heappush(self._queue, (due, next(self._seq), handle, callback, period))
