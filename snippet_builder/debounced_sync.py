"""
按组件合并的防抖同步器（trailing-edge）。

每个 widget_id 拥有独立的定时器、待写入值和写锁。
同一组件的持久化调用串行执行，并按调度序号做 last-write-wins：
序号落后于已写入值的调用会被直接丢弃。
"""

import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from snippet_builder.optimistic_store import WidgetCommitError

logger = logging.getLogger(__name__)

PersistFn = Callable[[str, Dict[str, Any]], Awaitable[Any]]

DEFAULT_DELAY = 0.5


class DebouncedSync:
    """合并高频的局部更新，每个组件在静默 delay 秒后只写一次最新值。"""

    def __init__(self, persist: PersistFn, delay: float = DEFAULT_DELAY):
        self._persist = persist
        self.delay = max(0.0, float(delay))
        self._seq = itertools.count(1)
        # widget_id -> 合并后的待写入更新
        self._pending: Dict[str, Dict[str, Any]] = {}
        self._pending_seq: Dict[str, int] = {}
        self._persisted_seq: Dict[str, int] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._tasks: Set[asyncio.Task] = set()

    # ── 查询 ──────────────────────────────────────────

    def has_pending(self, widget_id: str) -> bool:
        return widget_id in self._pending

    def pending(self, widget_id: str) -> Optional[Dict[str, Any]]:
        update = self._pending.get(widget_id)
        return dict(update) if update is not None else None

    # ── 调度 ──────────────────────────────────────────

    def schedule(self, widget_id: str, update: Dict[str, Any]):
        """
        记录一次局部更新并重置该组件的定时器。
        同一窗口内的多次更新按字段合并，后写覆盖先写。
        """
        loop = asyncio.get_running_loop()
        self._cancel_timer(widget_id)
        self._pending.setdefault(widget_id, {}).update(update)
        self._pending_seq[widget_id] = next(self._seq)
        self._timers[widget_id] = loop.call_later(self.delay, self._on_timer, widget_id)

    async def flush(self, widget_id: str, update: Optional[Dict[str, Any]] = None) -> bool:
        """
        取消待触发的定时器并立即写入最新值。
        没有待写入值或写入失败时返回 False。
        """
        self._cancel_timer(widget_id)
        if update:
            self._pending.setdefault(widget_id, {}).update(update)
            self._pending_seq[widget_id] = next(self._seq)
        return await self._run(widget_id)

    def discard(self, widget_id: str):
        """丢弃该组件的待写入值（组件被删除时使用）。"""
        self._cancel_timer(widget_id)
        self._pending.pop(widget_id, None)
        self._pending_seq.pop(widget_id, None)

    async def aclose(self, flush: bool = True):
        """关闭：可选地写出所有待写入值，然后取消定时器并等待进行中的写入。"""
        for widget_id in list(self._pending):
            if flush:
                await self.flush(widget_id)
            else:
                self.discard(widget_id)
        for widget_id in list(self._timers):
            self._cancel_timer(widget_id)
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ── 内部 ──────────────────────────────────────────

    def _cancel_timer(self, widget_id: str):
        handle = self._timers.pop(widget_id, None)
        if handle is not None:
            handle.cancel()

    def _on_timer(self, widget_id: str):
        self._timers.pop(widget_id, None)
        task = asyncio.ensure_future(self._run_from_timer(widget_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_from_timer(self, widget_id: str):
        try:
            await self._run(widget_id)
        except Exception as e:
            logger.error(f"[{widget_id}] 防抖写入异常: {e}", exc_info=True)

    async def _run(self, widget_id: str) -> bool:
        update = self._pending.pop(widget_id, None)
        seq = self._pending_seq.pop(widget_id, 0)
        if update is None:
            return False

        # pop 与 acquire 之间没有 await，FIFO 锁的等待顺序即 seq 顺序，
        # 因此 last-write-wins 由锁保证；下面的 seq 检查只是兜底，正常路径不会命中
        lock = self._locks.setdefault(widget_id, asyncio.Lock())
        async with lock:
            if seq <= self._persisted_seq.get(widget_id, 0):
                logger.debug(f"[{widget_id}] 丢弃过期写入 (seq={seq})")
                return False
            self._persisted_seq[widget_id] = seq
            try:
                await self._persist(widget_id, update)
            except WidgetCommitError as e:
                # 已由 store 回滚并通过 on_error 通知界面
                logger.warning(f"[{widget_id}] 写入失败: {e.message}")
                return False
        return True
