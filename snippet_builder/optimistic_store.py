"""
乐观更新存储：持有当前页面的组件列表。

本地修改立即生效并触发重绘，随后整体写回 Page Store；
写入失败时只回滚受影响组件的相关字段，其他组件保持不变。
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import BaseModel

from snippet_builder.models import Page, Widget, WidgetKind
from snippet_builder.page_client import PageStoreClient, PageStoreError

logger = logging.getLogger(__name__)

RenderCallback = Callable[[Page], None]
ErrorCallback = Callable[[str, str], None]

_FIELD_FAILURE_MESSAGES = {
    "position": "Failed to save position",
    "size": "Failed to save size",
}


class WidgetCommitError(Exception):
    """组件修改写回失败（本地已回滚）。"""
    def __init__(self, widget_id: str, message: str):
        self.widget_id = widget_id
        self.message = message
        super().__init__(f"[{widget_id}] {message}")


def _failure_message(update: Dict[str, Any]) -> str:
    for field, message in _FIELD_FAILURE_MESSAGES.items():
        if field in update:
            return message
    return "Failed to save widget"


def _merge(widget: Widget, update: Dict[str, Any]) -> Widget:
    data = widget.model_dump()
    for key, value in update.items():
        data[key] = value.model_dump() if isinstance(value, BaseModel) else value
    data["id"] = widget.id
    return Widget.model_validate(data)


class OptimisticStore:
    """
    当前页面的权威内存副本。
    快照按组件保存：手势开始时记录，手势结束后丢弃。
    """

    def __init__(
        self,
        client: PageStoreClient,
        page: Page,
        on_render: Optional[RenderCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ):
        self._client = client
        self._page = page.model_copy(deep=True)
        self._on_render = on_render
        self._on_error = on_error
        # widget_id -> 修改前的组件副本
        self._snapshots: Dict[str, Widget] = {}
        self._gestures: Set[str] = set()

    @classmethod
    async def load(
        cls,
        client: PageStoreClient,
        page_id: str,
        on_render: Optional[RenderCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> "OptimisticStore":
        page = await client.get_page(page_id)
        logger.info(f"[{page_id}] 已加载页面 ({len(page.widgets)} 个组件)")
        return cls(client, page, on_render=on_render, on_error=on_error)

    # ── 查询 ──────────────────────────────────────────

    @property
    def page_id(self) -> str:
        return self._page.id

    @property
    def page(self) -> Page:
        return self._page.model_copy(deep=True)

    def get_widget(self, widget_id: str) -> Optional[Widget]:
        widget = self._page.find(widget_id)
        return widget.model_copy(deep=True) if widget else None

    # ── 手势快照 ──────────────────────────────────────

    def begin_gesture(self, widget_id: str):
        widget = self._page.find(widget_id)
        if widget is None:
            return
        self._snapshots[widget_id] = widget.model_copy(deep=True)
        self._gestures.add(widget_id)

    def end_gesture(self, widget_id: str):
        self._gestures.discard(widget_id)
        self._snapshots.pop(widget_id, None)

    # ── 本地修改 ──────────────────────────────────────

    def apply_local(self, widget_id: str, update: Dict[str, Any]) -> Page:
        """立即修改内存中的组件并重绘，永不失败。"""
        idx = self._page.index_of(widget_id)
        if idx < 0:
            logger.debug(f"[{widget_id}] apply_local: 组件不存在，忽略")
            return self.page
        widget = self._page.widgets[idx]
        if widget_id not in self._snapshots:
            self._snapshots[widget_id] = widget.model_copy(deep=True)
        self._page.widgets[idx] = _merge(widget, update)
        self._render()
        return self.page

    async def commit(self, widget_id: str, update: Dict[str, Any]) -> Page:
        """
        将当前组件列表写回 Page Store。
        失败时把 update 中涉及的字段回滚到快照值，通知界面并抛出 WidgetCommitError。
        """
        try:
            saved = await self._client.update_page_widgets(self.page_id, self._widgets_copy())
        except PageStoreError as e:
            message = _failure_message(update)
            self._rollback_fields(widget_id, update)
            self._release_snapshot(widget_id)
            self._report(widget_id, message)
            raise WidgetCommitError(widget_id, message) from e

        self._page.updated_at = saved.updated_at
        self._release_snapshot(widget_id)
        logger.debug(f"[{widget_id}] 已提交 {sorted(update)}")
        return saved

    # ── 组件增删改 ────────────────────────────────────

    async def add_widget(self, widget: Widget) -> Page:
        if self._page.find(widget.id) is not None:
            raise ValueError(f"Widget '{widget.id}' already exists on page '{self.page_id}'")
        self._page.widgets.append(widget.model_copy(deep=True))
        self._render()

        def rollback():
            idx = self._page.index_of(widget.id)
            if idx >= 0:
                del self._page.widgets[idx]

        return await self._persist(widget.id, "Failed to add widget", rollback)

    async def remove_widget(self, widget_id: str) -> Page:
        idx = self._page.index_of(widget_id)
        if idx < 0:
            logger.warning(f"[{widget_id}] remove_widget: 组件不存在")
            return self.page
        removed = self._page.widgets.pop(idx)
        self._snapshots.pop(widget_id, None)
        self._gestures.discard(widget_id)
        self._render()

        def rollback():
            if self._page.index_of(widget_id) < 0:
                self._page.widgets.insert(min(idx, len(self._page.widgets)), removed)

        return await self._persist(widget_id, "Failed to remove widget", rollback)

    async def rename_widget(self, widget_id: str, name: str) -> Page:
        """导航按钮修改按钮文字，片段修改显示名称。"""
        widget = self._page.find(widget_id)
        if widget is None:
            logger.warning(f"[{widget_id}] rename_widget: 组件不存在")
            return self.page

        if widget.kind == WidgetKind.NAV_BUTTON and widget.nav is not None:
            previous = widget.nav.label
            widget.nav.label = name
        else:
            previous = widget.name
            widget.name = name
        self._render()

        def rollback():
            target = self._page.find(widget_id)
            if target is None:
                return
            if target.kind == WidgetKind.NAV_BUTTON and target.nav is not None:
                target.nav.label = previous
            else:
                target.name = previous

        return await self._persist(widget_id, "Failed to rename widget", rollback)

    # ── 内部 ──────────────────────────────────────────

    async def _persist(self, widget_id: str, failure_message: str, rollback: Callable[[], None]) -> Page:
        try:
            saved = await self._client.update_page_widgets(self.page_id, self._widgets_copy())
        except PageStoreError as e:
            rollback()
            self._render()
            self._report(widget_id, failure_message)
            raise WidgetCommitError(widget_id, failure_message) from e
        self._page.updated_at = saved.updated_at
        return saved

    def _rollback_fields(self, widget_id: str, update: Dict[str, Any]):
        snapshot = self._snapshots.get(widget_id)
        idx = self._page.index_of(widget_id)
        if snapshot is None or idx < 0:
            logger.warning(f"[{widget_id}] 无可用快照，跳过回滚")
            return
        restored = {key: getattr(snapshot, key) for key in update if key in Widget.model_fields}
        self._page.widgets[idx] = _merge(self._page.widgets[idx], restored)
        logger.info(f"[{widget_id}] 已回滚 {sorted(restored)}")
        self._render()

    def _widgets_copy(self) -> List[Widget]:
        return [w.model_copy(deep=True) for w in self._page.widgets]

    def _release_snapshot(self, widget_id: str):
        # 手势进行中的快照保留到 end_gesture
        if widget_id not in self._gestures:
            self._snapshots.pop(widget_id, None)

    def _render(self):
        if self._on_render is not None:
            self._on_render(self.page)

    def _report(self, widget_id: str, message: str):
        logger.error(f"[{widget_id}] {message}")
        if self._on_error is not None:
            self._on_error(widget_id, message)
