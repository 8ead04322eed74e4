"""
页面编辑会话：界面适配层与交互引擎之间的接缝。

一个会话对应一个正在编辑的页面：
- 每个组件一个 DragResizeController（按需创建）
- 所有组件共用一个按 widget_id 隔离的 DebouncedSync
- 文档级的 pointerup / pointercancel / pointerleave 统一在这里结束活动手势
- 预览模式下不接受手势，嵌入内容的导航消息经 NavigationBus 转发
"""

import logging
import uuid
from typing import Dict, List, Optional

from snippet_builder.config_loader import EditorSettings
from snippet_builder.debounced_sync import DebouncedSync
from snippet_builder.interaction import ContainerRect, DragResizeController, Geometry, PointerEvent
from snippet_builder.models import NavButtonContent, Page, PageSummary, Position, Widget, WidgetKind
from snippet_builder.navigation import NavigateCallback, NavigationBus
from snippet_builder.optimistic_store import ErrorCallback, OptimisticStore, RenderCallback
from snippet_builder.page_client import PageStoreClient
from snippet_builder.templates import get_template

logger = logging.getLogger(__name__)


class PageEditor:
    """单页编辑会话。同一时间只允许一个活动手势（单指针编辑面）。"""

    def __init__(
        self,
        store: OptimisticStore,
        container: ContainerRect,
        settings: EditorSettings | None = None,
        on_navigate: Optional[NavigateCallback] = None,
        pages: Optional[List[PageSummary]] = None,
        preview_mode: bool = False,
    ):
        self.store = store
        self.settings = settings or EditorSettings()
        self._container = container
        self.sync = DebouncedSync(store.commit, delay=self.settings.debounce_delay)
        self._controllers: Dict[str, DragResizeController] = {}
        self._active: Optional[DragResizeController] = None
        self._pages: List[PageSummary] = list(pages) if pages is not None else [store.page.summary()]
        # 预览模式下组件不可拖拽，导航按钮可以跳转
        self.navigation = NavigationBus(
            lambda: list(self._pages),
            on_navigate=on_navigate,
            preview_mode=preview_mode,
        )

    @classmethod
    async def open(
        cls,
        client: PageStoreClient,
        page_id: str,
        container: ContainerRect,
        settings: EditorSettings | None = None,
        on_render: Optional[RenderCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_navigate: Optional[NavigateCallback] = None,
        preview_mode: bool = False,
    ) -> "PageEditor":
        store = await OptimisticStore.load(client, page_id, on_render=on_render, on_error=on_error)
        pages = await client.list_pages()
        return cls(
            store,
            container,
            settings=settings,
            on_navigate=on_navigate,
            pages=pages,
            preview_mode=preview_mode,
        )

    @property
    def page(self) -> Page:
        return self.store.page

    @property
    def container(self) -> ContainerRect:
        return self._container

    @property
    def active_widget_id(self) -> Optional[str]:
        return self._active.widget_id if self._active else None

    @property
    def preview_mode(self) -> bool:
        return self.navigation.preview_mode

    async def set_preview_mode(self, enabled: bool):
        """切换预览：进入预览时先结束活动手势（仍会提交）。"""
        if enabled and self._active is not None:
            await self.pointer_cancel()
        self.navigation.preview_mode = enabled
        logger.info(f"[{self.store.page_id}] 预览模式: {enabled}")

    def set_pages(self, pages: List[PageSummary]):
        """更新导航可用的页面列表。"""
        self._pages = list(pages)

    def set_container(self, rect: ContainerRect):
        """容器尺寸变化：不重新约束已有组件（软约束）。"""
        self._container = rect

    def controller(self, widget_id: str) -> DragResizeController:
        ctrl = self._controllers.get(widget_id)
        if ctrl is None:
            ctrl = DragResizeController(
                widget_id,
                self.store,
                self.sync,
                lambda: self._container,
                settings=self.settings,
            )
            if self.store.get_widget(widget_id) is not None:
                self._controllers[widget_id] = ctrl
        return ctrl

    # ── 指针事件 ──────────────────────────────────────

    def pointer_down(self, widget_id: str, event: PointerEvent) -> bool:
        if self.preview_mode:
            return False
        if self._active is not None:
            logger.debug(f"[{widget_id}] 已有活动手势 ({self._active.widget_id})，忽略")
            return False
        if self.store.get_widget(widget_id) is None:
            logger.debug(f"[{widget_id}] 组件不存在，忽略 pointer_down")
            return False
        ctrl = self.controller(widget_id)
        if ctrl.pointer_down(event):
            self._active = ctrl
            return True
        return False

    def pointer_move(self, event: PointerEvent) -> Optional[Geometry]:
        if self._active is None:
            return None
        return self._active.pointer_move(event)

    async def pointer_up(self, event: Optional[PointerEvent] = None) -> bool:
        ctrl, self._active = self._active, None
        if ctrl is None:
            return False
        return await ctrl.pointer_up(event)

    async def pointer_cancel(self) -> bool:
        ctrl, self._active = self._active, None
        if ctrl is None:
            return False
        return await ctrl.cancel()

    async def pointer_leave(self) -> bool:
        """指针离开文档且没有 up 事件，与 cancel 相同处理。"""
        return await self.pointer_cancel()

    # ── 组件管理 ──────────────────────────────────────

    async def add_snippet(self, template_key: str = "blank", position: Optional[Position] = None) -> Widget:
        template = get_template(template_key)
        widget = Widget(
            id=f"snippet-{uuid.uuid4().hex[:8]}",
            kind=WidgetKind.SNIPPET,
            position=position or Position(),
            size=template.default_size.model_copy(),
            html=template.html,
            name=template.name,
        )
        await self.store.add_widget(widget)
        logger.info(f"[{widget.id}] 已添加片段 ({template_key})")
        return widget

    async def add_nav_button(
        self,
        target_page_id: str,
        label: str,
        style: str = "btn-primary",
        position: Optional[Position] = None,
    ) -> Widget:
        widget = Widget(
            id=f"nav-{uuid.uuid4().hex[:8]}",
            kind=WidgetKind.NAV_BUTTON,
            position=position or Position(x=20, y=20),
            nav=NavButtonContent(target_page_id=target_page_id, label=label, style=style),
        )
        await self.store.add_widget(widget)
        logger.info(f"[{widget.id}] 已添加导航按钮 -> {target_page_id}")
        return widget

    async def remove_widget(self, widget_id: str) -> Page:
        ctrl = self._controllers.pop(widget_id, None)
        if ctrl is not None and ctrl is self._active:
            self._active = None
            await ctrl.teardown()
        self.sync.discard(widget_id)
        return await self.store.remove_widget(widget_id)

    async def rename_widget(self, widget_id: str, name: str) -> Page:
        return await self.store.rename_widget(widget_id, name)

    # ── 生命周期 ──────────────────────────────────────

    async def close(self):
        """卸载：结束活动手势（仍会提交），写出剩余的防抖值。"""
        if self._active is not None:
            await self.pointer_cancel()
        await self.sync.aclose(flush=True)
        self._controllers.clear()
        logger.debug(f"[{self.store.page_id}] 编辑会话已关闭")
