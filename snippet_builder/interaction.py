"""
拖拽 / 调整尺寸交互控制器。

每个组件一个状态机：Idle -> Dragging | Resizing -> Idle。
指针移动时立即更新本地几何并调度防抖写入；
指针抬起（或取消、组件卸载）时立即提交最后一帧的几何。
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from pydantic import BaseModel

from snippet_builder.config_loader import EditorSettings
from snippet_builder.debounced_sync import DebouncedSync
from snippet_builder.geometry import clamp_drag, clamp_resize
from snippet_builder.models import Position, Size, Widget
from snippet_builder.optimistic_store import OptimisticStore

logger = logging.getLogger(__name__)


class InteractionMode(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING = "resizing"


class PointerTarget(str, Enum):
    """指针按下时所在的组件区域，由界面适配层判定。"""
    BODY = "body"
    RESIZE_HANDLE = "resize_handle"
    CONTROLS = "controls"  # 编辑 / 删除按钮


class Point(BaseModel):
    x: float = 0.0
    y: float = 0.0


class PointerEvent(BaseModel):
    """鼠标 / 触摸 / 触控笔事件，坐标为视口坐标。"""
    x: float
    y: float
    target: PointerTarget = PointerTarget.BODY
    pointer_type: str = "mouse"


class ContainerRect(BaseModel):
    """组件所在定位容器的视口矩形。"""
    left: float = 0.0
    top: float = 0.0
    width: float
    height: float


class InteractionSession(BaseModel):
    """一次手势的瞬时状态，只在按下到抬起之间存在。"""
    mode: InteractionMode
    widget_id: str
    anchor_pointer: Point
    anchor_offset: Point = Point()
    anchor_position: Position
    anchor_size: Optional[Size] = None


ContainerProvider = Callable[[], ContainerRect]
Geometry = Union[Position, Size]


class DragResizeController:
    """单个组件的拖拽 / 缩放状态机。"""

    def __init__(
        self,
        widget_id: str,
        store: OptimisticStore,
        sync: DebouncedSync,
        container: ContainerProvider,
        settings: EditorSettings | None = None,
    ):
        self.widget_id = widget_id
        self._store = store
        self._sync = sync
        self._container = container
        self._settings = settings or EditorSettings()
        self._session: Optional[InteractionSession] = None
        self._last_update: Optional[Dict[str, Any]] = None

    @property
    def mode(self) -> InteractionMode:
        return self._session.mode if self._session else InteractionMode.IDLE

    @property
    def is_active(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> Optional[InteractionSession]:
        return self._session

    # ── 事件入口 ──────────────────────────────────────

    def pointer_down(self, event: PointerEvent) -> bool:
        """开始手势。缩放手柄优先于拖拽，控制按钮区域不触发手势。"""
        if self._session is not None:
            logger.debug(f"[{self.widget_id}] 手势进行中，忽略 pointer_down")
            return False
        if event.target == PointerTarget.CONTROLS:
            return False

        widget = self._store.get_widget(self.widget_id)
        if widget is None:
            return False

        if event.target == PointerTarget.RESIZE_HANDLE:
            if not widget.is_resizable:
                return False
            mode = InteractionMode.RESIZING
        else:
            mode = InteractionMode.DRAGGING

        container = self._container()
        width, height = self._extent(widget)
        self._session = InteractionSession(
            mode=mode,
            widget_id=self.widget_id,
            anchor_pointer=Point(x=event.x, y=event.y),
            anchor_offset=Point(
                x=event.x - (container.left + widget.position.x),
                y=event.y - (container.top + widget.position.y),
            ),
            anchor_position=widget.position.model_copy(),
            anchor_size=Size(width=width, height=height),
        )
        self._last_update = None
        self._store.begin_gesture(self.widget_id)
        logger.debug(f"[{self.widget_id}] Idle -> {mode.value} ({event.pointer_type})")
        return True

    def pointer_move(self, event: PointerEvent) -> Optional[Geometry]:
        """计算新几何并立即应用到本地；没有活动手势时静默忽略。"""
        session = self._session
        if session is None:
            return None
        widget = self._store.get_widget(self.widget_id)
        if widget is None:
            return None

        container = self._container()
        s = self._settings
        if session.mode == InteractionMode.DRAGGING:
            width, height = self._extent(widget)
            geometry: Geometry = clamp_drag(
                event.x - container.left - session.anchor_offset.x,
                event.y - container.top - session.anchor_offset.y,
                width,
                height,
                container.width,
                container.height,
                grid_size=s.grid_size,
            )
            update = {"position": geometry}
        else:
            # 上界使用手势开始时的位置（缩放期间位置不会变化）
            geometry = clamp_resize(
                session.anchor_size.width + (event.x - session.anchor_pointer.x),
                session.anchor_size.height + (event.y - session.anchor_pointer.y),
                min_width=s.min_width,
                min_height=s.min_height,
                max_width=min(s.max_width, container.width - session.anchor_position.x),
                max_height=min(s.max_height, container.height - session.anchor_position.y),
                grid_size=s.grid_size,
            )
            update = {"size": geometry}

        self._store.apply_local(self.widget_id, update)
        self._sync.schedule(self.widget_id, update)
        self._last_update = update
        return geometry

    async def pointer_up(self, event: Optional[PointerEvent] = None) -> bool:
        """
        结束手势：立即（不经防抖）提交最后一次计算出的几何。
        无论提交成功与否，状态都回到 Idle。
        """
        if self._session is None:
            return False
        if event is not None:
            self.pointer_move(event)

        mode = self._session.mode
        update = self._last_update
        ok = True
        try:
            if update is not None:
                ok = await self._sync.flush(self.widget_id, update)
        finally:
            self._store.end_gesture(self.widget_id)
            self._session = None
            self._last_update = None
            logger.debug(f"[{self.widget_id}] {mode.value} -> Idle")
        return ok

    async def cancel(self) -> bool:
        """异常终止（指针离开窗口、pointercancel）仍然提交最后可见的几何。"""
        if self._session is None:
            return False
        logger.info(f"[{self.widget_id}] 手势被取消，提交最后位置")
        return await self.pointer_up()

    async def teardown(self) -> bool:
        return await self.cancel()

    # ── 内部 ──────────────────────────────────────────

    def _extent(self, widget: Widget) -> tuple[int, int]:
        if widget.size is not None:
            return widget.size.width, widget.size.height
        return self._settings.nav_button_width, self._settings.nav_button_height
