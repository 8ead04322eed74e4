"""
导航消息总线：嵌入内容（沙箱中的片段）通过固定格式的消息请求页面列表或跳转，
不直接访问宿主内部状态。

请求:
    {"type": "list_pages", "request_id": "..."}
    {"type": "navigate", "page_id": "...", "request_id": "..."}
响应:
    {"type": "pages", "pages": [{"id": ..., "name": ...}], "request_id": ...}
    {"type": "navigated", "page_id": ..., "request_id": ...}
    {"type": "error", "message": ..., "request_id": ...}
"""

import logging
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from snippet_builder.models import PageSummary

logger = logging.getLogger(__name__)


# ── 请求 ──────────────────────────────────────────────

class ListPagesRequest(BaseModel):
    type: Literal["list_pages"]
    request_id: Optional[str] = None


class NavigateRequest(BaseModel):
    type: Literal["navigate"]
    page_id: str = ""
    request_id: Optional[str] = None


NavigationRequest = Annotated[Union[ListPagesRequest, NavigateRequest], Field(discriminator="type")]
_request_adapter: TypeAdapter = TypeAdapter(NavigationRequest)


# ── 响应 ──────────────────────────────────────────────

class PagesReply(BaseModel):
    type: Literal["pages"] = "pages"
    pages: List[PageSummary] = Field(default_factory=list)
    request_id: Optional[str] = None


class NavigatedReply(BaseModel):
    type: Literal["navigated"] = "navigated"
    page_id: str
    request_id: Optional[str] = None


class ErrorReply(BaseModel):
    type: Literal["error"] = "error"
    message: str
    request_id: Optional[str] = None


PagesProvider = Callable[[], List[PageSummary]]
NavigateCallback = Callable[[str], None]


class NavigationBus:
    """处理来自嵌入内容的导航消息，总是返回一条响应，不抛异常。"""

    def __init__(
        self,
        pages_provider: PagesProvider,
        on_navigate: Optional[NavigateCallback] = None,
        preview_mode: bool = True,
    ):
        self._pages_provider = pages_provider
        self._on_navigate = on_navigate
        # 编辑模式下按钮只可编辑，不触发跳转
        self.preview_mode = preview_mode

    def handle(self, message: Any) -> Dict[str, Any]:
        request_id = message.get("request_id") if isinstance(message, dict) else None
        try:
            request = _request_adapter.validate_python(message)
        except ValidationError as e:
            logger.warning(f"无效的导航消息: {e.errors(include_url=False)}")
            return ErrorReply(message="Invalid navigation message", request_id=request_id).model_dump()

        if isinstance(request, ListPagesRequest):
            pages = [PageSummary(id=p.id, name=p.name) for p in self._pages_provider()]
            return PagesReply(pages=pages, request_id=request.request_id).model_dump()

        return self._navigate(request).model_dump()

    def _navigate(self, request: NavigateRequest) -> BaseModel:
        page_id = request.page_id
        if not page_id:
            return ErrorReply(message="page_id is required", request_id=request.request_id)
        if not self.preview_mode:
            return ErrorReply(message="Navigation is disabled while editing", request_id=request.request_id)
        if not any(p.id == page_id for p in self._pages_provider()):
            logger.warning(f"[{page_id}] 导航目标页面不存在")
            return ErrorReply(message=f"Page '{page_id}' not found", request_id=request.request_id)

        logger.info(f"[{page_id}] 导航请求")
        if self._on_navigate is not None:
            self._on_navigate(page_id)
        return NavigatedReply(page_id=page_id, request_id=request.request_id)
