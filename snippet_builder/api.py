"""
FastAPI 路由：Page Store 的 REST 接口，以及嵌入内容使用的导航消息入口。
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from snippet_builder.models import Page, Widget
from snippet_builder.navigation import NavigationBus
from snippet_builder.page_store import PageNotFound, PageStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# 由 main.py 注入
_page_store: PageStore | None = None
_navigation: NavigationBus | None = None


def init_api(page_store: PageStore):
    """注入全局依赖（由 main.py 调用）。"""
    global _page_store, _navigation
    _page_store = page_store
    _navigation = NavigationBus(
        lambda: [p.summary() for p in page_store.list_pages(public_only=True)],
    )


# ── 健康检查 ──────────────────────────────────────────

@router.get("/health")
async def health() -> dict:
    return {"status": "OK", "message": "Server is running"}


# ── 页面查询 ──────────────────────────────────────────

@router.get("/pages")
async def list_pages(public_only: bool = False) -> list[dict[str, Any]]:
    """获取所有页面摘要。"""
    return [
        {
            "id": p.id,
            "name": p.name,
            "is_default": p.is_default,
            "is_public": p.is_public,
            "widget_count": len(p.widgets),
            "updated_at": p.updated_at,
        }
        for p in _page_store.list_pages(public_only=public_only)
    ]


@router.get("/pages/default")
async def get_default_page() -> Page:
    """获取默认落地页。"""
    page = _page_store.get_default_page()
    if page is None:
        raise HTTPException(404, "No pages configured")
    return page


@router.get("/pages/{page_id}")
async def get_page(page_id: str) -> Page:
    page = _page_store.get_page(page_id)
    if page is None:
        raise HTTPException(404, f"Page '{page_id}' not found")
    return page


# ── 组件写入 ──────────────────────────────────────────

@router.put("/pages/{page_id}/widgets")
async def update_page_widgets(page_id: str, widgets: list[Widget]) -> Page:
    """以完整列表覆盖页面组件。"""
    ids = [w.id for w in widgets]
    if len(ids) != len(set(ids)):
        raise HTTPException(400, "Duplicate widget ids")
    try:
        return _page_store.replace_widgets(page_id, widgets)
    except PageNotFound:
        logger.warning(f"[{page_id}] 写入组件失败：页面不存在")
        raise HTTPException(404, f"Page '{page_id}' not found")


# ── 导航消息 ──────────────────────────────────────────

@router.post("/navigation")
async def navigation_message(message: dict[str, Any]) -> dict[str, Any]:
    """处理嵌入内容发来的导航消息（列出页面 / 跳转校验）。"""
    return _navigation.handle(message)

