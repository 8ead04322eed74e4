"""
Page Store 客户端：编辑器核心唯一依赖的外部协作方。
GET 读取页面，PUT 以完整组件列表覆盖写入。
"""

import logging
from typing import Any, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from snippet_builder.models import Page, PageSummary, Widget

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class PageStoreError(Exception):
    """Page Store 调用失败（网络错误或非 2xx 响应）。"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class PageStoreClient:
    """基于 httpx.AsyncClient 的 Page Store HTTP 客户端。"""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "PageStoreClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = e.response.text
            logger.error(f"{method} {path} 返回 {status}: {detail}")
            raise PageStoreError(f"Page store returned {status}", status_code=status) from e
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} 请求失败: {e}")
            raise PageStoreError(f"Page store unreachable: {e}") from e
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{method} {path} 响应不是合法 JSON: {e}")
            raise PageStoreError("Page store returned an invalid response", status_code=response.status_code) from e

    @staticmethod
    def _parse(model: Type[M], data: Any, what: str) -> M:
        """校验响应体；格式不符按 Page Store 故障处理。"""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"{what} 响应格式无效: {e.errors(include_url=False)}")
            raise PageStoreError("Page store returned an invalid response") from e

    # ── 读取 ──────────────────────────────────────────

    async def get_page(self, page_id: str) -> Page:
        data = await self._request("GET", f"/api/pages/{page_id}")
        return self._parse(Page, data, f"GET page {page_id}")

    async def list_pages(self) -> List[PageSummary]:
        data = await self._request("GET", "/api/pages")
        if not isinstance(data, list):
            raise PageStoreError("Page store returned an invalid response")
        return [self._parse(PageSummary, item, "GET pages") for item in data]

    # ── 写入 ──────────────────────────────────────────

    async def update_page_widgets(self, page_id: str, widgets: List[Widget]) -> Page:
        """整体覆盖页面的组件列表（不是单个组件的 patch）。"""
        payload = [w.model_dump(mode="json") for w in widgets]
        data = await self._request("PUT", f"/api/pages/{page_id}/widgets", json=payload)
        page = self._parse(Page, data, f"PUT page {page_id}")
        logger.debug(f"[{page_id}] 已写入 {len(widgets)} 个组件")
        return page
