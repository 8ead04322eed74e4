"""
页面存储：基于 TinyDB 的页面持久化层。
页面按 id 唯一，组件列表整体覆盖写入。
"""

import logging
import time
from pathlib import Path
from typing import List, Optional

from tinydb import Query, TinyDB

from snippet_builder.config_loader import project_root
from snippet_builder.models import Page, Widget

logger = logging.getLogger(__name__)


class PageNotFound(Exception):
    def __init__(self, page_id: str):
        self.page_id = page_id
        super().__init__(f"Page '{page_id}' not found")


class PageStore:
    """TinyDB 页面操作封装。"""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            db_path = project_root() / "data" / "pages.json"
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db = TinyDB(str(db_path), indent=2, ensure_ascii=False)
        self.pages_table = self.db.table("pages")
        logger.info(f"TinyDB 数据库已打开: {db_path}")

    # ── 写入 ──────────────────────────────────────────

    def save_page(self, page: Page) -> Page:
        """创建或覆盖整个页面。"""
        P = Query()
        self.pages_table.upsert(page.model_dump(mode="json"), P.id == page.id)
        logger.debug(f"[{page.id}] 页面已保存")
        return page

    def seed_page(self, page: Page) -> bool:
        """仅当页面不存在时写入，返回是否写入。"""
        if self.get_page(page.id) is not None:
            return False
        self.save_page(page)
        return True

    def replace_widgets(self, page_id: str, widgets: List[Widget]) -> Page:
        """
        用完整列表覆盖页面组件，并更新 updated_at。
        页面不存在时抛出 PageNotFound。
        """
        page = self.get_page(page_id)
        if page is None:
            raise PageNotFound(page_id)

        page.widgets = list(widgets)
        page.updated_at = time.time()
        P = Query()
        self.pages_table.update(
            {
                "widgets": [w.model_dump(mode="json") for w in page.widgets],
                "updated_at": page.updated_at,
            },
            P.id == page_id,
        )
        logger.info(f"[{page_id}] 组件列表已更新 ({len(widgets)} 个)")
        return page

    # ── 查询 ──────────────────────────────────────────

    def get_page(self, page_id: str) -> Optional[Page]:
        P = Query()
        results = self.pages_table.search(P.id == page_id)
        return Page.model_validate(results[0]) if results else None

    def list_pages(self, public_only: bool = False) -> List[Page]:
        pages = [Page.model_validate(doc) for doc in self.pages_table.all()]
        if public_only:
            pages = [p for p in pages if p.is_public]
        return pages

    def get_default_page(self) -> Optional[Page]:
        """返回默认页面；未标记默认时回退到第一个页面。"""
        pages = self.list_pages()
        for p in pages:
            if p.is_default:
                return p
        return pages[0] if pages else None

    # ── 管理 ──────────────────────────────────────────

    def close(self):
        """关闭数据库。"""
        self.db.close()
