"""
HTML Snippet Builder 主入口：启动 Page Store 的 FastAPI 后端服务。
"""

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from snippet_builder import api
from snippet_builder.config_loader import AppConfig, PageSeed, load_config
from snippet_builder.models import Page, Widget
from snippet_builder.page_store import PageStore

# 日志配置
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def seed_to_page(seed: PageSeed) -> Page:
    """将配置中的页面定义转换为 Page。"""
    return Page(
        id=seed.id,
        name=seed.name,
        is_default=seed.is_default,
        is_public=seed.is_public,
        widgets=[Widget.model_validate(w) for w in seed.widgets],
    )


def seed_pages(page_store: PageStore, config: AppConfig) -> int:
    """写入配置中尚不存在的页面，返回新写入的数量。"""
    created = 0
    for seed in config.pages:
        try:
            if page_store.seed_page(seed_to_page(seed)):
                created += 1
        except ValueError as e:
            logger.error(f"[{seed.id}] 页面定义无效: {e}")
    return created


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan 事件处理：启动时写入初始页面，关闭时关闭数据库。"""
    page_store = app.state.page_store
    config = app.state.config

    created = seed_pages(page_store, config)
    if created:
        logger.info(f"已写入 {created} 个初始页面")
    else:
        logger.info("没有需要写入的初始页面")

    yield  # 应用运行中

    logger.info("正在关闭...")
    page_store.close()


def create_app(config: AppConfig | None = None, page_store: PageStore | None = None) -> FastAPI:
    """创建并配置 FastAPI 应用。"""
    app = FastAPI(
        title="HTML Snippet Builder API",
        description="Page store for positionable HTML snippets and navigation buttons",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── 初始化核心组件 ────────────────────────────────────────
    if config is None:
        logger.info("正在加载配置...")
        config = load_config()
    logger.info(f"已加载 {len(config.pages)} 个页面定义")

    if page_store is None:
        page_store = PageStore(config.page_store.db_path)

    api.init_api(page_store=page_store)
    app.include_router(api.router)

    app.state.config = config
    app.state.page_store = page_store

    return app


def main():
    """主入口。"""
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 10000

    logger.info(f"🚀 启动 HTML Snippet Builder 后端 (port={port})...")

    app = create_app()

    uvicorn.run(
        app,
        host="127.0.0.1",
        port=port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
